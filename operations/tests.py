import json
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.test import APIClient

from . import services
from .finance_utils import amount_in_words, estimation_profit, integer_to_words, vat_breakdown
from .models import Comment, Estimation, Lpo, Project, WorkCompletion, WorkCompletionImage
from .workflow import (
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    allowed_transitions,
    ensure_transition,
    infer_status_after_progress,
    is_transition_allowed,
)

User = get_user_model()

PASSWORD = 'test-pass-123'
IN_MEMORY_STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.InMemoryStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}


def make_user(username, role, **extra):
    return User.objects.create_user(
        username=username,
        password=PASSWORD,
        email=f'{username}@example.com',
        role=role,
        **extra,
    )


def client_data(**overrides):
    data = {
        'client_name': 'Al Noor Facilities',
        'client_address': 'Office 12, Business Bay, Dubai',
        'pincode': '123456',
        'mobile_number': '+971501234567',
        'trn_number': '100200300400003',
        'email': 'facilities@example.com',
    }
    data.update(overrides)
    return data


def estimation_data(project, **overrides):
    today = timezone.localdate()
    data = {
        'project': project,
        'work_start_date': today,
        'work_end_date': today + timedelta(days=10),
        'valid_until': today + timedelta(days=30),
        'payment_due_by': 30,
        'subject': 'Chiller maintenance',
        'materials': [{'description': 'Copper pipe', 'uom': 'm', 'quantity': 10, 'unit_price': 5}],
        'labour': [{'designation': 'Technician', 'days': 2, 'price': 40}],
        'terms': [{'description': 'Transport', 'uom': 'trip', 'quantity': 1, 'unit_price': 30}],
        'quotation_amount': Decimal('200'),
        'commission_amount': Decimal('10'),
    }
    data.update(overrides)
    return data


def quotation_data(project, **overrides):
    data = {
        'project': project,
        'valid_until': timezone.localdate() + timedelta(days=30),
        'scope_of_work': ['Chiller servicing'],
        'terms_and_conditions': ['50% advance'],
        'items': [{'description': 'Chiller service visit', 'quantity': 2, 'unit_price': 500}],
    }
    data.update(overrides)
    return data


def image_file(name='site.jpg'):
    return SimpleUploadedFile(name, b'\xff\xd8\xff\xe0fake-jpeg', content_type='image/jpeg')


class OperationsTestCase(TestCase):
    def setUp(self):
        self.admin = make_user('admin', User.Roles.ADMIN, first_name='Amal')
        self.super_admin = make_user('chief', User.Roles.SUPER_ADMIN, first_name='Chief')
        self.engineer = make_user('engineer', User.Roles.ENGINEER, first_name='Eng')
        self.finance = make_user('finance', User.Roles.FINANCE)
        self.customer = services.create_client(client_data(), actor=self.admin)
        self.project = services.create_project(
            {
                'project_name': 'Chiller Plant',
                'project_description': 'Quarterly maintenance',
                'client': self.customer,
                'site_address': 'Tower B',
                'site_location': 'Dubai',
            },
            actor=self.admin,
        )
        self.api = APIClient()

    def login(self, user):
        self.api.force_authenticate(user)

    def approved_quotation(self):
        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        quotation = services.create_quotation(quotation_data(self.project), actor=self.engineer)
        return services.decide_quotation(quotation, True, actor=self.admin)


class WorkflowTests(TestCase):
    def test_every_status_has_a_frozen_target_set(self):
        for status in Project.Status:
            self.assertIsInstance(allowed_transitions(status), frozenset)
        with self.assertRaises(TypeError):
            STATUS_TRANSITIONS[Project.Status.DRAFT] = frozenset()

    def test_terminal_statuses(self):
        self.assertEqual(TERMINAL_STATUSES, {Project.Status.CANCELLED, Project.Status.PROJECT_CLOSED})

    def test_transition_checks(self):
        self.assertTrue(is_transition_allowed(Project.Status.DRAFT, Project.Status.ESTIMATION_PREPARED))
        self.assertFalse(is_transition_allowed(Project.Status.DRAFT, Project.Status.QUOTATION_SENT))
        self.assertTrue(is_transition_allowed(Project.Status.ON_HOLD, Project.Status.IN_PROGRESS))
        self.assertFalse(is_transition_allowed(Project.Status.CANCELLED, Project.Status.DRAFT))

    def test_ensure_transition_message(self):
        with self.assertRaises(ValidationError) as ctx:
            ensure_transition('draft', 'work_completed')
        self.assertEqual(str(ctx.exception.detail[0]), 'Invalid status transition from draft to work_completed')

    def test_progress_inference(self):
        S = Project.Status
        self.assertEqual(infer_status_after_progress(S.LPO_RECEIVED, 0, 10), S.WORK_STARTED)
        self.assertEqual(infer_status_after_progress(S.WORK_STARTED, 10, 20), S.IN_PROGRESS)
        self.assertEqual(infer_status_after_progress(S.WORK_STARTED, 0, 20), S.WORK_STARTED)
        self.assertEqual(infer_status_after_progress(S.IN_PROGRESS, 50, 100), S.WORK_COMPLETED)
        self.assertEqual(infer_status_after_progress(S.ON_HOLD, 50, 60), S.ON_HOLD)


class FinanceUtilsTests(TestCase):
    def test_amount_in_words(self):
        self.assertEqual(amount_in_words(Decimal('105.50')), 'One Hundred Five UAE Dirhams and Fifty Fils')
        self.assertEqual(amount_in_words(Decimal('1050')), 'One Thousand Fifty UAE Dirhams')

    def test_integer_to_words(self):
        self.assertEqual(integer_to_words(0), 'Zero')
        self.assertEqual(integer_to_words(21), 'Twenty-One')
        self.assertEqual(integer_to_words(1250000), 'One Million Two Hundred Fifty Thousand')

    def test_vat_and_profit(self):
        self.assertEqual(
            vat_breakdown(Decimal('1000'), Decimal('5')),
            (Decimal('1000.00'), Decimal('50.00'), Decimal('1050.00')),
        )
        self.assertEqual(estimation_profit(Decimal('200'), Decimal('160'), Decimal('10')), Decimal('30.00'))
        self.assertIsNone(estimation_profit(None, Decimal('160'), Decimal('10')))


class NumberingTests(OperationsTestCase):
    def test_project_numbers_are_sequential_per_year(self):
        year = timezone.localdate().year
        self.assertEqual(self.project.project_number, f'PRJ-{year}-0001')
        second = services.create_project(
            {'project_name': 'Second', 'client': self.customer, 'site_address': 'A', 'site_location': 'B'},
            actor=self.admin,
        )
        self.assertEqual(second.project_number, f'PRJ-{year}-0002')
        self.assertEqual(second.status, Project.Status.DRAFT)
        self.assertEqual(second.progress, 0)

    def test_estimation_and_quotation_numbers(self):
        year = timezone.localdate().year
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.assertEqual(estimation.estimation_number, f'EST-{year}-{self.project.pk:04d}-01')
        quotation = services.create_quotation(quotation_data(self.project), actor=self.engineer)
        self.assertEqual(quotation.quotation_number, f'QTN-{year}-0001')


class ClientServiceTests(OperationsTestCase):
    def test_duplicate_trn_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_client(client_data(client_name='Other'))
        self.assertEqual(str(ctx.exception.detail[0]), 'Client with this TRN already exists')

    def test_missing_fields_are_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_client(client_data(trn_number='555', client_name=''))
        self.assertEqual(
            str(ctx.exception.detail[0]), 'Client name, address, pincode, mobile number and TRN are required'
        )

    def test_update_keeps_blank_values_and_checks_trn(self):
        other = services.create_client(client_data(trn_number='999888777666555', client_name='Other'))
        services.update_client(self.customer, {'client_name': '', 'telephone_number': '+97142223333'})
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.client_name, 'Al Noor Facilities')
        self.assertEqual(self.customer.telephone_number, '+97142223333')
        with self.assertRaises(ValidationError) as ctx:
            services.update_client(self.customer, {'trn_number': other.trn_number})
        self.assertEqual(str(ctx.exception.detail[0]), 'Another client already uses this TRN')
        with self.assertRaises(ValidationError) as ctx:
            services.update_client(self.customer, {'pincode': '12ab'})
        self.assertEqual(str(ctx.exception.detail[0]), 'Pincode must be 6 digits')


class ProjectServiceTests(OperationsTestCase):
    def test_delete_only_in_draft(self):
        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.project.refresh_from_db()
        with self.assertRaises(ValidationError) as ctx:
            services.delete_project(self.project)
        self.assertEqual(str(ctx.exception.detail[0]), 'Cannot delete project that has already started')

        draft = services.create_project(
            {'project_name': 'Draft', 'client': self.customer, 'site_address': 'A', 'site_location': 'B'}
        )
        services.delete_project(draft)
        self.assertFalse(Project.objects.filter(pk=draft.pk).exists())

    def test_update_status_follows_table(self):
        with self.assertRaises(ValidationError):
            services.update_project_status(self.project, Project.Status.WORK_COMPLETED, actor=self.admin)
        services.update_project_status(self.project, Project.Status.ESTIMATION_PREPARED, actor=self.admin)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.Status.ESTIMATION_PREPARED)
        self.assertEqual(self.project.updated_by, self.admin)

    def test_progress_range_and_comment(self):
        with self.assertRaises(ValidationError) as ctx:
            services.update_project_progress(self.project, 101, actor=self.engineer)
        self.assertEqual(str(ctx.exception.detail[0]), 'Progress must be between 0 and 100')
        services.update_project_progress(self.project, 25, actor=self.engineer)
        entry = self.project.comments.get(action_type=Comment.ActionType.PROGRESS_UPDATE)
        self.assertEqual(entry.content, 'Progress updated from 0% to 25%')
        self.assertEqual(entry.progress, 25)
        self.assertEqual(entry.user, self.engineer)

    def test_assign_requires_active_engineer(self):
        with self.assertRaises(ValidationError) as ctx:
            services.assign_project(self.project, 999999, actor=self.admin)
        self.assertEqual(str(ctx.exception.detail[0]), 'Engineer not found')
        self.engineer.is_active = False
        self.engineer.save(update_fields=['is_active'])
        with self.assertRaises(ValidationError):
            services.assign_project(self.project, self.engineer.pk, actor=self.admin)


class EstimationServiceTests(OperationsTestCase):
    def test_totals_and_profit(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.assertEqual(estimation.estimated_amount, Decimal('160.00'))
        self.assertEqual(estimation.profit, Decimal('30.00'))
        self.assertEqual(estimation.materials.count(), 1)
        self.assertEqual(estimation.terms.count(), 1)
        self.assertEqual(estimation.labour.get().total, Decimal('80.00'))
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.Status.ESTIMATION_PREPARED)

    def test_one_estimation_per_project(self):
        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        with self.assertRaises(ValidationError) as ctx:
            services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.assertEqual(
            str(ctx.exception.detail[0]),
            'Only one estimation is allowed per project. Update the existing estimation instead.',
        )

    def test_item_validation(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_estimation(
                estimation_data(self.project, materials=[], labour=[], terms=[]), actor=self.engineer
            )
        self.assertEqual(str(ctx.exception.detail[0]), 'At least one item (materials, labour, or terms) is required')
        with self.assertRaises(ValidationError) as ctx:
            services.create_estimation(
                estimation_data(self.project, labour=[{'designation': 'Helper'}]), actor=self.engineer
            )
        self.assertEqual(str(ctx.exception.detail[0]), 'Labour items require designation, days, and price')
        today = timezone.localdate()
        with self.assertRaises(ValidationError) as ctx:
            services.create_estimation(
                estimation_data(self.project, work_start_date=today, work_end_date=today), actor=self.engineer
            )
        self.assertEqual(str(ctx.exception.detail[0]), 'Work end date must be after start date')
        self.assertFalse(Estimation.objects.exists())

    def test_approval_requires_check(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        with self.assertRaises(ValidationError) as ctx:
            services.approve_estimation(estimation, True, actor=self.admin)
        self.assertEqual(str(ctx.exception.detail[0]), 'Estimation must be checked before approval/rejection')

        services.check_estimation(estimation, True, 'Looks right', actor=self.admin)
        with self.assertRaises(ValidationError) as ctx:
            services.check_estimation(estimation, True, actor=self.admin)
        self.assertEqual(str(ctx.exception.detail[0]), 'Estimation is already checked')

        services.approve_estimation(estimation, True, actor=self.super_admin)
        estimation.refresh_from_db()
        self.assertTrue(estimation.is_approved)
        self.assertEqual(estimation.approved_by, self.super_admin)
        with self.assertRaises(ValidationError) as ctx:
            services.update_estimation(estimation, {'subject': 'Changed'}, actor=self.engineer)
        self.assertEqual(str(ctx.exception.detail[0]), 'Cannot update approved estimation')
        with self.assertRaises(ValidationError) as ctx:
            services.delete_estimation(estimation)
        self.assertEqual(str(ctx.exception.detail[0]), 'Cannot delete approved estimation')

    def test_rejected_check_returns_project_to_draft(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        services.check_estimation(estimation, False, 'Wrong rates', actor=self.admin)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.Status.DRAFT)
        self.assertTrue(
            self.project.comments.filter(action_type=Comment.ActionType.REJECTION, content='Wrong rates').exists()
        )

    def test_update_recalculates_and_resets_check(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        services.check_estimation(estimation, True, actor=self.admin)
        with self.assertRaises(ValidationError) as ctx:
            services.update_estimation(estimation, {'materials': [{'description': 'Pipe', 'quantity': 1, 'unit_price': 1}]})
        self.assertEqual(str(ctx.exception.detail[0]), 'UOM is required for material items')

        services.update_estimation(
            estimation,
            {'materials': [{'description': 'Pipe', 'uom': 'm', 'quantity': 20, 'unit_price': 5}]},
            actor=self.engineer,
        )
        estimation.refresh_from_db()
        self.assertFalse(estimation.is_checked)
        self.assertIsNone(estimation.checked_by)
        self.assertEqual(estimation.estimated_amount, Decimal('210.00'))
        self.assertEqual(estimation.profit, Decimal('-20.00'))


class QuotationAndLpoServiceTests(OperationsTestCase):
    def test_quotation_totals_and_status(self):
        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        quotation = services.create_quotation(quotation_data(self.project), actor=self.engineer)
        self.assertEqual(quotation.subtotal, Decimal('1000.00'))
        self.assertEqual(quotation.vat_amount, Decimal('50.00'))
        self.assertEqual(quotation.net_amount, Decimal('1050.00'))
        self.assertEqual(quotation.estimation, self.project.estimation)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.Status.QUOTATION_SENT)

        with self.assertRaises(ValidationError) as ctx:
            services.create_quotation(quotation_data(self.project), actor=self.engineer)
        self.assertEqual(str(ctx.exception.detail[0]), 'Project already has a quotation')

    def test_quotation_item_validation(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_quotation(quotation_data(self.project, items={'description': 'x'}))
        self.assertEqual(str(ctx.exception.detail[0]), 'Items must be an array')
        with self.assertRaises(ValidationError) as ctx:
            services.create_quotation(quotation_data(self.project, items=[{'description': 'x'}]))
        self.assertEqual(
            str(ctx.exception.detail[0]), 'Quotation items require description, quantity, and unit_price'
        )

    def test_decision_and_delete_cascade_status(self):
        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        quotation = services.create_quotation(quotation_data(self.project), actor=self.engineer)
        services.decide_quotation(quotation, False, 'Too expensive', actor=self.admin)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.Status.QUOTATION_REJECTED)

        services.update_quotation(
            quotation,
            {'items': [{'description': 'Single visit', 'quantity': 1, 'unit_price': 800}]},
            actor=self.engineer,
        )
        quotation.refresh_from_db()
        self.assertEqual(quotation.net_amount, Decimal('840.00'))

        services.delete_quotation(quotation, actor=self.admin)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.Status.ESTIMATION_PREPARED)

    def test_lpo_requires_approved_quotation(self):
        lpo_data = {'project': self.project, 'lpo_number': 'LPO-001', 'lpo_date': timezone.localdate()}
        with self.assertRaises(ValidationError) as ctx:
            services.create_lpo(dict(lpo_data), actor=self.finance)
        self.assertEqual(str(ctx.exception.detail[0]), 'Quotation not found for this project')

        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        services.create_quotation(quotation_data(self.project), actor=self.engineer)
        with self.assertRaises(ValidationError) as ctx:
            services.create_lpo(dict(lpo_data), actor=self.finance)
        self.assertEqual(str(ctx.exception.detail[0]), 'Quotation must be approved before registering an LPO')

        services.decide_quotation(self.project.quotation, True, actor=self.admin)
        lpo = services.create_lpo(dict(lpo_data), actor=self.finance)
        self.assertEqual(lpo.amount, Decimal('1050.00'))
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.Status.LPO_RECEIVED)

        with self.assertRaises(ValidationError) as ctx:
            services.create_lpo(dict(lpo_data, lpo_number='LPO-002'), actor=self.finance)
        self.assertEqual(str(ctx.exception.detail[0]), 'Project already has an LPO')

    def test_progress_after_lpo_moves_project_through_work(self):
        self.approved_quotation()
        services.create_lpo(
            {'project': self.project, 'lpo_number': 'LPO-001', 'lpo_date': timezone.localdate()}, actor=self.finance
        )
        self.project.refresh_from_db()
        services.update_project_progress(self.project, 10, actor=self.engineer)
        self.assertEqual(self.project.status, Project.Status.WORK_STARTED)
        services.update_project_progress(self.project, 40, actor=self.engineer)
        self.assertEqual(self.project.status, Project.Status.IN_PROGRESS)
        services.update_project_progress(self.project, 100, actor=self.engineer)
        self.assertEqual(self.project.status, Project.Status.WORK_COMPLETED)


class InvoiceDataTests(OperationsTestCase):
    def test_errors(self):
        with self.assertRaises(ValidationError) as ctx:
            services.generate_invoice_data('abc')
        self.assertEqual(str(ctx.exception.detail[0]), 'Valid project ID is required')
        with self.assertRaises(NotFound):
            services.generate_invoice_data(999999)
        with self.assertRaises(NotFound) as ctx:
            services.generate_invoice_data(self.project.pk)
        self.assertEqual(str(ctx.exception.detail), 'Quotation not found for this project')
        self.approved_quotation()
        with self.assertRaises(NotFound) as ctx:
            services.generate_invoice_data(self.project.pk)
        self.assertEqual(str(ctx.exception.detail), 'LPO not found for this project')

    def test_invoice_payload(self):
        self.approved_quotation()
        services.create_lpo(
            {'project': self.project, 'lpo_number': 'LPO-77', 'lpo_date': timezone.localdate()}, actor=self.finance
        )
        data = services.generate_invoice_data(self.project.pk)
        today = timezone.localdate()
        self.assertEqual(data['invoice_number'], f'INV-{today:%Y%m}-{self.project.pk:04d}')
        self.assertEqual(data['order_number'], 'LPO-77')
        self.assertEqual(data['vendee']['trn'], self.customer.trn_number)
        self.assertEqual(data['summary']['amount'], Decimal('1000.00'))
        self.assertEqual(data['summary']['vat'], Decimal('50.00'))
        self.assertEqual(data['summary']['total_receivable'], Decimal('1050.00'))
        self.assertEqual(data['amount_in_words'], 'One Thousand Fifty UAE Dirhams')
        self.assertEqual(data['products'][0]['sno'], 1)
        self.assertEqual(data['subject'], 'Chiller servicing')

    def test_completion_data(self):
        data = services.get_completion_data(self.project)
        self.assertEqual(data['reference_number'], f'COMP-{self.project.pk:06d}')
        self.assertEqual(data['lpo_number'], 'Not available')
        self.assertEqual(data['handover']['name'], 'Not assigned')
        self.assertEqual(data['site_pictures'], [])


class WorkCompletionServiceTests(OperationsTestCase):
    def test_upload_validation(self):
        with self.assertRaises(ValidationError) as ctx:
            services.upload_work_completion_images(self.project, [], [], actor=self.engineer)
        self.assertEqual(str(ctx.exception.detail[0]), 'No images uploaded')
        with self.assertRaises(ValidationError) as ctx:
            services.upload_work_completion_images(self.project, [image_file()], [], actor=self.engineer)
        self.assertEqual(str(ctx.exception.detail[0]), 'Number of titles must match number of images')
        with self.assertRaises(ValidationError) as ctx:
            services.upload_work_completion_images(self.project, [image_file()], ['  '], actor=self.engineer)
        self.assertEqual(str(ctx.exception.detail[0]), 'All images must have a non-empty title')
        self.assertFalse(WorkCompletion.objects.exists())

    def test_one_record_per_project_and_creator_only(self):
        services.create_work_completion(self.project, actor=self.engineer)
        with self.assertRaises(ValidationError) as ctx:
            services.create_work_completion(self.project, actor=self.engineer)
        self.assertEqual(str(ctx.exception.detail[0]), 'Work completion already exists for this project')
        with self.assertRaises(PermissionDenied) as ctx:
            services.upload_work_completion_images(self.project, [image_file()], ['Front'], actor=self.admin)
        self.assertEqual(str(ctx.exception.detail), 'Not authorized to update this work completion')

    @override_settings(STORAGES=IN_MEMORY_STORAGES)
    def test_upload_and_delete_image(self):
        work_completion = services.upload_work_completion_images(
            self.project, [image_file()], ['Front'], ['Main entrance'], actor=self.engineer
        )
        image = work_completion.images.get()
        self.assertEqual(image.title, 'Front')
        self.assertEqual(image.description, 'Main entrance')
        self.assertTrue(image.storage_key.startswith('work-completions/'))

        with self.assertRaises(PermissionDenied):
            services.delete_work_completion_image(work_completion, image.pk, actor=self.admin)
        with self.assertRaises(NotFound):
            services.delete_work_completion_image(work_completion, 999999, actor=self.engineer)
        services.delete_work_completion_image(work_completion, image.pk, actor=self.engineer)
        self.assertFalse(WorkCompletionImage.objects.exists())


class NotificationTests(OperationsTestCase):
    def test_assignment_emails_engineer_after_commit(self):
        self.login(self.admin)
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.api.post(
                f'/api/project/{self.project.pk}/assign/', {'assigned_to': self.engineer.pk}, format='json'
            )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['message'], 'Project assigned successfully')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Project Assignment: Chiller Plant')
        self.assertEqual(mail.outbox[0].to, ['engineer@example.com'])
        self.assertIn(f'/app/project-view/{self.project.pk}', mail.outbox[0].body)

    def test_checked_estimation_emails_super_admins(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        with self.captureOnCommitCallbacks(execute=True):
            services.check_estimation(estimation, True, actor=self.admin)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['chief@example.com'])
        self.assertEqual(mail.outbox[0].subject, f'Estimation Checked: {estimation.estimation_number}')

    def test_notification_failure_is_logged(self):
        with mock.patch('operations.notifications.tasks.send_action_email', side_effect=RuntimeError('smtp down')):
            with self.assertLogs('operations.notifications.tasks', level='ERROR'):
                with self.captureOnCommitCallbacks(execute=True):
                    services.assign_project(self.project, self.engineer.pk, actor=self.admin)
        self.project.refresh_from_db()
        self.assertEqual(self.project.assigned_to, self.engineer)


class ApiEnvelopeTests(OperationsTestCase):
    def test_list_envelope_and_pagination(self):
        self.login(self.finance)
        resp = self.api.get('/api/project/', {'limit': 5})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body['statusCode'], 200)
        self.assertTrue(body['success'])
        self.assertEqual(body['message'], 'Projects retrieved successfully')
        self.assertEqual(body['data']['projects'][0]['project_number'], self.project.project_number)
        self.assertEqual(
            body['data']['pagination'],
            {
                'total': 1,
                'page': 1,
                'limit': 5,
                'totalPages': 1,
                'hasNextPage': False,
                'hasPreviousPage': False,
            },
        )

    def test_error_envelope(self):
        self.login(self.admin)
        resp = self.api.get('/api/project/999999/')
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {'statusCode': 404, 'message': 'Project not found', 'success': False})

        resp = self.api.patch(f'/api/project/{self.project.pk}/', {'status': 'work_completed'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Invalid status transition from draft to work_completed')

    def test_unauthenticated_request_is_rejected(self):
        resp = self.api.get('/api/project/')
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.json()['success'])

    def test_token_login_by_email_and_me(self):
        resp = self.api.post('/api/auth/token/', {'username': 'admin@example.com', 'password': PASSWORD}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.api.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.json()['access']}")
        resp = self.api.get('/api/auth/me/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['data']['role'], User.Roles.ADMIN)


class ApiRoleTests(OperationsTestCase):
    def test_finance_cannot_create_project(self):
        self.login(self.finance)
        resp = self.api.post(
            '/api/project/',
            {'project_name': 'X', 'client': self.customer.pk, 'site_address': 'A', 'site_location': 'B'},
            format='json',
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['message'], 'You do not have permission to perform this action')

    def test_engineer_creates_project_in_draft(self):
        self.login(self.engineer)
        resp = self.api.post(
            '/api/project/',
            {
                'project_name': 'Pump Room',
                'client': self.customer.pk,
                'site_address': 'Tower C',
                'site_location': 'Sharjah',
                'status': 'work_completed',
            },
            format='json',
        )
        self.assertEqual(resp.status_code, 201)
        data = resp.json()['data']
        self.assertEqual(data['status'], Project.Status.DRAFT)
        self.assertEqual(data['created_by']['id'], self.engineer.pk)

    def test_only_admins_manage_clients(self):
        self.login(self.engineer)
        resp = self.api.delete(f'/api/client/{self.customer.pk}/')
        self.assertEqual(resp.status_code, 403)
        resp = self.api.get(f'/api/client/trn/{self.customer.trn_number}/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['data']['id'], self.customer.pk)

    def test_estimation_approval_is_admin_only(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        services.check_estimation(estimation, True, actor=self.admin)
        self.login(self.engineer)
        resp = self.api.post(f'/api/estimation/{estimation.pk}/approve/', {'is_approved': True}, format='json')
        self.assertEqual(resp.status_code, 403)
        self.login(self.super_admin)
        resp = self.api.post(f'/api/estimation/{estimation.pk}/approve/', {'is_approved': True}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['message'], 'Estimation approved successfully')

    def test_progress_history_visibility(self):
        services.update_project_progress(self.project, 30, 'Ducting done', actor=self.engineer)
        self.login(self.engineer)
        resp = self.api.get(f'/api/project/{self.project.pk}/progress/')
        self.assertEqual(resp.status_code, 403)
        self.login(self.finance)
        resp = self.api.get(f'/api/project/{self.project.pk}/progress/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['data'][0]['content'], 'Ducting done')


class ClientApiTests(OperationsTestCase):
    def test_create_validates_and_rejects_duplicate_trn(self):
        self.login(self.admin)
        resp = self.api.post('/api/client/', client_data(client_name='Copy'), format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Client with this TRN already exists')

        resp = self.api.post('/api/client/', client_data(trn_number='111222333444555', pincode='12'), format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Pincode must be 6 digits')

        resp = self.api.post('/api/client/', client_data(trn_number='111222333444555'), format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['message'], 'Client created successfully')

    def test_pincode_lookup(self):
        self.login(self.finance)
        resp = self.api.get('/api/client/pincode/12ab/')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Invalid pincode format')
        resp = self.api.get('/api/client/pincode/123456/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()['data']['clients']), 1)


class ProjectApiTests(OperationsTestCase):
    def test_status_and_progress_endpoints(self):
        self.login(self.finance)
        resp = self.api.patch(f'/api/project/{self.project.pk}/status/', {'status': 'estimation_prepared'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['data']['status'], 'estimation_prepared')

        self.login(self.engineer)
        resp = self.api.patch(f'/api/project/{self.project.pk}/progress/', {'progress': 150}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Progress must be between 0 and 100')

    def test_delete_started_project(self):
        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.login(self.admin)
        resp = self.api.delete(f'/api/project/{self.project.pk}/')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Cannot delete project that has already started')

    def test_detail_links_documents(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.login(self.admin)
        resp = self.api.get(f'/api/project/{self.project.pk}/')
        data = resp.json()['data']
        self.assertEqual(data['estimation_id'], estimation.pk)
        self.assertIsNone(data['quotation_id'])
        self.assertFalse(data['is_checked'])

    def test_engineer_sees_assigned_projects(self):
        services.assign_project(self.project, self.engineer.pk, actor=self.admin)
        self.login(self.engineer)
        resp = self.api.get('/api/project/engineer/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([row['id'] for row in resp.json()['data']['projects']], [self.project.pk])

    def test_invoice_endpoint(self):
        self.approved_quotation()
        services.create_lpo(
            {'project': self.project, 'lpo_number': 'LPO-9', 'lpo_date': timezone.localdate()}, actor=self.finance
        )
        self.login(self.finance)
        resp = self.api.get(f'/api/project/{self.project.pk}/invoice/')
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['data']['invoice_number'].startswith('INV-'))


class EstimationApiTests(OperationsTestCase):
    def payload(self):
        data = estimation_data(self.project)
        data['project'] = self.project.pk
        for field in ('work_start_date', 'work_end_date', 'valid_until'):
            data[field] = data[field].isoformat()
        data['quotation_amount'] = '200.00'
        data['commission_amount'] = '10.00'
        return data

    def test_create_and_fetch_by_project(self):
        self.login(self.engineer)
        resp = self.api.post('/api/estimation/', self.payload(), format='json')
        self.assertEqual(resp.status_code, 201)
        data = resp.json()['data']
        self.assertEqual(data['estimated_amount'], '160.00')
        self.assertEqual(data['profit'], '30.00')
        self.assertEqual(len(data['materials']), 1)
        self.assertEqual(data['prepared_by']['id'], self.engineer.pk)

        resp = self.api.get(f'/api/estimation/project/{self.project.pk}/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['data']['id'], data['id'])

        resp = self.api.post('/api/estimation/', self.payload(), format='json')
        self.assertEqual(resp.status_code, 400)

    def test_check_flag_must_be_boolean(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.login(self.admin)
        resp = self.api.post(f'/api/estimation/{estimation.pk}/check/', {}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'is_checked must be a boolean')

    def test_pdf_download(self):
        estimation = services.create_estimation(estimation_data(self.project), actor=self.engineer)
        self.login(self.finance)
        resp = self.api.get(f'/api/estimation/{estimation.pk}/pdf/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp['Content-Type'], 'application/pdf')
        self.assertEqual(
            resp['Content-Disposition'], f'attachment; filename="estimation-{estimation.estimation_number}.pdf"'
        )
        self.assertTrue(resp.content.startswith(b'%PDF'))


class QuotationApiTests(OperationsTestCase):
    def test_create_from_multipart_json(self):
        services.create_estimation(estimation_data(self.project), actor=self.engineer)
        payload = quotation_data(self.project)
        payload['project'] = self.project.pk
        payload['valid_until'] = payload['valid_until'].isoformat()
        self.login(self.engineer)
        resp = self.api.post('/api/quotation/', {'data': json.dumps(payload)}, format='multipart')
        self.assertEqual(resp.status_code, 201)
        data = resp.json()['data']
        self.assertEqual(data['net_amount'], '1050.00')
        self.assertEqual(data['items'][0]['uom'], 'NOS')

        resp = self.api.post('/api/quotation/', {'data': '{not json'}, format='multipart')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Invalid JSON data format')

    def test_approve_is_admin_only(self):
        quotation = services.create_quotation(quotation_data(self.project), actor=self.engineer)
        self.login(self.engineer)
        resp = self.api.patch(f'/api/quotation/{quotation.pk}/approve/', {'is_approved': True}, format='json')
        self.assertEqual(resp.status_code, 403)
        self.login(self.admin)
        resp = self.api.patch(f'/api/quotation/{quotation.pk}/approve/', {'is_approved': False}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['message'], 'Quotation rejected')
        self.assertFalse(resp.json()['data']['is_approved'])

    def test_pdf_download(self):
        quotation = services.create_quotation(quotation_data(self.project), actor=self.engineer)
        self.login(self.admin)
        resp = self.api.get(f'/api/quotation/{quotation.pk}/pdf/')
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.content.startswith(b'%PDF'))


class LpoApiTests(OperationsTestCase):
    def test_roles_and_gating(self):
        payload = {'project': self.project.pk, 'lpo_number': 'LPO-100', 'lpo_date': timezone.localdate().isoformat()}
        self.login(self.engineer)
        resp = self.api.post('/api/lpo/', payload, format='json')
        self.assertEqual(resp.status_code, 403)

        self.login(self.finance)
        resp = self.api.post('/api/lpo/', payload, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Quotation not found for this project')

        self.approved_quotation()
        resp = self.api.post('/api/lpo/', payload, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['data']['amount'], '1050.00')

        resp = self.api.get(f'/api/lpo/project/{self.project.pk}/')
        self.assertEqual(resp.json()['data']['lpo_number'], 'LPO-100')

        lpo = Lpo.objects.get()
        resp = self.api.delete(f'/api/lpo/{lpo.pk}/')
        self.assertEqual(resp.status_code, 403)


class WorkCompletionApiTests(OperationsTestCase):
    def test_missing_record_returns_empty_payload(self):
        self.login(self.finance)
        resp = self.api.get(f'/api/work-completion/project/{self.project.pk}/')
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.json()['data'])
        self.assertEqual(resp.json()['message'], 'No work completion found for this project')

    def test_record_cannot_be_deleted(self):
        work_completion = services.create_work_completion(self.project, actor=self.engineer)
        self.login(self.admin)
        resp = self.api.delete(f'/api/work-completion/{work_completion.pk}/')
        self.assertEqual(resp.status_code, 405)

    @override_settings(STORAGES=IN_MEMORY_STORAGES)
    def test_upload_images_endpoint(self):
        self.login(self.engineer)
        url = f'/api/work-completion/project/{self.project.pk}/images/'
        resp = self.api.post(url, {'images': image_file(), 'titles': 'Front'}, format='multipart')
        self.assertEqual(resp.status_code, 200)
        images = resp.json()['data']['images']
        self.assertEqual(len(images), 1)
        self.assertEqual(images[0]['title'], 'Front')

        resp = self.api.post(url, {'images': image_file(), 'titles': ''}, format='multipart')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'All images must have a non-empty title')

        resp = self.api.get(url)
        self.assertEqual(len(resp.json()['data']), 1)

        other = make_user('engineer2', User.Roles.ENGINEER)
        self.login(other)
        work_completion = WorkCompletion.objects.get()
        resp = self.api.delete(f'/api/work-completion/{work_completion.pk}/images/{images[0]["id"]}/')
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()['message'], 'Not authorized to modify this work completion')


class CommentApiTests(OperationsTestCase):
    def test_create_sets_author(self):
        self.login(self.finance)
        resp = self.api.post('/api/comment/', {'project': self.project.pk, 'content': 'Site visited'}, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()['data']['user']['id'], self.finance.pk)
        self.assertEqual(resp.json()['data']['action_type'], Comment.ActionType.GENERAL)

        resp = self.api.post(
            '/api/comment/', {'project': self.project.pk, 'content': 'x', 'progress': 150}, format='json'
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['message'], 'Progress must be between 0 and 100')
