from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Any, Iterable, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from . import signals
from .activity import log_project_comment
from .finance_utils import amount_in_words, to_decimal
from .models import (
    Client,
    Comment,
    Estimation,
    EstimationItem,
    EstimationLabour,
    Lpo,
    Project,
    Quotation,
    QuotationItem,
    User,
    WorkCompletion,
    WorkCompletionImage,
)
from .numbering import generate_project_number, generate_quotation_number, generate_related_document_number
from .storage import (
    LPO_FOLDER,
    QUOTATION_FOLDER,
    WORK_COMPLETION_FOLDER,
    delete_file,
    discard_file,
    upload_file,
    upload_files,
)
from .workflow import ensure_transition, infer_status_after_progress

logger = logging.getLogger(__name__)

PINCODE_RE = re.compile(r'^[0-9]{6}$')


def _full_clean(instance, exclude: Optional[Iterable[str]] = None) -> None:
    try:
        instance.full_clean(exclude=exclude)
    except DjangoValidationError as exc:
        if hasattr(exc, 'message_dict'):
            raise ValidationError(exc.message_dict) from exc
        raise ValidationError(exc.messages) from exc


def _discard_after_commit(keys: Iterable[str]) -> None:
    keys = [key for key in keys if key]
    if not keys:
        return

    def _cleanup():
        for key in keys:
            discard_file(key)

    transaction.on_commit(_cleanup)


def _check_progress(progress) -> int:
    try:
        value = int(progress)
    except (TypeError, ValueError):
        value = -1
    if value < 0 or value > 100:
        raise ValidationError('Progress must be between 0 and 100')
    return value


# ----------------------------------------------------------------------
# Clients
# ----------------------------------------------------------------------
CLIENT_REQUIRED_FIELDS = ('client_name', 'client_address', 'pincode', 'mobile_number', 'trn_number', 'email')
CLIENT_FIELDS = CLIENT_REQUIRED_FIELDS + ('telephone_number',)


def create_client(data: dict[str, Any], *, actor: Optional[User] = None) -> Client:
    if any(not data.get(field) for field in CLIENT_REQUIRED_FIELDS):
        raise ValidationError('Client name, address, pincode, mobile number and TRN are required')
    if Client.objects.filter(trn_number=data['trn_number']).exists():
        raise ValidationError('Client with this TRN already exists')
    client = Client(**{field: data.get(field) or '' for field in CLIENT_FIELDS}, created_by=actor)
    _full_clean(client)
    client.save()
    return client


def update_client(client: Client, data: dict[str, Any]) -> Client:
    """Apply an edit; blank values keep the stored ones (telephone may be cleared)."""
    pincode = data.get('pincode')
    if pincode and not PINCODE_RE.match(pincode):
        raise ValidationError('Pincode must be 6 digits')
    trn = data.get('trn_number')
    if trn and trn != client.trn_number:
        if Client.objects.filter(trn_number=trn).exclude(pk=client.pk).exists():
            raise ValidationError('Another client already uses this TRN')
    for field in CLIENT_REQUIRED_FIELDS:
        if data.get(field):
            setattr(client, field, data[field])
    if 'telephone_number' in data:
        client.telephone_number = data['telephone_number'] or ''
    _full_clean(client)
    client.save()
    return client


# ----------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------
PROJECT_EDITABLE_FIELDS = ('project_name', 'project_description', 'client', 'site_address', 'site_location')


@transaction.atomic
def create_project(data: dict[str, Any], *, actor: Optional[User] = None) -> Project:
    project = Project(
        **{field: data[field] for field in PROJECT_EDITABLE_FIELDS if field in data},
        status=Project.Status.DRAFT,
        progress=0,
        project_number=generate_project_number(),
        created_by=actor,
    )
    _full_clean(project)
    project.save()
    return project


@transaction.atomic
def update_project(project: Project, data: dict[str, Any], *, actor: Optional[User] = None) -> Project:
    if 'progress' in data and data['progress'] is not None:
        project.progress = _check_progress(data['progress'])
    status = data.get('status')
    if status and status != project.status:
        ensure_transition(project.status, status)
        project.status = status
    for field in PROJECT_EDITABLE_FIELDS:
        if field in data:
            setattr(project, field, data[field])
    project.updated_by = actor
    _full_clean(project)
    project.save()
    return project


@transaction.atomic
def update_project_status(project: Project, status: str, *, actor: Optional[User] = None) -> Project:
    ensure_transition(project.status, status)
    project.status = status
    project.updated_by = actor
    project.save(update_fields=['status', 'updated_by', 'updated_at'])
    return project


@transaction.atomic
def update_project_progress(
    project: Project,
    progress,
    comment: str = '',
    *,
    actor: Optional[User] = None,
) -> Project:
    progress = _check_progress(progress)
    previous = project.progress
    project.status = infer_status_after_progress(project.status, previous, progress)
    project.progress = progress
    project.updated_by = actor
    project.save(update_fields=['status', 'progress', 'updated_by', 'updated_at'])
    if comment or progress != previous:
        log_project_comment(
            project=project,
            actor=actor,
            content=comment or f"Progress updated from {previous}% to {progress}%",
            action_type=Comment.ActionType.PROGRESS_UPDATE,
            progress=progress,
        )
    return project


@transaction.atomic
def assign_project(project: Project, engineer_id, *, actor: Optional[User] = None) -> Project:
    engineer = User.objects.filter(pk=engineer_id, is_active=True).first() if engineer_id else None
    if engineer is None:
        raise ValidationError('Engineer not found')
    project.assigned_to = engineer
    project.updated_by = actor
    project.save(update_fields=['assigned_to', 'updated_by', 'updated_at'])
    signals.project_assigned.send(sender=Project, project=project, engineer=engineer, actor=actor)
    return project


def delete_project(project: Project) -> None:
    if project.status != Project.Status.DRAFT:
        raise ValidationError('Cannot delete project that has already started')
    project.delete()


# ----------------------------------------------------------------------
# Estimations
# ----------------------------------------------------------------------
ITEM_SECTIONS = {
    'materials': ('Material', EstimationItem.Section.MATERIAL),
    'terms': ('Terms', EstimationItem.Section.TERM),
}


def _amount(value, message: str) -> Decimal:
    amount = to_decimal(value, default=None)
    if amount is None or amount < 0:
        raise ValidationError(message)
    return amount


def _clean_priced_items(items, label: str) -> list[dict[str, Any]]:
    message = f"{label} items require description, uom, quantity, and unit_price"
    cleaned = []
    for item in items or []:
        if not isinstance(item, dict):
            raise ValidationError(message)
        if not item.get('description') or not item.get('uom') or item.get('quantity') is None or item.get('unit_price') is None:
            raise ValidationError(message)
        cleaned.append({
            'description': str(item['description']).strip(),
            'uom': str(item['uom']).strip(),
            'quantity': _amount(item['quantity'], message),
            'unit_price': _amount(item['unit_price'], message),
        })
    return cleaned


def _clean_labour_items(items) -> list[dict[str, Any]]:
    message = 'Labour items require designation, days, and price'
    cleaned = []
    for item in items or []:
        if not isinstance(item, dict):
            raise ValidationError(message)
        if not item.get('designation') or item.get('days') is None or item.get('price') is None:
            raise ValidationError(message)
        cleaned.append({
            'designation': str(item['designation']).strip(),
            'days': _amount(item['days'], message),
            'price': _amount(item['price'], message),
        })
    return cleaned


def _check_work_dates(start, end) -> None:
    if start and end and end <= start:
        raise ValidationError('Work end date must be after start date')


def _replace_estimation_lines(estimation: Estimation, *, materials=None, labour=None, terms=None) -> None:
    for rows, section in ((materials, EstimationItem.Section.MATERIAL), (terms, EstimationItem.Section.TERM)):
        if rows is None:
            continue
        estimation.items.filter(section=section).delete()
        for row in rows:
            EstimationItem(estimation=estimation, section=section, **row).save()
    if labour is not None:
        estimation.labour.all().delete()
        for row in labour:
            EstimationLabour(estimation=estimation, **row).save()


ESTIMATION_HEADER_FIELDS = (
    'work_start_date',
    'work_end_date',
    'valid_until',
    'payment_due_by',
    'subject',
    'quotation_amount',
    'commission_amount',
)


def create_estimation(data: dict[str, Any], *, actor: Optional[User] = None) -> Estimation:
    project: Project = data['project']
    if Estimation.objects.filter(project=project).exists():
        raise ValidationError(
            'Only one estimation is allowed per project. Update the existing estimation instead.'
        )
    materials = _clean_priced_items(data.get('materials'), 'Material')
    labour = _clean_labour_items(data.get('labour'))
    terms = _clean_priced_items(data.get('terms'), 'Terms')
    if not (materials or labour or terms):
        raise ValidationError('At least one item (materials, labour, or terms) is required')
    _check_work_dates(data.get('work_start_date'), data.get('work_end_date'))

    with transaction.atomic():
        estimation = Estimation(
            project=project,
            estimation_number=generate_related_document_number(project, 'EST'),
            prepared_by=actor,
            **{field: data[field] for field in ESTIMATION_HEADER_FIELDS if field in data},
        )
        _full_clean(estimation, exclude=['estimated_amount', 'profit'])
        estimation.save()
        _replace_estimation_lines(estimation, materials=materials, labour=labour, terms=terms)
        estimation.save()
        signals.estimation_prepared.send(sender=Estimation, estimation=estimation, actor=actor)
    return estimation


def update_estimation(estimation: Estimation, data: dict[str, Any], *, actor: Optional[User] = None) -> Estimation:
    if estimation.is_approved:
        raise ValidationError('Cannot update approved estimation')
    for key, label in (('materials', 'material'), ('terms', 'terms')):
        if any(isinstance(item, dict) and not item.get('uom') for item in data.get(key) or []):
            raise ValidationError(f"UOM is required for {label} items")
    materials = _clean_priced_items(data['materials'], 'Material') if 'materials' in data else None
    terms = _clean_priced_items(data['terms'], 'Terms') if 'terms' in data else None
    labour = _clean_labour_items(data['labour']) if 'labour' in data else None

    for field in ESTIMATION_HEADER_FIELDS:
        if field in data:
            setattr(estimation, field, data[field])
    _check_work_dates(estimation.work_start_date, estimation.work_end_date)

    with transaction.atomic():
        if estimation.is_checked:
            estimation.is_checked = False
            estimation.checked_by = None
            estimation.approval_comment = ''
        _full_clean(estimation, exclude=['estimated_amount', 'profit'])
        _replace_estimation_lines(estimation, materials=materials, labour=labour, terms=terms)
        estimation.save()
    return estimation


@transaction.atomic
def check_estimation(
    estimation: Estimation,
    is_checked: bool,
    comment: str = '',
    *,
    actor: Optional[User] = None,
) -> Estimation:
    if estimation.is_checked and is_checked:
        raise ValidationError('Estimation is already checked')
    log_project_comment(
        project=estimation.project,
        actor=actor,
        content=comment or f"Estimation {'checked' if is_checked else 'rejected during check'}",
        action_type=Comment.ActionType.CHECK if is_checked else Comment.ActionType.REJECTION,
    )
    estimation.is_checked = is_checked
    estimation.checked_by = actor if is_checked else None
    if comment:
        estimation.approval_comment = comment
    estimation.save()
    signals.estimation_checked.send(sender=Estimation, estimation=estimation, is_checked=is_checked, actor=actor)
    return estimation


@transaction.atomic
def approve_estimation(
    estimation: Estimation,
    is_approved: bool,
    comment: str = '',
    *,
    actor: Optional[User] = None,
) -> Estimation:
    if not estimation.is_checked:
        raise ValidationError('Estimation must be checked before approval/rejection')
    if estimation.is_approved and is_approved:
        raise ValidationError('Estimation is already approved')
    log_project_comment(
        project=estimation.project,
        actor=actor,
        content=comment or f"Estimation {'approved' if is_approved else 'rejected'}",
        action_type=Comment.ActionType.APPROVAL if is_approved else Comment.ActionType.REJECTION,
    )
    estimation.is_approved = is_approved
    estimation.approved_by = actor if is_approved else None
    estimation.approval_comment = comment or ''
    estimation.save()
    return estimation


def delete_estimation(estimation: Estimation) -> None:
    if estimation.is_approved:
        raise ValidationError('Cannot delete approved estimation')
    estimation.delete()


# ----------------------------------------------------------------------
# Quotations
# ----------------------------------------------------------------------
def _clean_quotation_items(items) -> list[dict[str, Any]]:
    message = 'Quotation items require description, quantity, and unit_price'
    if not isinstance(items, list):
        raise ValidationError('Items must be an array')
    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(message)
        if not item.get('description') or item.get('quantity') is None or item.get('unit_price') is None:
            raise ValidationError(message)
        cleaned.append({
            'description': str(item['description']).strip(),
            'uom': str(item.get('uom') or 'NOS').strip(),
            'quantity': _amount(item['quantity'], message),
            'unit_price': _amount(item['unit_price'], message),
            'image_url': item.get('image_url') or '',
            'image_key': item.get('image_key') or '',
        })
    return cleaned


def _write_quotation_items(quotation: Quotation, items: list[dict[str, Any]], uploaded: dict) -> None:
    quotation.items.all().delete()
    for position, row in enumerate(items):
        image = uploaded.get(position)
        if image:
            row = {**row, 'image_url': image['url'], 'image_key': image['key']}
        QuotationItem(quotation=quotation, position=position, **row).save()


def create_quotation(data: dict[str, Any], images: dict | None = None, *, actor: Optional[User] = None) -> Quotation:
    project: Project = data['project']
    if Quotation.objects.filter(project=project).exists():
        raise ValidationError('Project already has a quotation')
    items = _clean_quotation_items(data.get('items', []))
    for row in items:
        # Image references only come from uploads on create.
        row['image_url'] = row['image_key'] = ''
    estimation = Estimation.objects.filter(project=project).first()
    uploaded = upload_files(
        {index: file for index, file in (images or {}).items() if index < len(items)}, QUOTATION_FOLDER
    )
    try:
        with transaction.atomic():
            quotation = Quotation(
                project=project,
                estimation=estimation,
                quotation_number=generate_quotation_number(),
                date=timezone.localdate(),
                valid_until=data['valid_until'],
                scope_of_work=list(data.get('scope_of_work') or []),
                terms_and_conditions=list(data.get('terms_and_conditions') or []),
                vat_percentage=data.get('vat_percentage', Decimal('5')),
                prepared_by=actor,
            )
            quotation.save()
            _write_quotation_items(quotation, items, uploaded)
            quotation.save()
            signals.quotation_created.send(sender=Quotation, quotation=quotation, actor=actor)
    except Exception:
        for image in uploaded.values():
            discard_file(image['key'])
        raise
    return quotation


def update_quotation(
    quotation: Quotation,
    data: dict[str, Any],
    images: dict | None = None,
    *,
    actor: Optional[User] = None,
) -> Quotation:
    items = _clean_quotation_items(data['items']) if 'items' in data else None
    existing_keys = set(quotation.items.exclude(image_key='').values_list('image_key', flat=True))
    uploaded = {}
    if items is not None:
        for row in items:
            if row['image_key'] not in existing_keys:
                row['image_url'] = row['image_key'] = ''
        uploaded = upload_files(
            {index: file for index, file in (images or {}).items() if index < len(items)}, QUOTATION_FOLDER
        )
    with transaction.atomic():
        for field in ('valid_until', 'vat_percentage'):
            if field in data:
                setattr(quotation, field, data[field])
        for field in ('scope_of_work', 'terms_and_conditions'):
            if field in data:
                setattr(quotation, field, list(data[field] or []))
        if items is not None:
            _write_quotation_items(quotation, items, uploaded)
            kept = {image['key'] for image in uploaded.values()} | {
                row['image_key'] for index, row in enumerate(items) if index not in uploaded
            }
            _discard_after_commit(existing_keys - kept)
        quotation.save()
    return quotation


@transaction.atomic
def decide_quotation(
    quotation: Quotation,
    is_approved: bool,
    comment: str = '',
    *,
    actor: Optional[User] = None,
) -> Quotation:
    quotation.is_approved = is_approved
    quotation.approval_comment = comment or ''
    quotation.approved_by = actor
    quotation.save()
    log_project_comment(
        project=quotation.project,
        actor=actor,
        content=comment or f"Quotation {quotation.quotation_number} {'approved' if is_approved else 'rejected'}",
        action_type=Comment.ActionType.APPROVAL if is_approved else Comment.ActionType.REJECTION,
    )
    signals.quotation_decided.send(sender=Quotation, quotation=quotation, is_approved=is_approved, actor=actor)
    return quotation


@transaction.atomic
def delete_quotation(quotation: Quotation, *, actor: Optional[User] = None) -> None:
    project = quotation.project
    keys = list(quotation.items.exclude(image_key='').values_list('image_key', flat=True))
    quotation.delete()
    signals.quotation_deleted.send(sender=Quotation, project=project, actor=actor)
    _discard_after_commit(keys)


# ----------------------------------------------------------------------
# LPOs
# ----------------------------------------------------------------------
def create_lpo(data: dict[str, Any], document=None, *, actor: Optional[User] = None) -> Lpo:
    project: Project = data['project']
    quotation = Quotation.objects.filter(project=project).first()
    if quotation is None:
        raise ValidationError('Quotation not found for this project')
    if quotation.is_approved is not True:
        raise ValidationError('Quotation must be approved before registering an LPO')
    if Lpo.objects.filter(project=project).exists():
        raise ValidationError('Project already has an LPO')
    stored = upload_file(document, LPO_FOLDER) if document else None
    try:
        with transaction.atomic():
            lpo = Lpo(
                project=project,
                lpo_number=data['lpo_number'],
                lpo_date=data['lpo_date'],
                supplier=data.get('supplier') or '',
                amount=data.get('amount') if data.get('amount') is not None else quotation.net_amount,
                document_url=stored['url'] if stored else '',
                document_key=stored['key'] if stored else '',
                created_by=actor,
            )
            _full_clean(lpo)
            lpo.save()
            signals.lpo_received.send(sender=Lpo, lpo=lpo, actor=actor)
    except Exception:
        if stored:
            discard_file(stored['key'])
        raise
    return lpo


@transaction.atomic
def delete_lpo(lpo: Lpo) -> None:
    key = lpo.document_key
    lpo.delete()
    _discard_after_commit([key])


# ----------------------------------------------------------------------
# Invoice and completion documents
# ----------------------------------------------------------------------
def _person(user: Optional[User]) -> Optional[dict[str, Any]]:
    if not user:
        return None
    return {'id': user.pk, 'first_name': user.first_name, 'last_name': user.last_name}


def _company() -> dict[str, Any]:
    return dict(getattr(settings, 'COMPANY_PROFILE', {}) or {})


def generate_invoice_data(project_id) -> dict[str, Any]:
    try:
        pk = int(project_id)
    except (TypeError, ValueError):
        pk = 0
    if pk <= 0:
        raise ValidationError('Valid project ID is required')
    project = Project.objects.select_related('client', 'created_by', 'assigned_to').filter(pk=pk).first()
    if project is None:
        raise NotFound('Project not found')
    quotation = Quotation.objects.filter(project=project).first()
    if quotation is None:
        raise NotFound('Quotation not found for this project')
    lpo = Lpo.objects.filter(project=project).first()
    if lpo is None:
        raise NotFound('LPO not found for this project')
    items = list(quotation.items.all())
    if not items:
        raise ValidationError('Quotation items are required')

    today = timezone.localdate()
    client = project.client
    company = _company()
    engineer = project.assigned_to
    return {
        'id': project.pk,
        'invoice_number': f"INV-{today:%Y%m}-{project.pk:04d}",
        'date': today.isoformat(),
        'order_number': lpo.lpo_number,
        'vendor': {
            'name': company.get('name', ''),
            'po_box': company.get('po_box', ''),
            'address': company.get('address', ''),
            'phone': company.get('phone', ''),
            'fax': company.get('fax', ''),
            'trn': company.get('trn', ''),
        },
        'vendee': {
            'name': client.client_name,
            'contact_person': (engineer.get_full_name() or engineer.username) if engineer else 'N/A',
            'po_box': client.pincode,
            'address': client.client_address,
            'phone': client.mobile_number,
            'fax': client.telephone_number,
            'trn': client.trn_number,
            'grn_number': lpo.lpo_number,
            'service_period': f"{timezone.localtime(project.created_at):%d-%m-%Y} to {today:%d-%m-%Y}",
        },
        'subject': ', '.join(quotation.scope_of_work or []) or 'N/A',
        'payment_terms': getattr(settings, 'INVOICE_PAYMENT_TERMS', '90 DAYS'),
        'amount_in_words': amount_in_words(quotation.net_amount),
        'products': [
            {
                'sno': index,
                'description': item.description,
                'qty': item.quantity,
                'unit_price': item.unit_price,
                'total': item.total_price,
            }
            for index, item in enumerate(items, start=1)
        ],
        'summary': {
            'amount': quotation.subtotal,
            'vat': quotation.vat_amount,
            'total_receivable': quotation.net_amount,
        },
        'prepared_by': _person(project.created_by),
    }


def get_completion_data(project: Project) -> dict[str, Any]:
    client = project.client
    lpo = Lpo.objects.filter(project=project).first()
    work_completion = WorkCompletion.objects.filter(project=project).prefetch_related('images').first()
    company = _company()
    engineer = project.assigned_to
    now = timezone.now()
    return {
        'id': project.pk,
        'reference_number': f"COMP-{project.pk:06d}",
        'fm_contractor': company.get('name', ''),
        'sub_contractor': client.client_name,
        'project_description': project.project_description or 'No description provided',
        'location': f"{project.site_address}, {project.site_location}",
        'completion_date': project.updated_at.isoformat(),
        'lpo_number': lpo.lpo_number if lpo else 'Not available',
        'lpo_date': lpo.lpo_date.isoformat() if lpo else 'Not available',
        'handover': {
            'company': company.get('name', ''),
            'name': (engineer.get_full_name() or engineer.username) if engineer else 'Not assigned',
            'signature': engineer.signature_image if engineer else '',
            'date': project.updated_at.isoformat(),
        },
        'acceptance': {
            'company': client.client_name,
            'name': client.client_name,
            'signature': '',
            'date': now.isoformat(),
        },
        'site_pictures': [
            {'url': image.image_url, 'caption': image.title}
            for image in (work_completion.images.all() if work_completion else [])
        ],
        'project': {'id': project.pk, 'project_name': project.project_name},
        'prepared_by': _person(project.created_by),
        'created_at': (work_completion.created_at if work_completion else now).isoformat(),
        'updated_at': (work_completion.updated_at if work_completion else now).isoformat(),
    }


# ----------------------------------------------------------------------
# Work completion
# ----------------------------------------------------------------------
def create_work_completion(project: Project, *, actor: Optional[User] = None) -> WorkCompletion:
    if WorkCompletion.objects.filter(project=project).exists():
        raise ValidationError('Work completion already exists for this project')
    return WorkCompletion.objects.create(project=project, created_by=actor)


def _ensure_creator(work_completion: WorkCompletion, actor: Optional[User], message: str) -> None:
    if work_completion.created_by_id != getattr(actor, 'pk', None):
        raise PermissionDenied(message)


def upload_work_completion_images(
    project: Project,
    files: list,
    titles: list[str],
    descriptions: list[str] | None = None,
    *,
    actor: Optional[User] = None,
) -> WorkCompletion:
    if not files:
        raise ValidationError('No images uploaded')
    if len(titles) != len(files):
        raise ValidationError('Number of titles must match number of images')
    if any(not (title or '').strip() for title in titles):
        raise ValidationError('All images must have a non-empty title')
    descriptions = list(descriptions or [])

    work_completion = WorkCompletion.objects.filter(project=project).first()
    if work_completion is not None:
        _ensure_creator(work_completion, actor, 'Not authorized to update this work completion')

    uploaded = upload_files(dict(enumerate(files)), WORK_COMPLETION_FOLDER)
    try:
        with transaction.atomic():
            if work_completion is None:
                work_completion = WorkCompletion.objects.create(project=project, created_by=actor)
            for index, title in enumerate(titles):
                WorkCompletionImage.objects.create(
                    work_completion=work_completion,
                    title=title.strip(),
                    description=(descriptions[index] if index < len(descriptions) else '') or '',
                    image_url=uploaded[index]['url'],
                    storage_key=uploaded[index]['key'],
                )
    except Exception:
        for image in uploaded.values():
            discard_file(image['key'])
        raise
    return work_completion


def delete_work_completion_image(
    work_completion: WorkCompletion,
    image_id,
    *,
    actor: Optional[User] = None,
) -> WorkCompletion:
    _ensure_creator(work_completion, actor, 'Not authorized to modify this work completion')
    image = work_completion.images.filter(pk=image_id).first()
    if image is None:
        raise NotFound('Image not found')
    delete_file(image.storage_key)
    image.delete()
    return work_completion
