from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models

from .finance_utils import (
    ZERO,
    estimation_profit,
    line_total,
    quantize_money,
    sum_totals,
    vat_breakdown,
)

PINCODE_VALIDATOR = RegexValidator(r'^[0-9]{6}$', 'Pincode must be 6 digits')
PHONE_VALIDATOR = RegexValidator(r'^\+?[\d\s-]{6,}$', 'Enter a valid phone number.')
NON_NEGATIVE = MinValueValidator(Decimal('0'))


class User(AbstractUser):
    class Roles(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        SUPER_ADMIN = 'super_admin', 'Super Admin'
        ENGINEER = 'engineer', 'Engineer'
        FINANCE = 'finance', 'Finance'

    phone = models.CharField(max_length=50, blank=True)
    role = models.CharField(max_length=32, choices=Roles.choices, default=Roles.ENGINEER)
    signature_image = models.URLField(blank=True)

    def __str__(self) -> str:
        return f"{self.get_full_name() or self.username} ({self.get_role_display()})"

    def has_any_role(self, *roles: str) -> bool:
        if self.is_superuser:
            return True
        return self.role in roles


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Client(TimeStampedModel):
    client_name = models.CharField(max_length=255)
    client_address = models.TextField()
    pincode = models.CharField(max_length=6, validators=[PINCODE_VALIDATOR])
    mobile_number = models.CharField(max_length=50, validators=[PHONE_VALIDATOR])
    telephone_number = models.CharField(max_length=50, blank=True, validators=[PHONE_VALIDATOR])
    trn_number = models.CharField(max_length=50, unique=True)
    email = models.EmailField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='clients_created'
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client_name'], name='client_name_idx'),
            models.Index(fields=['pincode'], name='client_pincode_idx'),
        ]

    def __str__(self) -> str:
        return self.client_name


class Project(TimeStampedModel):
    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        ESTIMATION_PREPARED = 'estimation_prepared', 'Estimation Prepared'
        QUOTATION_SENT = 'quotation_sent', 'Quotation Sent'
        QUOTATION_APPROVED = 'quotation_approved', 'Quotation Approved'
        QUOTATION_REJECTED = 'quotation_rejected', 'Quotation Rejected'
        LPO_RECEIVED = 'lpo_received', 'LPO Received'
        CONTRACT_SIGNED = 'contract_signed', 'Contract Signed'
        WORK_STARTED = 'work_started', 'Work Started'
        IN_PROGRESS = 'in_progress', 'In Progress'
        WORK_COMPLETED = 'work_completed', 'Work Completed'
        QUALITY_CHECK = 'quality_check', 'Quality Check'
        CLIENT_HANDOVER = 'client_handover', 'Client Handover'
        INVOICE_SENT = 'invoice_sent', 'Invoice Sent'
        FINAL_INVOICE_SENT = 'final_invoice_sent', 'Final Invoice Sent'
        PAYMENT_RECEIVED = 'payment_received', 'Payment Received'
        PROJECT_CLOSED = 'project_closed', 'Project Closed'
        ON_HOLD = 'on_hold', 'On Hold'
        CANCELLED = 'cancelled', 'Cancelled'

    project_name = models.CharField(max_length=100)
    project_description = models.TextField(max_length=500, blank=True)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='projects')
    site_address = models.CharField(max_length=255)
    site_location = models.CharField(max_length=255)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.DRAFT)
    progress = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(100)])
    project_number = models.CharField(max_length=50, unique=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='projects_created'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='projects_updated'
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_projects'
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['project_name'], name='project_name_idx'),
            models.Index(fields=['status'], name='project_status_idx'),
            models.Index(fields=['progress'], name='project_progress_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.project_number} - {self.project_name}"


class Estimation(TimeStampedModel):
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name='estimation')
    estimation_number = models.CharField(max_length=50, unique=True)
    work_start_date = models.DateField()
    work_end_date = models.DateField()
    valid_until = models.DateField()
    payment_due_by = models.PositiveIntegerField(help_text='Payment due, in days.')
    subject = models.CharField(max_length=255, blank=True)

    estimated_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    quotation_amount = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True, validators=[NON_NEGATIVE]
    )
    commission_amount = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True, validators=[NON_NEGATIVE]
    )
    profit = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    prepared_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='estimations_prepared'
    )
    checked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='estimations_checked'
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='estimations_approved'
    )
    is_checked = models.BooleanField(default=False)
    is_approved = models.BooleanField(default=False)
    approval_comment = models.TextField(blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_approved'], name='estimation_approved_idx'),
            models.Index(fields=['is_checked'], name='estimation_checked_idx'),
            models.Index(fields=['work_start_date'], name='estimation_start_idx'),
            models.Index(fields=['work_end_date'], name='estimation_end_idx'),
        ]

    def __str__(self) -> str:
        return self.estimation_number

    def clean(self):
        super().clean()
        if self.work_start_date and self.work_end_date and self.work_end_date <= self.work_start_date:
            raise ValidationError({'work_end_date': 'Work end date must be after start date.'})

    def save(self, *args, **kwargs):
        self.recalculate_totals()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'estimated_amount', 'profit'}
        super().save(*args, **kwargs)

    def recalculate_totals(self) -> None:
        """Refresh estimated_amount and profit from the stored line items."""
        if self.pk:
            materials = [item.total for item in self.items.filter(section=EstimationItem.Section.MATERIAL)]
            terms = [item.total for item in self.items.filter(section=EstimationItem.Section.TERM)]
            labour = [item.total for item in self.labour.all()]
            self.estimated_amount = sum_totals(materials) + sum_totals(labour) + sum_totals(terms)
        else:
            self.estimated_amount = self.estimated_amount or ZERO
        self.profit = estimation_profit(self.quotation_amount, self.estimated_amount, self.commission_amount)

    @property
    def materials(self):
        return self.items.filter(section=EstimationItem.Section.MATERIAL)

    @property
    def terms(self):
        return self.items.filter(section=EstimationItem.Section.TERM)


class EstimationItem(models.Model):
    class Section(models.TextChoices):
        MATERIAL = 'material', 'Material'
        TERM = 'term', 'Terms & Miscellaneous'

    estimation = models.ForeignKey(Estimation, on_delete=models.CASCADE, related_name='items')
    section = models.CharField(max_length=16, choices=Section.choices)
    description = models.CharField(max_length=500)
    uom = models.CharField(max_length=32)
    quantity = models.DecimalField(max_digits=12, decimal_places=2, validators=[NON_NEGATIVE])
    unit_price = models.DecimalField(max_digits=14, decimal_places=2, validators=[NON_NEGATIVE])
    total = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.description} x {self.quantity}"

    def save(self, *args, **kwargs):
        self.total = line_total(self.quantity, self.unit_price)
        super().save(*args, **kwargs)


class EstimationLabour(models.Model):
    estimation = models.ForeignKey(Estimation, on_delete=models.CASCADE, related_name='labour')
    designation = models.CharField(max_length=255)
    days = models.DecimalField(max_digits=8, decimal_places=2, validators=[NON_NEGATIVE])
    price = models.DecimalField(max_digits=14, decimal_places=2, validators=[NON_NEGATIVE])
    total = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.designation} x {self.days} days"

    def save(self, *args, **kwargs):
        self.total = line_total(self.days, self.price)
        super().save(*args, **kwargs)


class Quotation(TimeStampedModel):
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name='quotation')
    estimation = models.ForeignKey(
        Estimation, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations'
    )
    quotation_number = models.CharField(max_length=50, unique=True)
    date = models.DateField()
    valid_until = models.DateField()
    scope_of_work = models.JSONField(default=list, blank=True)
    terms_and_conditions = models.JSONField(default=list, blank=True)
    vat_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('5'), validators=[NON_NEGATIVE]
    )
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    vat_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    net_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    prepared_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations_prepared'
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='quotations_approved'
    )
    is_approved = models.BooleanField(null=True, blank=True)
    approval_comment = models.TextField(blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return self.quotation_number

    def save(self, *args, **kwargs):
        self.recalculate_totals()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'subtotal', 'vat_amount', 'net_amount'}
        super().save(*args, **kwargs)

    def recalculate_totals(self) -> None:
        totals = [item.total_price for item in self.items.all()] if self.pk else []
        self.subtotal, self.vat_amount, self.net_amount = vat_breakdown(sum_totals(totals), self.vat_percentage)


class QuotationItem(models.Model):
    quotation = models.ForeignKey(Quotation, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=500)
    uom = models.CharField(max_length=32, default='NOS')
    quantity = models.DecimalField(max_digits=12, decimal_places=2, validators=[NON_NEGATIVE])
    unit_price = models.DecimalField(max_digits=14, decimal_places=2, validators=[NON_NEGATIVE])
    total_price = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    image_url = models.CharField(max_length=500, blank=True)
    image_key = models.CharField(max_length=500, blank=True)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self) -> str:
        return f"{self.description} x {self.quantity}"

    def save(self, *args, **kwargs):
        self.total_price = line_total(self.quantity, self.unit_price)
        super().save(*args, **kwargs)


class Lpo(TimeStampedModel):
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name='lpo')
    lpo_number = models.CharField(max_length=100, unique=True)
    lpo_date = models.DateField()
    supplier = models.CharField(max_length=255, blank=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=0, validators=[NON_NEGATIVE])
    document_url = models.CharField(max_length=500, blank=True)
    document_key = models.CharField(max_length=500, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='lpos_created'
    )

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'LPO'
        verbose_name_plural = 'LPOs'

    def __str__(self) -> str:
        return f"LPO {self.lpo_number}"

    def save(self, *args, **kwargs):
        self.amount = quantize_money(self.amount)
        super().save(*args, **kwargs)


class WorkCompletion(TimeStampedModel):
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name='work_completion')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='work_completions'
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_by'], name='completion_creator_idx'),
        ]

    def __str__(self) -> str:
        return f"Work completion for {self.project}"


class WorkCompletionImage(models.Model):
    work_completion = models.ForeignKey(WorkCompletion, on_delete=models.CASCADE, related_name='images')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    image_url = models.CharField(max_length=500)
    storage_key = models.CharField(max_length=500)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['uploaded_at', 'id']

    def __str__(self) -> str:
        return self.title


class Comment(TimeStampedModel):
    class ActionType(models.TextChoices):
        APPROVAL = 'approval', 'Approval'
        REJECTION = 'rejection', 'Rejection'
        CHECK = 'check', 'Check'
        PROGRESS_UPDATE = 'progress_update', 'Progress Update'
        GENERAL = 'general', 'General'

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='comments'
    )
    content = models.TextField()
    action_type = models.CharField(max_length=32, choices=ActionType.choices, default=ActionType.GENERAL)
    progress = models.PositiveSmallIntegerField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['project', 'action_type'], name='comment_project_action_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.get_action_type_display()} on {self.project}"
