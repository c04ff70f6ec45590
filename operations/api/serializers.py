from __future__ import annotations

import os

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from operations.models import (
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

ALLOWED_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp'}
ALLOWED_PDF_EXTENSIONS = {'.pdf'}


def validate_media_file(value, *, allow_images: bool = True, allow_pdf: bool = True):
    if not value:
        return value
    ext = os.path.splitext(value.name or '')[1].lower()
    allowed = set()
    if allow_images:
        allowed.update(ALLOWED_IMAGE_EXTENSIONS)
    if allow_pdf:
        allowed.update(ALLOWED_PDF_EXTENSIONS)
    if ext not in allowed:
        raise serializers.ValidationError('Only JPG, PNG, WEBP or PDF files are allowed.')
    return value


class UserSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ('id', 'username', 'first_name', 'last_name', 'full_name', 'email', 'role')

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = User
        fields = (
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'full_name',
            'role',
            'phone',
            'signature_image',
            'is_active',
            'password',
            'date_joined',
            'last_login',
        )
        read_only_fields = ('date_joined', 'last_login')
        extra_kwargs = {'email': {'required': True, 'allow_blank': False}}

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username

    def validate_email(self, value):
        qs = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Email already in use')
        return value

    def validate_password(self, value):
        if value:
            validate_password(value)
        return value

    def create(self, validated_data):
        password = validated_data.pop('password', '')
        if not password:
            raise serializers.ValidationError({'password': ['This field is required.']})
        user = User(**validated_data)
        user.set_password(password)
        user.save()
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop('password', '')
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class ClientSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    project_count = serializers.IntegerField(source='projects.count', read_only=True)

    class Meta:
        model = Client
        fields = (
            'id',
            'client_name',
            'client_address',
            'pincode',
            'mobile_number',
            'telephone_number',
            'trn_number',
            'email',
            'created_by',
            'project_count',
            'created_at',
            'updated_at',
        )
        # Presence and TRN uniqueness are checked by the client services.
        extra_kwargs = {
            'client_name': {'required': False, 'allow_blank': True},
            'client_address': {'required': False, 'allow_blank': True},
            'pincode': {'required': False, 'allow_blank': True},
            'mobile_number': {'required': False, 'allow_blank': True},
            'trn_number': {'required': False, 'allow_blank': True, 'validators': []},
            'email': {'required': False, 'allow_blank': True},
        }


class ClientSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ('id', 'client_name', 'client_address', 'mobile_number', 'trn_number', 'email')


class ProjectSerializer(serializers.ModelSerializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    client_detail = ClientSummarySerializer(source='client', read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    updated_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    progress = serializers.IntegerField(required=False)

    class Meta:
        model = Project
        fields = (
            'id',
            'project_number',
            'project_name',
            'project_description',
            'client',
            'client_detail',
            'site_address',
            'site_location',
            'status',
            'status_display',
            'progress',
            'created_by',
            'updated_by',
            'assigned_to',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('project_number',)
        extra_kwargs = {'status': {'required': False}}


class ProjectDetailSerializer(ProjectSerializer):
    estimation_id = serializers.SerializerMethodField()
    quotation_id = serializers.SerializerMethodField()
    lpo_id = serializers.SerializerMethodField()
    is_checked = serializers.SerializerMethodField()
    is_approved = serializers.SerializerMethodField()

    class Meta(ProjectSerializer.Meta):
        fields = ProjectSerializer.Meta.fields + (
            'estimation_id',
            'quotation_id',
            'lpo_id',
            'is_checked',
            'is_approved',
        )

    def _related(self, obj, name):
        return getattr(obj, name, None)

    def get_estimation_id(self, obj):
        estimation = self._related(obj, 'estimation')
        return estimation.pk if estimation else None

    def get_quotation_id(self, obj):
        quotation = self._related(obj, 'quotation')
        return quotation.pk if quotation else None

    def get_lpo_id(self, obj):
        lpo = self._related(obj, 'lpo')
        return lpo.pk if lpo else None

    def get_is_checked(self, obj):
        estimation = self._related(obj, 'estimation')
        return bool(estimation and estimation.is_checked)

    def get_is_approved(self, obj):
        estimation = self._related(obj, 'estimation')
        return bool(estimation and estimation.is_approved)


class ProjectStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Project.Status.choices)


class ProjectProgressSerializer(serializers.Serializer):
    progress = serializers.IntegerField(
        error_messages={
            'invalid': 'Progress must be between 0 and 100',
            'required': 'Progress must be between 0 and 100',
            'null': 'Progress must be between 0 and 100',
        }
    )
    comment = serializers.CharField(required=False, allow_blank=True)


class ProjectAssignSerializer(serializers.Serializer):
    assigned_to = serializers.IntegerField(error_messages={'required': 'AssignedTo is required'})


class EstimationItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = EstimationItem
        fields = ('id', 'description', 'uom', 'quantity', 'unit_price', 'total')


class EstimationLabourSerializer(serializers.ModelSerializer):
    class Meta:
        model = EstimationLabour
        fields = ('id', 'designation', 'days', 'price', 'total')


class EstimationSerializer(serializers.ModelSerializer):
    project_detail = serializers.SerializerMethodField()
    materials = EstimationItemSerializer(many=True, read_only=True)
    labour = EstimationLabourSerializer(many=True, read_only=True)
    terms = EstimationItemSerializer(many=True, read_only=True)
    prepared_by = UserSummarySerializer(read_only=True)
    checked_by = UserSummarySerializer(read_only=True)
    approved_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = Estimation
        fields = (
            'id',
            'project',
            'project_detail',
            'estimation_number',
            'subject',
            'work_start_date',
            'work_end_date',
            'valid_until',
            'payment_due_by',
            'materials',
            'labour',
            'terms',
            'estimated_amount',
            'quotation_amount',
            'commission_amount',
            'profit',
            'prepared_by',
            'checked_by',
            'approved_by',
            'is_checked',
            'is_approved',
            'approval_comment',
            'created_at',
            'updated_at',
        )
        read_only_fields = fields

    def get_project_detail(self, obj):
        project = obj.project
        return {
            'id': project.pk,
            'project_name': project.project_name,
            'project_number': project.project_number,
            'client_name': project.client.client_name,
        }


class EstimationWriteSerializer(serializers.Serializer):
    """Input for creating or editing an estimation; line items are checked by the services."""

    project = serializers.PrimaryKeyRelatedField(queryset=Project.objects.all())
    work_start_date = serializers.DateField()
    work_end_date = serializers.DateField()
    valid_until = serializers.DateField()
    payment_due_by = serializers.IntegerField(min_value=0)
    subject = serializers.CharField(required=False, allow_blank=True, max_length=255)
    materials = serializers.ListField(child=serializers.DictField(), required=False)
    labour = serializers.ListField(child=serializers.DictField(), required=False)
    terms = serializers.ListField(child=serializers.DictField(), required=False)
    quotation_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    commission_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True
    )


class EstimationDecisionSerializer(serializers.Serializer):
    comment = serializers.CharField(required=False, allow_blank=True)

    def __init__(self, *args, flag: str = 'is_approved', **kwargs):
        super().__init__(*args, **kwargs)
        self.fields[flag] = serializers.BooleanField(
            error_messages={'required': f"{flag} must be a boolean", 'invalid': f"{flag} must be a boolean"}
        )


class QuotationItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuotationItem
        fields = ('id', 'position', 'description', 'uom', 'quantity', 'unit_price', 'total_price', 'image_url', 'image_key')


class QuotationSerializer(serializers.ModelSerializer):
    items = QuotationItemSerializer(many=True, read_only=True)
    project_name = serializers.CharField(source='project.project_name', read_only=True)
    prepared_by = UserSummarySerializer(read_only=True)
    approved_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = Quotation
        fields = (
            'id',
            'project',
            'project_name',
            'estimation',
            'quotation_number',
            'date',
            'valid_until',
            'scope_of_work',
            'items',
            'terms_and_conditions',
            'vat_percentage',
            'subtotal',
            'vat_amount',
            'net_amount',
            'prepared_by',
            'approved_by',
            'is_approved',
            'approval_comment',
            'created_at',
            'updated_at',
        )
        read_only_fields = fields


class QuotationWriteSerializer(serializers.Serializer):
    project = serializers.PrimaryKeyRelatedField(queryset=Project.objects.all())
    valid_until = serializers.DateField()
    scope_of_work = serializers.ListField(child=serializers.CharField(), required=False)
    items = serializers.ListField(child=serializers.DictField(), required=False)
    terms_and_conditions = serializers.ListField(child=serializers.CharField(), required=False)
    vat_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, required=False)


class QuotationDecisionSerializer(serializers.Serializer):
    is_approved = serializers.BooleanField()
    comment = serializers.CharField(required=False, allow_blank=True)


class LpoSerializer(serializers.ModelSerializer):
    project = serializers.PrimaryKeyRelatedField(queryset=Project.objects.all())
    document = serializers.FileField(write_only=True, required=False, allow_null=True)
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = Lpo
        fields = (
            'id',
            'project',
            'lpo_number',
            'lpo_date',
            'supplier',
            'amount',
            'document',
            'document_url',
            'created_by',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('document_url',)
        extra_kwargs = {'amount': {'required': False}}

    def validate_document(self, value):
        return validate_media_file(value)


class WorkCompletionImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = WorkCompletionImage
        fields = ('id', 'title', 'description', 'image_url', 'storage_key', 'uploaded_at')


class WorkCompletionSerializer(serializers.ModelSerializer):
    images = WorkCompletionImageSerializer(many=True, read_only=True)
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = WorkCompletion
        fields = ('id', 'project', 'images', 'created_by', 'created_at', 'updated_at')
        read_only_fields = fields


class WorkCompletionCreateSerializer(serializers.Serializer):
    project = serializers.PrimaryKeyRelatedField(
        queryset=Project.objects.all(), error_messages={'required': 'Project ID is required'}
    )


class CommentSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Comment
        fields = ('id', 'project', 'user', 'content', 'action_type', 'progress', 'created_at')
        read_only_fields = ('user', 'created_at')
        extra_kwargs = {'progress': {'validators': []}}

    def validate_progress(self, value):
        if value is not None and not 0 <= value <= 100:
            raise serializers.ValidationError('Progress must be between 0 and 100')
        return value
