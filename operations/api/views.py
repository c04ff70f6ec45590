from __future__ import annotations

import json
import re

from django.conf import settings
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import MethodNotAllowed, NotFound, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from operations import services
from operations.api.permissions import (
    ADMINS,
    ADMINS_AND_ENGINEERS,
    ADMINS_AND_FINANCE,
    ALL_STAFF,
    RolePermission,
)
from operations.api.responses import envelope
from operations.api.serializers import (
    ClientSerializer,
    CommentSerializer,
    EstimationDecisionSerializer,
    EstimationSerializer,
    EstimationWriteSerializer,
    LpoSerializer,
    ProjectAssignSerializer,
    ProjectDetailSerializer,
    ProjectProgressSerializer,
    ProjectSerializer,
    ProjectStatusSerializer,
    QuotationDecisionSerializer,
    QuotationSerializer,
    QuotationWriteSerializer,
    UserSerializer,
    WorkCompletionCreateSerializer,
    WorkCompletionImageSerializer,
    WorkCompletionSerializer,
    validate_media_file,
)
from operations.filters import (
    ClientFilter,
    CommentFilter,
    EstimationFilter,
    LpoFilter,
    ProjectFilter,
    QuotationFilter,
)
from operations.models import (
    Client,
    Comment,
    Estimation,
    Lpo,
    Project,
    Quotation,
    User,
    WorkCompletion,
)
from operations.pdf import pdf_response

ITEM_IMAGE_FIELD = re.compile(r'^items\[(\d+)\]\[image\]$')


def _list_param(data, name: str) -> list:
    if hasattr(data, 'getlist'):
        return data.getlist(name)
    value = data.get(name, [])
    return value if isinstance(value, list) else [value]


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        username = attrs.get(self.username_field)
        if username and '@' in username:
            user = User.objects.filter(email__iexact=username).first()
            if user:
                attrs[self.username_field] = user.get_username()
        return super().validate(attrs)


class CustomTokenObtainPairView(TokenObtainPairView):
    permission_classes = (AllowAny,)
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshView(TokenRefreshView):
    permission_classes = (AllowAny,)


class MeView(APIView):
    permission_classes = (IsAuthenticated,)

    def get(self, request):
        return envelope(UserSerializer(request.user).data, 'User retrieved successfully')


class BaseModelViewSet(viewsets.ModelViewSet):
    permission_classes = (RolePermission,)
    role_map: dict[str, tuple[str, ...] | None] | None = None
    resource_label = 'Record'
    resource_plural = 'results'

    def get_permissions(self):
        if self.role_map:
            roles = self.role_map.get(self.action)
            self.allowed_roles = roles
        return super().get_permissions()

    def envelope_list(self, queryset, *, serializer_class=None, message: str | None = None):
        serializer_class = serializer_class or self.get_serializer_class()
        context = self.get_serializer_context()
        page = self.paginate_queryset(queryset)
        if page is not None:
            rows = serializer_class(page, many=True, context=context).data
            data = self.paginator.get_paginated_data(rows, self.resource_plural)
        else:
            data = {self.resource_plural: serializer_class(queryset, many=True, context=context).data}
        return envelope(data, message or f"{self.resource_label}s retrieved successfully")

    def list(self, request, *args, **kwargs):
        return self.envelope_list(self.filter_queryset(self.get_queryset()))

    def retrieve(self, request, *args, **kwargs):
        instance = self.get_object()
        return envelope(self.get_serializer(instance).data, f"{self.resource_label} retrieved successfully")

    def create(self, request, *args, **kwargs):
        response = super().create(request, *args, **kwargs)
        return envelope(response.data, f"{self.resource_label} created successfully", status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        response = super().update(request, *args, **kwargs)
        return envelope(response.data, f"{self.resource_label} updated successfully")

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        self.perform_destroy(instance)
        return envelope(None, f"{self.resource_label} deleted successfully")


class UserViewSet(BaseModelViewSet):
    queryset = User.objects.all().order_by('first_name', 'username')
    serializer_class = UserSerializer
    resource_label = 'User'
    resource_plural = 'users'
    search_fields = ('username', 'first_name', 'last_name', 'email')
    filterset_fields = ('role', 'is_active')
    role_map = {
        'list': ADMINS,
        'retrieve': ADMINS,
        'create': ADMINS,
        'update': ADMINS,
        'partial_update': ADMINS,
        'destroy': ADMINS,
        'engineers': ALL_STAFF,
    }

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise ValidationError('Cannot delete your own account')
        instance.delete()

    @action(detail=False, methods=['get'])
    def engineers(self, request):
        queryset = User.objects.filter(role=User.Roles.ENGINEER, is_active=True).order_by('first_name', 'username')
        return self.envelope_list(queryset, message='Engineers retrieved successfully')


class ClientViewSet(BaseModelViewSet):
    queryset = Client.objects.select_related('created_by')
    serializer_class = ClientSerializer
    filterset_class = ClientFilter
    ordering_fields = ('client_name', 'created_at', 'updated_at')
    resource_label = 'Client'
    resource_plural = 'clients'
    role_map = {
        'create': ADMINS,
        'update': ADMINS,
        'partial_update': ADMINS,
        'destroy': ADMINS,
    }

    def perform_create(self, serializer):
        serializer.instance = services.create_client(serializer.validated_data, actor=self.request.user)

    def perform_update(self, serializer):
        serializer.instance = services.update_client(serializer.instance, serializer.validated_data)

    @action(detail=False, methods=['get'], url_path=r'trn/(?P<trn>[^/]+)')
    def by_trn(self, request, trn=None):
        client = self.get_queryset().filter(trn_number=trn).first()
        if client is None:
            raise NotFound('Client not found')
        return envelope(self.get_serializer(client).data, 'Client retrieved successfully')

    @action(detail=False, methods=['get'], url_path=r'pincode/(?P<pincode>[^/]+)')
    def by_pincode(self, request, pincode=None):
        if not services.PINCODE_RE.match(pincode or ''):
            raise ValidationError('Invalid pincode format')
        return self.envelope_list(self.get_queryset().filter(pincode=pincode))


class ProjectViewSet(BaseModelViewSet):
    queryset = Project.objects.select_related('client', 'created_by', 'updated_by', 'assigned_to')
    serializer_class = ProjectSerializer
    filterset_class = ProjectFilter
    ordering_fields = ('created_at', 'updated_at', 'project_name', 'progress', 'status')
    resource_label = 'Project'
    resource_plural = 'projects'
    role_map = {
        'create': ADMINS_AND_ENGINEERS,
        'update': ADMINS_AND_ENGINEERS,
        'partial_update': ADMINS_AND_ENGINEERS,
        'destroy': ADMINS,
        'update_status': ALL_STAFF,
        'update_progress': ADMINS_AND_ENGINEERS,
        'progress_updates': ADMINS_AND_FINANCE,
        'assign': ADMINS_AND_FINANCE,
        'invoice': ALL_STAFF,
    }

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ProjectDetailSerializer
        return super().get_serializer_class()

    def perform_create(self, serializer):
        serializer.instance = services.create_project(serializer.validated_data, actor=self.request.user)

    def perform_update(self, serializer):
        serializer.instance = services.update_project(
            serializer.instance, serializer.validated_data, actor=self.request.user
        )

    def perform_destroy(self, instance):
        services.delete_project(instance)

    @action(detail=False, methods=['get'])
    def engineer(self, request):
        queryset = self.filter_queryset(self.get_queryset().filter(assigned_to=request.user))
        return self.envelope_list(queryset)

    @action(detail=True, methods=['patch'], url_path='status')
    def update_status(self, request, pk=None):
        project = self.get_object()
        serializer = ProjectStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = services.update_project_status(project, serializer.validated_data['status'], actor=request.user)
        return envelope(ProjectSerializer(project).data, 'Project status updated successfully')

    @action(detail=True, methods=['patch'], url_path='progress')
    def update_progress(self, request, pk=None):
        project = self.get_object()
        serializer = ProjectProgressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = services.update_project_progress(
            project,
            serializer.validated_data['progress'],
            serializer.validated_data.get('comment', ''),
            actor=request.user,
        )
        return envelope(ProjectSerializer(project).data, 'Project progress updated successfully')

    @update_progress.mapping.get
    def progress_updates(self, request, pk=None):
        project = self.get_object()
        updates = project.comments.filter(action_type=Comment.ActionType.PROGRESS_UPDATE).select_related('user')
        return envelope(CommentSerializer(updates, many=True).data, 'Progress updates retrieved successfully')

    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        project = self.get_object()
        serializer = ProjectAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.assign_project(project, serializer.validated_data['assigned_to'], actor=request.user)
        return envelope({}, 'Project assigned successfully')

    @action(detail=True, methods=['get'])
    def invoice(self, request, pk=None):
        data = services.generate_invoice_data(pk)
        return envelope(data, 'Invoice data generated successfully')


class EstimationViewSet(BaseModelViewSet):
    queryset = Estimation.objects.select_related(
        'project', 'project__client', 'prepared_by', 'checked_by', 'approved_by'
    ).prefetch_related('items', 'labour')
    serializer_class = EstimationSerializer
    filterset_class = EstimationFilter
    ordering_fields = ('created_at', 'work_start_date', 'estimated_amount')
    resource_label = 'Estimation'
    resource_plural = 'estimations'
    role_map = {
        'create': ADMINS_AND_ENGINEERS,
        'update': ADMINS_AND_ENGINEERS,
        'partial_update': ADMINS_AND_ENGINEERS,
        'destroy': ADMINS,
        'check': ADMINS_AND_ENGINEERS,
        'approve': ADMINS,
    }

    def create(self, request, *args, **kwargs):
        serializer = EstimationWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        estimation = services.create_estimation(serializer.validated_data, actor=request.user)
        return envelope(
            EstimationSerializer(estimation).data, 'Estimation created successfully', status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        estimation = self.get_object()
        serializer = EstimationWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('project', None)
        estimation = services.update_estimation(estimation, data, actor=request.user)
        return envelope(EstimationSerializer(estimation).data, 'Estimation updated successfully')

    def perform_destroy(self, instance):
        services.delete_estimation(instance)

    @action(detail=False, methods=['get'], url_path=r'project/(?P<project_id>\d+)')
    def by_project(self, request, project_id=None):
        estimation = self.get_queryset().filter(project_id=project_id).first()
        if estimation is None:
            raise NotFound('Estimation not found')
        return envelope(self.get_serializer(estimation).data, 'Estimation retrieved successfully')

    @action(detail=True, methods=['post', 'patch'])
    def check(self, request, pk=None):
        estimation = self.get_object()
        serializer = EstimationDecisionSerializer(data=request.data, flag='is_checked')
        serializer.is_valid(raise_exception=True)
        is_checked = serializer.validated_data['is_checked']
        estimation = services.check_estimation(
            estimation, is_checked, serializer.validated_data.get('comment', ''), actor=request.user
        )
        return envelope(
            EstimationSerializer(estimation).data,
            f"Estimation {'checked' if is_checked else 'rejected'} successfully",
        )

    @action(detail=True, methods=['post', 'patch'])
    def approve(self, request, pk=None):
        estimation = self.get_object()
        serializer = EstimationDecisionSerializer(data=request.data, flag='is_approved')
        serializer.is_valid(raise_exception=True)
        is_approved = serializer.validated_data['is_approved']
        estimation = services.approve_estimation(
            estimation, is_approved, serializer.validated_data.get('comment', ''), actor=request.user
        )
        return envelope(
            EstimationSerializer(estimation).data,
            f"Estimation {'approved' if is_approved else 'rejected'} successfully",
        )

    @action(detail=True, methods=['get'])
    def pdf(self, request, pk=None):
        estimation = self.get_object()
        return pdf_response(
            'operations/estimation_pdf.html',
            {
                'estimation': estimation,
                'project': estimation.project,
                'client': estimation.project.client,
                'materials': list(estimation.materials),
                'labour': list(estimation.labour.all()),
                'terms': list(estimation.terms),
                'company': settings.COMPANY_PROFILE,
            },
            kind='estimation',
            number=estimation.estimation_number,
        )


class QuotationViewSet(BaseModelViewSet):
    queryset = Quotation.objects.select_related(
        'project', 'project__client', 'estimation', 'prepared_by', 'approved_by'
    ).prefetch_related('items')
    serializer_class = QuotationSerializer
    filterset_class = QuotationFilter
    parser_classes = (MultiPartParser, FormParser, JSONParser)
    ordering_fields = ('created_at', 'date', 'net_amount')
    resource_label = 'Quotation'
    resource_plural = 'quotations'
    role_map = {
        'create': ADMINS_AND_ENGINEERS,
        'update': ADMINS_AND_ENGINEERS,
        'partial_update': ADMINS_AND_ENGINEERS,
        'destroy': ADMINS,
        'approve': ADMINS,
    }

    def _payload(self, request) -> dict:
        raw = request.data.get('data')
        if raw is None:
            return request.data
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise ValidationError('Invalid JSON data format') from exc
        if not isinstance(raw, dict):
            raise ValidationError('Invalid JSON data format')
        return raw

    def _item_images(self, request) -> dict:
        images = {}
        for field, file in request.FILES.items():
            match = ITEM_IMAGE_FIELD.match(field)
            if match:
                images[int(match.group(1))] = validate_media_file(file, allow_pdf=False)
        return images

    def create(self, request, *args, **kwargs):
        serializer = QuotationWriteSerializer(data=self._payload(request))
        serializer.is_valid(raise_exception=True)
        quotation = services.create_quotation(
            serializer.validated_data, self._item_images(request), actor=request.user
        )
        return envelope(QuotationSerializer(quotation).data, 'Quotation created successfully', status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        quotation = self.get_object()
        serializer = QuotationWriteSerializer(data=self._payload(request), partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('project', None)
        quotation = services.update_quotation(quotation, data, self._item_images(request), actor=request.user)
        return envelope(QuotationSerializer(quotation).data, 'Quotation updated successfully')

    def perform_destroy(self, instance):
        services.delete_quotation(instance, actor=self.request.user)

    @action(detail=False, methods=['get'], url_path=r'project/(?P<project_id>\d+)')
    def by_project(self, request, project_id=None):
        quotation = self.get_queryset().filter(project_id=project_id).first()
        if quotation is None:
            raise NotFound('Quotation not found')
        return envelope(self.get_serializer(quotation).data, 'Quotation retrieved successfully')

    @action(detail=True, methods=['post', 'patch'])
    def approve(self, request, pk=None):
        quotation = self.get_object()
        serializer = QuotationDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        is_approved = serializer.validated_data['is_approved']
        quotation = services.decide_quotation(
            quotation, is_approved, serializer.validated_data.get('comment', ''), actor=request.user
        )
        return envelope(
            QuotationSerializer(quotation).data, f"Quotation {'approved' if is_approved else 'rejected'}"
        )

    @action(detail=True, methods=['get'])
    def pdf(self, request, pk=None):
        quotation = self.get_object()
        return pdf_response(
            'operations/quotation_pdf.html',
            {
                'quotation': quotation,
                'project': quotation.project,
                'client': quotation.project.client,
                'items': list(quotation.items.all()),
                'company': settings.COMPANY_PROFILE,
            },
            kind='quotation',
            number=quotation.quotation_number,
        )


class LpoViewSet(BaseModelViewSet):
    queryset = Lpo.objects.select_related('project', 'created_by')
    serializer_class = LpoSerializer
    filterset_class = LpoFilter
    parser_classes = (MultiPartParser, FormParser, JSONParser)
    http_method_names = ['get', 'post', 'delete', 'head', 'options']
    resource_label = 'LPO'
    resource_plural = 'lpos'
    role_map = {
        'create': ADMINS_AND_FINANCE,
        'destroy': ADMINS,
    }

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        document = data.pop('document', None)
        serializer.instance = services.create_lpo(data, document, actor=self.request.user)

    def perform_destroy(self, instance):
        services.delete_lpo(instance)

    @action(detail=False, methods=['get'], url_path=r'project/(?P<project_id>\d+)')
    def by_project(self, request, project_id=None):
        lpo = self.get_queryset().filter(project_id=project_id).first()
        if lpo is None:
            raise NotFound('LPO not found for this project')
        return envelope(self.get_serializer(lpo).data, 'LPO retrieved successfully')


class WorkCompletionViewSet(BaseModelViewSet):
    queryset = WorkCompletion.objects.select_related('project', 'created_by').prefetch_related('images')
    serializer_class = WorkCompletionSerializer
    parser_classes = (MultiPartParser, FormParser, JSONParser)
    http_method_names = ['get', 'post', 'delete', 'head', 'options']
    resource_label = 'Work completion'
    resource_plural = 'work_completions'
    role_map = {
        'create': ADMINS_AND_ENGINEERS,
        'upload_images': ADMINS_AND_ENGINEERS,
        'delete_image': ADMINS_AND_ENGINEERS,
    }

    def _project(self, project_id) -> Project:
        project = Project.objects.select_related('client', 'assigned_to', 'created_by').filter(pk=project_id).first()
        if project is None:
            raise NotFound('Project not found')
        return project

    def create(self, request, *args, **kwargs):
        serializer = WorkCompletionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        work_completion = services.create_work_completion(serializer.validated_data['project'], actor=request.user)
        return envelope(
            WorkCompletionSerializer(work_completion).data,
            'Work completion created successfully',
            status.HTTP_201_CREATED,
        )

    def destroy(self, request, *args, **kwargs):
        raise MethodNotAllowed(request.method)

    @action(detail=False, methods=['get'], url_path=r'project/(?P<project_id>\d+)')
    def by_project(self, request, project_id=None):
        work_completion = self.get_queryset().filter(project_id=project_id).first()
        if work_completion is None:
            return envelope(None, 'No work completion found for this project')
        return envelope(self.get_serializer(work_completion).data, 'Work completion retrieved successfully')

    @action(detail=False, methods=['get'], url_path=r'project/(?P<project_id>\d+)/images')
    def images(self, request, project_id=None):
        work_completion = self.get_queryset().filter(project_id=project_id).first()
        if work_completion is None:
            return envelope([], 'No work completion images found')
        data = WorkCompletionImageSerializer(work_completion.images.all(), many=True).data
        return envelope(data, 'Work completion images retrieved successfully')

    @images.mapping.post
    def upload_images(self, request, project_id=None):
        project = self._project(project_id)
        files = request.FILES.getlist('images')
        for file in files:
            validate_media_file(file, allow_pdf=False)
        work_completion = services.upload_work_completion_images(
            project,
            files,
            _list_param(request.data, 'titles'),
            _list_param(request.data, 'descriptions'),
            actor=request.user,
        )
        work_completion = self.get_queryset().get(pk=work_completion.pk)
        return envelope(self.get_serializer(work_completion).data, 'Images uploaded successfully')

    @action(detail=False, methods=['get'], url_path=r'project/(?P<project_id>\d+)/completion-data')
    def completion_data(self, request, project_id=None):
        data = services.get_completion_data(self._project(project_id))
        return envelope(data, 'Completion data retrieved successfully')

    @action(detail=True, methods=['delete'], url_path=r'images/(?P<image_id>\d+)')
    def delete_image(self, request, pk=None, image_id=None):
        work_completion = self.get_object()
        work_completion = services.delete_work_completion_image(work_completion, image_id, actor=request.user)
        work_completion = self.get_queryset().get(pk=work_completion.pk)
        return envelope(self.get_serializer(work_completion).data, 'Image deleted successfully')


class CommentViewSet(BaseModelViewSet):
    queryset = Comment.objects.select_related('user', 'project')
    serializer_class = CommentSerializer
    filterset_class = CommentFilter
    http_method_names = ['get', 'post', 'head', 'options']
    resource_label = 'Comment'
    resource_plural = 'comments'

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)
