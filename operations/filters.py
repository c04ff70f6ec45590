import django_filters
from django.contrib.auth import get_user_model
from django.db.models import Q

from .models import Client, Comment, Estimation, Lpo, Project, Quotation

User = get_user_model()


class ClientFilter(django_filters.FilterSet):
    pincode = django_filters.CharFilter(field_name='pincode')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Client
        fields = ['pincode']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(client_name__icontains=value)
            | Q(client_address__icontains=value)
            | Q(trn_number__icontains=value)
            | Q(mobile_number__icontains=value)
        )


class ProjectFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Project.Status.choices)
    assigned_to = django_filters.ModelChoiceFilter(queryset=User.objects.all())
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Project
        fields = ['client', 'status', 'assigned_to']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(project_name__icontains=value)
            | Q(project_description__icontains=value)
            | Q(site_address__icontains=value)
            | Q(site_location__icontains=value)
        )


class EstimationFilter(django_filters.FilterSet):
    work_start_date = django_filters.DateFromToRangeFilter()

    class Meta:
        model = Estimation
        fields = ['project', 'is_checked', 'is_approved']


class QuotationFilter(django_filters.FilterSet):
    is_approved = django_filters.BooleanFilter()

    class Meta:
        model = Quotation
        fields = ['project', 'is_approved']


class LpoFilter(django_filters.FilterSet):
    lpo_date = django_filters.DateFromToRangeFilter()

    class Meta:
        model = Lpo
        fields = ['project']


class CommentFilter(django_filters.FilterSet):
    action_type = django_filters.ChoiceFilter(choices=Comment.ActionType.choices)

    class Meta:
        model = Comment
        fields = ['project', 'action_type']
