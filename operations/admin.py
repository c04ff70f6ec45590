from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

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


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (('Role Info', {'fields': ('role', 'phone', 'signature_image')}),)
    list_display = ('username', 'email', 'role', 'is_active', 'is_staff')
    list_filter = ('role', 'is_active', 'is_staff')


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ('client_name', 'trn_number', 'pincode', 'mobile_number', 'email')
    search_fields = ('client_name', 'trn_number', 'email')
    list_filter = ('pincode',)


class CommentInline(admin.TabularInline):
    model = Comment
    extra = 0
    readonly_fields = ('user', 'content', 'action_type', 'progress', 'created_at')
    can_delete = False


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('project_number', 'project_name', 'client', 'status', 'progress', 'assigned_to')
    search_fields = ('project_number', 'project_name', 'client__client_name')
    list_filter = ('status',)
    readonly_fields = ('project_number',)
    inlines = [CommentInline]


class EstimationItemInline(admin.TabularInline):
    model = EstimationItem
    extra = 0
    readonly_fields = ('total',)


class EstimationLabourInline(admin.TabularInline):
    model = EstimationLabour
    extra = 0
    readonly_fields = ('total',)


@admin.register(Estimation)
class EstimationAdmin(admin.ModelAdmin):
    list_display = ('estimation_number', 'project', 'estimated_amount', 'profit', 'is_checked', 'is_approved')
    search_fields = ('estimation_number', 'project__project_name')
    list_filter = ('is_checked', 'is_approved')
    readonly_fields = ('estimated_amount', 'profit')
    inlines = [EstimationItemInline, EstimationLabourInline]


class QuotationItemInline(admin.TabularInline):
    model = QuotationItem
    extra = 0
    readonly_fields = ('total_price',)


@admin.register(Quotation)
class QuotationAdmin(admin.ModelAdmin):
    list_display = ('quotation_number', 'project', 'date', 'net_amount', 'is_approved')
    search_fields = ('quotation_number', 'project__project_name')
    list_filter = ('is_approved',)
    readonly_fields = ('subtotal', 'vat_amount', 'net_amount')
    inlines = [QuotationItemInline]


@admin.register(Lpo)
class LpoAdmin(admin.ModelAdmin):
    list_display = ('lpo_number', 'project', 'lpo_date', 'amount')
    search_fields = ('lpo_number', 'project__project_name')


class WorkCompletionImageInline(admin.TabularInline):
    model = WorkCompletionImage
    extra = 0


@admin.register(WorkCompletion)
class WorkCompletionAdmin(admin.ModelAdmin):
    list_display = ('project', 'created_by', 'created_at')
    inlines = [WorkCompletionImageInline]


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ('project', 'user', 'action_type', 'progress', 'created_at')
    list_filter = ('action_type',)
    search_fields = ('content', 'project__project_name')
