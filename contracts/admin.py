from django.contrib import admin

from .models import Contract, ContractApproval, WorkflowLog
from .workflow_models import AuditLog, FeatureFlag, NotificationQueue, UserRole


class ContractApprovalInline(admin.TabularInline):
    model = ContractApproval
    extra = 0
    readonly_fields = ('type', 'status', 'actor_id', 'acted_at', 'escalated_to', 'due_date')
    can_delete = False


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ('title', 'contract_type', 'status', 'tenant_id', 'submitted_at')
    list_filter = ('status', 'contract_type')
    search_fields = ('title', 'counterparty')
    # Status is derived from the approval gates; edit it through the workflow API.
    readonly_fields = ('status', 'submitted_at', 'approved_at', 'sent_at', 'signed_at', 'cancelled_at')
    inlines = [ContractApprovalInline]


@admin.register(ContractApproval)
class ContractApprovalAdmin(admin.ModelAdmin):
    list_display = ('contract', 'type', 'status', 'actor_id', 'escalated_to', 'due_date')
    list_filter = ('type', 'status')


@admin.register(WorkflowLog)
class WorkflowLogAdmin(admin.ModelAdmin):
    list_display = ('contract', 'action', 'performed_by', 'from_status', 'to_status', 'timestamp')
    list_filter = ('action',)


@admin.register(FeatureFlag)
class FeatureFlagAdmin(admin.ModelAdmin):
    list_display = ('feature_code', 'tenant_id', 'is_enabled', 'updated_at')
    list_filter = ('feature_code', 'is_enabled')


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ('user_id', 'tenant_id', 'role', 'email', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('email',)


@admin.register(NotificationQueue)
class NotificationQueueAdmin(admin.ModelAdmin):
    list_display = ('recipient', 'kind', 'title', 'status', 'created_at')
    list_filter = ('kind', 'status')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('action', 'user_id', 'tenant_id', 'target_type', 'timestamp')
    list_filter = ('action', 'module')
