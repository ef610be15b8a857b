"""
Collaborator models for the approval workflow: tenant feature flags, role
assignments, in-app notifications and the audit trail
"""
from django.db import models
import uuid


class FeatureFlag(models.Model):
    """
    Per-tenant feature switch (e.g. FINANCE_WORKFLOW opens the Finance gate)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True, help_text='Tenant ID for RLS')
    feature_code = models.CharField(max_length=64, help_text='Feature code from SYSTEM_FEATURES')
    is_enabled = models.BooleanField(default=False)
    config = models.JSONField(null=True, blank=True, help_text='Optional feature configuration')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'feature_flags'
        ordering = ['feature_code']
        unique_together = [('tenant_id', 'feature_code')]

    def __str__(self):
        state = 'on' if self.is_enabled else 'off'
        return f"{self.feature_code} [{state}] for {self.tenant_id}"


class UserRole(models.Model):
    """
    Role assignment of a user within a tenant
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('legal', 'Legal Team'),
        ('legal_manager', 'Legal Manager'),
        ('legal_head', 'Legal Head'),
        ('finance', 'Finance Team'),
        ('user', 'Standard User'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True, help_text='Tenant ID for RLS')
    user_id = models.UUIDField(help_text='User ID')
    role = models.CharField(max_length=50, choices=ROLE_CHOICES, help_text='User role')
    email = models.EmailField(blank=True, null=True, help_text='Contact address for workflow e-mails')
    permissions = models.JSONField(
        default=list,
        help_text='Permission codes: ["approval:legal:act", "approval:reject", "contract:escalate"]'
    )
    assigned_at = models.DateTimeField(auto_now_add=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'user_roles'
        ordering = ['assigned_at']
        unique_together = [('tenant_id', 'user_id', 'role')]
        indexes = [
            models.Index(fields=['tenant_id', 'role', 'is_active'], name='user_roles_tenant_role_idx'),
        ]

    def __str__(self):
        return f"User {self.user_id} - Role: {self.role}"


class NotificationQueue(models.Model):
    """
    In-app notifications produced after workflow transitions commit
    """
    KIND_CHOICES = [
        ('APPROVAL_REQUIRED', 'Approval Required'),
        ('APPROVAL_COMPLETE', 'Approval Complete'),
        ('REVISION_REQUESTED', 'Revision Requested'),
        ('ESCALATION', 'Escalation'),
        ('CONTRACT_UPDATE', 'Contract Update'),
        ('APPROVAL_OVERDUE', 'Approval Overdue'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('sent', 'Sent'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.UUIDField(help_text='User ID of recipient')
    kind = models.CharField(max_length=32, choices=KIND_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'notification_queue'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'status'], name='notif_recipient_status_idx'),
        ]

    def __str__(self):
        return f"Notification to {self.recipient}: {self.title}"


class AuditLog(models.Model):
    """
    Append-only audit trail (best-effort, written after commit)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True, help_text='Tenant ID for RLS')
    user_id = models.UUIDField(help_text='User who performed the action')
    action = models.CharField(max_length=64, help_text='Action performed (CONTRACT_APPROVED, ...)')
    module = models.CharField(max_length=50, default='approvals')
    target_type = models.CharField(max_length=50, help_text='Contract or Approval')
    target_id = models.UUIDField(help_text='ID of the affected resource')
    contract_id = models.UUIDField(null=True, blank=True, db_index=True)
    metadata = models.JSONField(default=dict, blank=True, help_text='Additional context')
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['tenant_id', 'timestamp'], name='audit_tenant_ts_idx'),
            models.Index(fields=['action', 'timestamp'], name='audit_action_ts_idx'),
        ]

    def __str__(self):
        return f"{self.action} by {self.user_id} at {self.timestamp}"
