"""
Contract and approval gate models with tenant isolation
"""
from django.db import models
from django.utils import timezone
import uuid

from .constants import ContractStatus, GateStatus, GateType


class Contract(models.Model):
    """
    Contract under approval workflow.

    `status` is derived: only ContractWorkflowEngine writes it, from the
    outcome of the live approval gates.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.UUIDField(db_index=True, help_text='Tenant ID for RLS')
    title = models.CharField(max_length=255, help_text='Contract title')
    status = models.CharField(
        max_length=32,
        choices=ContractStatus.CHOICES,
        default=ContractStatus.DRAFT,
        help_text='Contract workflow status (derived from approval gates)'
    )
    created_by = models.UUIDField(help_text='User ID who created the contract')
    counterparty = models.CharField(max_length=255, blank=True, null=True, help_text='Counterparty name')
    contract_type = models.CharField(max_length=100, blank=True, null=True, help_text='Type of contract (NDA, MSA, etc.)')
    value = models.DecimalField(max_digits=15, decimal_places=2, blank=True, null=True, help_text='Contract value')
    submitted_at = models.DateTimeField(null=True, blank=True, help_text='Last submission for review')
    approved_at = models.DateTimeField(null=True, blank=True, help_text='All gates approved')
    sent_at = models.DateTimeField(null=True, blank=True, help_text='Sent to counterparty')
    signed_at = models.DateTimeField(null=True, blank=True, help_text='Signed copy uploaded')
    cancelled_at = models.DateTimeField(null=True, blank=True)
    signed_document_key = models.CharField(
        max_length=500, blank=True, null=True,
        help_text='Storage key of the signed document'
    )
    metadata = models.JSONField(default=dict, blank=True, help_text='Additional workflow metadata')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contracts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='contracts_tenant_status_idx'),
            models.Index(fields=['tenant_id', 'created_at'], name='contracts_tenant_created_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in ContractStatus.TERMINAL

    @property
    def is_under_review(self):
        return self.status in ContractStatus.UNDER_REVIEW


class ContractApproval(models.Model):
    """
    One review gate (Legal, Finance) of the current submission cycle.

    Gates are replaced on every submission, so at most one live gate per
    type exists for a contract.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name='approvals',
        help_text='Contract under review'
    )
    type = models.CharField(max_length=20, choices=GateType.CHOICES)
    status = models.CharField(max_length=20, choices=GateStatus.CHOICES, default=GateStatus.PENDING)
    actor_id = models.UUIDField(null=True, blank=True, help_text='User expected to act (reassigned on escalation)')
    acted_at = models.DateTimeField(null=True, blank=True)
    comment = models.TextField(blank=True, null=True)
    escalated_by = models.UUIDField(null=True, blank=True, help_text='User who escalated this gate')
    escalated_to = models.UUIDField(null=True, blank=True, help_text='Senior reviewer currently holding the gate')
    escalated_at = models.DateTimeField(null=True, blank=True)
    due_date = models.DateTimeField(null=True, blank=True, help_text='SLA deadline')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contract_approvals'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['contract', 'type'], name='uniq_contract_approval_type'),
        ]
        indexes = [
            models.Index(fields=['type', 'status'], name='approvals_type_status_idx'),
            models.Index(fields=['status', 'due_date'], name='approvals_status_due_idx'),
        ]

    def __str__(self):
        return f"{self.type} - {self.contract_id} ({self.status})"

    @property
    def is_pending(self):
        return self.status == GateStatus.PENDING

    @property
    def is_escalated(self):
        return self.escalated_to is not None

    def is_overdue(self):
        """Check if the gate is past its SLA deadline"""
        if self.due_date and self.status == GateStatus.PENDING:
            return timezone.now() > self.due_date
        return False


class WorkflowLog(models.Model):
    """
    Transition history for a contract, written in the same transaction as
    the transition itself
    """
    ACTION_CHOICES = [
        ('submitted', 'Submitted for Approval'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('revision_requested', 'Revision Requested'),
        ('escalated', 'Escalated'),
        ('returned', 'Returned to Originator'),
        ('cancelled', 'Cancelled'),
        ('sent_to_counterparty', 'Sent to Counterparty'),
        ('signed', 'Signed Copy Confirmed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name='workflow_logs',
        help_text='Related contract'
    )
    action = models.CharField(max_length=32, choices=ACTION_CHOICES, help_text='Action performed')
    performed_by = models.UUIDField(help_text='User ID who performed the action')
    from_status = models.CharField(max_length=32, choices=ContractStatus.CHOICES)
    to_status = models.CharField(max_length=32, choices=ContractStatus.CHOICES)
    comment = models.TextField(blank=True, null=True, help_text='Optional comment/reason')
    timestamp = models.DateTimeField(auto_now_add=True)
    metadata = models.JSONField(blank=True, null=True, help_text='Additional metadata')

    class Meta:
        db_table = 'workflow_logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['contract', 'timestamp'], name='wflog_contract_ts_idx'),
        ]

    def __str__(self):
        return f"{self.contract_id} - {self.action} at {self.timestamp}"


# Register collaborator models with the app.
from .workflow_models import AuditLog, FeatureFlag, NotificationQueue, UserRole  # noqa: E402,F401
