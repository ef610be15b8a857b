import uuid

import django.db.models.deletion
from django.db import migrations, models


CONTRACT_STATUS_CHOICES = [
    ('DRAFT', 'Draft'),
    ('SENT_TO_LEGAL', 'Sent to Legal'),
    ('SENT_TO_FINANCE', 'Sent to Finance'),
    ('LEGAL_REVIEW_IN_PROGRESS', 'Legal Review in Progress'),
    ('FINANCE_REVIEW_IN_PROGRESS', 'Finance Review in Progress'),
    ('IN_REVIEW', 'In Review'),
    ('LEGAL_APPROVED', 'Legal Approved'),
    ('FINANCE_REVIEWED', 'Finance Reviewed'),
    ('PENDING_LEGAL_HEAD', 'Pending Legal Head'),
    ('APPROVED', 'Approved'),
    ('REJECTED', 'Rejected'),
    ('REVISION_REQUESTED', 'Revision Requested'),
    ('SENT_TO_COUNTERPARTY', 'Sent to Counterparty'),
    ('ACTIVE', 'Active'),
    ('CANCELLED', 'Cancelled'),
    ('EXPIRED', 'Expired'),
    ('TERMINATED', 'Terminated'),
    ('EXECUTED', 'Executed'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Contract',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.UUIDField(db_index=True, help_text='Tenant ID for RLS')),
                ('title', models.CharField(help_text='Contract title', max_length=255)),
                ('status', models.CharField(choices=CONTRACT_STATUS_CHOICES, default='DRAFT', help_text='Contract workflow status (derived from approval gates)', max_length=32)),
                ('created_by', models.UUIDField(help_text='User ID who created the contract')),
                ('counterparty', models.CharField(blank=True, help_text='Counterparty name', max_length=255, null=True)),
                ('contract_type', models.CharField(blank=True, help_text='Type of contract (NDA, MSA, etc.)', max_length=100, null=True)),
                ('value', models.DecimalField(blank=True, decimal_places=2, help_text='Contract value', max_digits=15, null=True)),
                ('submitted_at', models.DateTimeField(blank=True, help_text='Last submission for review', null=True)),
                ('approved_at', models.DateTimeField(blank=True, help_text='All gates approved', null=True)),
                ('sent_at', models.DateTimeField(blank=True, help_text='Sent to counterparty', null=True)),
                ('signed_at', models.DateTimeField(blank=True, help_text='Signed copy uploaded', null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('signed_document_key', models.CharField(blank=True, help_text='Storage key of the signed document', max_length=500, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional workflow metadata')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'contracts',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant_id', 'status'], name='contracts_tenant_status_idx'),
                    models.Index(fields=['tenant_id', 'created_at'], name='contracts_tenant_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ContractApproval',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('LEGAL', 'Legal'), ('FINANCE', 'Finance')], max_length=20)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected'), ('ESCALATED', 'Escalated')], default='PENDING', max_length=20)),
                ('actor_id', models.UUIDField(blank=True, help_text='User expected to act (reassigned on escalation)', null=True)),
                ('acted_at', models.DateTimeField(blank=True, null=True)),
                ('comment', models.TextField(blank=True, null=True)),
                ('escalated_by', models.UUIDField(blank=True, help_text='User who escalated this gate', null=True)),
                ('escalated_to', models.UUIDField(blank=True, help_text='Senior reviewer currently holding the gate', null=True)),
                ('escalated_at', models.DateTimeField(blank=True, null=True)),
                ('due_date', models.DateTimeField(blank=True, help_text='SLA deadline', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('contract', models.ForeignKey(help_text='Contract under review', on_delete=django.db.models.deletion.CASCADE, related_name='approvals', to='contracts.contract')),
            ],
            options={
                'db_table': 'contract_approvals',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['type', 'status'], name='approvals_type_status_idx'),
                    models.Index(fields=['status', 'due_date'], name='approvals_status_due_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('contract', 'type'), name='uniq_contract_approval_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='WorkflowLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('submitted', 'Submitted for Approval'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('revision_requested', 'Revision Requested'), ('escalated', 'Escalated'), ('returned', 'Returned to Originator'), ('cancelled', 'Cancelled'), ('sent_to_counterparty', 'Sent to Counterparty'), ('signed', 'Signed Copy Confirmed')], help_text='Action performed', max_length=32)),
                ('performed_by', models.UUIDField(help_text='User ID who performed the action')),
                ('from_status', models.CharField(choices=CONTRACT_STATUS_CHOICES, max_length=32)),
                ('to_status', models.CharField(choices=CONTRACT_STATUS_CHOICES, max_length=32)),
                ('comment', models.TextField(blank=True, help_text='Optional comment/reason', null=True)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('metadata', models.JSONField(blank=True, help_text='Additional metadata', null=True)),
                ('contract', models.ForeignKey(help_text='Related contract', on_delete=django.db.models.deletion.CASCADE, related_name='workflow_logs', to='contracts.contract')),
            ],
            options={
                'db_table': 'workflow_logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['contract', 'timestamp'], name='wflog_contract_ts_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FeatureFlag',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.UUIDField(db_index=True, help_text='Tenant ID for RLS')),
                ('feature_code', models.CharField(help_text='Feature code from SYSTEM_FEATURES', max_length=64)),
                ('is_enabled', models.BooleanField(default=False)),
                ('config', models.JSONField(blank=True, help_text='Optional feature configuration', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'feature_flags',
                'ordering': ['feature_code'],
                'unique_together': {('tenant_id', 'feature_code')},
            },
        ),
        migrations.CreateModel(
            name='UserRole',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.UUIDField(db_index=True, help_text='Tenant ID for RLS')),
                ('user_id', models.UUIDField(help_text='User ID')),
                ('role', models.CharField(choices=[('admin', 'Administrator'), ('legal', 'Legal Team'), ('legal_manager', 'Legal Manager'), ('legal_head', 'Legal Head'), ('finance', 'Finance Team'), ('user', 'Standard User')], help_text='User role', max_length=50)),
                ('email', models.EmailField(blank=True, help_text='Contact address for workflow e-mails', max_length=254, null=True)),
                ('permissions', models.JSONField(default=list, help_text='Permission codes: ["approval:legal:act", "approval:reject", "contract:escalate"]')),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'user_roles',
                'ordering': ['assigned_at'],
                'unique_together': {('tenant_id', 'user_id', 'role')},
                'indexes': [
                    models.Index(fields=['tenant_id', 'role', 'is_active'], name='user_roles_tenant_role_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='NotificationQueue',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('recipient', models.UUIDField(help_text='User ID of recipient')),
                ('kind', models.CharField(choices=[('APPROVAL_REQUIRED', 'Approval Required'), ('APPROVAL_COMPLETE', 'Approval Complete'), ('REVISION_REQUESTED', 'Revision Requested'), ('ESCALATION', 'Escalation'), ('CONTRACT_UPDATE', 'Contract Update'), ('APPROVAL_OVERDUE', 'Approval Overdue')], max_length=32)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('link', models.CharField(blank=True, default='', max_length=500)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('sent', 'Sent'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
            ],
            options={
                'db_table': 'notification_queue',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'status'], name='notif_recipient_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.UUIDField(db_index=True, help_text='Tenant ID for RLS')),
                ('user_id', models.UUIDField(help_text='User who performed the action')),
                ('action', models.CharField(help_text='Action performed (CONTRACT_APPROVED, ...)', max_length=64)),
                ('module', models.CharField(default='approvals', max_length=50)),
                ('target_type', models.CharField(help_text='Contract or Approval', max_length=50)),
                ('target_id', models.UUIDField(help_text='ID of the affected resource')),
                ('contract_id', models.UUIDField(blank=True, db_index=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional context')),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'audit_logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['tenant_id', 'timestamp'], name='audit_tenant_ts_idx'),
                    models.Index(fields=['action', 'timestamp'], name='audit_action_ts_idx'),
                ],
            },
        ),
    ]
