"""
Post-commit side effects: notifications, e-mail, audit, cache, overdue reminders
"""
from datetime import timedelta
from unittest import mock

from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from prometheus_client import REGISTRY

from contracts.constants import ContractStatus, GateStatus, GateType
from contracts.exceptions import Forbidden
from contracts.models import ContractApproval
from contracts.side_effects import SideEffectDispatcher
from contracts.tasks import flag_overdue_approvals
from contracts.workflow_engine import ContractWorkflowEngine
from contracts.workflow_models import AuditLog, NotificationQueue, UserRole

from .utils import FINANCE_REVIEWER, LEGAL_REVIEWER, WorkflowFixturesMixin


def failure_count(effect):
    return REGISTRY.get_sample_value('clm_side_effect_failures_total', {'effect': effect}) or 0


class TransitionSideEffectTests(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.engine = ContractWorkflowEngine()
        self.reviewer = self.make_role('legal', LEGAL_REVIEWER, user_id=self.legal_id, email='legal@example.com')
        self.make_role('user', [], user_id=self.author_id, email='author@example.com')
        self.contract = self.make_contract()

    def submit(self):
        with self.captureOnCommitCallbacks(execute=True):
            return self.engine.submit(self.contract.id, self.tenant_id, self.author_id)

    def test_submit_notifies_and_emails_reviewers(self):
        self.submit()

        notification = NotificationQueue.objects.get(recipient=self.legal_id)
        self.assertEqual(notification.kind, 'APPROVAL_REQUIRED')
        self.assertEqual(notification.title, 'Legal Approval Required')
        self.assertEqual(notification.link, '/dashboard/approvals/legal')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['legal@example.com'])
        self.assertIn(self.contract.title, mail.outbox[0].subject)

    def test_submit_writes_audit_entry(self):
        self.submit()

        entry = AuditLog.objects.get(action='CONTRACT_SUBMITTED')
        self.assertEqual(entry.tenant_id, self.tenant_id)
        self.assertEqual(entry.user_id, self.author_id)
        self.assertEqual(entry.contract_id, self.contract.id)
        self.assertEqual(entry.metadata['gates'], [GateType.LEGAL])

    def test_transition_invalidates_tenant_cache(self):
        key = f'analytics:{self.tenant_id}:summary'
        cache.set(key, {'total': 3})

        self.submit()

        self.assertIsNone(cache.get(key))

    def test_approval_notifies_author(self):
        result = self.submit()
        mail.outbox = []

        with self.captureOnCommitCallbacks(execute=True):
            self.engine.approve(result.gates[0].id, self.legal_id, self.tenant_id, LEGAL_REVIEWER)

        notification = NotificationQueue.objects.get(recipient=self.author_id)
        self.assertEqual(notification.kind, 'APPROVAL_COMPLETE')
        self.assertEqual(notification.title, 'Contract Approved')
        self.assertEqual(mail.outbox[0].to, ['author@example.com'])
        self.assertTrue(AuditLog.objects.filter(action='CONTRACT_APPROVED').exists())

    def test_nothing_dispatched_before_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            self.engine.submit(self.contract.id, self.tenant_id, self.author_id)

        self.assertEqual(len(callbacks), 2)
        self.assertFalse(NotificationQueue.objects.exists())
        self.assertFalse(AuditLog.objects.exists())

    def test_failed_transition_dispatches_nothing(self):
        self.submit()
        self.make_role('finance', FINANCE_REVIEWER)
        gate = ContractApproval.objects.get(contract=self.contract)

        with self.captureOnCommitCallbacks() as callbacks:
            with self.assertRaises(Forbidden):
                self.engine.approve(gate.id, self.finance_id, self.tenant_id, FINANCE_REVIEWER)

        self.assertEqual(callbacks, [])

    def test_failing_effect_does_not_affect_transition(self):
        before = failure_count('audit')

        with mock.patch(
            'contracts.side_effects.AuditLogService.record',
            side_effect=RuntimeError('audit store down'),
        ):
            result = self.submit()

        self.assertEqual(result.contract.status, ContractStatus.SENT_TO_LEGAL)
        self.contract.refresh_from_db()
        self.assertEqual(self.contract.status, ContractStatus.SENT_TO_LEGAL)
        self.assertFalse(AuditLog.objects.exists())
        # Effects queued after the failing one still ran.
        self.assertTrue(NotificationQueue.objects.filter(recipient=self.legal_id).exists())
        self.assertEqual(failure_count('audit'), before + 1)

    def test_dispatcher_skips_missing_recipient(self):
        effects = SideEffectDispatcher(self.tenant_id)
        effects.notify(None, 'CONTRACT_UPDATE', 'Title', 'Message')
        effects.email('', 'approval_request', {})

        with self.captureOnCommitCallbacks(execute=True):
            effects.flush()

        self.assertFalse(NotificationQueue.objects.exists())
        self.assertEqual(mail.outbox, [])


class OverdueApprovalTests(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.engine = ContractWorkflowEngine()
        self.make_role('legal', LEGAL_REVIEWER, user_id=self.legal_id, email='legal@example.com')
        self.contract = self.make_contract()
        with self.captureOnCommitCallbacks(execute=True):
            result = self.engine.submit(self.contract.id, self.tenant_id, self.author_id)
        self.gate_id = result.gates[0].id
        mail.outbox = []

    def make_overdue(self):
        ContractApproval.objects.filter(id=self.gate_id).update(
            due_date=timezone.now() - timedelta(hours=1)
        )

    def run_task(self):
        with self.captureOnCommitCallbacks(execute=True):
            return flag_overdue_approvals()

    def test_gate_within_sla_is_not_flagged(self):
        self.assertEqual(self.run_task(), 0)
        self.assertFalse(NotificationQueue.objects.filter(kind='APPROVAL_OVERDUE').exists())

    def test_overdue_gate_is_reported_once(self):
        self.make_overdue()

        self.assertEqual(self.run_task(), 1)
        self.assertEqual(self.run_task(), 0)

        reminder = NotificationQueue.objects.get(kind='APPROVAL_OVERDUE')
        self.assertEqual(reminder.recipient, self.legal_id)
        self.assertEqual(reminder.metadata['approval_id'], str(self.gate_id))
        self.assertEqual(len(mail.outbox), 1)

    def test_overdue_gate_without_reviewers_is_not_counted(self):
        UserRole.objects.filter(tenant_id=self.tenant_id).update(is_active=False)
        self.make_overdue()

        self.assertEqual(self.run_task(), 0)
        self.assertEqual(self.run_task(), 0)
        self.assertFalse(NotificationQueue.objects.filter(kind='APPROVAL_OVERDUE').exists())

    def test_overdue_report_never_changes_status(self):
        self.make_overdue()

        self.run_task()

        gate = ContractApproval.objects.get(id=self.gate_id)
        self.contract.refresh_from_db()
        self.assertEqual(gate.status, GateStatus.PENDING)
        self.assertEqual(self.contract.status, ContractStatus.SENT_TO_LEGAL)
