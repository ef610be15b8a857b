"""
Escalation of a pending Legal approval to the tenant's Legal Head

Escalation never opens a new gate: it retargets the live Legal gate
(`escalated_to` / `actor_id`) and the evaluator reports the contract as
PENDING_LEGAL_HEAD until the Legal Head decides or returns it.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import gate_store
from .constants import GateStatus, GateType
from .exceptions import Forbidden, NotFound
from .gate_store import TransitionResult, require_comment
from .gatekeeper import evaluate
from .permissions import CONTRACT_ESCALATE, has_permission
from .side_effects import SideEffectDispatcher, contract_link, frontend_url
from .workflow_models import UserRole

logger = logging.getLogger(__name__)


class EscalationCoordinator:

    @staticmethod
    def find_legal_head(tenant_id):
        """Active Legal Head of the tenant, earliest assignment first."""
        return (
            UserRole.objects
            .filter(tenant_id=tenant_id, role=settings.LEGAL_HEAD_ROLE, is_active=True)
            .order_by('assigned_at')
            .first()
        )

    def _locked_legal_gate(self, contract_id, tenant_id, action):
        contract = gate_store.lock_contract(contract_id, tenant_id)
        if not contract.is_under_review:
            raise Forbidden(f"Cannot {action} a contract in {contract.status} status")
        gates = gate_store.lock_gates(contract)
        legal = gate_store.find_gate(gates, GateType.LEGAL)
        return contract, gates, legal

    def escalate(self, contract_id, actor_id, tenant_id, permissions, reason=None):
        """
        Hand the pending Legal gate to the Legal Head

        Re-escalating an escalated gate only moves the target; the original
        escalator is kept so a later return goes back to them.

        Raises:
            Forbidden: missing contract:escalate, wrong state, or no pending
                Legal approval
            NotFound: the tenant has no active Legal Head
        """
        if not has_permission(permissions, CONTRACT_ESCALATE):
            raise Forbidden('You do not have permission to escalate contracts')

        with transaction.atomic():
            contract, gates, legal = self._locked_legal_gate(contract_id, tenant_id, 'escalate')
            if legal is None or legal.status != GateStatus.PENDING:
                raise Forbidden('No pending Legal approval to escalate')

            head = self.find_legal_head(contract.tenant_id)
            if head is None:
                raise NotFound('No active Legal Head is configured for this organization')

            if legal.escalated_by is None:
                legal.escalated_by = actor_id
            legal.escalated_to = head.user_id
            legal.actor_id = head.user_id
            legal.escalated_at = timezone.now()
            fields = ['escalated_by', 'escalated_to', 'actor_id', 'escalated_at', 'updated_at']
            if reason:
                legal.comment = reason
                fields.append('comment')
            legal.save(update_fields=fields)

            from_status = contract.status
            contract.status = evaluate(gates)
            contract.save(update_fields=['status', 'updated_at'])

            gate_store.record_transition(
                contract, 'escalated', actor_id, from_status, reason,
                metadata={'approval_id': str(legal.id), 'escalated_to': str(head.user_id)},
            )

            link = contract_link(contract.id)
            effects = SideEffectDispatcher(contract.tenant_id)
            effects.notify(
                head.user_id,
                'ESCALATION',
                'Legal Escalation',
                f"{contract.title} was escalated to you for review"
                + (f": {reason}" if reason else ''),
                link=link,
            )
            effects.email_user(head.user_id, 'escalation', {
                'contract_title': contract.title,
                'reason': reason or '',
                'link': frontend_url(link),
            })
            effects.audit(
                'CONTRACT_ESCALATED', actor_id, 'Approval', legal.id,
                contract_id=contract.id,
                metadata={'escalated_to': str(head.user_id), 'reason': reason},
            )
            effects.flush()

        return TransitionResult(contract, gates)

    def return_to_originator(self, contract_id, actor_id, tenant_id, comment=None):
        """
        Legal Head hands the gate back to whoever escalated it

        The gate stays PENDING with its escalation fields cleared, so the
        contract re-derives to SENT_TO_LEGAL.
        """
        comment = require_comment(comment, 'A comment is required when returning to the originator')

        with transaction.atomic():
            contract, gates, legal = self._locked_legal_gate(contract_id, tenant_id, 'return')
            if legal is None or legal.status != GateStatus.PENDING or not legal.is_escalated:
                raise Forbidden('Legal approval is not escalated')
            if str(legal.escalated_to) != str(actor_id):
                raise Forbidden('Only the Legal Head holding this escalation can return it')

            originator = legal.escalated_by
            legal.actor_id = originator
            legal.escalated_by = None
            legal.escalated_to = None
            legal.escalated_at = None
            legal.comment = comment
            legal.save(update_fields=[
                'actor_id', 'escalated_by', 'escalated_to', 'escalated_at', 'comment', 'updated_at',
            ])

            from_status = contract.status
            contract.status = evaluate(gates)
            contract.save(update_fields=['status', 'updated_at'])

            gate_store.record_transition(
                contract, 'returned', actor_id, from_status, comment,
                metadata={'approval_id': str(legal.id), 'returned_to': str(originator) if originator else None},
            )

            link = contract_link(contract.id)
            effects = SideEffectDispatcher(contract.tenant_id)
            effects.notify(
                originator,
                'CONTRACT_UPDATE',
                'Returned by Legal Head',
                f"{contract.title} was returned to you: {comment}",
                link=link,
            )
            effects.email_user(originator, 'returned_to_originator', {
                'contract_title': contract.title,
                'comment': comment,
                'link': frontend_url(link),
            })
            effects.audit(
                'ESCALATION_RETURNED', actor_id, 'Approval', legal.id,
                contract_id=contract.id,
                metadata={'returned_to': str(originator) if originator else None},
            )
            effects.flush()

        return TransitionResult(contract, gates)
