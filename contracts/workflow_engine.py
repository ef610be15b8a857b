"""
Contract approval workflow engine

Owns every write to `Contract.status`. Each operation:
1. locks the contract row and its gate rows (see gate_store)
2. validates tenant, state and permissions
3. mutates the gate(s)
4. derives the new contract status with the gatekeeper evaluator
5. writes the workflow log and commits
6. runs notifications, e-mails, audit and cache invalidation after commit
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import gate_store
from .constants import REVISION_COMMENT_PREFIX, ContractStatus, GateStatus, GateType
from .escalation import EscalationCoordinator
from .exceptions import Forbidden, ValidationFailed
from .feature_flags import FINANCE_WORKFLOW, FeatureFlagService
from .gate_store import TransitionResult, require_comment
from .gatekeeper import evaluate, required_gate_types, submission_status
from .models import ContractApproval
from .permissions import APPROVAL_REJECT, gate_permission, has_permission
from .side_effects import SideEffectDispatcher, contract_link, frontend_url

logger = logging.getLogger(__name__)


class ContractWorkflowEngine:
    """
    Submission, gate decisions and post-approval lifecycle of a contract

    Usage:
        engine = ContractWorkflowEngine()
        engine.submit(contract_id, tenant_id, actor_id)
        engine.approve(gate_id, actor_id, tenant_id, permissions)
    """

    def __init__(self, feature_flags=FeatureFlagService, sla_hours=None):
        self.feature_flags = feature_flags
        self.sla_hours = sla_hours if sla_hours is not None else settings.APPROVAL_SLA_HOURS
        self.escalation = EscalationCoordinator()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_contract(self, contract_id, tenant_id):
        contract = gate_store.get_contract(contract_id, tenant_id)
        return TransitionResult(contract, gate_store.live_gates(contract))

    def pending_approvals(self, tenant_id, gate_type=None):
        """
        Pending gates of the tenant's contracts under review, oldest first
        """
        qs = ContractApproval.objects.select_related('contract').filter(
            status=GateStatus.PENDING,
            contract__tenant_id=tenant_id,
            contract__status__in=ContractStatus.UNDER_REVIEW,
        )
        if gate_type:
            normalized = GateType.normalize(gate_type)
            if not normalized:
                raise ValidationFailed(f"Unknown approval type: {gate_type}")
            qs = qs.filter(type=normalized)
        return qs.order_by('created_at')

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, contract_id, tenant_id, actor_id, target=None):
        """
        Open a fresh set of review gates

        Without `target` the policy decides: Legal always, Finance when the
        tenant has FINANCE_WORKFLOW enabled, and every previous gate is
        replaced. With `target` that gate is reopened together with any
        rejected gate of another type; approved and still pending gates of
        other types carry over unchanged.

        Raises:
            NotFound, AccessDenied, Forbidden (not submittable),
            ValidationFailed (unknown target)
        """
        gate_target = None
        if target:
            gate_target = GateType.normalize(target)
            if not gate_target:
                raise ValidationFailed(f"Unknown approval type: {target}")

        with transaction.atomic():
            contract = gate_store.lock_contract(contract_id, tenant_id)
            if contract.status not in ContractStatus.SUBMITTABLE:
                raise Forbidden(f"Cannot submit a contract in {contract.status} status")

            finance_enabled = self.feature_flags.is_enabled(FINANCE_WORKFLOW, contract.tenant_id)
            required = required_gate_types(finance_enabled, gate_target)

            existing = gate_store.lock_gates(contract)
            if gate_target:
                rejected = {gate.type for gate in existing if gate.status == GateStatus.REJECTED}
                reopened = [t for t in GateType.ORDER if t in required or t in rejected]
                stale = [gate.id for gate in existing if gate.type in reopened]
            else:
                reopened = required
                stale = [gate.id for gate in existing]
            ContractApproval.objects.filter(id__in=stale).delete()

            now = timezone.now()
            due_date = now + timedelta(hours=self.sla_hours)
            for gate_type in reopened:
                ContractApproval.objects.create(
                    contract=contract,
                    type=gate_type,
                    status=GateStatus.PENDING,
                    due_date=due_date,
                )

            gates = gate_store.live_gates(contract)
            awaiting = [gate.type for gate in gates if gate.status in GateStatus.AWAITING]

            from_status = contract.status
            contract.status = submission_status(awaiting)
            contract.submitted_at = now
            contract.approved_at = None
            contract.metadata = dict(contract.metadata or {}, last_submission_target=gate_target)
            contract.save(update_fields=['status', 'submitted_at', 'approved_at', 'metadata', 'updated_at'])

            gate_store.record_transition(
                contract, 'submitted', actor_id, from_status,
                metadata={'gates': reopened, 'target': gate_target},
            )

            effects = SideEffectDispatcher(contract.tenant_id)
            for gate_type in reopened:
                link = f"/dashboard/approvals/{gate_type.lower()}"
                effects.notify_permission_holders(
                    gate_permission(gate_type),
                    'APPROVAL_REQUIRED',
                    f"{gate_type.title()} Approval Required",
                    f"{contract.title} requires your review and approval.",
                    link=link,
                    metadata={'contract_id': str(contract.id)},
                )
                effects.email_permission_holders(gate_permission(gate_type), 'approval_request', {
                    'contract_title': contract.title,
                    'gate_type': gate_type,
                    'submitted_by': str(actor_id),
                    'link': frontend_url(link),
                })
            effects.audit(
                'CONTRACT_SUBMITTED', actor_id, 'Contract', contract.id,
                contract_id=contract.id,
                metadata={'gates': reopened, 'target': gate_target},
            )
            effects.flush()

        return TransitionResult(contract, gates)

    # ------------------------------------------------------------------
    # Gate decisions
    # ------------------------------------------------------------------

    def _check_gate_action(self, contract, gate, actor_id, permissions):
        if not has_permission(permissions, gate_permission(gate.type)):
            logger.warning(f"User {actor_id} lacks {gate_permission(gate.type)} for approval {gate.id}")
            raise Forbidden(f"You do not have permission to act on {gate.type.title()} approvals")
        if gate.status != GateStatus.PENDING:
            raise Forbidden('Approval has already been processed')
        if not contract.is_under_review:
            raise Forbidden(f"Contract is not under review (status: {contract.status})")
        if gate.is_escalated and str(gate.escalated_to) != str(actor_id):
            raise Forbidden('This approval is escalated; only the Legal Head can act on it')

    def _decide(self, gate, status, actor_id, comment):
        gate.status = status
        gate.actor_id = actor_id
        gate.acted_at = timezone.now()
        gate.comment = comment
        gate.save(update_fields=['status', 'actor_id', 'acted_at', 'comment', 'updated_at'])

    def approve(self, gate_id, actor_id, tenant_id, permissions, comment=None):
        """
        Approve one gate; the contract becomes APPROVED once every live
        gate is approved, regardless of the order the approvals arrive in.
        """
        with transaction.atomic():
            contract, gates, gate = gate_store.lock_gate(gate_id, tenant_id)
            self._check_gate_action(contract, gate, actor_id, permissions)

            self._decide(gate, GateStatus.APPROVED, actor_id, comment or None)

            from_status = contract.status
            contract.status = evaluate(gates, gate.id, GateStatus.APPROVED)
            fields = ['status', 'updated_at']
            fully_approved = contract.status == ContractStatus.APPROVED
            if fully_approved:
                contract.approved_at = timezone.now()
                fields.append('approved_at')
            contract.save(update_fields=fields)

            gate_store.record_transition(
                contract, 'approved', actor_id, from_status, comment,
                metadata={'approval_id': str(gate.id), 'type': gate.type},
            )

            link = contract_link(contract.id)
            effects = SideEffectDispatcher(contract.tenant_id)
            effects.notify(
                contract.created_by,
                'APPROVAL_COMPLETE',
                f"Contract {'Approved' if fully_approved else 'Updated'}",
                f"{contract.title} was {'fully approved' if fully_approved else f'{gate.type} approved'}",
                link=link,
            )
            effects.email_user(contract.created_by, 'approval_result', {
                'contract_title': contract.title,
                'approved': True,
                'gate_type': gate.type,
                'comment': comment or ('Fully approved' if fully_approved else f"{gate.type} approved"),
                'link': frontend_url(link),
            })
            effects.audit(
                'CONTRACT_APPROVED' if fully_approved else 'APPROVAL_GRANTED',
                actor_id, 'Approval', gate.id,
                contract_id=contract.id,
                metadata={'type': gate.type, 'status': contract.status},
            )
            effects.flush()

        return TransitionResult(contract, gates)

    def reject(self, gate_id, actor_id, tenant_id, permissions, comment=None):
        """
        Hard rejection: the whole contract becomes REJECTED
        """
        comment = require_comment(comment, 'Rejection comment is required')

        with transaction.atomic():
            contract, gates, gate = gate_store.lock_gate(gate_id, tenant_id)
            self._check_gate_action(contract, gate, actor_id, permissions)
            if not has_permission(permissions, APPROVAL_REJECT):
                raise Forbidden(
                    'You do not have permission to REJECT contracts. Please request changes instead.'
                )

            self._decide(gate, GateStatus.REJECTED, actor_id, comment)

            from_status = contract.status
            contract.status = evaluate(gates, gate.id, GateStatus.REJECTED)
            contract.save(update_fields=['status', 'updated_at'])

            gate_store.record_transition(
                contract, 'rejected', actor_id, from_status, comment,
                metadata={'approval_id': str(gate.id), 'type': gate.type},
            )

            link = contract_link(contract.id)
            effects = SideEffectDispatcher(contract.tenant_id)
            effects.notify(
                contract.created_by,
                'APPROVAL_COMPLETE',
                'Contract Rejected',
                f"{contract.title} was rejected by {gate.type}. Reason: {comment}",
                link=link,
            )
            effects.email_user(contract.created_by, 'approval_result', {
                'contract_title': contract.title,
                'approved': False,
                'gate_type': gate.type,
                'comment': comment,
                'link': frontend_url(link),
            })
            effects.audit(
                'CONTRACT_REJECTED', actor_id, 'Approval', gate.id,
                contract_id=contract.id,
                metadata={'type': gate.type, 'comment': comment},
            )
            effects.flush()

        return TransitionResult(contract, gates)

    def request_revision(self, gate_id, actor_id, tenant_id, permissions, comment=None):
        """
        Soft rejection: the contract goes back to its author as
        REVISION_REQUESTED and can be resubmitted
        """
        comment = require_comment(comment, 'A comment describing the requested changes is required')

        with transaction.atomic():
            contract, gates, gate = gate_store.lock_gate(gate_id, tenant_id)
            self._check_gate_action(contract, gate, actor_id, permissions)

            self._decide(gate, GateStatus.REJECTED, actor_id, f"{REVISION_COMMENT_PREFIX}{comment}")

            from_status = contract.status
            contract.status = evaluate(gates, gate.id, GateStatus.REJECTED, revision=True)
            contract.save(update_fields=['status', 'updated_at'])

            gate_store.record_transition(
                contract, 'revision_requested', actor_id, from_status, comment,
                metadata={'approval_id': str(gate.id), 'type': gate.type},
            )

            link = contract_link(contract.id)
            effects = SideEffectDispatcher(contract.tenant_id)
            effects.notify(
                contract.created_by,
                'REVISION_REQUESTED',
                'Changes Requested',
                f"{gate.type.title()} requested changes to {contract.title}: {comment}",
                link=link,
            )
            effects.email_user(contract.created_by, 'revision_requested', {
                'contract_title': contract.title,
                'gate_type': gate.type.title(),
                'comment': comment,
                'link': frontend_url(link),
            })
            effects.audit(
                'REVISION_REQUESTED', actor_id, 'Approval', gate.id,
                contract_id=contract.id,
                metadata={'type': gate.type, 'comment': comment},
            )
            effects.flush()

        return TransitionResult(contract, gates)

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    def escalate(self, contract_id, actor_id, tenant_id, permissions, reason=None):
        return self.escalation.escalate(contract_id, actor_id, tenant_id, permissions, reason)

    def return_to_originator(self, contract_id, actor_id, tenant_id, comment=None):
        return self.escalation.return_to_originator(contract_id, actor_id, tenant_id, comment)

    # ------------------------------------------------------------------
    # Lifecycle after approval
    # ------------------------------------------------------------------

    def cancel(self, contract_id, tenant_id, actor_id, reason=None):
        """
        Cancel a contract that has not reached a terminal state. Gates are
        left as they are; the contract status alone blocks further decisions.
        """
        with transaction.atomic():
            contract = gate_store.lock_contract(contract_id, tenant_id)
            if contract.is_terminal:
                raise Forbidden(f"Cannot cancel a contract in {contract.status} status")

            from_status = contract.status
            now = timezone.now()
            contract.status = ContractStatus.CANCELLED
            contract.cancelled_at = now
            contract.metadata = dict(
                contract.metadata or {},
                cancellation_reason=reason or None,
                cancelled_by=str(actor_id),
            )
            contract.save(update_fields=['status', 'cancelled_at', 'metadata', 'updated_at'])

            gates = gate_store.live_gates(contract)
            gate_store.record_transition(contract, 'cancelled', actor_id, from_status, reason)

            effects = SideEffectDispatcher(contract.tenant_id)
            if str(contract.created_by) != str(actor_id):
                effects.notify(
                    contract.created_by,
                    'CONTRACT_UPDATE',
                    'Contract Cancelled',
                    f"{contract.title} was cancelled" + (f": {reason}" if reason else ''),
                    link=contract_link(contract.id),
                )
            effects.audit(
                'CONTRACT_CANCELLED', actor_id, 'Contract', contract.id,
                contract_id=contract.id,
                metadata={'from_status': from_status, 'reason': reason},
            )
            effects.flush()

        return TransitionResult(contract, gates)

    def send_to_counterparty(self, contract_id, tenant_id, actor_id):
        with transaction.atomic():
            contract = gate_store.lock_contract(contract_id, tenant_id)
            if contract.status != ContractStatus.APPROVED:
                raise Forbidden('Only APPROVED contracts can be sent to counterparty')

            from_status = contract.status
            contract.status = ContractStatus.SENT_TO_COUNTERPARTY
            contract.sent_at = timezone.now()
            contract.save(update_fields=['status', 'sent_at', 'updated_at'])

            gates = gate_store.live_gates(contract)
            gate_store.record_transition(contract, 'sent_to_counterparty', actor_id, from_status)

            effects = SideEffectDispatcher(contract.tenant_id)
            effects.audit(
                'CONTRACT_SENT', actor_id, 'Contract', contract.id,
                contract_id=contract.id,
                metadata={'counterparty': contract.counterparty},
            )
            effects.flush()

        return TransitionResult(contract, gates)

    def confirm_signature(self, contract_id, tenant_id, actor_id, signed_document_key=None):
        """
        Record the counterparty's signed copy and activate the contract
        """
        signed_document_key = (signed_document_key or '').strip()
        if not signed_document_key:
            raise ValidationFailed('Signed document is required')

        with transaction.atomic():
            contract = gate_store.lock_contract(contract_id, tenant_id)
            if contract.status != ContractStatus.SENT_TO_COUNTERPARTY:
                raise Forbidden('Contract must be in SENT_TO_COUNTERPARTY status')

            from_status = contract.status
            contract.status = ContractStatus.ACTIVE
            contract.signed_at = timezone.now()
            contract.signed_document_key = signed_document_key
            contract.save(update_fields=['status', 'signed_at', 'signed_document_key', 'updated_at'])

            gates = gate_store.live_gates(contract)
            gate_store.record_transition(
                contract, 'signed', actor_id, from_status,
                metadata={'signed_document_key': signed_document_key},
            )

            link = contract_link(contract.id)
            effects = SideEffectDispatcher(contract.tenant_id)
            effects.notify(
                contract.created_by,
                'CONTRACT_UPDATE',
                'Contract Active',
                f"The signed copy of {contract.title} was received. The contract is now active.",
                link=link,
            )
            effects.email_user(contract.created_by, 'contract_signed', {
                'contract_title': contract.title,
                'link': frontend_url(link),
            })
            effects.audit(
                'CONTRACT_SIGNED', actor_id, 'Contract', contract.id,
                contract_id=contract.id,
                metadata={'signed_document_key': signed_document_key},
            )
            effects.flush()

        return TransitionResult(contract, gates)
