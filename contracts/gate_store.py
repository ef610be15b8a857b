"""
Gate store: locked reads of a contract and its live approval gates

Every helper here must run inside `transaction.atomic()`. Locks are always
taken contract row first, then its gate rows, so two writers on the same
contract serialize and writers on different contracts never contend.
"""
import logging
import uuid
from typing import List, NamedTuple

from django.db import transaction

from clm_gatekeeper.metrics import CONTRACT_TRANSITIONS

from .constants import GateType
from .exceptions import AccessDenied, NotFound, ValidationFailed
from .models import Contract, ContractApproval, WorkflowLog

logger = logging.getLogger(__name__)


class TransitionResult(NamedTuple):
    contract: Contract
    gates: List[ContractApproval]


def require_comment(comment, message):
    comment = (comment or '').strip()
    if not comment:
        raise ValidationFailed(message)
    return comment


def _as_uuid(value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def _check_tenant(contract, tenant_id, message):
    if str(contract.tenant_id) != str(tenant_id):
        logger.warning(f"Tenant {tenant_id} denied access to contract {contract.id}")
        raise AccessDenied(message)


def get_contract(contract_id, tenant_id, lock=False):
    pk = _as_uuid(contract_id)
    contract = None
    if pk is not None:
        qs = Contract.objects.select_for_update() if lock else Contract.objects
        contract = qs.filter(id=pk).first()
    if contract is None:
        raise NotFound('Contract not found')
    _check_tenant(contract, tenant_id, 'Access denied to this contract')
    return contract


def lock_contract(contract_id, tenant_id):
    """SELECT ... FOR UPDATE the contract after checking it exists in the tenant."""
    return get_contract(contract_id, tenant_id, lock=True)


def _gate_order(gate):
    return GateType.ORDER.index(gate.type) if gate.type in GateType.ORDER else len(GateType.ORDER)


def live_gates(contract, lock=False):
    qs = ContractApproval.objects.filter(contract=contract)
    if lock:
        qs = qs.select_for_update()
    return sorted(qs, key=_gate_order)


def lock_gates(contract):
    return live_gates(contract, lock=True)


def lock_gate(gate_id, tenant_id):
    """
    Lock the gate's contract, then all of its gates.

    Returns:
        (contract, gates, gate) where `gate` is the row from the locked set
    """
    pk = _as_uuid(gate_id)
    contract_id = None
    if pk is not None:
        contract_id = (
            ContractApproval.objects.filter(id=pk)
            .values_list('contract_id', flat=True)
            .first()
        )
    if contract_id is None:
        raise NotFound('Approval not found')

    contract = Contract.objects.select_for_update().get(id=contract_id)
    _check_tenant(contract, tenant_id, 'Access denied')

    gates = lock_gates(contract)
    gate = next((g for g in gates if g.id == pk), None)
    if gate is None:
        # Deleted by a resubmission that committed while we waited for the lock.
        raise NotFound('Approval not found')
    return contract, gates, gate


def find_gate(gates, gate_type):
    return next((g for g in gates if g.type == gate_type), None)


def record_transition(contract, action, performed_by, from_status, comment=None, metadata=None):
    """
    Write the workflow log entry for a transition and count it once committed.
    """
    entry = WorkflowLog.objects.create(
        contract=contract,
        action=action,
        performed_by=performed_by,
        from_status=from_status,
        to_status=contract.status,
        comment=comment,
        metadata=metadata or None,
    )
    to_status = contract.status
    transaction.on_commit(
        lambda: CONTRACT_TRANSITIONS.labels(action=action, status=to_status).inc()
    )
    logger.info(
        f"Contract {contract.id} {action} by {performed_by}: {from_status} -> {to_status}"
    )
    return entry
