"""
Gatekeeper evaluator

Derives the single contract status from the live approval gates. Pure
functions only: no ORM access, so the engine can call them inside a locked
transaction and the tests can call them with plain objects.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from .constants import ContractStatus, GateStatus, GateType


@dataclass(frozen=True)
class GateView:
    """Read-only gate snapshot. ContractApproval rows satisfy the same shape."""
    id: object
    type: str
    status: str
    escalated_to: Optional[object] = None


def _status_of(gate, acted_gate_id, acted_status):
    # The acted gate may have been read back before its save landed.
    if acted_gate_id is not None and acted_status and str(gate.id) == str(acted_gate_id):
        return acted_status
    return gate.status


def evaluate(
    gates: Iterable,
    acted_gate_id=None,
    acted_status: Optional[str] = None,
    *,
    revision: bool = False,
) -> str:
    """
    Compute the contract status for a set of live gates.

    Rules, first match wins:
    1. the acted gate was rejected -> REVISION_REQUESTED (soft) or REJECTED
    2. Legal still awaiting -> PENDING_LEGAL_HEAD if escalated, else SENT_TO_LEGAL
    3. Finance still awaiting -> FINANCE_REVIEW_IN_PROGRESS
    4. every gate approved (and at least one gate) -> APPROVED
    5. anything else -> IN_REVIEW

    Rule 2 deliberately reports an escalated Legal gate as PENDING_LEGAL_HEAD
    rather than SENT_TO_LEGAL; it still dominates any Finance outcome.

    Args:
        gates: objects exposing id, type, status and optionally escalated_to
        acted_gate_id: gate just acted on, if any
        acted_status: status the acted gate now carries
        revision: the rejection was a revision request

    Returns:
        ContractStatus value
    """
    if acted_status == GateStatus.REJECTED:
        return ContractStatus.REVISION_REQUESTED if revision else ContractStatus.REJECTED

    by_type = {}
    statuses = []
    for gate in gates:
        status = _status_of(gate, acted_gate_id, acted_status)
        statuses.append(status)
        by_type[gate.type] = (status, getattr(gate, 'escalated_to', None))

    legal = by_type.get(GateType.LEGAL)
    if legal and legal[0] in GateStatus.AWAITING:
        if legal[1] is not None or legal[0] == GateStatus.ESCALATED:
            return ContractStatus.PENDING_LEGAL_HEAD
        return ContractStatus.SENT_TO_LEGAL

    finance = by_type.get(GateType.FINANCE)
    if finance and finance[0] in GateStatus.AWAITING:
        return ContractStatus.FINANCE_REVIEW_IN_PROGRESS

    if statuses and all(status == GateStatus.APPROVED for status in statuses):
        return ContractStatus.APPROVED

    return ContractStatus.IN_REVIEW


def required_gate_types(finance_enabled: bool, target: Optional[str] = None):
    """Gate types a submission must open, in evaluation order."""
    if target:
        return [target]
    types = [GateType.LEGAL]
    if finance_enabled:
        types.append(GateType.FINANCE)
    return types


def submission_status(gate_types) -> str:
    """Status right after submission: Legal leads whenever it was opened."""
    if GateType.LEGAL in gate_types:
        return ContractStatus.SENT_TO_LEGAL
    return ContractStatus.SENT_TO_FINANCE
