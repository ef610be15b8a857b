import uuid

from django.test import SimpleTestCase

from contracts.constants import ContractStatus, GateStatus, GateType
from contracts.gatekeeper import GateView, evaluate, required_gate_types, submission_status


def legal(status=GateStatus.PENDING, escalated_to=None, gate_id=None):
    return GateView(gate_id or uuid.uuid4(), GateType.LEGAL, status, escalated_to)


def finance(status=GateStatus.PENDING, gate_id=None):
    return GateView(gate_id or uuid.uuid4(), GateType.FINANCE, status)


class EvaluateTests(SimpleTestCase):

    def test_legal_pending_dominates_finance_approved(self):
        gates = [legal(), finance(GateStatus.APPROVED)]
        self.assertEqual(evaluate(gates), ContractStatus.SENT_TO_LEGAL)

    def test_finance_pending_after_legal_approved(self):
        gates = [legal(GateStatus.APPROVED), finance()]
        self.assertEqual(evaluate(gates), ContractStatus.FINANCE_REVIEW_IN_PROGRESS)

    def test_all_approved(self):
        gates = [legal(GateStatus.APPROVED), finance(GateStatus.APPROVED)]
        self.assertEqual(evaluate(gates), ContractStatus.APPROVED)

    def test_legal_only_approved(self):
        self.assertEqual(evaluate([legal(GateStatus.APPROVED)]), ContractStatus.APPROVED)

    def test_empty_gate_set_is_in_review(self):
        self.assertEqual(evaluate([]), ContractStatus.IN_REVIEW)

    def test_escalated_legal_gate(self):
        gates = [legal(escalated_to=uuid.uuid4()), finance(GateStatus.APPROVED)]
        self.assertEqual(evaluate(gates), ContractStatus.PENDING_LEGAL_HEAD)

    def test_escalated_status_value_counts_as_awaiting(self):
        self.assertEqual(evaluate([legal(GateStatus.ESCALATED)]), ContractStatus.PENDING_LEGAL_HEAD)

    def test_rejection_wins(self):
        gate_id = uuid.uuid4()
        gates = [legal(gate_id=gate_id), finance(GateStatus.APPROVED)]
        self.assertEqual(
            evaluate(gates, gate_id, GateStatus.REJECTED),
            ContractStatus.REJECTED,
        )

    def test_revision_request(self):
        gate_id = uuid.uuid4()
        gates = [legal(GateStatus.APPROVED), finance(gate_id=gate_id)]
        self.assertEqual(
            evaluate(gates, gate_id, GateStatus.REJECTED, revision=True),
            ContractStatus.REVISION_REQUESTED,
        )

    def test_acted_status_overrides_stale_read(self):
        gate_id = uuid.uuid4()
        # Row still reads PENDING although it was just approved.
        gates = [legal(gate_id=gate_id), finance(GateStatus.APPROVED)]
        self.assertEqual(
            evaluate(gates, gate_id, GateStatus.APPROVED),
            ContractStatus.APPROVED,
        )

    def test_acted_gate_id_matches_across_str_and_uuid(self):
        gate_id = uuid.uuid4()
        gates = [legal(gate_id=gate_id)]
        self.assertEqual(
            evaluate(gates, str(gate_id), GateStatus.APPROVED),
            ContractStatus.APPROVED,
        )

    def test_rejected_gate_without_acted_status_is_in_review(self):
        gates = [legal(GateStatus.REJECTED), finance(GateStatus.APPROVED)]
        self.assertEqual(evaluate(gates), ContractStatus.IN_REVIEW)

    def test_deterministic(self):
        gate_id = uuid.uuid4()
        gates = [legal(GateStatus.APPROVED), finance(gate_id=gate_id)]
        results = {evaluate(gates, gate_id, GateStatus.APPROVED) for _ in range(5)}
        self.assertEqual(results, {ContractStatus.APPROVED})
        self.assertEqual(gates[1].status, GateStatus.PENDING)


class SubmissionPolicyTests(SimpleTestCase):

    def test_legal_only_by_default(self):
        self.assertEqual(required_gate_types(False), [GateType.LEGAL])

    def test_finance_when_enabled(self):
        self.assertEqual(required_gate_types(True), [GateType.LEGAL, GateType.FINANCE])

    def test_explicit_target(self):
        self.assertEqual(required_gate_types(True, GateType.FINANCE), [GateType.FINANCE])

    def test_submission_status(self):
        self.assertEqual(submission_status([GateType.LEGAL, GateType.FINANCE]), ContractStatus.SENT_TO_LEGAL)
        self.assertEqual(submission_status([GateType.FINANCE]), ContractStatus.SENT_TO_FINANCE)
