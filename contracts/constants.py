"""
Status vocabularies shared by the models, the gatekeeper and the API
"""


class ContractStatus:
    DRAFT = 'DRAFT'
    SENT_TO_LEGAL = 'SENT_TO_LEGAL'
    SENT_TO_FINANCE = 'SENT_TO_FINANCE'
    LEGAL_REVIEW_IN_PROGRESS = 'LEGAL_REVIEW_IN_PROGRESS'
    FINANCE_REVIEW_IN_PROGRESS = 'FINANCE_REVIEW_IN_PROGRESS'
    IN_REVIEW = 'IN_REVIEW'
    LEGAL_APPROVED = 'LEGAL_APPROVED'
    FINANCE_REVIEWED = 'FINANCE_REVIEWED'
    PENDING_LEGAL_HEAD = 'PENDING_LEGAL_HEAD'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    REVISION_REQUESTED = 'REVISION_REQUESTED'
    SENT_TO_COUNTERPARTY = 'SENT_TO_COUNTERPARTY'
    ACTIVE = 'ACTIVE'
    CANCELLED = 'CANCELLED'
    EXPIRED = 'EXPIRED'
    TERMINATED = 'TERMINATED'
    EXECUTED = 'EXECUTED'

    CHOICES = [
        (DRAFT, 'Draft'),
        (SENT_TO_LEGAL, 'Sent to Legal'),
        (SENT_TO_FINANCE, 'Sent to Finance'),
        (LEGAL_REVIEW_IN_PROGRESS, 'Legal Review in Progress'),
        (FINANCE_REVIEW_IN_PROGRESS, 'Finance Review in Progress'),
        (IN_REVIEW, 'In Review'),
        (LEGAL_APPROVED, 'Legal Approved'),
        (FINANCE_REVIEWED, 'Finance Reviewed'),
        (PENDING_LEGAL_HEAD, 'Pending Legal Head'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
        (REVISION_REQUESTED, 'Revision Requested'),
        (SENT_TO_COUNTERPARTY, 'Sent to Counterparty'),
        (ACTIVE, 'Active'),
        (CANCELLED, 'Cancelled'),
        (EXPIRED, 'Expired'),
        (TERMINATED, 'Terminated'),
        (EXECUTED, 'Executed'),
    ]

    # No further gate actions are possible once a contract gets here.
    TERMINAL = frozenset({ACTIVE, CANCELLED, EXPIRED, TERMINATED, EXECUTED})

    # Gates may be acted on only while the contract sits in one of these.
    UNDER_REVIEW = frozenset({
        SENT_TO_LEGAL,
        SENT_TO_FINANCE,
        LEGAL_REVIEW_IN_PROGRESS,
        FINANCE_REVIEW_IN_PROGRESS,
        IN_REVIEW,
        LEGAL_APPROVED,
        FINANCE_REVIEWED,
        PENDING_LEGAL_HEAD,
    })

    SUBMITTABLE = frozenset({DRAFT, REVISION_REQUESTED, REJECTED})


class GateType:
    LEGAL = 'LEGAL'
    FINANCE = 'FINANCE'

    CHOICES = [
        (LEGAL, 'Legal'),
        (FINANCE, 'Finance'),
    ]

    # Legal always leads: status naming and evaluation follow this order.
    ORDER = (LEGAL, FINANCE)

    @classmethod
    def normalize(cls, value):
        """Return the canonical gate type for `value`, or None if unknown."""
        candidate = (value or '').strip().upper()
        return candidate if candidate in cls.ORDER else None


class GateStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    ESCALATED = 'ESCALATED'

    CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
        (ESCALATED, 'Escalated'),
    ]

    AWAITING = frozenset({PENDING, ESCALATED})


REVISION_COMMENT_PREFIX = '[REVISION REQUESTED] '
