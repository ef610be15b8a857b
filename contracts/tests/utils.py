"""
Shared fixtures for workflow tests
"""
import uuid

from contracts.feature_flags import FINANCE_WORKFLOW, FeatureFlagService
from contracts.models import Contract
from contracts.permissions import (
    APPROVAL_FINANCE_ACT, APPROVAL_LEGAL_ACT, APPROVAL_REJECT, CONTRACT_ESCALATE,
)
from contracts.workflow_models import UserRole

LEGAL_REVIEWER = [APPROVAL_LEGAL_ACT, APPROVAL_REJECT]
FINANCE_REVIEWER = [APPROVAL_FINANCE_ACT, APPROVAL_REJECT]
LEGAL_MANAGER = [APPROVAL_LEGAL_ACT, APPROVAL_REJECT, CONTRACT_ESCALATE]


class WorkflowFixturesMixin:
    """
    Fresh tenant per test, so cached feature flags never leak between tests
    """

    def setUp(self):
        super().setUp()
        self.tenant_id = uuid.uuid4()
        self.author_id = uuid.uuid4()
        self.legal_id = uuid.uuid4()
        self.finance_id = uuid.uuid4()

    def make_contract(self, **kwargs):
        defaults = {
            'tenant_id': self.tenant_id,
            'title': 'Master Services Agreement',
            'created_by': self.author_id,
            'contract_type': 'MSA',
            'counterparty': 'Globex Corp',
        }
        defaults.update(kwargs)
        return Contract.objects.create(**defaults)

    def enable_finance(self, enabled=True):
        FeatureFlagService.update_flag(self.tenant_id, FINANCE_WORKFLOW, enabled)

    def make_role(self, role, permissions, user_id=None, email=None, **kwargs):
        return UserRole.objects.create(
            tenant_id=kwargs.pop('tenant_id', self.tenant_id),
            user_id=user_id or uuid.uuid4(),
            role=role,
            permissions=permissions,
            email=email,
            **kwargs
        )

    @staticmethod
    def gate(result, gate_type):
        return next(g for g in result.gates if g.type == gate_type)
