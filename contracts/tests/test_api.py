"""
HTTP surface of the approval workflow
"""
import uuid

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.jwt_auth import ActorUser
from contracts.constants import ContractStatus, GateStatus, GateType
from contracts.models import ContractApproval
from contracts.permissions import ORG_MANAGE

from .utils import FINANCE_REVIEWER, LEGAL_MANAGER, LEGAL_REVIEWER, WorkflowFixturesMixin


class WorkflowAPITestCase(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.contract = self.make_contract()

    def login(self, user_id, permissions=(), tenant_id=None):
        self.client.force_authenticate(user=ActorUser(
            user_id=user_id,
            tenant_id=tenant_id or self.tenant_id,
            permissions=list(permissions),
        ))

    def submit(self, **data):
        self.login(self.author_id)
        return self.client.post(f'/api/v1/contracts/{self.contract.id}/submit/', data, format='json')

    def legal_gate_id(self):
        return ContractApproval.objects.get(contract=self.contract, type=GateType.LEGAL).id


class ContractEndpointTests(WorkflowAPITestCase):

    def test_requires_authentication(self):
        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_submit_returns_contract_and_gates(self):
        response = self.submit()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contract']['status'], ContractStatus.SENT_TO_LEGAL)
        self.assertEqual(len(response.data['approvals']), 1)
        self.assertEqual(response.data['approvals'][0]['type'], GateType.LEGAL)
        self.assertEqual(response.data['approvals'][0]['status'], GateStatus.PENDING)

    def test_submit_with_lowercase_target(self):
        self.enable_finance()

        response = self.submit(target='finance')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contract']['status'], ContractStatus.SENT_TO_FINANCE)

    def test_submit_with_unknown_target(self):
        response = self.submit(target='procurement')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_includes_history(self):
        self.submit()

        response = self.client.get(f'/api/v1/contracts/{self.contract.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['history'][0]['action'], 'submitted')
        self.assertEqual(response.data['history'][0]['to_status'], ContractStatus.SENT_TO_LEGAL)

    def test_unknown_contract(self):
        self.login(self.author_id)
        response = self.client.get(f'/api/v1/contracts/{uuid.uuid4()}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['detail'], 'Contract not found')

    def test_other_tenant_is_denied(self):
        self.login(self.author_id, tenant_id=uuid.uuid4())
        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cancel(self):
        self.submit()

        response = self.client.post(
            f'/api/v1/contracts/{self.contract.id}/cancel/', {'reason': 'Deal fell through'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contract']['status'], ContractStatus.CANCELLED)

    def test_send_requires_approved_contract(self):
        self.login(self.author_id)
        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/send-to-counterparty/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_send_and_confirm_signature(self):
        self.submit()
        self.login(self.legal_id, LEGAL_REVIEWER)
        self.client.post(f'/api/v1/approvals/{self.legal_gate_id()}/approve/')
        self.login(self.author_id)

        sent = self.client.post(f'/api/v1/contracts/{self.contract.id}/send-to-counterparty/')
        missing = self.client.post(f'/api/v1/contracts/{self.contract.id}/confirm-signature/')
        signed = self.client.post(
            f'/api/v1/contracts/{self.contract.id}/confirm-signature/',
            {'signed_document_key': 'signed/msa.pdf'}, format='json',
        )

        self.assertEqual(sent.data['contract']['status'], ContractStatus.SENT_TO_COUNTERPARTY)
        self.assertEqual(missing.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(signed.status_code, status.HTTP_200_OK)
        self.assertEqual(signed.data['contract']['status'], ContractStatus.ACTIVE)
        self.assertEqual(signed.data['contract']['signed_document_key'], 'signed/msa.pdf')

    def test_escalation_round_trip(self):
        head = self.make_role('legal_head', LEGAL_REVIEWER)
        self.submit()

        self.login(uuid.uuid4(), LEGAL_MANAGER)
        escalated = self.client.post(f'/api/v1/contracts/{self.contract.id}/escalate/')
        self.login(head.user_id, LEGAL_REVIEWER)
        returned = self.client.post(
            f'/api/v1/contracts/{self.contract.id}/return-to-originator/',
            {'comment': 'Your call'}, format='json',
        )

        self.assertEqual(escalated.data['contract']['status'], ContractStatus.PENDING_LEGAL_HEAD)
        self.assertEqual(str(escalated.data['approvals'][0]['escalated_to']), str(head.user_id))
        self.assertEqual(returned.data['contract']['status'], ContractStatus.SENT_TO_LEGAL)

    def test_escalate_without_permission(self):
        self.submit()
        self.login(self.legal_id, LEGAL_REVIEWER)

        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/escalate/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ApprovalEndpointTests(WorkflowAPITestCase):

    def setUp(self):
        super().setUp()
        self.submit()
        self.gate_id = self.legal_gate_id()

    def test_pending_list(self):
        self.login(self.legal_id, LEGAL_REVIEWER)

        response = self.client.get('/api/v1/approvals/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['contract_title'], self.contract.title)

    def test_pending_list_filtered_by_type(self):
        self.login(self.legal_id, LEGAL_REVIEWER)

        finance = self.client.get('/api/v1/approvals/', {'type': 'FINANCE'})
        unknown = self.client.get('/api/v1/approvals/', {'type': 'SALES'})

        self.assertEqual(finance.data['count'], 0)
        self.assertEqual(unknown.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pending_list_is_tenant_scoped(self):
        self.login(self.legal_id, LEGAL_REVIEWER, tenant_id=uuid.uuid4())
        response = self.client.get('/api/v1/approvals/')
        self.assertEqual(response.data['count'], 0)

    def test_approve(self):
        self.login(self.legal_id, LEGAL_REVIEWER)

        response = self.client.post(f'/api/v1/approvals/{self.gate_id}/approve/', {'comment': 'LGTM'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contract']['status'], ContractStatus.APPROVED)
        self.assertEqual(response.data['approvals'][0]['comment'], 'LGTM')

    def test_approve_twice(self):
        self.login(self.legal_id, LEGAL_REVIEWER)
        self.client.post(f'/api/v1/approvals/{self.gate_id}/approve/')

        response = self.client.post(f'/api/v1/approvals/{self.gate_id}/approve/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['detail'], 'Approval has already been processed')

    def test_approve_without_gate_permission(self):
        self.login(self.finance_id, FINANCE_REVIEWER)
        response = self.client.post(f'/api/v1/approvals/{self.gate_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_approval(self):
        self.login(self.legal_id, LEGAL_REVIEWER)
        response = self.client.post(f'/api/v1/approvals/{uuid.uuid4()}/approve/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reject_requires_comment(self):
        self.login(self.legal_id, LEGAL_REVIEWER)

        response = self.client.post(f'/api/v1/approvals/{self.gate_id}/reject/', {'comment': '  '}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'Rejection comment is required')

    def test_reject_without_reject_permission(self):
        self.login(self.legal_id, ['approval:legal:act'])

        response = self.client.post(
            f'/api/v1/approvals/{self.gate_id}/reject/', {'comment': 'No'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.contract.refresh_from_db()
        self.assertEqual(self.contract.status, ContractStatus.SENT_TO_LEGAL)

    def test_request_revision(self):
        self.login(self.legal_id, ['approval:legal:act'])

        response = self.client.post(
            f'/api/v1/approvals/{self.gate_id}/request-revision/',
            {'comment': 'Fix the indemnity cap'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contract']['status'], ContractStatus.REVISION_REQUESTED)


class FeatureFlagEndpointTests(WorkflowAPITestCase):

    def test_list_requires_org_manage(self):
        self.login(self.author_id)
        response = self.client.get('/api/v1/feature-flags/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list(self):
        self.login(self.author_id, [ORG_MANAGE])

        response = self.client.get('/api/v1/feature-flags/')

        codes = [flag['code'] for flag in response.data['results']]
        self.assertIn('FINANCE_WORKFLOW', codes)
        self.assertFalse(any(flag['is_enabled'] for flag in response.data['results']))

    def test_enable_finance_workflow(self):
        self.login(self.author_id, [ORG_MANAGE])

        response = self.client.post('/api/v1/feature-flags/FINANCE_WORKFLOW/', {'is_enabled': True}, format='json')
        submitted = self.submit()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_enabled'])
        self.assertEqual(len(submitted.data['approvals']), 2)

    def test_unknown_flag(self):
        self.login(self.author_id, [ORG_MANAGE])
        response = self.client.put('/api/v1/feature-flags/TELEPORTATION/', {'is_enabled': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AuthenticationTests(WorkflowAPITestCase):

    def bearer(self, **claims):
        token = AccessToken()
        for key, value in claims.items():
            token[key] = value
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_token_claims_become_actor(self):
        self.bearer(user_id=str(self.author_id), tenant_id=str(self.tenant_id), permissions=[])

        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/submit/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contract']['status'], ContractStatus.SENT_TO_LEGAL)

    def test_token_without_tenant_is_rejected(self):
        self.bearer(user_id=str(self.author_id))
        response = self.client.get('/api/v1/approvals/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = self.client.get('/api/v1/approvals/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class HealthCheckTests(TestCase):

    def test_health_is_public(self):
        response = APIClient().get('/api/v1/health/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['database'], 'healthy')
