"""
Approval workflow API views

All state changes go through ContractWorkflowEngine; the views only read
the caller from the token, validate the payload and render the result.
Workflow errors are APIExceptions and are rendered by DRF.
"""
import logging

from django.db import connection
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clm_gatekeeper.throttling import TenantUserRateThrottle, WorkflowWriteThrottle

from .feature_flags import FeatureFlagService
from .permissions import CanManageOrganization, HasTenantContext
from .serializers import (
    CommentSerializer, FeatureFlagSerializer, FeatureFlagUpdateSerializer,
    PendingApprovalSerializer, ReasonSerializer, SignatureSerializer,
    SubmitSerializer, transition_payload,
)
from .workflow_engine import ContractWorkflowEngine

logger = logging.getLogger(__name__)


class WorkflowViewMixin:
    permission_classes = [IsAuthenticated, HasTenantContext]
    throttle_classes = [TenantUserRateThrottle, WorkflowWriteThrottle]
    engine_class = ContractWorkflowEngine

    def get_engine(self):
        return self.engine_class()

    @property
    def actor(self):
        return self.request.user

    def validated(self, serializer_class):
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class ContractWorkflowViewSet(WorkflowViewMixin, viewsets.ViewSet):
    """
    Contract lifecycle endpoints

    GET  /api/v1/contracts/<id>/                       - Contract, live approvals, history
    POST /api/v1/contracts/<id>/submit/                - Submit for review {target?}
    POST /api/v1/contracts/<id>/escalate/              - Escalate Legal to Legal Head {reason?}
    POST /api/v1/contracts/<id>/return-to-originator/  - Legal Head returns escalation {comment}
    POST /api/v1/contracts/<id>/cancel/                - Cancel {reason?}
    POST /api/v1/contracts/<id>/send-to-counterparty/  - Send approved contract out
    POST /api/v1/contracts/<id>/confirm-signature/     - Record signed copy {signed_document_key}
    """
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def retrieve(self, request, pk=None):
        result = self.get_engine().get_contract(pk, self.actor.tenant_id)
        return Response(transition_payload(result, include_history=True))

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        data = self.validated(SubmitSerializer)
        result = self.get_engine().submit(
            pk, self.actor.tenant_id, self.actor.user_id, target=data.get('target'),
        )
        return Response(transition_payload(result))

    @action(detail=True, methods=['post'])
    def escalate(self, request, pk=None):
        data = self.validated(ReasonSerializer)
        result = self.get_engine().escalate(
            pk, self.actor.user_id, self.actor.tenant_id, self.actor.permissions,
            reason=data.get('reason') or None,
        )
        return Response(transition_payload(result))

    @action(detail=True, methods=['post'], url_path='return-to-originator')
    def return_to_originator(self, request, pk=None):
        data = self.validated(CommentSerializer)
        result = self.get_engine().return_to_originator(
            pk, self.actor.user_id, self.actor.tenant_id, data.get('comment'),
        )
        return Response(transition_payload(result))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        data = self.validated(ReasonSerializer)
        result = self.get_engine().cancel(
            pk, self.actor.tenant_id, self.actor.user_id, reason=data.get('reason') or None,
        )
        return Response(transition_payload(result))

    @action(detail=True, methods=['post'], url_path='send-to-counterparty')
    def send_to_counterparty(self, request, pk=None):
        result = self.get_engine().send_to_counterparty(pk, self.actor.tenant_id, self.actor.user_id)
        return Response(transition_payload(result))

    @action(detail=True, methods=['post'], url_path='confirm-signature')
    def confirm_signature(self, request, pk=None):
        data = self.validated(SignatureSerializer)
        result = self.get_engine().confirm_signature(
            pk, self.actor.tenant_id, self.actor.user_id, data.get('signed_document_key'),
        )
        return Response(transition_payload(result))


class ApprovalViewSet(WorkflowViewMixin, viewsets.ViewSet):
    """
    Approval gate endpoints

    GET  /api/v1/approvals/?type=LEGAL|FINANCE    - Pending approvals, oldest first
    POST /api/v1/approvals/<id>/approve/          - Approve {comment?}
    POST /api/v1/approvals/<id>/reject/           - Reject {comment}
    POST /api/v1/approvals/<id>/request-revision/ - Request changes {comment}
    """
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def list(self, request):
        approvals = self.get_engine().pending_approvals(
            self.actor.tenant_id, gate_type=request.query_params.get('type'),
        )
        results = PendingApprovalSerializer(approvals, many=True).data
        return Response({
            'count': len(results),
            'results': results,
        })

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        data = self.validated(CommentSerializer)
        result = self.get_engine().approve(
            pk, self.actor.user_id, self.actor.tenant_id, self.actor.permissions,
            comment=data.get('comment') or None,
        )
        return Response(transition_payload(result))

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        data = self.validated(CommentSerializer)
        result = self.get_engine().reject(
            pk, self.actor.user_id, self.actor.tenant_id, self.actor.permissions,
            comment=data.get('comment'),
        )
        return Response(transition_payload(result))

    @action(detail=True, methods=['post'], url_path='request-revision')
    def request_revision(self, request, pk=None):
        data = self.validated(CommentSerializer)
        result = self.get_engine().request_revision(
            pk, self.actor.user_id, self.actor.tenant_id, self.actor.permissions,
            comment=data.get('comment'),
        )
        return Response(transition_payload(result))


class FeatureFlagViewSet(viewsets.ViewSet):
    """
    Tenant feature flags

    GET  /api/v1/feature-flags/         - System catalog with tenant state
    POST /api/v1/feature-flags/<code>/  - Enable/disable {is_enabled, config?}
    """
    permission_classes = [IsAuthenticated, HasTenantContext, CanManageOrganization]
    lookup_field = 'code'
    lookup_value_regex = '[A-Za-z0-9_]+'

    def list(self, request):
        return Response({'results': FeatureFlagService.all_flags(request.user.tenant_id)})

    def create_or_update(self, request, code=None):
        serializer = FeatureFlagUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        flag = FeatureFlagService.update_flag(
            request.user.tenant_id,
            code,
            serializer.validated_data['is_enabled'],
            serializer.validated_data.get('config'),
        )
        return Response(FeatureFlagSerializer(flag).data, status=status.HTTP_200_OK)


class HealthCheckView(APIView):
    """
    GET /api/v1/health/ - Health check endpoint
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        try:
            connection.ensure_connection()
            db_status = 'healthy'
        except Exception as e:
            logger.error(f"Health check database error: {e}")
            db_status = 'unhealthy'

        return Response({
            'status': 'ok' if db_status == 'healthy' else 'degraded',
            'database': db_status,
            'service': 'CLM Approval Workflow API'
        })
