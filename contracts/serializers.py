from rest_framework import serializers

from .constants import GateType
from .models import Contract, ContractApproval, WorkflowLog
from .workflow_models import FeatureFlag


class ContractApprovalSerializer(serializers.ModelSerializer):
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = ContractApproval
        fields = [
            'id',
            'contract',
            'type',
            'status',
            'actor_id',
            'acted_at',
            'comment',
            'escalated_by',
            'escalated_to',
            'escalated_at',
            'due_date',
            'is_overdue',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj):
        return obj.is_overdue()


class ContractSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contract
        fields = [
            'id',
            'tenant_id',
            'title',
            'contract_type',
            'status',
            'value',
            'counterparty',
            'created_by',
            'submitted_at',
            'approved_at',
            'sent_at',
            'signed_at',
            'cancelled_at',
            'signed_document_key',
            'metadata',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class WorkflowLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = WorkflowLog
        fields = ['id', 'action', 'performed_by', 'from_status', 'to_status', 'comment', 'timestamp', 'metadata']
        read_only_fields = fields


def transition_payload(result, include_history=False):
    """Response body shared by every contract endpoint: contract + live gates."""
    payload = {
        'contract': ContractSerializer(result.contract).data,
        'approvals': ContractApprovalSerializer(result.gates, many=True).data,
    }
    if include_history:
        logs = result.contract.workflow_logs.order_by('-timestamp')[:50]
        payload['history'] = WorkflowLogSerializer(logs, many=True).data
    return payload


class PendingApprovalSerializer(serializers.ModelSerializer):
    """Pending gate with a small contract summary for review queues."""
    contract_id = serializers.UUIDField(source='contract.id', read_only=True)
    contract_title = serializers.CharField(source='contract.title', read_only=True)
    contract_status = serializers.CharField(source='contract.status', read_only=True)
    contract_type = serializers.CharField(source='contract.contract_type', read_only=True)
    counterparty = serializers.CharField(source='contract.counterparty', read_only=True)
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = ContractApproval
        fields = [
            'id',
            'type',
            'status',
            'contract_id',
            'contract_title',
            'contract_status',
            'contract_type',
            'counterparty',
            'actor_id',
            'escalated_to',
            'due_date',
            'is_overdue',
            'created_at',
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj):
        return obj.is_overdue()


class SubmitSerializer(serializers.Serializer):
    target = serializers.ChoiceField(choices=GateType.CHOICES, required=False, allow_null=True)

    def to_internal_value(self, data):
        if hasattr(data, 'get') and isinstance(data.get('target'), str):
            data = dict(data.items())
            data['target'] = GateType.normalize(data['target']) or data['target']
        return super().to_internal_value(data)


class CommentSerializer(serializers.Serializer):
    """Gate decisions; whether a comment is mandatory is decided by the engine."""
    comment = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=5000)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=5000)


class SignatureSerializer(serializers.Serializer):
    signed_document_key = serializers.CharField(required=False, allow_blank=True, max_length=500)


class FeatureFlagSerializer(serializers.ModelSerializer):
    class Meta:
        model = FeatureFlag
        fields = ['feature_code', 'is_enabled', 'config', 'updated_at']
        read_only_fields = fields


class FeatureFlagUpdateSerializer(serializers.Serializer):
    is_enabled = serializers.BooleanField()
    config = serializers.JSONField(required=False, allow_null=True)
