"""
Permission codes for the approval workflow

Callers arrive with a flat list of permission codes (JWT `permissions`
claim). Codes are `<resource>:<action>` or `<resource>:<scope>:<action>`.
"""
from rest_framework.permissions import BasePermission

APPROVAL_LEGAL_ACT = 'approval:legal:act'
APPROVAL_FINANCE_ACT = 'approval:finance:act'
APPROVAL_REJECT = 'approval:reject'
CONTRACT_ESCALATE = 'contract:escalate'
ORG_MANAGE = 'admin:org:manage'


def has_permission(permissions, code):
    """True if `code` is among the caller's granted codes."""
    if not permissions:
        return False
    return code in set(permissions)


def gate_permission(gate_type):
    """Act permission for a gate type, e.g. LEGAL -> approval:legal:act"""
    return f"approval:{gate_type.lower()}:act"


class HasTenantContext(BasePermission):
    """
    Request must come from an authenticated caller bound to a tenant
    """
    message = 'Organization context required. Please select an organization.'

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and getattr(user, 'is_authenticated', False)
            and getattr(user, 'tenant_id', None)
        )


class CanManageOrganization(BasePermission):
    message = f'Missing required permission: {ORG_MANAGE}'

    def has_permission(self, request, view):
        return has_permission(getattr(request.user, 'permissions', None), ORG_MANAGE)
