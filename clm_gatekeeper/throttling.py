from __future__ import annotations

from rest_framework.throttling import SimpleRateThrottle


def _caller_ident(request) -> str | None:
    """`tenant:user` for token callers, None for anonymous ones."""
    user = getattr(request, "user", None)
    if user is None or not getattr(user, "is_authenticated", False):
        return None

    tenant_id = getattr(user, "tenant_id", None)
    user_id = getattr(user, "user_id", None)
    if tenant_id and user_id:
        return f"{tenant_id}:{user_id}"
    return str(user_id) if user_id else None


class TenantUserRateThrottle(SimpleRateThrottle):
    """Rate limit authenticated callers per (tenant_id, user_id).

    Falls back to IP-based identity when unauthenticated or missing claims.

    Configure rate via REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['tenant_user'].
    """

    scope = "tenant_user"

    def get_cache_key(self, request, view):
        ident = _caller_ident(request) or self.get_ident(request)
        return self.cache_format % {"scope": self.scope, "ident": ident}


class WorkflowWriteThrottle(SimpleRateThrottle):
    """Tighter budget for workflow transitions (submit, approve, escalate...).

    Reads are not counted. Rate key: 'workflow_write'.
    """

    scope = "workflow_write"

    def get_cache_key(self, request, view):
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return None

        ident = _caller_ident(request)
        if ident is None:
            return None
        return self.cache_format % {"scope": self.scope, "ident": ident}
