"""
Post-commit side effects of workflow transitions

Notifications, e-mails, audit entries and analytics cache invalidation are
best-effort: they run after the transition commits, each in isolation, and a
failure is logged and counted but never reaches the caller.
"""
import logging

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from clm_gatekeeper.metrics import SIDE_EFFECT_FAILURES

from .workflow_models import AuditLog, NotificationQueue, UserRole

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('audit')

ANALYTICS_CACHE_KEYS = (
    'analytics:{tenant_id}:summary',
    'analytics:{tenant_id}:by_status',
    'analytics:{tenant_id}:trend',
    'approvals:{tenant_id}:pending',
)


def invalidate_org_cache(tenant_id):
    """Drop cached analytics for a tenant."""
    keys = [key.format(tenant_id=tenant_id) for key in ANALYTICS_CACHE_KEYS]
    cache.delete_many(keys)
    logger.debug(f"Invalidated {len(keys)} cache keys for tenant {tenant_id}")


class AuditLogService:
    """
    Append-only audit trail
    """

    @staticmethod
    def record(entry):
        """
        Persist one audit entry.

        Args:
            entry: dict with tenant_id, user_id, action, target_type,
                target_id and optionally contract_id, module, metadata

        Returns:
            AuditLog
        """
        log = AuditLog.objects.create(
            tenant_id=entry['tenant_id'],
            user_id=entry['user_id'],
            action=entry['action'],
            module=entry.get('module', 'approvals'),
            target_type=entry['target_type'],
            target_id=entry['target_id'],
            contract_id=entry.get('contract_id'),
            metadata=entry.get('metadata') or {},
        )
        audit_logger.info(
            "AUDIT|action=%s|tenant_id=%s|user_id=%s|target=%s:%s",
            log.action, log.tenant_id, log.user_id, log.target_type, log.target_id,
        )
        return log


def users_with_permission(tenant_id, permission_code):
    """Active role holders in the tenant granted `permission_code`."""
    roles = UserRole.objects.filter(tenant_id=tenant_id, is_active=True)
    seen = {}
    for role in roles:
        if permission_code in (role.permissions or []) and role.user_id not in seen:
            seen[role.user_id] = role
    return list(seen.values())


def email_for_user(tenant_id, user_id):
    role = (
        UserRole.objects
        .filter(tenant_id=tenant_id, user_id=user_id, is_active=True)
        .exclude(email__isnull=True)
        .exclude(email='')
        .first()
    )
    return role.email if role else None


class SideEffectDispatcher:
    """
    Collects the follow-ups of one transition and runs them after commit.

    Usage inside an atomic block:

        effects = SideEffectDispatcher(tenant_id)
        effects.notify(user_id, 'APPROVAL_COMPLETE', 'Contract Approved', '...')
        effects.audit('CONTRACT_APPROVED', user_id, 'Contract', contract.id)
        effects.flush()

    Nothing runs if the transaction rolls back. The tenant's analytics cache
    is invalidated exactly once per flush.
    """

    def __init__(self, tenant_id):
        self.tenant_id = tenant_id
        self._effects = []

    def notify(self, user_id, kind, title, message, link='', metadata=None):
        if not user_id:
            return

        def _create():
            NotificationQueue.objects.create(
                recipient=user_id,
                kind=kind,
                title=title,
                message=message,
                link=link or '',
                metadata=metadata or {},
            )

        self._effects.append(('notify', _create))

    def notify_permission_holders(self, permission_code, kind, title, message, link='', metadata=None):
        """Notify every active user of the tenant holding `permission_code`."""
        tenant_id = self.tenant_id

        def _create():
            for role in users_with_permission(tenant_id, permission_code):
                NotificationQueue.objects.create(
                    recipient=role.user_id,
                    kind=kind,
                    title=title,
                    message=message,
                    link=link or '',
                    metadata=metadata or {},
                )

        self._effects.append(('notify', _create))

    def email(self, to, template, data):
        if not to:
            return

        def _enqueue():
            from .tasks import send_workflow_email
            send_workflow_email.delay(to, template, data)

        self._effects.append(('email', _enqueue))

    def email_user(self, user_id, template, data):
        """E-mail a user by id; skipped when no address is on file."""
        tenant_id = self.tenant_id

        def _enqueue():
            to = email_for_user(tenant_id, user_id)
            if not to:
                logger.debug(f"No e-mail on file for user {user_id}; skipping {template}")
                return
            from .tasks import send_workflow_email
            send_workflow_email.delay(to, template, data)

        self._effects.append(('email', _enqueue))

    def email_permission_holders(self, permission_code, template, data):
        tenant_id = self.tenant_id

        def _enqueue():
            from .tasks import send_workflow_email
            for role in users_with_permission(tenant_id, permission_code):
                if role.email:
                    send_workflow_email.delay(role.email, template, data)

        self._effects.append(('email', _enqueue))

    def audit(self, action, user_id, target_type, target_id, contract_id=None, metadata=None):
        entry = {
            'tenant_id': self.tenant_id,
            'user_id': user_id,
            'action': action,
            'target_type': target_type,
            'target_id': target_id,
            'contract_id': contract_id,
            'metadata': metadata or {},
        }
        self._effects.append(('audit', lambda: AuditLogService.record(entry)))

    def flush(self):
        """Schedule everything collected so far to run once the transaction commits."""
        effects, self._effects = self._effects, []
        tenant_id = self.tenant_id
        effects.append(('cache', lambda: invalidate_org_cache(tenant_id)))
        transaction.on_commit(lambda: self.run(effects))

    @staticmethod
    def run(effects):
        for name, effect in effects:
            try:
                effect()
            except Exception as e:
                SIDE_EFFECT_FAILURES.labels(effect=name).inc()
                logger.error(f"Side effect '{name}' failed: {e}", exc_info=True)


def contract_link(contract_id):
    return f"/dashboard/contracts/{contract_id}"


def frontend_url(path):
    base = getattr(settings, 'FRONTEND_BASE_URL', 'http://localhost:3000').rstrip('/')
    return f"{base}{path}"
