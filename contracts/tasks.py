from celery import shared_task
from django.conf import settings
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_workflow_email(self, to, template, data):
    """
    Send one workflow e-mail

    Args:
        to: Recipient address
        template: EmailService template name
        data: Template variables (JSON-serializable)
    """
    from notifications.email_service import EmailService, UnknownTemplate

    try:
        return EmailService().send(to, template, data)
    except UnknownTemplate:
        logger.error(f"Dropping e-mail to {to}: unknown template '{template}'")
        return False
    except Exception as e:
        logger.warning(f"E-mail '{template}' to {to} failed, retrying: {e}")
        raise self.retry(exc=e)


@shared_task
def flag_overdue_approvals():
    """
    Remind reviewers of pending gates past their due date

    Reporting only: gate and contract status are never changed here.
    Each overdue gate is flagged once (metadata on the reminder notification).

    Returns:
        Number of gates flagged in this run
    """
    from .constants import ContractStatus, GateStatus
    from .models import ContractApproval
    from .permissions import gate_permission
    from .side_effects import SideEffectDispatcher, contract_link, frontend_url, users_with_permission
    from .workflow_models import NotificationQueue

    now = timezone.now()
    overdue = (
        ContractApproval.objects
        .select_related('contract')
        .filter(
            status=GateStatus.PENDING,
            due_date__lt=now,
            contract__status__in=ContractStatus.UNDER_REVIEW,
        )
        .order_by('due_date')
    )

    flagged = 0
    for gate in overdue:
        if NotificationQueue.objects.filter(
            kind='APPROVAL_OVERDUE',
            metadata__approval_id=str(gate.id),
        ).exists():
            continue

        contract = gate.contract
        link = contract_link(contract.id)
        title = f'{gate.type.title()} Approval Overdue'
        message = (
            f'{contract.title} was due for {gate.type.title()} review '
            f'on {gate.due_date:%Y-%m-%d %H:%M} UTC.'
        )
        metadata = {'approval_id': str(gate.id), 'contract_id': str(contract.id)}
        email_data = {
            'contract_title': contract.title,
            'gate_type': gate.type,
            'due_date': gate.due_date.isoformat(),
            'link': frontend_url(link),
        }

        permission = gate_permission(gate.type)
        if not gate.actor_id and not users_with_permission(contract.tenant_id, permission):
            logger.debug(f"No reviewer to remind for overdue approval {gate.id}")
            continue

        effects = SideEffectDispatcher(contract.tenant_id)
        if gate.actor_id:
            effects.notify(gate.actor_id, 'APPROVAL_OVERDUE', title, message, link=link, metadata=metadata)
            effects.email_user(gate.actor_id, 'approval_overdue', email_data)
        else:
            effects.notify_permission_holders(
                permission, 'APPROVAL_OVERDUE', title, message, link=link, metadata=metadata,
            )
            effects.email_permission_holders(permission, 'approval_overdue', email_data)
        effects.flush()
        flagged += 1

    if flagged:
        logger.info(f"Flagged {flagged} overdue approvals (SLA {settings.APPROVAL_SLA_HOURS}h)")
    return flagged
