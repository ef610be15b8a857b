"""
Email Notification Service

Renders and sends the approval workflow e-mails. Messages go through
Django's mail framework, so the backend (SMTP, console, locmem) follows
EMAIL_BACKEND.
"""

import logging
from html import escape
from typing import Dict

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


class UnknownTemplate(ValueError):
    pass


class EmailService:
    """
    Service for sending workflow e-mails
    One template per workflow event
    """

    TEMPLATES = (
        'approval_request',
        'approval_result',
        'revision_requested',
        'escalation',
        'returned_to_originator',
        'approval_overdue',
        'contract_signed',
    )

    def __init__(self):
        self.sender_email = getattr(settings, 'DEFAULT_FROM_EMAIL', None) or 'noreply@example.com'
        self.app_url = (getattr(settings, 'FRONTEND_BASE_URL', '') or 'http://localhost:3000').rstrip('/')

    def send(self, to: str, template: str, data: Dict) -> bool:
        """
        Render `template` with `data` and send it to `to`

        Returns:
            True if the backend accepted the message

        Raises:
            UnknownTemplate: template name not in TEMPLATES
        """
        if template not in self.TEMPLATES:
            raise UnknownTemplate(f"Unknown e-mail template: {template}")

        render = getattr(self, f"_render_{template}")
        subject, body = render(data or {})
        html_body = self._wrap_html(subject, body)

        sent = send_mail(
            subject=subject,
            message=body,
            from_email=self.sender_email,
            recipient_list=[to],
            html_message=html_body,
            fail_silently=False,
        )
        logger.info(f"Email '{template}' sent to {to}")
        return sent > 0

    def _link(self, data):
        path = data.get('link') or ''
        if path.startswith('http'):
            return path
        return f"{self.app_url}{path}"

    def _render_approval_request(self, data):
        gate = data.get('gate_type', 'Legal').title()
        subject = f"Approval Request: {data.get('contract_title', 'Contract')}"
        body = (
            f"A contract requires {gate} approval.\n\n"
            f"Contract: {data.get('contract_title', '')}\n"
            f"Submitted by: {data.get('submitted_by', 'System')}\n\n"
            f"Review it here: {self._link(data)}\n"
        )
        return subject, body

    def _render_approval_result(self, data):
        approved = bool(data.get('approved'))
        verdict = 'Approved' if approved else 'Rejected'
        subject = f"Contract {verdict}: {data.get('contract_title', 'Contract')}"
        body = (
            f"Your contract \"{data.get('contract_title', '')}\" was {verdict.lower()} "
            f"by {data.get('gate_type', 'the reviewer')}.\n\n"
        )
        if data.get('comment'):
            body += f"Comment: {data['comment']}\n\n"
        body += f"View contract: {self._link(data)}\n"
        return subject, body

    def _render_revision_requested(self, data):
        subject = f"Changes Requested: {data.get('contract_title', 'Contract')}"
        body = (
            f"{data.get('gate_type', 'A reviewer')} requested changes to "
            f"\"{data.get('contract_title', '')}\".\n\n"
            f"Feedback: {data.get('comment', '')}\n\n"
            f"Update and resubmit: {self._link(data)}\n"
        )
        return subject, body

    def _render_escalation(self, data):
        subject = f"Escalated for your review: {data.get('contract_title', 'Contract')}"
        body = (
            f"\"{data.get('contract_title', '')}\" was escalated to you for a Legal decision.\n\n"
        )
        if data.get('reason'):
            body += f"Reason: {data['reason']}\n\n"
        body += f"Review it here: {self._link(data)}\n"
        return subject, body

    def _render_returned_to_originator(self, data):
        subject = f"Returned to you: {data.get('contract_title', 'Contract')}"
        body = (
            f"The Legal Head returned \"{data.get('contract_title', '')}\" to you.\n\n"
            f"Comment: {data.get('comment', '')}\n\n"
            f"Continue the review: {self._link(data)}\n"
        )
        return subject, body

    def _render_approval_overdue(self, data):
        subject = f"Overdue approval: {data.get('contract_title', 'Contract')}"
        body = (
            f"Your {data.get('gate_type', '').title()} review of \"{data.get('contract_title', '')}\" "
            f"was due {data.get('due_date', '')}.\n\n"
            f"Review it here: {self._link(data)}\n"
        )
        return subject, body

    def _render_contract_signed(self, data):
        subject = f"Contract Active: {data.get('contract_title', 'Contract')}"
        body = (
            f"The signed copy of \"{data.get('contract_title', '')}\" was received. "
            f"The contract is now active.\n\n"
            f"View contract: {self._link(data)}\n"
        )
        return subject, body

    @staticmethod
    def _wrap_html(subject, body):
        paragraphs = ''.join(
            f"<p>{escape(chunk).replace(chr(10), '<br>')}</p>"
            for chunk in body.strip().split('\n\n')
        )
        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{escape(subject)}</title>
</head>
<body style="font-family: Arial, sans-serif; color: #333; line-height: 1.6;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #1f2937;">{escape(subject)}</h2>
        {paragraphs}
        <p style="font-size: 12px; color: #999;">This is an automated message from CLM.</p>
    </div>
</body>
</html>"""
