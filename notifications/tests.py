from django.core import mail
from django.test import SimpleTestCase, override_settings

from contracts.tasks import send_workflow_email
from notifications.email_service import EmailService, UnknownTemplate


@override_settings(
    EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
    FRONTEND_BASE_URL='https://clm.example.com',
)
class EmailServiceTests(SimpleTestCase):

    def test_approval_request(self):
        sent = EmailService().send('legal@example.com', 'approval_request', {
            'contract_title': 'NDA <Acme>',
            'gate_type': 'LEGAL',
            'link': '/dashboard/approvals/legal',
        })

        self.assertTrue(sent)
        message = mail.outbox[0]
        self.assertEqual(message.subject, 'Approval Request: NDA <Acme>')
        self.assertIn('requires Legal approval', message.body)
        self.assertIn('https://clm.example.com/dashboard/approvals/legal', message.body)
        html, mimetype = message.alternatives[0]
        self.assertEqual(mimetype, 'text/html')
        self.assertIn('NDA &lt;Acme&gt;', html)

    def test_rejection_result(self):
        EmailService().send('author@example.com', 'approval_result', {
            'contract_title': 'NDA',
            'approved': False,
            'gate_type': 'FINANCE',
            'comment': 'Budget exceeded',
        })

        self.assertEqual(mail.outbox[0].subject, 'Contract Rejected: NDA')
        self.assertIn('Comment: Budget exceeded', mail.outbox[0].body)

    def test_absolute_link_is_kept(self):
        EmailService().send('author@example.com', 'contract_signed', {
            'contract_title': 'NDA',
            'link': 'https://other.example.com/c/1',
        })
        self.assertIn('https://other.example.com/c/1', mail.outbox[0].body)

    def test_unknown_template(self):
        with self.assertRaises(UnknownTemplate):
            EmailService().send('author@example.com', 'welcome', {})
        self.assertEqual(mail.outbox, [])


@override_settings(EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend')
class SendWorkflowEmailTaskTests(SimpleTestCase):

    def test_unknown_template_is_dropped(self):
        self.assertFalse(send_workflow_email.apply(args=('a@example.com', 'welcome', {})).get())
