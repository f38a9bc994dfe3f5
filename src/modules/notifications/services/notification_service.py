import html
import logging
from datetime import datetime
from typing import List, Optional

from modules.notifications.models.notification import Notification, NotificationStatus
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.notifications.services.email_sender import EmailResult, EmailSender

logger = logging.getLogger(__name__)

COMPANY_NAME = "White Pointer Recoveries"


class EmailTemplate:
    def __init__(self, subject: str, body_html: str):
        self.subject = subject
        self.body_html = body_html


class SignatureRequestEmail(EmailTemplate):
    def __init__(self, client_name: str, document_name: str, form_link: str, case_number: str):
        name = html.escape(client_name)
        document = html.escape(document_name)
        link = html.escape(form_link, quote=True)
        subject = f"Digital Signature Required - Case {case_number}"
        body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <p>Dear {name},</p>
  <p>Please review and sign your <strong>{document}</strong> for case {html.escape(case_number)}.</p>
  <p><a href="{link}">Open the secure signing form</a></p>
  <p>This link is personal and expires after a limited time.</p>
  <p>Best regards,<br><strong>{COMPANY_NAME} Team</strong></p>
</div>
"""
        super().__init__(subject, body)


class CompletionNotificationEmail(EmailTemplate):
    def __init__(self, client_name: str, document_name: str, case_number: str, signed_on: datetime):
        name = html.escape(client_name)
        document = html.escape(document_name)
        subject = f"Document Signed - {document_name} (Case {case_number})"
        body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #28a745;">Document Signed Successfully</h1>
  <p>Dear {name},</p>
  <p>Thank you for signing your <strong>{document}</strong>. We have received and securely stored your signed document.</p>
  <p><strong>Document:</strong> {document}<br>
     <strong>Case Number:</strong> {html.escape(case_number)}<br>
     <strong>Signed:</strong> {signed_on.strftime('%d/%m/%Y')}</p>
  <p>Our team will review your submission and contact you if anything else is needed.</p>
  <p>Best regards,<br><strong>{COMPANY_NAME} Team</strong></p>
</div>
"""
        super().__init__(subject, body)


class NotificationService:
    """Sends client emails and records every attempt in the case's communication log."""

    def __init__(self, repository: NotificationRepository, sender: EmailSender):
        self.notification_repository = repository
        self.sender = sender

    def send_signature_request(
        self,
        email: str,
        name: str,
        document_name: str,
        case_number: str,
        form_link: str,
        case_id: Optional[str] = None,
    ) -> EmailResult:
        template = SignatureRequestEmail(name, document_name, form_link, case_number)
        return self._send(case_id, email, template)

    def send_completion_notification(
        self,
        email: str,
        name: str,
        document_name: str,
        case_number: str,
        case_id: Optional[str] = None,
        signed_at: Optional[datetime] = None,
    ) -> EmailResult:
        template = CompletionNotificationEmail(
            name, document_name, case_number, signed_at or datetime.utcnow()
        )
        return self._send(case_id, email, template)

    def get_case_notifications(self, case_id: str) -> List[Notification]:
        return self.notification_repository.find_by_case_id(case_id)

    def _send(self, case_id: Optional[str], email: str, template: EmailTemplate) -> EmailResult:
        result = self.sender.send(email, template.subject, template.body_html)
        self.notification_repository.save(Notification(
            case_id=case_id,
            channel="email",
            recipient=email,
            subject=template.subject,
            message=template.body_html,
            status=NotificationStatus.SENT if result.success else NotificationStatus.FAILED,
            error=result.error,
        ))
        if not result.success:
            logger.warning("Email '%s' to %s failed: %s", template.subject, email, result.error)
        return result
