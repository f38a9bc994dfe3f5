import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from exceptions import ConflictError, InvalidRequestError, NotFoundError, UpstreamFailure
from modules.cases.repositories.case_repository import CaseRepository
from modules.notifications.services.notification_service import NotificationService
from modules.signatures.models.signature_token import DocumentType, SignatureToken
from modules.signatures.repositories.token_repository import TokenRepository, token_prefix

logger = logging.getLogger(__name__)


@dataclass
class SignatureRequest:
    token: str
    form_link: str
    expires_at: datetime
    message_id: Optional[str] = None


def build_form_link(base_url: str, document_type: DocumentType, token: str) -> str:
    return f"{base_url.rstrip('/')}/forms/{document_type.value}/{token}"


class SignatureRequestService:
    def __init__(
        self,
        tokens: TokenRepository,
        cases: CaseRepository,
        notifications: NotificationService,
        base_url: str,
        ttl: timedelta,
    ):
        self.tokens = tokens
        self.cases = cases
        self.notifications = notifications
        self.base_url = base_url
        self.ttl = ttl

    def send(
        self,
        case_number: str,
        document_type: DocumentType,
        client_email: Optional[str] = None,
        client_name: Optional[str] = None,
        form_data: Optional[Dict] = None,
        now: Optional[datetime] = None,
    ) -> SignatureRequest:
        """
        Issues a signature token for the case and emails the prefilled form
        link. The token is kept when the email fails so the link can be
        resent; the failure is reported as ``UpstreamFailure``.
        """
        now = now or datetime.utcnow()
        case = self.cases.get_by_number(case_number)
        if case is None:
            raise NotFoundError(f"Case {case_number} not found")

        email = client_email or case.client_email
        if not email:
            raise InvalidRequestError("Client email is required for email delivery")
        name = client_name or case.client_name

        if self.tokens.has_open_token(case.id, document_type, now):
            raise ConflictError(
                "A signature request for this document is already pending. "
                "Please wait for the client to complete it."
            )

        prefill = {
            "caseNumber": case.case_number,
            "clientName": name,
            "clientEmail": email,
            "clientPhone": case.client_phone,
        }
        prefill.update(form_data or {})

        signature_token = self.tokens.create(
            case_id=case.id,
            document_type=document_type,
            form_data=prefill,
            ttl=self.ttl,
            client_email=email,
            now=now,
        )
        token = signature_token.token
        expires_at = signature_token.expires_at
        form_link = build_form_link(self.base_url, document_type, token)
        self.tokens.update_form_link(token, form_link)

        result = self.notifications.send_signature_request(
            email=email,
            name=name,
            document_name=document_type.display_name,
            case_number=case.case_number,
            form_link=form_link,
            case_id=case.id,
        )
        if not result.success:
            raise UpstreamFailure(f"Failed to send email: {result.error}")

        logger.info(
            "Signature request for %s sent to case %s (token %s)",
            document_type.value, case.case_number, token_prefix(token),
        )
        return SignatureRequest(
            token=token,
            form_link=form_link,
            expires_at=expires_at,
            message_id=result.message_id,
        )

    def refresh_prefill(self, token: str, form_data: Dict) -> SignatureToken:
        """Replaces the prefill data of a token that has not been completed yet."""
        if not isinstance(form_data, dict):
            raise InvalidRequestError("formData must be an object")
        self.tokens.update_form_data(token, form_data)
        return self.tokens.get_by_token(token)
