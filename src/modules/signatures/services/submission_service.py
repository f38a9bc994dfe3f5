import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from database import Database
from exceptions import InvalidRequestError
from modules.cases.repositories.case_repository import CaseRepository
from modules.documents.services.document_service import DocumentService
from modules.documents.services.pdf_renderer import PdfRenderer
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.notifications.services.email_sender import EmailSender
from modules.notifications.services.notification_service import NotificationService
from modules.signatures.models.signature_token import DocumentType, TokenStatus
from modules.signatures.repositories.token_repository import TokenRepository, token_prefix
from modules.signatures.services.token_validator import TokenValidator

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    pdf_url: str
    case_id: str
    document_id: str


@dataclass
class SubmissionCompleted:
    token: str
    case_id: str
    case_number: Optional[str]
    document_type: DocumentType
    document_id: str
    pdf_url: str
    form_data: Dict
    client_email: Optional[str]
    signed_at: datetime


PostCommitHook = Callable[[SubmissionCompleted], None]


def document_url(case_id: str, document_id: str) -> str:
    return f"/documents/{case_id}/{document_id}"


class SubmissionService:
    """
    Finalizes a signature: stores the encrypted PDF, completes the token and
    only then runs post-commit hooks such as the completion email. A hook
    failure is logged and never undoes the submission.
    """

    def __init__(
        self,
        session: Session,
        tokens: TokenRepository,
        validator: TokenValidator,
        cases: CaseRepository,
        documents: DocumentService,
        renderer: Optional[PdfRenderer] = None,
        hooks: Optional[List[PostCommitHook]] = None,
    ):
        self.db = session
        self.tokens = tokens
        self.validator = validator
        self.cases = cases
        self.documents = documents
        self.renderer = renderer or PdfRenderer()
        self.hooks = list(hooks or [])

    def add_hook(self, hook: PostCommitHook) -> None:
        self.hooks.append(hook)

    def submit(
        self,
        token: str,
        form_data,
        pdf_bytes: Optional[bytes] = None,
        signature_image: Optional[bytes] = None,
        pdf_content_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SubmissionResult:
        if not isinstance(form_data, dict):
            raise InvalidRequestError("formData must be an object")

        now = now or datetime.utcnow()
        signature_token = self.validator.require_usable(token, now)
        case = self.cases.get_by_id(signature_token.case_id)
        case_number = case.case_number if case else None
        signer = form_data.get("clientName") or (case.client_name if case else None)

        if pdf_bytes:
            self.documents.validate_pdf(pdf_bytes, pdf_content_type)
        elif signature_image:
            pdf_bytes = self.renderer.render(
                title=signature_token.document_type.display_name,
                case_number=case_number,
                form_data=form_data,
                signature_image=signature_image,
                signed_by=signer,
                signed_at=now,
            )
        else:
            raise InvalidRequestError("Missing PDF file or signature")

        document = self.documents.store(
            case_id=signature_token.case_id,
            document_type=signature_token.document_type,
            pdf_bytes=pdf_bytes,
            signed_by=signer,
            signature_token_id=signature_token.id,
            now=now,
        )
        case_id = signature_token.case_id
        document_type = signature_token.document_type
        client_email = signature_token.client_email
        document_id = document.id
        pdf_url = document_url(case_id, document_id)

        try:
            self.tokens.update_status(
                token,
                TokenStatus.COMPLETED,
                commit=False,
                completed_at=now,
                pdf_url=pdf_url,
                form_data=form_data,
                updated_at=now,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.documents.discard_file(document)
            raise

        logger.info(
            "Signature token %s completed; document %s stored for case %s",
            token_prefix(token), document_id, case_id,
        )

        event = SubmissionCompleted(
            token=token,
            case_id=case_id,
            case_number=case_number,
            document_type=document_type,
            document_id=document_id,
            pdf_url=pdf_url,
            form_data=form_data,
            client_email=client_email,
            signed_at=now,
        )
        self._run_hooks(event)
        return SubmissionResult(pdf_url=pdf_url, case_id=case_id, document_id=document_id)

    def _run_hooks(self, event: SubmissionCompleted) -> None:
        for hook in self.hooks:
            try:
                hook(event)
            except Exception:
                logger.exception(
                    "Post-submission hook %s failed for case %s",
                    getattr(hook, "__name__", hook), event.case_id,
                )


def completion_email_hook(notifications: NotificationService) -> PostCommitHook:
    def send_completion_email(event: SubmissionCompleted) -> None:
        email = event.form_data.get("clientEmail") or event.client_email
        if not email:
            logger.info("No client email for case %s; completion email skipped", event.case_id)
            return
        result = notifications.send_completion_notification(
            email=email,
            name=event.form_data.get("clientName") or "Client",
            document_name=event.document_type.display_name,
            case_number=event.case_number or event.case_id,
            case_id=event.case_id,
            signed_at=event.signed_at,
        )
        if not result.success:
            logger.warning(
                "Completion email for case %s was not delivered: %s", event.case_id, result.error
            )

    return send_completion_email


def background_completion_email(
    background_tasks: BackgroundTasks,
    database: Database,
    sender: EmailSender,
) -> PostCommitHook:
    """
    Queues the completion email to go out after the response is sent. The
    task opens its own session because the request session is closed by then.
    """
    def queue_completion_email(event: SubmissionCompleted) -> None:
        background_tasks.add_task(_send_completion_email, database, sender, event)

    return queue_completion_email


def _send_completion_email(database: Database, sender: EmailSender, event: SubmissionCompleted) -> None:
    with database.session() as session:
        notifications = NotificationService(NotificationRepository(session), sender)
        try:
            completion_email_hook(notifications)(event)
        except Exception:
            logger.exception("Completion email task failed for case %s", event.case_id)
