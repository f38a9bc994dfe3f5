from datetime import timedelta

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from modules.cases.repositories.case_repository import CaseRepository
from modules.documents.services.document_service import DocumentService
from modules.documents.services.encryption import DocumentCipher
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.notifications.services.email_sender import EmailSender
from modules.notifications.services.notification_service import NotificationService
from modules.signatures.repositories.token_repository import TokenRepository
from modules.signatures.services.draft_service import DraftService
from modules.signatures.services.signature_request_service import SignatureRequestService
from modules.signatures.services.submission_service import (
    SubmissionService,
    background_completion_email,
)
from modules.signatures.services.token_validator import TokenValidator


def get_cipher(request: Request) -> DocumentCipher:
    return request.app.state.cipher


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_notification_service(
    db: Session = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
) -> NotificationService:
    return NotificationService(NotificationRepository(db), sender)


def get_document_service(
    db: Session = Depends(get_db),
    cipher: DocumentCipher = Depends(get_cipher),
    settings: Settings = Depends(get_settings),
) -> DocumentService:
    return DocumentService(db, cipher, settings.DOCUMENT_STORAGE_DIR, settings.MAX_PDF_SIZE)


def get_token_validator(db: Session = Depends(get_db)) -> TokenValidator:
    return TokenValidator(TokenRepository(db), CaseRepository(db))


def get_draft_service(db: Session = Depends(get_db)) -> DraftService:
    tokens = TokenRepository(db)
    return DraftService(tokens, TokenValidator(tokens, CaseRepository(db)))


def get_submission_service(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    documents: DocumentService = Depends(get_document_service),
    sender: EmailSender = Depends(get_email_sender),
) -> SubmissionService:
    tokens = TokenRepository(db)
    cases = CaseRepository(db)
    return SubmissionService(
        session=db,
        tokens=tokens,
        validator=TokenValidator(tokens, cases),
        cases=cases,
        documents=documents,
        hooks=[background_completion_email(background_tasks, request.app.state.database, sender)],
    )


def get_signature_request_service(
    db: Session = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
    settings: Settings = Depends(get_settings),
) -> SignatureRequestService:
    return SignatureRequestService(
        tokens=TokenRepository(db),
        cases=CaseRepository(db),
        notifications=notifications,
        base_url=settings.PUBLIC_BASE_URL,
        ttl=timedelta(hours=settings.SIGNATURE_TOKEN_TTL_HOURS),
    )
