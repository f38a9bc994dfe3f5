import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from exceptions import NotFoundError
from modules.cases.repositories.case_repository import CaseRepository
from modules.documents.services.document_service import DocumentService
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.signatures.repositories.token_repository import TokenRepository

logger = logging.getLogger(__name__)


@dataclass
class CaseDeletion:
    deleted_tokens: int
    deleted_documents: int


class CaseService:
    def __init__(self, session: Session, documents: DocumentService):
        self.db = session
        self.cases = CaseRepository(session)
        self.tokens = TokenRepository(session)
        self.notifications = NotificationRepository(session)
        self.documents = documents

    def delete_case(self, case_id: str) -> CaseDeletion:
        """Removes a case with its signature tokens, signed documents and communication log."""
        case = self.cases.get_by_id(case_id)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")

        deleted_tokens = self.tokens.delete_by_case(case_id, commit=False)
        file_paths = self.documents.delete_for_case(case_id, commit=False)
        self.notifications.delete_by_case_id(case_id, commit=False)
        self.cases.delete(case, commit=False)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        # files go only once the rows are gone for good
        self.documents.remove_files(file_paths)
        deleted_documents = len(file_paths)

        logger.info(
            "Case %s deleted with %d tokens and %d documents",
            case_id, deleted_tokens, deleted_documents,
        )
        return CaseDeletion(deleted_tokens=deleted_tokens, deleted_documents=deleted_documents)
