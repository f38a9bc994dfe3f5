import hashlib
import io
import logging
import os
import uuid
from datetime import datetime
from typing import List, Optional

from PyPDF2 import PdfReader
from sqlalchemy.orm import Session

from exceptions import (
    AccessDeniedError,
    CaseMismatchError,
    DecryptionFailure,
    InvalidRequestError,
    NotFoundError,
    StorageFailure,
)
from modules.auth.models.user import User
from modules.auth.services.permission import can_perform_action
from modules.documents.models.signed_document import SignedDocument
from modules.documents.services.encryption import DocumentCipher, EncryptionMetadata
from modules.signatures.models.signature_token import DocumentType

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPES = ("application/pdf", "application/octet-stream")


class DocumentService:
    """Stores signed PDFs encrypted on disk and serves them back per case."""

    def __init__(
        self,
        session: Session,
        cipher: DocumentCipher,
        storage_dir: str,
        max_file_size: int = 10 * 1024 * 1024,
    ):
        self.db = session
        self.cipher = cipher
        self.storage_dir = storage_dir
        self.max_file_size = max_file_size

    def validate_pdf(self, file_contents: bytes, content_type: Optional[str] = None) -> None:
        """Rejects uploads that are not a readable PDF within the size limit."""
        if content_type and content_type not in PDF_CONTENT_TYPES:
            raise InvalidRequestError("The signed document must be a PDF")
        if not file_contents:
            raise InvalidRequestError("The signed document is empty")
        if len(file_contents) > self.max_file_size:
            raise InvalidRequestError(
                f"The signed document exceeds the {self.max_file_size // (1024 * 1024)} MB limit"
            )
        try:
            reader = PdfReader(io.BytesIO(file_contents))
            _ = reader.pages[0]
        except Exception:
            raise InvalidRequestError("Invalid or corrupted PDF")

    def store(
        self,
        case_id: str,
        document_type: DocumentType,
        pdf_bytes: bytes,
        signed_by: Optional[str] = None,
        signature_token_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SignedDocument:
        """
        Encrypts ``pdf_bytes`` to disk and adds the document row to the
        session. The caller owns the commit; on rollback it must call
        ``discard_file`` for the returned document.
        """
        now = now or datetime.utcnow()
        timestamp_ms = int(now.timestamp() * 1000)
        # suffix keeps names unique for submissions within the same millisecond
        file_name = f"{document_type.value}-{case_id}-{timestamp_ms}-{uuid.uuid4().hex[:8]}.pdf"

        ciphertext, metadata = self.cipher.encrypt(pdf_bytes)

        case_dir = os.path.join(self.storage_dir, case_id)
        file_path = os.path.join(case_dir, f"{file_name}.enc")
        try:
            os.makedirs(case_dir, exist_ok=True)
            # "x" refuses to overwrite an artifact written by another submission
            with open(file_path, "xb") as f:
                f.write(ciphertext)
        except OSError as e:
            raise StorageFailure(f"Failed to write signed document {file_path}: {e}") from e

        document = SignedDocument(
            case_id=case_id,
            document_type=document_type,
            signature_token_id=signature_token_id,
            file_name=file_name,
            file_path=file_path,
            file_size=len(pdf_bytes),
            sha256_hash=hashlib.sha256(pdf_bytes).hexdigest(),
            signed_at=now,
            signed_by=signed_by,
            encryption_algorithm=metadata.algorithm,
            encryption_iv=metadata.iv,
            encryption_key_version=metadata.key_version,
        )
        self.db.add(document)
        self.db.flush()
        logger.info("Signed document %s stored for case %s", document.id, case_id)
        return document

    @staticmethod
    def discard_file(document: SignedDocument) -> None:
        DocumentService.remove_files([document.file_path])

    @staticmethod
    def remove_files(paths: List[str]) -> None:
        for path in paths:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error("Could not remove document file %s: %s", path, e)

    def retrieve(
        self,
        case_id: str,
        document_id: str,
        requester: Optional[User],
    ) -> tuple[SignedDocument, bytes]:
        """
        Returns the document row and its decrypted content after checking the
        requester's permission, that the document belongs to ``case_id`` and
        that the plaintext still matches the stored hash.
        """
        if requester is None or not requester.is_active:
            raise AccessDeniedError("Authentication required")
        if not can_perform_action(requester.role, "view_documents"):
            raise AccessDeniedError(
                f"User with role '{requester.role.value}' cannot view documents"
            )

        document = self.db.get(SignedDocument, document_id)
        if document is None:
            raise NotFoundError("Document not found or access denied")
        if document.case_id != case_id:
            logger.warning(
                "User %s requested document %s through case %s",
                requester.id, document_id, case_id,
            )
            raise CaseMismatchError()

        try:
            with open(document.file_path, "rb") as f:
                ciphertext = f.read()
        except FileNotFoundError:
            raise NotFoundError("Document file not found")
        except OSError as e:
            raise StorageFailure(f"Failed to read {document.file_path}: {e}") from e

        metadata = EncryptionMetadata(
            algorithm=document.encryption_algorithm,
            iv=document.encryption_iv,
            key_version=document.encryption_key_version,
        )
        plaintext = self.cipher.decrypt(ciphertext, metadata)

        if hashlib.sha256(plaintext).hexdigest() != document.sha256_hash:
            raise DecryptionFailure(f"Integrity check failed for document {document.id}")
        return document, plaintext

    def list_for_case(self, case_id: str) -> List[SignedDocument]:
        return (
            self.db
            .query(SignedDocument)
            .filter(SignedDocument.case_id == case_id)
            .order_by(SignedDocument.signed_at.desc())
            .all()
        )

    def delete_for_case(self, case_id: str, commit: bool = True) -> List[str]:
        """
        Deletes the document rows of a case and returns their file paths.
        Files are only removed here when ``commit`` is set; otherwise the
        caller removes them with ``remove_files`` once its commit succeeds.
        """
        paths = []
        for document in self.list_for_case(case_id):
            paths.append(document.file_path)
            self.db.delete(document)
        if commit:
            self.db.commit()
            self.remove_files(paths)
        return paths
