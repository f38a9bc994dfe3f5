import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from exceptions import AlreadyCompletedError, InvalidStatusTransitionError, NotFoundError
from modules.signatures.models.signature_token import (
    DocumentType,
    SignatureToken,
    TokenStatus,
    allowed_predecessors,
)

logger = logging.getLogger(__name__)


def generate_token() -> str:
    return secrets.token_hex(32)


def token_prefix(token: str) -> str:
    return f"{token[:8]}..."


class TokenRepository:
    """Signature token persistence. Every read goes to the database."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(
        self,
        case_id: str,
        document_type: DocumentType,
        form_data: Optional[Dict],
        ttl: timedelta,
        client_email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SignatureToken:
        now = now or datetime.utcnow()
        signature_token = SignatureToken(
            token=generate_token(),
            case_id=case_id,
            document_type=document_type,
            status=TokenStatus.PENDING,
            form_data=dict(form_data or {}),
            client_email=client_email,
            created_at=now,
            updated_at=now,
            expires_at=now + ttl,
        )
        self.db.add(signature_token)
        self.db.commit()
        self.db.refresh(signature_token)
        logger.info(
            "Signature token %s created for case %s (%s)",
            token_prefix(signature_token.token), case_id, document_type.value,
        )
        return signature_token

    def get_by_token(self, token: str) -> Optional[SignatureToken]:
        return (
            self.db
            .query(SignatureToken)
            .filter(SignatureToken.token == token)
            .populate_existing()
            .first()
        )

    def list_by_case(self, case_id: str) -> List[SignatureToken]:
        return (
            self.db
            .query(SignatureToken)
            .filter(SignatureToken.case_id == case_id)
            .order_by(SignatureToken.created_at.desc())
            .all()
        )

    def has_open_token(self, case_id: str, document_type: DocumentType, now: datetime) -> bool:
        return (
            self.db
            .query(SignatureToken.id)
            .filter(
                SignatureToken.case_id == case_id,
                SignatureToken.document_type == document_type,
                SignatureToken.status != TokenStatus.COMPLETED,
                SignatureToken.expires_at > now,
            )
            .first()
        ) is not None

    def update_status(
        self,
        token: str,
        new_status: TokenStatus,
        commit: bool = True,
        **extra_fields,
    ) -> None:
        """
        Moves a token to ``new_status`` and writes ``extra_fields`` in the same
        statement. The update only matches rows whose current status may move
        to ``new_status``, so two racing completions cannot both succeed.
        """
        values = dict(extra_fields)
        values["status"] = new_status
        values.setdefault("updated_at", datetime.utcnow())

        result = self.db.execute(
            update(SignatureToken)
            .where(
                SignatureToken.token == token,
                SignatureToken.status.in_(allowed_predecessors(new_status)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            self._raise_for_rejected_update(token, new_status)

        if commit:
            self.db.commit()
        logger.info("Signature token %s moved to %s", token_prefix(token), new_status.value)

    def update_form_data(self, token: str, form_data: Dict) -> None:
        result = self.db.execute(
            update(SignatureToken)
            .where(
                SignatureToken.token == token,
                SignatureToken.status != TokenStatus.COMPLETED,
            )
            .values(form_data=dict(form_data), updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            self._raise_for_rejected_update(token, None)
        self.db.commit()

    def update_form_link(self, token: str, form_link: str) -> None:
        result = self.db.execute(
            update(SignatureToken)
            .where(SignatureToken.token == token)
            .values(form_link=form_link, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError("Signature token not found")
        self.db.commit()

    def mark_accessed(self, token: str, now: datetime) -> None:
        self.db.execute(
            update(SignatureToken)
            .where(SignatureToken.token == token, SignatureToken.accessed_at.is_(None))
            .values(accessed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def delete_by_case(self, case_id: str, commit: bool = True) -> int:
        result = self.db.execute(
            delete(SignatureToken)
            .where(SignatureToken.case_id == case_id)
            .execution_options(synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return result.rowcount

    def delete_expired(self, before: datetime) -> int:
        """Deletes tokens that were never completed and expired before ``before``."""
        result = self.db.execute(
            delete(SignatureToken)
            .where(
                SignatureToken.status != TokenStatus.COMPLETED,
                SignatureToken.expires_at < before,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def _raise_for_rejected_update(self, token: str, new_status: Optional[TokenStatus]) -> None:
        current = self.get_by_token(token)
        if current is None:
            raise NotFoundError("Signature token not found")
        if current.status == TokenStatus.COMPLETED:
            raise AlreadyCompletedError()
        raise InvalidStatusTransitionError(
            f"Cannot move signature token from {current.status.value} to {new_status.value}"
        )
