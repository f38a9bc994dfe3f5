from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, JSON

from database import Base


class TokenStatus(str, PyEnum):
    PENDING = "pending"
    DRAFT = "draft"
    COMPLETED = "completed"


class DocumentType(str, PyEnum):
    CLAIMS_FORM = "claims-form"
    AUTHORITY_TO_ACT = "authority-to-act"
    NOT_AT_FAULT_RENTAL = "not-at-fault-rental"
    CERTIS_RENTAL = "certis-rental"
    DIRECTION_TO_PAY = "direction-to-pay"

    @property
    def display_name(self) -> str:
        return DOCUMENT_TYPE_NAMES[self]


DOCUMENT_TYPE_NAMES = {
    DocumentType.CLAIMS_FORM: "Claims Form",
    DocumentType.AUTHORITY_TO_ACT: "Authority to Act",
    DocumentType.NOT_AT_FAULT_RENTAL: "Not At Fault Rental",
    DocumentType.CERTIS_RENTAL: "Certis Rental",
    DocumentType.DIRECTION_TO_PAY: "Direction to Pay",
}

# Status only moves forward; draft -> draft is a re-save.
ALLOWED_TRANSITIONS = {
    TokenStatus.PENDING: frozenset({TokenStatus.DRAFT, TokenStatus.COMPLETED}),
    TokenStatus.DRAFT: frozenset({TokenStatus.DRAFT, TokenStatus.COMPLETED}),
    TokenStatus.COMPLETED: frozenset(),
}


def can_transition(current: TokenStatus, new: TokenStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def allowed_predecessors(new: TokenStatus) -> list[TokenStatus]:
    return [status for status, targets in ALLOWED_TRANSITIONS.items() if new in targets]


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class SignatureToken(Base):
    __tablename__ = "signature_tokens"

    id = Column(Integer, primary_key=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    case_id = Column(String(36), ForeignKey("cases.id"), nullable=False, index=True)
    document_type = Column(Enum(DocumentType, values_callable=enum_values), nullable=False)
    status = Column(
        Enum(TokenStatus, values_callable=enum_values),
        nullable=False,
        default=TokenStatus.PENDING,
    )
    form_data = Column(JSON, nullable=False, default=dict)
    form_link = Column(String, nullable=True)
    client_email = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    accessed_at = Column(DateTime, nullable=True)
    last_saved_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    pdf_url = Column(String, nullable=True)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    @property
    def is_completed(self) -> bool:
        return self.status == TokenStatus.COMPLETED
