import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey

from database import Base
from modules.signatures.models.signature_token import DocumentType, enum_values


class SignedDocument(Base):
    __tablename__ = 'signed_documents'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    case_id = Column(String(36), ForeignKey('cases.id'), nullable=False, index=True)
    document_type = Column(Enum(DocumentType, values_callable=enum_values), nullable=False)
    # Not a foreign key: tokens may be purged while the document is kept.
    signature_token_id = Column(Integer, nullable=True)

    file_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    sha256_hash = Column(String(64), nullable=False)
    signed_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    signed_by = Column(String, nullable=True)

    encryption_algorithm = Column(String(32), nullable=False)
    encryption_iv = Column(String(32), nullable=False)
    encryption_key_version = Column(Integer, nullable=False)
