from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from modules.signatures.models.signature_token import DocumentType
from schemas import CamelModel


class CaseCreate(CamelModel):
    case_number: str = Field(min_length=1, max_length=64)
    client_name: str = Field(min_length=1)
    client_email: Optional[EmailStr] = None
    client_phone: Optional[str] = None


class CaseResponse(CamelModel):
    id: str
    case_number: str
    client_name: str
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    created_at: datetime


class SignedDocumentResponse(CamelModel):
    id: str
    case_id: str
    document_type: DocumentType
    file_name: str
    file_size: int
    sha256_hash: str
    signed_at: datetime
    signed_by: Optional[str] = None
    encryption_algorithm: str
    encryption_key_version: int


class CaseDeletionResponse(CamelModel):
    message: str
    deleted_tokens: int
    deleted_documents: int
