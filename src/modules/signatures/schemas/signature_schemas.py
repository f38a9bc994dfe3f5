from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import EmailStr, Field

from modules.signatures.models.signature_token import DocumentType, TokenStatus
from schemas import CamelModel


class TokenRequest(CamelModel):
    token: str = Field(min_length=1)


class TokenValidationResponse(CamelModel):
    is_valid: bool
    is_expired: bool
    is_completed: bool
    case_number: Optional[str] = None
    client_name: Optional[str] = None
    document_type: Optional[str] = None
    form_link: Optional[str] = None
    expires_at: Optional[datetime] = None
    error: Optional[str] = None


class AccessedTokenData(CamelModel):
    case_number: Optional[str] = None
    document_type: DocumentType
    status: TokenStatus


class MarkAccessedResponse(CamelModel):
    success: bool = True
    message: str = "Token marked as accessed successfully"
    data: AccessedTokenData


class FormDataResponse(CamelModel):
    success: bool = True
    form_data: Dict[str, Any]
    case_id: str
    document_type: DocumentType
    status: TokenStatus


class DraftRequest(CamelModel):
    form_data: Dict[str, Any]


class DraftResponse(CamelModel):
    success: bool = True
    message: str = "Draft saved successfully"
    last_saved_at: datetime


class SubmitResponse(CamelModel):
    success: bool = True
    message: str = "Form submitted successfully"
    pdf_url: str
    case_id: str


class SendSignatureRequest(CamelModel):
    case_number: str = Field(min_length=1)
    document_type: DocumentType
    client_email: Optional[EmailStr] = None
    client_name: Optional[str] = None
    form_data: Optional[Dict[str, Any]] = None


class SendSignatureResponse(CamelModel):
    success: bool = True
    token: str
    form_link: str
    expires_at: datetime
    message_id: Optional[str] = None


class PrefillUpdateRequest(CamelModel):
    form_data: Dict[str, Any]


class SignatureTokenResponse(CamelModel):
    token: str
    case_id: str
    document_type: DocumentType
    status: TokenStatus
    form_link: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    accessed_at: Optional[datetime] = None
    last_saved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    pdf_url: Optional[str] = None
