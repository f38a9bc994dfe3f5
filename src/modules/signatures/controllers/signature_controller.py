from fastapi import APIRouter, Depends, status

from dependencies import get_signature_request_service
from modules.auth.dependencies import require_permission
from modules.auth.models.user import User
from modules.signatures.schemas.signature_schemas import (
    PrefillUpdateRequest,
    SendSignatureRequest,
    SendSignatureResponse,
    SignatureTokenResponse,
)
from modules.signatures.services.signature_request_service import SignatureRequestService

router = APIRouter(prefix="/signatures", tags=["signatures"])


@router.post("/send", response_model=SendSignatureResponse, status_code=status.HTTP_201_CREATED)
def send_for_signature(
    payload: SendSignatureRequest,
    requests: SignatureRequestService = Depends(get_signature_request_service),
    current_user: User = Depends(require_permission("request_signatures")),
):
    """Issues a signature link for a case and emails it to the client."""
    sent = requests.send(
        case_number=payload.case_number,
        document_type=payload.document_type,
        client_email=payload.client_email,
        client_name=payload.client_name,
        form_data=payload.form_data,
    )
    return SendSignatureResponse(
        token=sent.token,
        form_link=sent.form_link,
        expires_at=sent.expires_at,
        message_id=sent.message_id,
    )


@router.patch("/{token}/form-data", response_model=SignatureTokenResponse)
def update_prefill(
    token: str,
    payload: PrefillUpdateRequest,
    requests: SignatureRequestService = Depends(get_signature_request_service),
    current_user: User = Depends(require_permission("request_signatures")),
):
    return requests.refresh_prefill(token, payload.form_data)
