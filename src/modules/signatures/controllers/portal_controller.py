from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import get_token_validator
from exceptions import AlreadyCompletedError, NotFoundError, TokenExpiredError
from modules.signatures.schemas.signature_schemas import (
    AccessedTokenData,
    MarkAccessedResponse,
    TokenRequest,
    TokenValidationResponse,
)
from modules.signatures.services.token_validator import TokenValidator

router = APIRouter(tags=["signature-portal"])


@router.post("/validate-token", response_model=TokenValidationResponse, response_model_exclude_none=True)
def validate_token(
    payload: TokenRequest,
    validator: TokenValidator = Depends(get_token_validator),
):
    """
    Reports whether a signature link exists and whether it can still be used.
    An unknown token is a normal answer here, not an error.
    """
    result = validator.validate(payload.token)
    return TokenValidationResponse(
        is_valid=result.is_valid,
        is_expired=result.is_expired,
        is_completed=result.is_completed,
        case_number=result.case_number,
        client_name=result.client_name,
        document_type=result.document_type,
        form_link=result.form_link,
        expires_at=result.expires_at,
        error=result.error,
    )


@router.post("/mark-accessed", response_model=MarkAccessedResponse)
def mark_accessed(
    payload: TokenRequest,
    validator: TokenValidator = Depends(get_token_validator),
):
    try:
        signature_token = validator.mark_accessed(payload.token)
    except (NotFoundError, TokenExpiredError, AlreadyCompletedError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid or expired signature token"},
        )

    case = validator.cases.get_by_id(signature_token.case_id)
    return MarkAccessedResponse(
        data=AccessedTokenData(
            case_number=case.case_number if case else None,
            document_type=signature_token.document_type,
            status=signature_token.status,
        )
    )
