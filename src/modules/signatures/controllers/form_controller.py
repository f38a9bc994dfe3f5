import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from dependencies import get_draft_service, get_submission_service, get_token_validator
from exceptions import InvalidRequestError, NotFoundError
from modules.documents.services.pdf_renderer import decode_signature_image
from modules.signatures.models.signature_token import DocumentType, SignatureToken
from modules.signatures.schemas.signature_schemas import (
    DraftRequest,
    DraftResponse,
    FormDataResponse,
    SubmitResponse,
)
from modules.signatures.services.draft_service import DraftService
from modules.signatures.services.submission_service import SubmissionService
from modules.signatures.services.token_validator import TokenValidator

router = APIRouter(prefix="/forms", tags=["forms"])


def _check_document_type(signature_token: Optional[SignatureToken], doc_type: DocumentType) -> None:
    if signature_token is not None and signature_token.document_type != doc_type:
        raise NotFoundError("Invalid or expired token")


@router.get("/{doc_type}/{token}", response_model=FormDataResponse)
def load_form(
    doc_type: DocumentType,
    token: str,
    validator: TokenValidator = Depends(get_token_validator),
):
    """Returns the prefilled or draft form data for an open signature link."""
    signature_token = validator.require_usable(token)
    _check_document_type(signature_token, doc_type)
    return FormDataResponse(
        form_data=signature_token.form_data or {},
        case_id=signature_token.case_id,
        document_type=signature_token.document_type,
        status=signature_token.status,
    )


@router.post("/{doc_type}/{token}/draft", response_model=DraftResponse)
def save_draft(
    doc_type: DocumentType,
    token: str,
    payload: DraftRequest,
    drafts: DraftService = Depends(get_draft_service),
):
    _check_document_type(drafts.tokens.get_by_token(token), doc_type)
    last_saved_at = drafts.save_draft(token, payload.form_data)
    return DraftResponse(last_saved_at=last_saved_at)


@router.post("/{doc_type}/{token}/submit", response_model=SubmitResponse)
async def submit_form(
    doc_type: DocumentType,
    token: str,
    pdf: Optional[UploadFile] = File(None),
    signature: Optional[UploadFile] = File(None),
    signature_data: Optional[str] = Form(None, alias="signatureData"),
    form_data: Optional[str] = Form(None, alias="formData"),
    submissions: SubmissionService = Depends(get_submission_service),
):
    """
    Accepts the signed PDF (``pdf``) or a signature image (``signature`` file
    or ``signatureData`` data URL) together with the final ``formData`` JSON.
    The completion email is sent after the response.
    """
    if not form_data or (pdf is None and signature is None and not signature_data):
        raise InvalidRequestError("Missing PDF file or form data")
    try:
        submitted_data = json.loads(form_data)
    except ValueError:
        raise InvalidRequestError("formData is not valid JSON")

    pdf_bytes = await pdf.read() if pdf is not None else None
    signature_image = None
    if signature is not None:
        signature_image = await signature.read()
    elif signature_data:
        signature_image = decode_signature_image(signature_data)

    def finalize():
        _check_document_type(submissions.tokens.get_by_token(token), doc_type)
        return submissions.submit(
            token,
            submitted_data,
            pdf_bytes=pdf_bytes,
            signature_image=signature_image,
            pdf_content_type=pdf.content_type if pdf is not None else None,
        )

    # storage, encryption and the database commit block
    result = await run_in_threadpool(finalize)
    return SubmitResponse(pdf_url=result.pdf_url, case_id=result.case_id)
