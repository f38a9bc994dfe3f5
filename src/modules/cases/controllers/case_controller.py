from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_document_service
from exceptions import ConflictError, NotFoundError
from modules.auth.dependencies import require_permission
from modules.auth.models.user import User
from modules.cases.models.case import Case
from modules.cases.repositories.case_repository import CaseRepository
from modules.cases.schemas.case_schemas import (
    CaseCreate,
    CaseDeletionResponse,
    CaseResponse,
    SignedDocumentResponse,
)
from modules.cases.services.case_service import CaseService
from modules.documents.services.document_service import DocumentService
from modules.signatures.repositories.token_repository import TokenRepository
from modules.signatures.schemas.signature_schemas import SignatureTokenResponse

router = APIRouter(prefix="/cases", tags=["cases"])

can_manage_cases = require_permission("manage_cases")
can_view_documents = require_permission("view_documents")


def _get_case_or_404(repo: CaseRepository, case_id: str) -> Case:
    case = repo.get_by_id(case_id)
    if not case:
        raise NotFoundError("Case not found")
    return case


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def create_case(
    payload: CaseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_cases),
):
    repo = CaseRepository(db)
    if repo.get_by_number(payload.case_number):
        raise ConflictError(f"Case {payload.case_number} already exists")
    return repo.create(Case(**payload.model_dump()))


@router.get("/by-number/{case_number}", response_model=CaseResponse)
def get_case_by_number(
    case_number: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view_documents),
):
    case = CaseRepository(db).get_by_number(case_number)
    if not case:
        raise NotFoundError("Case not found")
    return case


@router.get("/{case_id}", response_model=CaseResponse)
def get_case(
    case_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_view_documents),
):
    return _get_case_or_404(CaseRepository(db), case_id)


@router.get("/{case_id}/documents", response_model=List[SignedDocumentResponse])
def list_case_documents(
    case_id: str,
    db: Session = Depends(get_db),
    documents: DocumentService = Depends(get_document_service),
    current_user: User = Depends(can_view_documents),
):
    _get_case_or_404(CaseRepository(db), case_id)
    return documents.list_for_case(case_id)


@router.get("/{case_id}/signature-tokens", response_model=List[SignatureTokenResponse])
def list_case_tokens(
    case_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(can_manage_cases),
):
    _get_case_or_404(CaseRepository(db), case_id)
    return TokenRepository(db).list_by_case(case_id)


@router.delete("/{case_id}", response_model=CaseDeletionResponse)
def delete_case(
    case_id: str,
    db: Session = Depends(get_db),
    documents: DocumentService = Depends(get_document_service),
    current_user: User = Depends(can_manage_cases),
):
    deletion = CaseService(db, documents).delete_case(case_id)
    return CaseDeletionResponse(
        message="Case deleted",
        deleted_tokens=deletion.deleted_tokens,
        deleted_documents=deletion.deleted_documents,
    )
