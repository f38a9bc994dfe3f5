from fastapi import APIRouter, Depends, Response

from dependencies import get_document_service
from modules.auth.dependencies import get_current_user
from modules.auth.models.user import User
from modules.documents.services.document_service import DocumentService

router = APIRouter(
    prefix="/documents",
    tags=["documents"]
)

@router.get("/{case_id}/{document_id}")
def download_document(
    case_id: str,
    document_id: str,
    documents: DocumentService = Depends(get_document_service),
    current_user: User = Depends(get_current_user),
):
    """
    Streams the decrypted PDF. The document must belong to ``case_id`` and
    its content must still match the hash recorded at signing time.
    """
    document, data = documents.retrieve(case_id, document_id, current_user)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{document.file_name}"',
            "Cache-Control": "private, max-age=3600",
            "X-Document-Hash": document.sha256_hash,
        },
    )
