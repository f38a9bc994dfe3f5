import os

import pytest
from sqlalchemy.exc import OperationalError

from conftest import create_token, make_pdf_bytes
from exceptions import NotFoundError
from modules.cases.models.case import Case
from modules.cases.services.case_service import CaseService
from modules.documents.models.signed_document import SignedDocument
from modules.documents.services import DocumentService
from modules.signatures.models.signature_token import DocumentType, SignatureToken


@pytest.fixture
def documents(session, cipher, storage_dir):
    return DocumentService(session, cipher, storage_dir)


@pytest.fixture
def cases(session, documents):
    return CaseService(session, documents)


def store_document(session, documents, case):
    document = documents.store(
        case_id=case.id,
        document_type=DocumentType.CLAIMS_FORM,
        pdf_bytes=make_pdf_bytes(),
        signed_by="Jane Citizen",
    )
    session.commit()
    return document


def test_delete_case_removes_tokens_documents_and_files(session, case, other_case, cases, documents):
    create_token(session, case)
    create_token(session, case, document_type=DocumentType.AUTHORITY_TO_ACT)
    doomed = store_document(session, documents, case)
    kept = store_document(session, documents, other_case)

    deletion = cases.delete_case(case.id)

    assert deletion.deleted_tokens == 2
    assert deletion.deleted_documents == 1
    assert not os.path.exists(doomed.file_path)
    assert os.path.exists(kept.file_path)
    assert session.query(Case).filter(Case.id == case.id).count() == 0
    assert session.query(SignatureToken).count() == 0


def test_failed_commit_keeps_document_files(session, case, cases, documents, monkeypatch):
    document = store_document(session, documents, case)
    file_path = document.file_path

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "commit", failing_commit)
    with pytest.raises(OperationalError):
        cases.delete_case(case.id)
    monkeypatch.undo()

    assert os.path.exists(file_path)
    assert session.query(SignedDocument).count() == 1
    assert session.query(Case).filter(Case.id == case.id).count() == 1


def test_delete_unknown_case(cases):
    with pytest.raises(NotFoundError):
        cases.delete_case("00000000-0000-0000-0000-000000000000")
