import base64
import io
import os
from datetime import datetime

import pytest
from fastapi import BackgroundTasks
from PyPDF2 import PdfReader

from conftest import CLIENT_EMAIL, create_token, expired_token
from exceptions import AlreadyCompletedError, InvalidRequestError, TokenExpiredError
from modules.cases.repositories.case_repository import CaseRepository
from modules.documents.models.signed_document import SignedDocument
from modules.documents.services import DocumentService, PdfRenderer
from modules.documents.services.encryption import EncryptionMetadata
from modules.documents.services.pdf_renderer import decode_signature_image
from modules.notifications.models.notification import Notification, NotificationStatus
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.notifications.services.notification_service import NotificationService
from modules.signatures.models.signature_token import TokenStatus
from modules.signatures.repositories.token_repository import TokenRepository
from modules.signatures.services import (
    SubmissionService,
    TokenValidator,
    background_completion_email,
    completion_email_hook,
)
from modules.signatures.services.submission_service import document_url


@pytest.fixture
def documents(session, cipher, storage_dir):
    return DocumentService(session, cipher, storage_dir)


@pytest.fixture
def notifications(session, email_sender):
    return NotificationService(NotificationRepository(session), email_sender)


@pytest.fixture
def submissions(session, documents, notifications):
    tokens = TokenRepository(session)
    cases = CaseRepository(session)
    return SubmissionService(
        session=session,
        tokens=tokens,
        validator=TokenValidator(tokens, cases),
        cases=cases,
        documents=documents,
        hooks=[completion_email_hook(notifications)],
    )


def stored_files(storage_dir, case_id):
    case_dir = os.path.join(storage_dir, case_id)
    if not os.path.isdir(case_dir):
        return []
    return os.listdir(case_dir)


def test_submit_completes_token_and_stores_encrypted_pdf(session, case, submissions, storage_dir, sample_pdf):
    token = create_token(session, case).token
    form_data = {"clientName": "Jane Citizen", "clientEmail": CLIENT_EMAIL, "rego": "ABC123"}

    result = submissions.submit(token, form_data, pdf_bytes=sample_pdf, pdf_content_type="application/pdf")

    assert result.case_id == case.id
    assert result.pdf_url == document_url(case.id, result.document_id)

    stored = TokenRepository(session).get_by_token(token)
    assert stored.status == TokenStatus.COMPLETED
    assert stored.completed_at is not None
    assert stored.pdf_url == result.pdf_url
    assert stored.form_data == form_data

    document = session.get(SignedDocument, result.document_id)
    assert document.file_name.startswith(f"claims-form-{case.id}-")
    assert document.file_name.endswith(".pdf")
    assert document.signed_by == "Jane Citizen"
    with open(document.file_path, "rb") as f:
        assert f.read() != sample_pdf
    assert stored_files(storage_dir, case.id) == [f"{document.file_name}.enc"]


def test_second_submit_is_rejected_and_keeps_first_document(session, case, submissions, storage_dir, sample_pdf):
    token = create_token(session, case).token
    first = submissions.submit(token, {"clientName": "Jane"}, pdf_bytes=sample_pdf)

    with pytest.raises(AlreadyCompletedError):
        submissions.submit(token, {"clientName": "Mallory"}, pdf_bytes=sample_pdf)

    stored = TokenRepository(session).get_by_token(token)
    assert stored.pdf_url == first.pdf_url
    assert stored.form_data == {"clientName": "Jane"}
    assert session.query(SignedDocument).count() == 1
    assert len(stored_files(storage_dir, case.id)) == 1


def test_racing_submit_loses_and_leaves_no_artifact(session, case, submissions, storage_dir, sample_pdf, monkeypatch):
    token = create_token(session, case).token
    # both requests passed validation before either committed
    stale = submissions.validator.require_usable(token)
    now = datetime.utcnow()
    first = submissions.submit(token, {"clientName": "Jane"}, pdf_bytes=sample_pdf, now=now)

    monkeypatch.setattr(submissions.validator, "require_usable", lambda token, now=None: stale)
    with pytest.raises(AlreadyCompletedError):
        submissions.submit(token, {"clientName": "Late"}, pdf_bytes=sample_pdf, now=now)

    assert session.query(SignedDocument).count() == 1
    assert len(stored_files(storage_dir, case.id)) == 1
    assert TokenRepository(session).get_by_token(token).pdf_url == first.pdf_url


def test_submissions_in_same_millisecond_get_distinct_files(session, case, submissions, storage_dir, sample_pdf):
    first_token = create_token(session, case).token
    second_token = create_token(session, case).token
    now = datetime.utcnow()

    first = submissions.submit(first_token, {"clientName": "Jane"}, pdf_bytes=sample_pdf, now=now)
    second = submissions.submit(second_token, {"clientName": "Jane"}, pdf_bytes=sample_pdf, now=now)

    assert first.document_id != second.document_id
    assert session.query(SignedDocument).count() == 2
    assert len(stored_files(storage_dir, case.id)) == 2


def test_submit_expired_token(session, case, submissions, sample_pdf):
    token = expired_token(session, case).token
    with pytest.raises(TokenExpiredError):
        submissions.submit(token, {}, pdf_bytes=sample_pdf)
    assert session.query(SignedDocument).count() == 0


def test_submit_rejects_invalid_pdf(session, case, submissions, storage_dir):
    token = create_token(session, case).token
    with pytest.raises(InvalidRequestError):
        submissions.submit(token, {}, pdf_bytes=b"This is not a PDF docx")
    with pytest.raises(InvalidRequestError):
        submissions.submit(token, {}, pdf_bytes=b"%PDF-1.4", pdf_content_type="text/plain")

    assert TokenRepository(session).get_by_token(token).status == TokenStatus.PENDING
    assert stored_files(storage_dir, case.id) == []


def test_submit_requires_pdf_or_signature(session, case, submissions):
    token = create_token(session, case).token
    with pytest.raises(InvalidRequestError):
        submissions.submit(token, {"clientName": "Jane"})
    with pytest.raises(InvalidRequestError):
        submissions.submit(token, "not-an-object")


def test_submit_renders_pdf_from_signature_image(session, case, submissions, documents, signature_png):
    token = create_token(session, case).token
    result = submissions.submit(token, {"clientName": "Jane Citizen", "rego": "ABC123"}, signature_image=signature_png)

    document = session.get(SignedDocument, result.document_id)
    with open(document.file_path, "rb") as f:
        ciphertext = f.read()
    plaintext = documents.cipher.decrypt(
        ciphertext,
        EncryptionMetadata(document.encryption_algorithm, document.encryption_iv, document.encryption_key_version),
    )
    assert plaintext.startswith(b"%PDF")
    assert len(PdfReader(io.BytesIO(plaintext)).pages) >= 1


def test_completion_email_sent_after_commit(session, case, submissions, email_sender, sample_pdf):
    token = create_token(session, case, client_email=CLIENT_EMAIL).token
    submissions.submit(token, {"clientName": "Jane Citizen"}, pdf_bytes=sample_pdf)

    assert len(email_sender.sent) == 1
    assert email_sender.sent[0]["to"] == CLIENT_EMAIL
    assert "CASE-2025-001" in email_sender.sent[0]["subject"]
    log = session.query(Notification).filter(Notification.case_id == case.id).all()
    assert [n.status for n in log] == [NotificationStatus.SENT]


def test_completion_email_shows_signing_date(session, case, submissions, email_sender, sample_pdf):
    token = create_token(session, case, client_email=CLIENT_EMAIL, now=datetime(2025, 3, 14, 9, 0)).token
    submissions.submit(token, {"clientName": "Jane Citizen"}, pdf_bytes=sample_pdf, now=datetime(2025, 3, 14, 10, 0))

    assert "14/03/2025" in email_sender.sent[0]["html"]


def test_background_completion_email_runs_after_submit(session, database, case, documents, email_sender, sample_pdf):
    background_tasks = BackgroundTasks()
    tokens = TokenRepository(session)
    cases = CaseRepository(session)
    service = SubmissionService(
        session=session,
        tokens=tokens,
        validator=TokenValidator(tokens, cases),
        cases=cases,
        documents=documents,
        hooks=[background_completion_email(background_tasks, database, email_sender)],
    )
    token = create_token(session, case, client_email=CLIENT_EMAIL).token

    service.submit(token, {"clientName": "Jane Citizen"}, pdf_bytes=sample_pdf)

    assert email_sender.sent == []
    assert len(background_tasks.tasks) == 1

    task = background_tasks.tasks[0]
    task.func(*task.args, **task.kwargs)

    assert [m["to"] for m in email_sender.sent] == [CLIENT_EMAIL]
    log = session.query(Notification).filter(Notification.case_id == case.id).all()
    assert [n.status for n in log] == [NotificationStatus.SENT]


def test_failed_completion_email_does_not_undo_submission(session, case, submissions, email_sender, sample_pdf):
    email_sender.fail = True
    token = create_token(session, case, client_email=CLIENT_EMAIL).token

    result = submissions.submit(token, {"clientName": "Jane"}, pdf_bytes=sample_pdf)

    assert TokenRepository(session).get_by_token(token).status == TokenStatus.COMPLETED
    assert result.pdf_url
    log = session.query(Notification).filter(Notification.case_id == case.id).all()
    assert [n.status for n in log] == [NotificationStatus.FAILED]


def test_raising_hook_is_isolated(session, case, submissions, sample_pdf):
    calls = []

    def broken_hook(event):
        calls.append(event.case_id)
        raise RuntimeError("webhook down")

    submissions.add_hook(broken_hook)
    token = create_token(session, case).token

    result = submissions.submit(token, {"clientName": "Jane"}, pdf_bytes=sample_pdf)

    assert calls == [case.id]
    assert result.case_id == case.id
    assert TokenRepository(session).get_by_token(token).status == TokenStatus.COMPLETED


def test_decode_signature_image_accepts_data_url(signature_png):
    data_url = "data:image/png;base64," + base64.b64encode(signature_png).decode("ascii")
    assert decode_signature_image(data_url) == signature_png
    assert decode_signature_image(signature_png) == signature_png
    with pytest.raises(InvalidRequestError):
        decode_signature_image("data:image/png;base64,@@@")


def test_renderer_produces_readable_pdf(signature_png):
    pdf = PdfRenderer().render(
        title="Claims Form",
        case_number="CASE-2025-001",
        form_data={"clientName": "Jane"},
        signature_image=signature_png,
        signed_by="Jane",
    )
    assert len(PdfReader(io.BytesIO(pdf)).pages) == 1
