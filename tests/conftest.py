import base64
import io
import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from reportlab.pdfgen import canvas

from config import Settings, get_settings
from create_tables import create_tables
from database import Database
from main import app
from modules.auth.models.user import User, UserRole
from modules.auth.services.auth_service import create_access_token, hash_password
from modules.cases.models.case import Case
from modules.documents.services.encryption import DocumentCipher
from modules.notifications.services.email_sender import EmailResult, EmailSender
from modules.signatures.models.signature_token import DocumentType
from modules.signatures.repositories.token_repository import TokenRepository

CLIENT_EMAIL = "jane.citizen@claims-portal.com.au"
PUBLIC_BASE_URL = "https://portal.claims-portal.com.au"

# 1x1 PNG
SIGNATURE_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class RecordingEmailSender(EmailSender):
    """Keeps sent messages in memory; set ``fail`` to simulate a provider outage."""

    def __init__(self):
        super().__init__(host="smtp.test.local")
        self.sent = []
        self.fail = False

    def send(self, to_email, subject, body_html, body_text=None):
        if self.fail:
            return EmailResult(success=False, error="provider unavailable")
        self.sent.append({"to": to_email, "subject": subject, "html": body_html})
        return EmailResult(success=True, message_id=f"<msg-{len(self.sent)}@test>")


@pytest.fixture
def database():
    db = Database("sqlite://")
    create_tables(db)
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def session(database):
    s = database.session()
    yield s
    s.close()


@pytest.fixture
def storage_dir(tmp_path):
    return str(tmp_path / "documents")


@pytest.fixture
def cipher():
    return DocumentCipher({1: os.urandom(32)}, 1)


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def settings(storage_dir):
    return Settings(
        DOCUMENT_STORAGE_DIR=storage_dir,
        PUBLIC_BASE_URL=PUBLIC_BASE_URL + "/",
        SIGNATURE_TOKEN_TTL_HOURS=24,
    )


@pytest.fixture
def client(database, cipher, email_sender, settings):
    app.state.database = database
    app.state.cipher = cipher
    app.state.email_sender = email_sender
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def case(session):
    c = Case(
        case_number="CASE-2025-001",
        client_name="Jane Citizen",
        client_email=CLIENT_EMAIL,
        client_phone="0400 000 000",
    )
    session.add(c)
    session.commit()
    session.refresh(c)
    return c


@pytest.fixture
def other_case(session):
    c = Case(case_number="CASE-2025-002", client_name="John Other")
    session.add(c)
    session.commit()
    session.refresh(c)
    return c


def create_user(session, role, email=None, password="secret123", is_active=True):
    user = User(
        name=f"{role.value.title()} User",
        email=email or f"{role.value.lower()}@claims-portal.com.au",
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token(user, get_settings())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(session):
    return create_user(session, UserRole.ADMIN)


@pytest.fixture
def case_manager(session):
    return create_user(session, UserRole.CASE_MANAGER)


@pytest.fixture
def viewer(session):
    return create_user(session, UserRole.VIEWER)


def create_token(session, case, document_type=DocumentType.CLAIMS_FORM, form_data=None,
                 ttl=timedelta(hours=24), now=None, client_email=None):
    return TokenRepository(session).create(
        case_id=case.id,
        document_type=document_type,
        form_data=form_data if form_data is not None else {"clientName": "Jane Citizen"},
        ttl=ttl,
        client_email=client_email,
        now=now,
    )


def expired_token(session, case, document_type=DocumentType.CLAIMS_FORM):
    return create_token(
        session, case, document_type,
        now=datetime.utcnow() - timedelta(hours=25),
    )


def make_pdf_bytes(text="Signed claims form"):
    buf = io.BytesIO()
    c = canvas.Canvas(buf)
    c.drawString(100, 750, text)
    c.save()
    buf.seek(0)
    return buf.read()


@pytest.fixture
def sample_pdf():
    return make_pdf_bytes()


@pytest.fixture
def signature_png():
    return base64.b64decode(SIGNATURE_PNG_B64)
