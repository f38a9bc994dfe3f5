import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings
from create_tables import create_tables
from database import Database
from exceptions import register_exception_handlers

from modules.auth.models.user import User, UserRole
from modules.auth.services.auth_service import StaffAccountService
from modules.documents.services.encryption import build_cipher
from modules.notifications.services.email_sender import EmailSender
from modules.signatures.job import start_token_cleanup_job
from modules.auth.controllers.auth_controller import router as auth_router
from modules.cases.controllers.case_controller import router as case_router
from modules.documents.controllers.document_controller import router as document_router
from modules.notifications.controllers.notification_controller import router as notification_router
from modules.signatures.controllers.form_controller import router as form_router
from modules.signatures.controllers.portal_controller import router as portal_router
from modules.signatures.controllers.signature_controller import router as signature_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup logic ---
    logger.info("Starting application (%s)", settings.ENVIRONMENT)
    database = Database(settings.DATABASE_URL, echo=settings.DEBUG)
    create_tables(database)
    app.state.database = database
    app.state.cipher = build_cipher(settings)
    app.state.email_sender = EmailSender.from_settings(settings)
    _seed_admin(database)
    scheduler = start_token_cleanup_job(
        database,
        retention_days=settings.TOKEN_RETENTION_DAYS,
        interval_hours=settings.TOKEN_CLEANUP_INTERVAL_HOURS,
    )
    logger.info("Signature token cleanup job started")
    yield
    # --- Shutdown logic ---
    scheduler.shutdown(wait=False)
    database.dispose()
    logger.info("Application stopped")


def _seed_admin(database: Database):
    """Creates the first admin account when the users table is empty."""
    if not settings.SEED_ADMIN_EMAIL or not settings.SEED_ADMIN_PASSWORD:
        return
    with database.session() as session:
        if session.query(User).count() > 0:
            return

        admin = StaffAccountService(session, settings).create_user(
            "Administrator", settings.SEED_ADMIN_EMAIL, settings.SEED_ADMIN_PASSWORD, UserRole.ADMIN
        )
        logger.info("Seeded admin account %s", admin.email)


app = FastAPI(
    title="Claims Signature Portal",
    description="Secure signature links, draft saving and encrypted storage of signed claim documents",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=[
        "Accept",
        "Accept-Language",
        "Content-Language",
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Origin",
    ],
    expose_headers=["Content-Disposition", "X-Document-Hash"],
    max_age=86400,
)
register_exception_handlers(app)

# Routers
app.include_router(auth_router)
app.include_router(portal_router)
app.include_router(form_router)
app.include_router(signature_router)
app.include_router(document_router)
app.include_router(case_router)
app.include_router(notification_router, prefix="/notifications", tags=["notifications"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
