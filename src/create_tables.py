# create_tables.py
import logging

from config import settings
from database import Base, Database
# Import every model so it registers with Base
from modules.auth.models.user import User
from modules.cases.models.case import Case
from modules.signatures.models.signature_token import SignatureToken
from modules.documents.models.signed_document import SignedDocument
from modules.notifications.models.notification import Notification

logger = logging.getLogger(__name__)


def create_tables(database: Database):
    """Creates every table registered on Base"""
    logger.info("Creating tables: %s", list(Base.metadata.tables.keys()))
    database.create_all()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    db = Database(settings.DATABASE_URL)
    create_tables(db)
    db.dispose()
