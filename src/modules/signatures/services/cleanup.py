import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from modules.signatures.repositories.token_repository import TokenRepository

logger = logging.getLogger(__name__)


def delete_expired_tokens(session: Session, retention_days: int = 30, now: Optional[datetime] = None) -> int:
    """Deletes never-completed tokens that expired more than ``retention_days`` ago."""
    now = now or datetime.utcnow()
    cutoff_date = now - timedelta(days=retention_days)
    deleted = TokenRepository(session).delete_expired(cutoff_date)
    if deleted:
        logger.info("Deleted %d signature tokens expired before %s", deleted, cutoff_date.isoformat())
    return deleted
