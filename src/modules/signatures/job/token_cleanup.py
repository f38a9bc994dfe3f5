import logging

from apscheduler.schedulers.background import BackgroundScheduler

from database import Database
from modules.signatures.services.cleanup import delete_expired_tokens

logger = logging.getLogger(__name__)


def start_token_cleanup_job(database: Database, retention_days: int, interval_hours: int = 24) -> BackgroundScheduler:
    scheduler = BackgroundScheduler()

    def job():
        with database.session() as session:
            try:
                delete_expired_tokens(session, retention_days)
            except Exception:
                logger.exception("Signature token cleanup failed")

    scheduler.add_job(job, 'interval', hours=interval_hours)
    scheduler.start()
    return scheduler
