from typing import List
from sqlalchemy import delete
from sqlalchemy.orm import Session

from modules.notifications.models.notification import Notification

class NotificationRepository:
    def __init__(self, db_session: Session):
        self.db = db_session

    def save(self, notification: Notification) -> Notification:
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def find_by_case_id(self, case_id: str) -> List[Notification]:
        return (
            self.db
            .query(Notification)
            .filter(Notification.case_id == case_id)
            .order_by(Notification.created_at.desc())
            .all()
        )

    def delete_by_case_id(self, case_id: str, commit: bool = True) -> int:
        result = self.db.execute(
            delete(Notification).where(Notification.case_id == case_id)
        )
        if commit:
            self.db.commit()
        return result.rowcount
