from typing import Optional
from datetime import datetime

from modules.notifications.models.notification import NotificationStatus
from schemas import CamelModel

class NotificationResponse(CamelModel):
    id: int
    case_id: Optional[str] = None
    channel: str
    recipient: str
    subject: str
    status: NotificationStatus
    error: Optional[str] = None
    created_at: datetime
