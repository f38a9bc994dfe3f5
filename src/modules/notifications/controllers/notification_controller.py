# modules/notifications/controllers/notification_controller.py
from fastapi import APIRouter, Depends
from typing import List

from dependencies import get_notification_service
from modules.auth.dependencies import require_permission
from modules.auth.models.user import User
from modules.notifications.services.notification_service import NotificationService
from modules.notifications.models.schemas import NotificationResponse

router = APIRouter()


@router.get(
    "/cases/{case_id}",
    response_model=List[NotificationResponse],
    summary="Communication log of a case"
)
def list_case_notifications(
    case_id: str,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(require_permission("manage_cases"))
):
    return service.get_case_notifications(case_id)
