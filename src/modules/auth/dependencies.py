from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from exceptions import AccessDeniedError, AuthenticationError
from modules.auth.models.user import User
from modules.auth.services.auth_service import StaffAccountService
from modules.auth.services.permission import can_perform_action

bearer_scheme = HTTPBearer(auto_error=False)


def get_account_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> StaffAccountService:
    return StaffAccountService(db, settings)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    accounts: StaffAccountService = Depends(get_account_service),
) -> User:
    """Resolves the bearer token to an active staff user"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    user = accounts.resolve_token(credentials.credentials)
    if user is None:
        raise AuthenticationError("Invalid or expired access token")
    return user


def require_permission(action: str):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not can_perform_action(current_user.role, action):
            raise AccessDeniedError(
                f"User with role '{current_user.role.value}' cannot perform '{action}'"
            )
        return current_user
    return dependency
