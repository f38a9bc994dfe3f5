from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from config import Settings, get_settings
from exceptions import AuthenticationError
from modules.auth.dependencies import get_account_service, get_current_user, require_permission
from modules.auth.models.user import User, UserRole
from modules.auth.schemas import (
    AccessTokenResponse,
    LoginRequest,
    StaffUserCreate,
    StaffUserListResponse,
    StaffUserResponse,
    StaffUserUpdate,
    UserDeletedResponse,
)
from modules.auth.services.auth_service import StaffAccountService, create_access_token

router = APIRouter(prefix="/auth", tags=["authentication"])

can_manage_users = require_permission("manage_users")


@router.post("/login", response_model=AccessTokenResponse)
def login(
    credentials: LoginRequest,
    accounts: StaffAccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
):
    user = accounts.authenticate(credentials.email, credentials.password)
    if user is None:
        raise AuthenticationError("Incorrect email or password")

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return AccessTokenResponse(
        access_token=create_access_token(user, settings, expires),
        expires_in=int(expires.total_seconds()),
        user=StaffUserResponse.model_validate(user),
    )


@router.get("/me", response_model=StaffUserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/register", response_model=StaffUserResponse, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: StaffUserCreate,
    accounts: StaffAccountService = Depends(get_account_service),
    current_user: User = Depends(can_manage_users),
):
    """Creates a staff account (admins only)"""
    return accounts.create_user(payload.name, payload.email, payload.password, payload.role)


@router.get("/users", response_model=StaffUserListResponse)
def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    accounts: StaffAccountService = Depends(get_account_service),
    current_user: User = Depends(can_manage_users),
):
    users, total = accounts.list_users(role=role, is_active=is_active, skip=skip, limit=limit)
    return StaffUserListResponse(users=[StaffUserResponse.model_validate(u) for u in users], total=total)


@router.get("/users/{user_id}", response_model=StaffUserResponse)
def get_user(
    user_id: int,
    accounts: StaffAccountService = Depends(get_account_service),
    current_user: User = Depends(can_manage_users),
):
    return accounts.get_user(user_id)


@router.put("/users/{user_id}", response_model=StaffUserResponse)
def update_user(
    user_id: int,
    payload: StaffUserUpdate,
    accounts: StaffAccountService = Depends(get_account_service),
    current_user: User = Depends(can_manage_users),
):
    return accounts.update_user(user_id, payload.model_dump(exclude_unset=True))


@router.delete("/users/{user_id}", response_model=UserDeletedResponse)
def delete_user(
    user_id: int,
    accounts: StaffAccountService = Depends(get_account_service),
    current_user: User = Depends(can_manage_users),
):
    accounts.delete_user(user_id, acting_user=current_user)
    return UserDeletedResponse(user_id=user_id)
