from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from modules.auth.models.user import UserRole
from schemas import CamelModel

MIN_PASSWORD_LENGTH = 8


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class StaffUserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime


class AccessTokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: StaffUserResponse


class StaffUserCreate(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    role: UserRole = UserRole.VIEWER


class StaffUserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=MIN_PASSWORD_LENGTH)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class StaffUserListResponse(CamelModel):
    users: List[StaffUserResponse]
    total: int


class UserDeletedResponse(CamelModel):
    message: str = "User deleted"
    user_id: int
