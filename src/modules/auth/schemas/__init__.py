from .auth_schemas import (
    AccessTokenResponse, LoginRequest, StaffUserCreate, StaffUserListResponse,
    StaffUserResponse, StaffUserUpdate, UserDeletedResponse
)

__all__ = [
    'AccessTokenResponse', 'LoginRequest', 'StaffUserCreate', 'StaffUserListResponse',
    'StaffUserResponse', 'StaffUserUpdate', 'UserDeletedResponse'
]
