from modules.auth.models.user import UserRole

ROLE_PERMISSIONS = {
    UserRole.VIEWER: ["view_documents"],
    UserRole.CASE_MANAGER: ["view_documents", "manage_cases", "request_signatures"],
    UserRole.ADMIN: ["view_documents", "manage_cases", "request_signatures", "manage_users"],
}

def can_perform_action(user_role: UserRole, action: str) -> bool:
    return action in ROLE_PERMISSIONS.get(user_role, [])
