from conftest import auth_headers, create_user
from modules.auth.models.user import User, UserRole
from modules.auth.services.auth_service import verify_password


def login(client, email, password):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_admin_registers_staff_account(client, session, admin):
    response = client.post(
        "/auth/register",
        json={
            "name": "Casey Manager",
            "email": "Casey.Manager@claims-portal.com.au",
            "password": "first-password",
            "role": "CASE_MANAGER",
        },
        headers=auth_headers(admin),
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["email"] == "casey.manager@claims-portal.com.au"
    assert body["role"] == "CASE_MANAGER"
    assert body["isActive"] is True
    assert "passwordHash" not in body

    stored = session.get(User, body["id"])
    assert stored.password_hash != "first-password"
    assert verify_password("first-password", stored.password_hash)

    assert login(client, "casey.manager@claims-portal.com.au", "first-password").status_code == 200


def test_case_manager_cannot_manage_users(client, case_manager):
    staff = auth_headers(case_manager)
    payload = {"name": "Eve", "email": "eve@claims-portal.com.au", "password": "password-1", "role": "ADMIN"}

    response = client.post("/auth/register", json=payload, headers=staff)
    assert response.status_code == 403
    assert response.json()["code"] == "ACCESS_DENIED"

    assert client.get("/auth/users", headers=staff).status_code == 403
    assert client.delete(f"/auth/users/{case_manager.id}", headers=staff).status_code == 403


def test_register_duplicate_email_conflicts(client, admin, viewer):
    response = client.post(
        "/auth/register",
        json={"name": "Copy", "email": "VIEWER@claims-portal.com.au", "password": "password-1"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


def test_register_rejects_short_password(client, admin):
    response = client.post(
        "/auth/register",
        json={"name": "Short", "email": "short@claims-portal.com.au", "password": "abc"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_admin_cannot_delete_own_account(client, session, admin, viewer):
    headers = auth_headers(admin)

    refused = client.delete(f"/auth/users/{admin.id}", headers=headers)
    assert refused.status_code == 400
    assert refused.json()["error"] == "You cannot delete your own account"

    deleted = client.delete(f"/auth/users/{viewer.id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "User deleted", "userId": viewer.id}
    assert client.get(f"/auth/users/{viewer.id}", headers=headers).status_code == 404


def test_password_change_is_hashed(client, session, admin, viewer):
    response = client.put(
        f"/auth/users/{viewer.id}",
        json={"password": "rotated-password"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200, response.text

    session.expire_all()
    stored = session.get(User, viewer.id)
    assert stored.password_hash != "rotated-password"
    assert verify_password("rotated-password", stored.password_hash)

    assert login(client, viewer.email, "secret123").status_code == 401
    assert login(client, viewer.email, "rotated-password").status_code == 200


def test_role_change_revokes_existing_tokens(client, admin, case_manager):
    old_headers = auth_headers(case_manager)
    assert client.get("/auth/me", headers=old_headers).status_code == 200

    response = client.put(
        f"/auth/users/{case_manager.id}",
        json={"role": "VIEWER"},
        headers=auth_headers(admin),
    )
    assert response.json()["role"] == "VIEWER"

    assert client.get("/auth/me", headers=old_headers).status_code == 401


def test_deactivated_user_cannot_sign_in(client, session, admin):
    user = create_user(session, UserRole.VIEWER, email="leaver@claims-portal.com.au", password="leaver-pass")
    headers = auth_headers(user)

    client.put(f"/auth/users/{user.id}", json={"isActive": False}, headers=auth_headers(admin))

    assert client.get("/auth/me", headers=headers).status_code == 401
    assert login(client, "leaver@claims-portal.com.au", "leaver-pass").status_code == 401


def test_list_users_filters_by_role(client, admin, case_manager, viewer):
    response = client.get("/auth/users", params={"role": "VIEWER"}, headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert [u["email"] for u in body["users"]] == [viewer.email]


def test_missing_or_forged_token_is_unauthenticated(client, admin):
    missing = client.get("/auth/me")
    assert missing.status_code == 401
    assert missing.json()["code"] == "UNAUTHENTICATED"
    assert missing.headers["www-authenticate"] == "Bearer"

    forged = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert forged.status_code == 401
