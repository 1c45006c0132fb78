import json


def test_register_returns_user_and_tokens(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "Bob@Example.com", "username": "  bob ", "password": "Secret123!"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "bob@example.com"
    assert body["user"]["username"] == "bob"
    assert body["user"]["role"] == "user"
    assert "password_hash" not in body["user"]
    assert body["tokens"]["token_type"] == "bearer"


def test_register_persists_users_file(client, settings, register_user):
    user, _ = register_user()

    with open(settings.auth.users_file) as f:
        records = json.load(f)
    assert [record["id"] for record in records] == [user["id"]]


def test_duplicate_registration_conflicts(client, register_user):
    register_user()

    response = client.post(
        "/api/auth/register",
        json={"email": "alice@example.com", "username": "alice2", "password": "Secret123!"},
    )

    assert response.status_code == 409
    assert response.json()["detail"]["error"]["type"] == "conflict"


def test_register_validation_errors_are_400(client):
    short = client.post("/api/auth/register", json={"email": "c@example.com", "username": "c", "password": "abc"})
    no_at = client.post("/api/auth/register", json={"email": "not-an-email", "username": "c", "password": "Secret123!"})

    assert short.status_code == 400
    assert no_at.status_code == 400
    assert no_at.json()["detail"]["error"]["type"] == "invalid_request_error"


def test_login(client, register_user):
    register_user()

    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Secret123!"})

    assert response.status_code == 200
    assert response.json()["user"]["last_login"] is not None


def test_login_failure_does_not_reveal_which_part_was_wrong(client, register_user):
    register_user()

    wrong_password = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    unknown_email = client.post("/api/auth/login", json={"email": "who@example.com", "password": "nope"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


def test_refresh_issues_new_pair(client, register_user):
    _, tokens = register_user()

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    assert response.json()["tokens"]["access_token"]


def test_access_token_is_not_a_refresh_token(client, register_user):
    _, tokens = register_user()

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})

    assert response.status_code == 401
    assert response.json()["detail"]["error"]["message"] == "Invalid refresh token"


def test_missing_token_is_401_and_bad_token_is_403(client):
    missing = client.post("/api/auth/change-password", json={
        "current_password": "a", "new_password": "b", "confirm_password": "b"})
    bad = client.post(
        "/api/auth/change-password",
        json={"current_password": "a", "new_password": "b", "confirm_password": "b"},
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert missing.status_code == 401
    assert missing.json()["detail"]["error"]["type"] == "authentication_required"
    assert bad.status_code == 403


def test_change_password_flow(client, user_headers):
    mismatch = client.post("/api/auth/change-password", headers=user_headers, json={
        "current_password": "Secret123!", "new_password": "N3w&Stronger", "confirm_password": "other"})
    weak = client.post("/api/auth/change-password", headers=user_headers, json={
        "current_password": "Secret123!", "new_password": "weak", "confirm_password": "weak"})
    wrong = client.post("/api/auth/change-password", headers=user_headers, json={
        "current_password": "Wrong123!", "new_password": "N3w&Stronger", "confirm_password": "N3w&Stronger"})
    ok = client.post("/api/auth/change-password", headers=user_headers, json={
        "current_password": "Secret123!", "new_password": "N3w&Stronger", "confirm_password": "N3w&Stronger"})

    assert mismatch.status_code == 400
    assert weak.status_code == 400
    assert wrong.status_code == 401
    assert ok.status_code == 200
    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "N3w&Stronger"})
    assert login.status_code == 200


def test_delete_account(client, user_headers):
    wrong = client.post("/api/auth/delete-account", headers=user_headers, json={"password": "nope"})
    ok = client.post("/api/auth/delete-account", headers=user_headers, json={"password": "Secret123!"})

    assert wrong.status_code == 401
    assert ok.status_code == 200
    # The token outlives the account but no longer resolves to a user
    again = client.post("/api/auth/delete-account", headers=user_headers, json={"password": "Secret123!"})
    assert again.status_code == 403


def test_admin_account_cannot_be_deleted(client, admin_headers):
    response = client.post("/api/auth/delete-account", headers=admin_headers, json={"password": "admin123"})

    assert response.status_code == 403
    assert response.json()["detail"]["error"]["type"] == "operation_not_allowed"


def test_init_admin_is_idempotent(client):
    first = client.post("/api/auth/init-admin")
    second = client.post("/api/auth/init-admin")

    assert first.json()["message"] == "Default admin user initialized"
    assert second.json()["message"] == "Admin user already exists"


def test_user_list_is_admin_only(client, user_headers, admin_headers):
    as_user = client.get("/api/auth/users", headers=user_headers)
    as_admin = client.get("/api/auth/users", headers=admin_headers)

    assert as_user.status_code == 403
    assert as_user.json()["detail"]["error"]["type"] == "insufficient_permissions"
    assert as_admin.status_code == 200
    body = as_admin.json()
    assert body["total"] == 2
    assert all("password_hash" not in user for user in body["users"])


def test_validate_password(client):
    strong = client.post("/api/auth/validate-password", json={"password": "Str0ng&Secure"})
    weak = client.post("/api/auth/validate-password", json={"password": "weak"})

    assert strong.json() == {"is_valid": True, "errors": []}
    assert weak.json()["is_valid"] is False
    assert weak.json()["errors"]


def test_health_reports_optional_user(client, user_headers):
    anonymous = client.get("/health")
    signed_in = client.get("/health", headers=user_headers)
    bad_token = client.get("/health", headers={"Authorization": "Bearer garbage"})

    assert anonymous.status_code == 200
    assert anonymous.json()["status"] == "healthy"
    assert anonymous.json()["user"] is None
    assert signed_in.json()["user"] == {"username": "alice", "role": "user"}
    assert bad_token.status_code == 200
    assert bad_token.json()["user"] is None
