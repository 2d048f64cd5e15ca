"""API endpoint tests for registration, login and sessions."""

from src.models.user import User


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_register_user(client, register, blob_store, db):
    """Test user registration."""
    response = register(username="NewUser", email="NewUser@Example.com", cover_image=True)
    assert response.status_code == 201
    data = response.json()
    assert data["username"] == "newuser"
    assert data["email"] == "newuser@example.com"
    assert data["fullName"] == "Alice Liddell"
    assert data["avatar"] == blob_store.uploaded[0]
    assert data["coverImage"] == blob_store.uploaded[1]
    assert data["watchHistory"] == []
    assert "password" not in data
    assert "passwordHash" not in data
    assert "refreshTokenHash" not in data

    user = db.query(User).filter(User.id == data["id"]).one()
    assert user.username == "newuser"
    assert user.password_hash != "testpass123"
    assert user.refresh_token_hash is None


def test_register_removes_temporary_files(register, blob_store):
    """Uploaded parts are spooled to disk and cleaned up afterwards."""
    response = register(cover_image=True)
    assert response.status_code == 201
    assert len(blob_store.uploaded_paths) == 2
    assert all(not path.exists() for path in blob_store.uploaded_paths)


def test_register_duplicate_email(register):
    """Test registration with duplicate email fails."""
    assert register(username="alice").status_code == 201

    response = register(username="someoneelse", email="alice@example.com")
    assert response.status_code == 409
    assert "already exists" in response.json()["detail"]


def test_register_duplicate_username_case_insensitive(register):
    """Usernames are compared after lowercasing."""
    assert register(username="alice").status_code == 201

    response = register(username="ALICE", email="other@example.com")
    assert response.status_code == 409


def test_register_missing_field(register):
    """Blank mandatory fields are rejected."""
    response = register(full_name="   ")
    assert response.status_code == 400
    assert response.json()["detail"] == "All fields are required"


def test_register_invalid_email(register):
    """Test registration with a malformed email."""
    response = register(email="not-an-email")
    assert response.status_code == 400
    assert "email" in response.json()["detail"]


def test_register_requires_avatar(client, blob_store):
    """Avatar upload is mandatory."""
    response = client.post(
        "/api/v1/users/register",
        data={
            "fullName": "No Avatar",
            "username": "noavatar",
            "email": "noavatar@example.com",
            "password": "testpass123",
        },
        files={"coverImage": ("cover.jpg", b"cover", "image/jpeg")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "User avatar is required"
    assert blob_store.uploaded == []


def test_register_upload_failure_creates_nothing(register, blob_store, db):
    """A failed upload aborts registration."""
    blob_store.fail_uploads = True

    response = register()
    assert response.status_code == 500
    assert response.json()["detail"] == "Error while uploading images"
    assert db.query(User).count() == 0


def test_login_with_email(client, auth_headers):
    """Test user login by email."""
    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": "testpass123"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == auth_headers.user_id
    assert data["accessToken"]
    assert data["refreshToken"]
    assert "passwordHash" not in data["user"]


def test_login_with_username_sets_cookies(client, auth_headers):
    """Login by username sets httpOnly, secure token cookies."""
    response = client.post(
        "/api/v1/users/login", json={"username": "ALICE", "password": "testpass123"}
    )
    assert response.status_code == 200

    cookies = response.headers.get_list("set-cookie")
    access = next(c for c in cookies if c.startswith("accessToken="))
    refresh = next(c for c in cookies if c.startswith("refreshToken="))
    for cookie in (access, refresh):
        assert "HttpOnly" in cookie
        assert "Secure" in cookie
    assert access.startswith(f"accessToken={response.json()['accessToken']}")


def test_login_requires_identifier(client):
    """Either email or username must be provided."""
    response = client.post("/api/v1/users/login", json={"password": "testpass123"})
    assert response.status_code == 400


def test_login_unknown_user(client):
    """Test login for a user that does not exist."""
    response = client.post(
        "/api/v1/users/login", json={"email": "nobody@example.com", "password": "testpass123"}
    )
    assert response.status_code == 404


def test_login_wrong_password(client, auth_headers):
    """Test login with wrong password."""
    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": "wrongpass"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid user credentials"


def test_get_current_user(client, auth_headers):
    """Test getting current user info with a bearer header."""
    response = client.get("/api/v1/users/current-user", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email"] == auth_headers.email


def test_get_current_user_from_cookie(client, auth_headers):
    """The access token cookie authenticates too."""
    client.cookies.set("accessToken", auth_headers.access_token)
    response = client.get("/api/v1/users/current-user")
    assert response.status_code == 200
    assert response.json()["id"] == auth_headers.user_id


def test_cookie_takes_precedence_over_header(client, auth_headers):
    """A bad cookie is used even when the header carries a good token."""
    client.cookies.set("accessToken", "garbage")
    response = client.get("/api/v1/users/current-user", headers=auth_headers)
    assert response.status_code == 401


def test_protected_route_requires_token(client):
    """Requests without a token are rejected."""
    response = client.get("/api/v1/users/current-user")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_protected_route_rejects_invalid_token(client):
    response = client.get(
        "/api/v1/users/current-user", headers={"Authorization": "Bearer not.a.token"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_refresh_token_rejects_access_token(client, auth_headers):
    """An access token cannot be exchanged for new tokens."""
    response = client.post("/api/v1/users/refresh-token", headers=auth_headers)
    assert response.status_code == 401


def test_deleted_user_token_rejected(client, auth_headers, db):
    """A valid token for a user that no longer exists is rejected."""
    db.query(User).filter(User.id == auth_headers.user_id).delete()
    db.commit()

    response = client.get("/api/v1/users/current-user", headers=auth_headers)
    assert response.status_code == 401


def test_refresh_token_rotation(client, auth_headers):
    """Refresh tokens are single use."""
    first = auth_headers.refresh_token

    response = client.post(
        "/api/v1/users/refresh-token", headers={"Authorization": f"Bearer {first}"}
    )
    assert response.status_code == 200
    second = response.json()["refreshToken"]
    assert second != first
    assert any(c.startswith("refreshToken=") for c in response.headers.get_list("set-cookie"))

    # Replaying the old token fails
    response = client.post(
        "/api/v1/users/refresh-token", headers={"Authorization": f"Bearer {first}"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Refresh token is expired or already used"

    # The new one still works
    response = client.post(
        "/api/v1/users/refresh-token", headers={"Authorization": f"Bearer {second}"}
    )
    assert response.status_code == 200


def test_refresh_token_from_cookie(client, auth_headers):
    client.cookies.set("refreshToken", auth_headers.refresh_token)
    response = client.post("/api/v1/users/refresh-token")
    assert response.status_code == 200

    new_access = response.json()["accessToken"]
    response = client.get(
        "/api/v1/users/current-user", headers={"Authorization": f"Bearer {new_access}"}
    )
    assert response.status_code == 200


def test_refresh_token_missing(client):
    response = client.post("/api/v1/users/refresh-token")
    assert response.status_code == 401


def test_logout_invalidates_refresh_token(client, auth_headers, db):
    """After logout the refresh token can no longer be rotated."""
    response = client.post("/api/v1/users/logout", headers=auth_headers)
    assert response.status_code == 200
    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith('accessToken=""') or c.startswith("accessToken=;") for c in cookies)

    db.expire_all()
    assert db.get(User, auth_headers.user_id).refresh_token_hash is None

    response = client.post(
        "/api/v1/users/refresh-token",
        headers={"Authorization": f"Bearer {auth_headers.refresh_token}"},
    )
    assert response.status_code == 401

    # Access tokens stay valid until they expire
    response = client.get("/api/v1/users/current-user", headers=auth_headers)
    assert response.status_code == 200


def test_logout_requires_auth(client):
    response = client.post("/api/v1/users/logout")
    assert response.status_code == 401


def test_change_password(client, auth_headers):
    """Test changing the password and logging in with the new one."""
    response = client.post(
        "/api/v1/users/change-password",
        headers=auth_headers,
        json={"oldPassword": "testpass123", "newPassword": "newpass4567"},
    )
    assert response.status_code == 200

    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": "testpass123"}
    )
    assert response.status_code == 400

    response = client.post(
        "/api/v1/users/login", json={"email": auth_headers.email, "password": "newpass4567"}
    )
    assert response.status_code == 200


def test_change_password_wrong_old_password(client, auth_headers):
    response = client.post(
        "/api/v1/users/change-password",
        headers=auth_headers,
        json={"oldPassword": "wrongpass", "newPassword": "newpass4567"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid old password"


def test_change_password_missing_fields(client, auth_headers):
    response = client.post(
        "/api/v1/users/change-password", headers=auth_headers, json={"oldPassword": "testpass123"}
    )
    assert response.status_code == 400
