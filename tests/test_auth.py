"""
Authentication tests: registration, login, bearer token checks
"""
from surveyhub.auth.security import create_access_token


class TestRegistration:

    def test_register_returns_token_and_user(self, client):
        response = client.post("/v1/auth/register", json={
            "name": "Asha Patil",
            "email": "Asha@Example.com",
            "password": "secret123",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["token"]
        user = body["data"]["user"]
        assert user["email"] == "asha@example.com"
        assert user["name"] == "Asha Patil"
        assert "password" not in user and "passwordHash" not in user

    def test_register_duplicate_email(self, client, make_admin):
        make_admin(email="taken@example.com")
        response = client.post("/v1/auth/register", json={
            "name": "Someone Else",
            "email": "TAKEN@example.com",
            "password": "secret123",
        })

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "DUPLICATE_EMAIL"

    def test_register_short_password(self, client):
        response = client.post("/v1/auth/register", json={
            "name": "Weak",
            "email": "weak@example.com",
            "password": "123",
        })

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "password" in error["details"]["fields"]

    def test_register_invalid_email(self, client):
        response = client.post("/v1/auth/register", json={
            "name": "Bad Email",
            "email": "not-an-email",
            "password": "secret123",
        })

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestLogin:

    def test_login_success(self, client, make_admin):
        make_admin(email="crew.lead@example.com", password="secret123")
        response = client.post("/v1/auth/login", json={"email": "Crew.Lead@example.com", "password": "secret123"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["email"] == "crew.lead@example.com"

    def test_login_wrong_password(self, client, make_admin):
        make_admin(email="crew.lead@example.com", password="secret123")
        response = client.post("/v1/auth/login", json={"email": "crew.lead@example.com", "password": "wrong-one"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"

    def test_login_unknown_email(self, client):
        response = client.post("/v1/auth/login", json={"email": "nobody@example.com", "password": "secret123"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


class TestTokens:

    def test_me_returns_current_admin(self, client, make_admin):
        headers = make_admin(name="Dashboard Owner", email="owner@example.com")
        response = client.get("/v1/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "owner@example.com"

    def test_missing_token(self, client):
        response = client.get("/v1/clients")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NO_TOKEN"

    def test_garbage_token(self, client):
        response = client.get("/v1/clients", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"

    def test_expired_token(self, client, make_admin):
        make_admin()
        me_id = client.post("/v1/auth/login", json={"email": "admin1@surveyhub.example.com", "password": "secret123"}).json()["data"]["user"]["id"]
        token = create_access_token(me_id, ttl_seconds=-60)
        response = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"

    def test_token_for_deleted_admin_is_rejected(self, client):
        token = create_access_token("4a1c2b8e-0000-4000-8000-000000000000")
        response = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"

    def test_logout_is_stateless(self, client, auth):
        response = client.post("/v1/auth/logout", headers=auth)

        assert response.status_code == 200
        assert response.json()["success"] is True
        # The token keeps working; logout only tells the client to forget it
        assert client.get("/v1/auth/me", headers=auth).status_code == 200
