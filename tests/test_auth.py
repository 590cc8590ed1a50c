"""Tests for registration, sign-in and the bearer token guard."""

from datetime import datetime, timedelta, timezone

import jwt


class TestSignup:
    def test_signup_creates_user(self, client):
        response = client.post(
            "/user/signup",
            json={"email": "Alice@Example.com", "password": "secret123", "name": "Alice"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created successfully"
        assert body["user"]["email"] == "alice@example.com"
        assert body["user"]["name"] == "Alice"
        assert "password" not in str(body)

    def test_duplicate_email_rejected(self, client, register):
        register()
        response = client.post(
            "/user/signup",
            json={"email": "alice@example.com", "password": "another1", "name": "A"},
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Email already registered"}

    def test_invalid_payload_lists_every_error(self, client):
        response = client.post(
            "/user/signup", json={"email": "not-an-email", "password": "x", "name": ""}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid data"
        fields = {error["loc"][-1] for error in body["errors"]}
        assert fields == {"email", "password", "name"}


class TestSignin:
    def test_signin_returns_token(self, client, register):
        register()
        response = client.post(
            "/user/signin", json={"email": "alice@example.com", "password": "secret123"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        payload = jwt.decode(body["token"], "test-secret", algorithms=["HS256"])
        assert "exp" in payload

    def test_wrong_password_and_unknown_email_look_the_same(self, client, register):
        register()
        wrong_password = client.post(
            "/user/signin", json={"email": "alice@example.com", "password": "nope123"}
        )
        unknown_email = client.post(
            "/user/signin", json={"email": "carol@example.com", "password": "secret123"}
        )
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json() == {
            "message": "Invalid credentials"
        }


class TestGuard:
    def test_me_returns_caller(self, client, auth_headers):
        response = client.get("/user/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@example.com"

    def test_missing_token(self, client):
        response = client.get("/expense/all")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}

    def test_malformed_token(self, client):
        response = client.get(
            "/expense/all", headers={"Authorization": "Bearer not.a.token"}
        )
        assert response.status_code == 401
        assert response.json() == {"message": "Could not validate credentials"}
        assert response.headers["www-authenticate"] == "Bearer"

    def test_token_signed_with_other_secret(self, client, register):
        register()
        token = jwt.encode({"sub": "1"}, "some-other-secret", algorithm="HS256")
        response = client.get(
            "/expense/all", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    def test_expired_token(self, client, register):
        register()
        token = jwt.encode(
            {"sub": "1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            "test-secret",
            algorithm="HS256",
        )
        response = client.get(
            "/expense/all", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json() == {"message": "Token has expired"}

    def test_token_for_unknown_user(self, client):
        token = jwt.encode(
            {"sub": "999", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "test-secret",
            algorithm="HS256",
        )
        response = client.get("/user/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_out_of_range_subject(self, client):
        token = jwt.encode(
            {"sub": "9" * 30, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "test-secret",
            algorithm="HS256",
        )
        response = client.get("/user/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"message": "Could not validate credentials"}
