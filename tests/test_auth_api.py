from __future__ import annotations

import time

import jwt

from bookkeeping.security.rate_limiter import SlidingWindowRateLimiter
from bookkeeping.security.tokens import decode_session_token
from conftest import user_payload


def test_register_then_login_issues_session_for_created_identity(api_client, settings):
    payload = user_payload(email="a@x.com")
    created = api_client.post("/auth/register", json=payload)
    assert created.status_code == 201
    body = created.json()
    assert body["email"] == "a@x.com"
    assert body["status"] == "active"
    assert body["email_verified"] is False
    assert "password" not in body and "password_hash" not in body

    login = api_client.post("/auth/login", json={"email": "a@x.com", "password": payload["password"]})
    assert login.status_code == 200
    data = login.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == settings.jwt_ttl_seconds
    assert data["user"]["id"] == body["id"]

    claims = decode_session_token(data["access_token"], settings)
    assert claims["sub"] == body["id"]
    assert claims["email"] == "a@x.com"
    assert claims["exp"] - claims["iat"] == settings.jwt_ttl_seconds


def test_password_is_stored_hashed(api_client, app):
    payload = user_payload()
    api_client.post("/auth/register", json=payload)
    stored = app.state.auth_service._repository.get_by_email(payload["email"])
    assert stored.password_hash != payload["password"]
    assert payload["password"] not in stored.password_hash


def test_register_duplicate_email_conflicts(api_client):
    payload = user_payload()
    assert api_client.post("/auth/register", json=payload).status_code == 201
    duplicate = api_client.post("/auth/register", json=user_payload(email=payload["email"].upper()))
    assert duplicate.status_code == 409


def test_register_duplicate_cpf_conflicts(api_client):
    payload = user_payload()
    assert api_client.post("/auth/register", json=payload).status_code == 201
    duplicate = api_client.post("/auth/register", json=user_payload(cpf=payload["cpf"]))
    assert duplicate.status_code == 409


def test_register_validates_fields(api_client):
    response = api_client.post("/auth/register", json=user_payload(password="123", gender="robot"))
    assert response.status_code == 400
    locations = {tuple(error["loc"]) for error in response.json()["errors"]}
    assert ("body", "password") in locations
    assert ("body", "gender") in locations


def test_register_rejects_namespace_markers_in_identity_mode(api_client):
    response = api_client.post(
        "/auth/register", json=user_payload(user_ns="acme", token_talkbi="tok")
    )
    assert response.status_code == 400


def test_users_post_is_registration_alias(api_client):
    response = api_client.post("/users", json=user_payload())
    assert response.status_code == 201


def test_login_with_wrong_password_is_unauthenticated(api_client):
    payload = user_payload()
    api_client.post("/auth/register", json=payload)
    response = api_client.post(
        "/auth/login", json={"email": payload["email"], "password": "not-the-password"}
    )
    assert response.status_code == 401
    assert "access_token" not in response.json()
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_login_with_unknown_email_is_unauthenticated(api_client):
    response = api_client.post(
        "/auth/login", json={"email": "ghost@example.com", "password": "whatever"}
    )
    assert response.status_code == 401


def test_login_with_unknown_email_still_runs_password_hashing(api_client, monkeypatch):
    calls = []
    monkeypatch.setattr("bookkeeping.domain.auth.dummy_verify", lambda: calls.append(True))

    response = api_client.post(
        "/auth/login", json={"email": "ghost@example.com", "password": "whatever"}
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "invalid credentials"}
    assert calls == [True]

    payload = user_payload()
    api_client.post("/auth/register", json=payload)
    api_client.post("/auth/login", json={"email": payload["email"], "password": "nope"})
    assert calls == [True]


def test_expired_session_is_rejected(api_client, settings, register_and_login):
    user_id, _ = register_and_login()
    now = int(time.time())
    expired = jwt.encode(
        {"sub": user_id, "email": "x", "iss": settings.jwt_issuer, "iat": now - 100, "exp": now - 10},
        settings.jwt_secret,
        algorithm="HS256",
    )
    response = api_client.get("/payables", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_token_signed_with_other_secret_is_rejected(api_client, settings, register_and_login):
    user_id, _ = register_and_login()
    now = int(time.time())
    forged = jwt.encode(
        {"sub": user_id, "iss": settings.jwt_issuer, "iat": now, "exp": now + 60},
        "another-secret",
        algorithm="HS256",
    )
    response = api_client.get("/payables", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401


def test_missing_or_malformed_authorization_header(api_client):
    assert api_client.get("/payables").status_code == 401
    assert api_client.get("/payables", headers={"Authorization": "Basic abc"}).status_code == 401
    assert api_client.get("/payables", headers={"Authorization": "Bearer"}).status_code == 401


def test_session_of_deleted_account_is_rejected(api_client, register_and_login):
    user_id, headers = register_and_login()
    assert api_client.delete(f"/users/{user_id}", headers=headers).status_code == 200
    assert api_client.get("/users/me", headers=headers).status_code == 401


def test_login_is_rate_limited(api_client, app):
    app.state.rate_limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60)
    body = {"email": "limit@example.com", "password": "whatever"}

    first = api_client.post("/auth/login", json=body)
    second = api_client.post("/auth/login", json=body)
    third = api_client.post("/auth/login", json=body)

    assert first.status_code == 401
    assert second.status_code == 401
    assert third.status_code == 429
    assert third.json()["detail"] == "rate limited"
