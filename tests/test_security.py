"""Tests for session tokens, invite tokens and request authentication."""
import uuid

import jwt
import pytest

from caretrack.core.config import settings
from caretrack.core.deps import COOKIE_NAME
from caretrack.core.security import (
    build_invite_link,
    create_session_token,
    decode_session_token,
    generate_invite_token,
)

NEW_SECRET = "rotated-secret-for-session-tokens-abcdefghij"


def test_session_token_round_trip():
    user_id = uuid.uuid4()
    payload = decode_session_token(create_session_token(user_id, "patient"))

    assert payload["sub"] == str(user_id)
    assert payload["role"] == "patient"


def test_previous_secret_still_accepted_during_rotation(monkeypatch):
    old_token = create_session_token(uuid.uuid4(), "caretaker")

    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", settings.JWT_SECRET)
    monkeypatch.setattr(settings, "JWT_SECRET", NEW_SECRET)

    assert decode_session_token(old_token)["role"] == "caretaker"


def test_token_rejected_once_previous_secret_cleared(monkeypatch):
    old_token = create_session_token(uuid.uuid4(), "caretaker")

    monkeypatch.setattr(settings, "JWT_SECRET", NEW_SECRET)
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "")

    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(old_token)


def test_invite_tokens_are_unique_and_linkable(monkeypatch):
    monkeypatch.setattr(settings, "FRONTEND_URL", "https://care.example.com/")
    first, second = generate_invite_token(), generate_invite_token()

    assert first != second
    assert len(first) >= 43
    assert build_invite_link(first) == f"https://care.example.com/accept-invite?token={first}"


@pytest.mark.asyncio
async def test_session_cookie_authenticates(client, patient):
    token = create_session_token(patient.id, patient.role)
    client.cookies.set(COOKIE_NAME, token)

    response = await client.get("/permissions")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_garbage_token_is_unauthenticated(client):
    response = await client.get("/permissions", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid session", "error": "not_authenticated"}


@pytest.mark.asyncio
async def test_token_for_deleted_account_is_unauthenticated(client):
    token = create_session_token(uuid.uuid4(), "patient")

    response = await client.get("/permissions", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_stored_role_is_forbidden(client, db, patient):
    token = create_session_token(patient.id, patient.role)
    patient.role = "superuser"
    db.commit()

    response = await client.get("/permissions", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
