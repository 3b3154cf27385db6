# tests/test_auth_service.py
"""Password hashing, JWT issue/verify and registration rules."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import jwt
import pytest
from unittest.mock import MagicMock
from datetime import datetime, timedelta, timezone
from wastetrack.config import settings
from wastetrack.constants import Role
from wastetrack.exceptions import AuthenticationError, AuthorizationError, ConflictError
from wastetrack.services import auth_service


def make_user(role="user"):
    user = MagicMock()
    user.id = 4
    user.email = "alice@example.org"
    user.role = role
    return user


def test_password_hash_roundtrip():
    hashed = auth_service.hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert auth_service.verify_password("s3cret-pass", hashed)
    assert not auth_service.verify_password("wrong", hashed)
    assert not auth_service.verify_password("s3cret-pass", "not-a-hash")


def test_access_token_claims():
    token = auth_service.create_access_token(make_user("agent"))
    claims = auth_service.verify_access_token(token)
    assert claims.user_id == 4
    assert claims.email == "alice@example.org"
    assert claims.role == Role.AGENT


def test_refresh_token_is_not_an_access_token():
    token = auth_service.create_refresh_token(make_user())
    with pytest.raises(AuthenticationError):
        auth_service.verify_access_token(token)


def test_expired_token():
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode({"sub": "4", "email": "a@b.c", "role": "user", "typ": "access",
                        "exp": int(past.timestamp())}, settings.JWT_SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError):
        auth_service.verify_access_token(token)


def test_tampered_token():
    token = auth_service.create_access_token(make_user())
    with pytest.raises(AuthenticationError):
        auth_service.verify_access_token(token[:-2] + "xx")


def test_bearer_extraction():
    assert auth_service.extract_bearer_token("Bearer abc") == "abc"
    assert auth_service.extract_bearer_token("bearer  abc ") == "abc"
    assert auth_service.extract_bearer_token("Basic abc") is None
    assert auth_service.extract_bearer_token(None) is None


def test_management_roles_cannot_self_register():
    with pytest.raises(AuthorizationError):
        auth_service.register_user(MagicMock(), "boss@example.org", "password123", Role.MANAGER)


def test_duplicate_email():
    db = MagicMock()
    db.query.return_value.filter.return_value.first.return_value = make_user()
    with pytest.raises(ConflictError):
        auth_service.register_user(db, "Alice@Example.org", "password123")


def test_role_order():
    assert Role.SUPERADMIN.at_least(Role.MANAGER)
    assert Role.USER.at_least(Role.USER)
    assert not Role.VISITOR.at_least(Role.USER)
