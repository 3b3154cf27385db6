# wastetrack/services/auth_service.py
"""
Identity service: password hashing (Argon2), JWT issue/verify (HS256),
registration, login and token refresh.
Claims carried by access tokens: sub (user id), email, role, typ=access.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy.orm import Session

from wastetrack.config import settings
from wastetrack.constants import MANAGEMENT_ROLES, Role
from wastetrack.exceptions import AuthenticationError, AuthorizationError, ConflictError
from wastetrack.models.user import User
from wastetrack.utils.logger import get_logger

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

_password_hasher = PasswordHasher()


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str
    role: Role


# ── Passwords ────────────────────────────────────────────────────────────────
def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


# ── Tokens ───────────────────────────────────────────────────────────────────
def _encode(payload: dict, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**payload, "iat": int(now.timestamp()), "exp": int((now + ttl).timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_access_token(user: User) -> str:
    return _encode(
        {"sub": str(user.id), "email": user.email, "role": user.role, "typ": TOKEN_TYPE_ACCESS},
        timedelta(minutes=settings.JWT_ACCESS_TTL_MINUTES),
    )


def create_refresh_token(user: User) -> str:
    return _encode(
        {"sub": str(user.id), "typ": TOKEN_TYPE_REFRESH},
        timedelta(days=settings.JWT_REFRESH_TTL_DAYS),
    )


def _decode(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM],
                          options={"require": ["sub", "exp"]})
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid token") from exc


def verify_access_token(token: str) -> TokenClaims:
    """Verify signature, expiry and claims of an access token."""
    payload = _decode(token)
    if payload.get("typ", TOKEN_TYPE_ACCESS) != TOKEN_TYPE_ACCESS:
        raise AuthenticationError("Invalid token type")
    try:
        return TokenClaims(user_id=int(payload["sub"]), email=str(payload["email"]),
                           role=Role(payload["role"]))
    except (KeyError, ValueError) as exc:
        raise AuthenticationError("Invalid token") from exc


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def resolve_user(db: Session, claims: TokenClaims) -> User:
    """The token's user must still exist."""
    user = db.query(User).filter(User.id == claims.user_id).first()
    if not user:
        raise AuthenticationError("User not found")
    return user


# ── Account operations ───────────────────────────────────────────────────────
def register_user(db: Session, email: str, password: str, role: Role = Role.USER) -> User:
    role = Role(role)
    if role in MANAGEMENT_ROLES:
        raise AuthorizationError("Management accounts cannot be self-registered")

    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("A user with this email already exists")

    now = datetime.utcnow()
    user = User(email=email, password_hash=hash_password(password), role=role.value,
                center_ids=[], locale="fr", created_at=now, updated_at=now)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User registered: {user.email} role={user.role}")
    return user


def login(db: Session, email: str, password: str) -> tuple[User, str, str]:
    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    user.last_login_at = datetime.utcnow()
    db.commit()
    return user, create_access_token(user), create_refresh_token(user)


def refresh_access_token(db: Session, refresh_token: str) -> str:
    payload = _decode(refresh_token)
    if payload.get("typ") != TOKEN_TYPE_REFRESH:
        raise AuthenticationError("Invalid token")
    try:
        user_id = int(payload["sub"])
    except ValueError as exc:
        raise AuthenticationError("Invalid token") from exc
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User not found")
    return create_access_token(user)
