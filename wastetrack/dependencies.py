# wastetrack/dependencies.py
"""FastAPI dependencies: authenticated user and role gates."""

from typing import Callable

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from wastetrack.constants import MANAGEMENT_ROLES, Role
from wastetrack.database import get_db
from wastetrack.exceptions import AuthenticationError, AuthorizationError
from wastetrack.models.user import User
from wastetrack.services.auth_service import extract_bearer_token, resolve_user, verify_access_token


def require_user(
    authorization: str | None = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> User:
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Missing bearer token")
    return resolve_user(db, verify_access_token(token))


def require_roles(*roles: Role) -> Callable:
    allowed = {Role(r) for r in roles}

    def dependency(user: User = Depends(require_user)) -> User:
        if Role(user.role) not in allowed:
            raise AuthorizationError("Insufficient permissions")
        return user

    return dependency


require_management = require_roles(*MANAGEMENT_ROLES)
