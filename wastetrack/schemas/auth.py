# wastetrack/schemas/auth.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from wastetrack.constants import Role
from wastetrack.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    email: str = Field(pattern=r"^\S+@\S+\.\S+$")
    password: str = Field(min_length=8)
    role: Role = Role.USER


class LoginRequest(CamelModel):
    email: str
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class UserOut(CamelModel):
    id: int
    email: str
    role: str
    center_ids: List[int] = []
    locale: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    user: UserOut
