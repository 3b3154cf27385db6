# wastetrack/models/user.py
"""
Users table. Role drives authorization; center_ids scopes what a manager sees
in listings (read filtering only, never used to deny writes).
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from wastetrack.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # visitor | user | agent | manager | superadmin
    center_ids = Column(JSON, nullable=False, default=list)
    locale = Column(String(10), default="fr")
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)
    last_login_at = Column(DateTime)

    def __repr__(self):
        return f"<User {self.id} {self.email} role={self.role}>"
