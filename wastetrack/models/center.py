# wastetrack/models/center.py
"""Recycling centers. Each center owns a set of containers and a real-time room."""

from sqlalchemy import Column, Integer, String, DateTime, Text, Float, Boolean, JSON
from wastetrack.database import Base


class RecyclingCenter(Base):
    __tablename__ = "recycling_centers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    address = Column(String(300), nullable=False)
    description = Column(Text)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    public_visibility = Column(Boolean, default=True, nullable=False)
    opening_hours = Column(JSON, nullable=False, default=list)   # [{day, open, close}]
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<RecyclingCenter {self.id} {self.name} active={self.active}>"
