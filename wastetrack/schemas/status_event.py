# wastetrack/schemas/status_event.py
from datetime import datetime
from typing import List, Optional

from wastetrack.schemas.base import CamelModel


class EventAuthor(CamelModel):
    id: int
    email: str
    role: str


class StatusEventOut(CamelModel):
    id: int
    container_id: int
    new_state: str
    author_id: Optional[int] = None
    author: Optional[EventAuthor] = None
    source: str
    comment: Optional[str] = None
    evidence_url: Optional[str] = None
    confidence: float
    created_at: datetime


class StatusHistory(CamelModel):
    events: List[StatusEventOut]
    count: int
