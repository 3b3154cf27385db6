# wastetrack/models/status_event.py
"""
Status events: append-only log of every accepted fill-state declaration.
Rows are never updated or deleted; alerts and rotation metrics read from here.
"""

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Index
from sqlalchemy.orm import relationship
from wastetrack.database import Base


class StatusEvent(Base):
    __tablename__ = "status_events"
    __table_args__ = (
        Index("ix_status_events_container_created", "container_id", "created_at"),
        Index("ix_status_events_author_created", "author_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    container_id = Column(Integer, ForeignKey("containers.id"), nullable=False)
    new_state = Column(String(10), nullable=False)            # empty | full
    author_id = Column(Integer, ForeignKey("users.id"))       # NULL for sensor / import
    source = Column(String(10), nullable=False)               # user | agent | manager | sensor | import
    comment = Column(String(500))
    evidence_url = Column(String(500))
    confidence = Column(Float, nullable=False, default=1.0)
    created_at = Column(DateTime, nullable=False, index=True)

    author = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<StatusEvent {self.id} container={self.container_id} state={self.new_state}>"
