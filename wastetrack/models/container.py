# wastetrack/models/container.py
"""
Containers table: current fill state per physical container.
state is a cached snapshot of the latest declaration; the status_events
table is the authoritative history. Never physically deleted (active=False).
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from wastetrack.database import Base


class Container(Base):
    __tablename__ = "containers"
    __table_args__ = (
        Index("ix_containers_center_active", "center_id", "active"),
        Index("ix_containers_state_updated", "state", "updated_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    center_id = Column(Integer, ForeignKey("recycling_centers.id"), nullable=False)
    type_id = Column(Integer, ForeignKey("container_types.id"), nullable=False, index=True)
    label = Column(String(100), nullable=False)
    capacity_liters = Column(Integer)
    state = Column(String(20), nullable=False, default="empty")   # empty | full | maintenance
    location_hint = Column(String(300))
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime, nullable=False)

    center = relationship("RecyclingCenter", lazy="joined")
    type = relationship("ContainerType", lazy="joined")

    def __repr__(self):
        return f"<Container {self.id} {self.label} state={self.state} active={self.active}>"
