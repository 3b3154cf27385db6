# wastetrack/models/audit_log.py
"""
Audit log: one row per mutating operation on containers, centers and types.
Write-only from the services' point of view.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from wastetrack.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id", "created_at"),
        Index("ix_audit_logs_actor", "actor_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Integer)                       # NULL for system actions
    action = Column(String(50), nullable=False)
    entity_type = Column(String(20), nullable=False)  # container | center | type | user
    entity_id = Column(Integer, nullable=False)
    details = Column("metadata", JSON)
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.id} {self.action} {self.entity_type}:{self.entity_id}>"
