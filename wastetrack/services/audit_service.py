# wastetrack/services/audit_service.py
"""
Shared audit trail writer.
Used by container_service, center_service and type_service after every mutation.
"""

from datetime import datetime
from sqlalchemy.orm import Session
from wastetrack.models.audit_log import AuditLog
from wastetrack.utils.logger import get_logger

logger = get_logger(__name__)


def record_audit(db: Session, actor_id, action: str, entity_type, entity_id, metadata: dict = None):
    """Append one audit row. Always commits immediately."""
    entry = AuditLog(actor_id=actor_id, action=action, entity_type=str(getattr(entity_type, "value", entity_type)),
                     entity_id=entity_id, details=metadata or {}, created_at=datetime.utcnow())
    db.add(entry)
    db.commit()
    logger.info(f"[AUDIT][{action}] {entry.entity_type}:{entity_id} actor={actor_id}")
    return entry
