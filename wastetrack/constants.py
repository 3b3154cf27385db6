# wastetrack/constants.py
"""
Shared vocabulary: roles, container states, event sources and audit action codes.
"""

from enum import Enum


class Role(str, Enum):
    """User roles, declared in ascending privilege order."""

    VISITOR = "visitor"
    USER = "user"
    AGENT = "agent"
    MANAGER = "manager"
    SUPERADMIN = "superadmin"

    @property
    def rank(self) -> int:
        return _ROLE_ORDER.index(self)

    def at_least(self, other: "Role") -> bool:
        return self.rank >= Role(other).rank


_ROLE_ORDER = list(Role)

MANAGEMENT_ROLES = frozenset({Role.MANAGER, Role.SUPERADMIN})


class ContainerState(str, Enum):
    EMPTY = "empty"
    FULL = "full"
    MAINTENANCE = "maintenance"


# Only these can be declared; maintenance is a container mode, not a reading
DECLARABLE_STATES = frozenset({ContainerState.EMPTY, ContainerState.FULL})


class EventSource(str, Enum):
    USER = "user"
    AGENT = "agent"
    MANAGER = "manager"
    SENSOR = "sensor"
    IMPORT = "import"


class EntityType(str, Enum):
    CONTAINER = "container"
    CENTER = "center"
    TYPE = "type"
    USER = "user"


class AuditAction:
    CONTAINER_CREATED = "CONTAINER_CREATED"
    CONTAINER_UPDATED = "CONTAINER_UPDATED"
    CONTAINER_SET_FULL = "CONTAINER_SET_FULL"
    CONTAINER_SET_EMPTY = "CONTAINER_SET_EMPTY"
    CONTAINER_MAINTENANCE_ON = "CONTAINER_MAINTENANCE_ON"
    CONTAINER_MAINTENANCE_OFF = "CONTAINER_MAINTENANCE_OFF"
    CONTAINER_DEACTIVATED = "CONTAINER_DEACTIVATED"
    CENTER_CREATED = "CENTER_CREATED"
    CENTER_UPDATED = "CENTER_UPDATED"
    CENTER_DELETED = "CENTER_DELETED"
    CONTAINER_TYPE_CREATED = "CONTAINER_TYPE_CREATED"
    CONTAINER_TYPE_UPDATED = "CONTAINER_TYPE_UPDATED"
    CONTAINER_TYPE_DELETED = "CONTAINER_TYPE_DELETED"


def source_for_role(role: Role) -> EventSource:
    """Map the declaring actor's role to the StatusEvent source."""
    role = Role(role)
    if role == Role.AGENT:
        return EventSource.AGENT
    if role in MANAGEMENT_ROLES:
        return EventSource.MANAGER
    return EventSource.USER


# Real-time channel
STATUS_UPDATED_EVENT = "container.status.updated"
JOIN_CENTER_EVENT = "join:center"
LEAVE_CENTER_EVENT = "leave:center"


def center_room(center_id) -> str:
    return f"center:{center_id}"
