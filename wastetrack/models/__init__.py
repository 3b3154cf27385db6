# WasteTrack: Database Models
# Import all models here for SQLAlchemy discovery

from wastetrack.models.user import User                       # noqa
from wastetrack.models.center import RecyclingCenter          # noqa
from wastetrack.models.container_type import ContainerType    # noqa
from wastetrack.models.container import Container             # noqa
from wastetrack.models.status_event import StatusEvent        # noqa
from wastetrack.models.audit_log import AuditLog              # noqa
