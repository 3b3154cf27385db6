# wastetrack/models/container_type.py
from sqlalchemy import Column, Integer, String, DateTime
from wastetrack.database import Base


class ContainerType(Base):
    __tablename__ = "container_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(100), unique=True, nullable=False)
    icon = Column(String(100), default="")
    color = Column(String(7), default="#666666")
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<ContainerType {self.id} {self.label}>"
