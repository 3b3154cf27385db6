# wastetrack/schemas/center.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from wastetrack.schemas.base import CamelModel


class GeoPoint(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class OpeningHours(CamelModel):
    day: str
    open: str
    close: str


class CenterCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    geo: GeoPoint
    public_visibility: bool = True
    opening_hours: List[OpeningHours] = []


class CenterUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    address: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    geo: Optional[GeoPoint] = None
    public_visibility: Optional[bool] = None
    opening_hours: Optional[List[OpeningHours]] = None
    active: Optional[bool] = None


class CenterBrief(CamelModel):
    id: int
    name: str
    address: str


class CenterOut(CamelModel):
    id: int
    name: str
    address: str
    description: Optional[str] = None
    lat: float
    lng: float
    public_visibility: bool
    opening_hours: List[OpeningHours] = []
    active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
