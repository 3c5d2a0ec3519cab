from pydantic import BaseModel, Field

from transitledger.api.v1.schemas.common import UINT_MAX, hex_pattern
from transitledger.models.schedules import CONTENT_HASH_LEN, NOTES_MAX_LEN, ROUTE_MAX_LEN, SIGNATURE_LEN


class PublishScheduleRequest(BaseModel):
    route: str = Field(..., min_length=1, max_length=ROUTE_MAX_LEN)
    content_hash: str = Field(..., pattern=hex_pattern(CONTENT_HASH_LEN), description="32-byte digest, hex")
    version: int = Field(..., ge=0, le=UINT_MAX)
    notes: str = Field("", max_length=NOTES_MAX_LEN)
    timestamp: int = Field(..., ge=0, le=UINT_MAX, description="Caller-supplied; not checked against wall clock")
    signature: str = Field(..., pattern=hex_pattern(SIGNATURE_LEN), description="65 bytes, hex; stored unverified")


class PublishedOut(BaseModel):
    id: int


class ScheduleOut(BaseModel):
    id: int
    route: str
    version: int
    content_hash: str
    publisher: str
    notes: str
    timestamp: int
    signature: str
    active: bool


class ScheduleVersionOut(BaseModel):
    schedule_id: int
    version: int
    content_hash: str
    notes: str
    timestamp: int


class RouteLatestOut(BaseModel):
    route: str
    id: int
    version: int


class RouteVersionOut(BaseModel):
    route: str
    version: int
    id: int
