from typing import Optional

from pydantic import BaseModel, Field

from transitledger.api.v1.schemas.common import UINT_MAX
from transitledger.models.arrivals import SECONDS_MAX, TEXT_FIELD_MAX_LEN


class RecordArrivalRequest(BaseModel):
    route: str = Field(..., min_length=1, max_length=TEXT_FIELD_MAX_LEN)
    stop: str = Field(..., min_length=1, max_length=TEXT_FIELD_MAX_LEN)
    vehicle: str = Field(..., min_length=1, max_length=TEXT_FIELD_MAX_LEN)

    actual_ts: int = Field(..., ge=0, le=SECONDS_MAX, description="Seconds since an arbitrary epoch")
    scheduled_ts: int = Field(..., ge=0, le=SECONDS_MAX, description="Same unit/epoch as actual_ts")
    dwell_seconds: int = Field(0, ge=0, le=SECONDS_MAX)
    service_date: int = Field(..., ge=0, le=UINT_MAX, description="Bucket key, e.g. YYYYMMDD")


class RecordedOut(BaseModel):
    id: int


class ArrivalOut(BaseModel):
    id: int
    route: str
    stop: str
    vehicle: str
    actual_ts: int
    scheduled_ts: int
    deviation_seconds: int
    abs_deviation_seconds: int
    on_time: bool
    dwell_seconds: int
    service_date: int


class RouteDayAggOut(BaseModel):
    route: str
    service_date: int

    count: int
    on_time_count: int
    sum_deviation: int
    sum_abs_deviation: int
    total_dwell: int

    # derived on read, whole seconds (floor)
    mean_deviation_seconds: Optional[int]
    mean_abs_deviation_seconds: Optional[int]
    on_time_rate_bps: int = Field(..., ge=0, le=10_000)


class OnTimeRateOut(BaseModel):
    route: str
    service_date: int
    on_time_rate_bps: int = Field(..., ge=0, le=10_000)


class ThresholdIn(BaseModel):
    seconds: int = Field(..., ge=0, le=UINT_MAX)


class ThresholdOut(BaseModel):
    seconds: int
