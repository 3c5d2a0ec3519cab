from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from transitledger.api.v1.schemas.common import AdminOut, ErrorOut, RoleChangeOut
from transitledger.api.v1.schemas.reliability import (
    ArrivalOut,
    OnTimeRateOut,
    RecordArrivalRequest,
    RecordedOut,
    RouteDayAggOut,
    ThresholdIn,
    ThresholdOut,
)
from transitledger.core.deps import get_caller, get_db
from transitledger.reliability import arrivals
from transitledger.scoring.v1.punctuality import mean_floor, on_time_rate_bps

router = APIRouter(prefix="/v1/reliability", tags=["reliability"])

ERROR_RESPONSES = {
    403: {"model": ErrorOut},
    409: {"model": ErrorOut},
}


# --- administration ---

@router.post("/admin/bootstrap", response_model=AdminOut, responses=ERROR_RESPONSES)
def bootstrap_admin(caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    return AdminOut(admin=arrivals.bootstrap_admin(db, caller))


@router.get("/admin", response_model=Optional[AdminOut])
def get_admin(db: Session = Depends(get_db)):
    admin = arrivals.get_admin(db)
    return AdminOut(admin=admin) if admin is not None else None


@router.put("/operators/{identity:path}", response_model=RoleChangeOut, responses=ERROR_RESPONSES)
def grant_operator(identity: str, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    arrivals.grant_operator(db, caller, identity)
    return RoleChangeOut(role=arrivals.OPERATOR_ROLE, identity=identity, member=True)


@router.delete("/operators/{identity:path}", response_model=RoleChangeOut, responses=ERROR_RESPONSES)
def revoke_operator(identity: str, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    arrivals.revoke_operator(db, caller, identity)
    return RoleChangeOut(role=arrivals.OPERATOR_ROLE, identity=identity, member=False)


@router.get("/operators/{identity:path}", response_model=RoleChangeOut)
def get_operator(identity: str, db: Session = Depends(get_db)):
    return RoleChangeOut(role=arrivals.OPERATOR_ROLE, identity=identity, member=arrivals.is_operator(db, identity))


@router.get("/threshold", response_model=ThresholdOut)
def get_threshold(db: Session = Depends(get_db)):
    return ThresholdOut(seconds=arrivals.get_late_threshold(db))


@router.put("/threshold", response_model=ThresholdOut, responses=ERROR_RESPONSES)
def set_threshold(body: ThresholdIn, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    return ThresholdOut(seconds=arrivals.set_late_threshold(db, caller, body.seconds))


# --- arrivals ---

@router.post("/arrivals", response_model=RecordedOut, status_code=201, responses=ERROR_RESPONSES)
def record_arrival(body: RecordArrivalRequest, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    arrival_id = arrivals.record_arrival(
        db,
        caller,
        route=body.route,
        stop=body.stop,
        vehicle=body.vehicle,
        actual_ts=body.actual_ts,
        scheduled_ts=body.scheduled_ts,
        dwell_seconds=body.dwell_seconds,
        service_date=body.service_date,
    )
    return RecordedOut(id=arrival_id)


@router.get("/arrivals/{arrival_id}", response_model=Optional[ArrivalOut])
def get_arrival(arrival_id: int, db: Session = Depends(get_db)):
    a = arrivals.get_arrival(db, arrival_id)
    if a is None:
        return None
    return ArrivalOut(
        id=int(a.id),
        route=a.route,
        stop=a.stop,
        vehicle=a.vehicle,
        actual_ts=int(a.actual_ts),
        scheduled_ts=int(a.scheduled_ts),
        deviation_seconds=int(a.deviation_seconds),
        abs_deviation_seconds=int(a.abs_deviation_seconds),
        on_time=bool(a.on_time),
        dwell_seconds=int(a.dwell_seconds),
        service_date=int(a.service_date),
    )


# --- aggregates ---

# route names may contain "/"; clients percent-encode them
@router.get("/routes/{route:path}/days/{service_date}", response_model=Optional[RouteDayAggOut])
def get_aggregate(route: str, service_date: int, db: Session = Depends(get_db)):
    agg = arrivals.get_aggregate(db, route, service_date)
    if agg is None:
        return None

    n = int(agg.n_arrivals)
    return RouteDayAggOut(
        route=agg.route,
        service_date=int(agg.service_date),
        count=n,
        on_time_count=int(agg.n_on_time),
        sum_deviation=int(agg.sum_deviation),
        sum_abs_deviation=int(agg.sum_abs_deviation),
        total_dwell=int(agg.total_dwell),
        mean_deviation_seconds=mean_floor(int(agg.sum_deviation), n),
        mean_abs_deviation_seconds=mean_floor(int(agg.sum_abs_deviation), n),
        on_time_rate_bps=on_time_rate_bps(n_on_time=int(agg.n_on_time), n_arrivals=n),
    )


@router.get("/routes/{route:path}/days/{service_date}/on-time-rate", response_model=OnTimeRateOut)
def get_on_time_rate(route: str, service_date: int, db: Session = Depends(get_db)):
    return OnTimeRateOut(
        route=route,
        service_date=service_date,
        on_time_rate_bps=arrivals.on_time_rate_bps(db, route, service_date),
    )
