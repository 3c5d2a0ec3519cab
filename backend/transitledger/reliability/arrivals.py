"""
Reliability aggregator: immutable arrival events + online route/day rollup.

record_arrival writes one arrivals row and adds that event's contribution
into route_day_agg(route, service_date) in the same transaction. The
aggregate is never rebuilt from arrivals; because every field is a plain
sum, its value does not depend on the order arrivals were recorded in.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from transitledger.core.config import get_settings
from transitledger.ledger.access import AccessControl
from transitledger.ledger.counters import ARRIVALS, next_id
from transitledger.ledger.events import append_event, lock_chain
from transitledger.ledger.tx import atomic
from transitledger.models.access import ReliabilityAdmin, ReliabilityOperator
from transitledger.models.arrivals import SECONDS_MAX, TEXT_FIELD_MAX_LEN, Arrival
from transitledger.models.reliability_settings import ReliabilitySettings
from transitledger.models.route_day_agg import BIGINT_MAX, RouteDayAgg
from transitledger.scoring.v1.punctuality import (
    EMPTY_TOTALS,
    RouteDayTotals,
    add_totals,
    arrival_contribution,
    classify_arrival,
    on_time_rate_bps as _rate_bps,
)

SUBSYSTEM = "reliability"
OPERATOR_ROLE = "operator"
SETTINGS_SLOT = 1

access = AccessControl(
    subsystem=SUBSYSTEM,
    role=OPERATOR_ROLE,
    admin_model=ReliabilityAdmin,
    member_model=ReliabilityOperator,
)


def bootstrap_admin(db: Session, caller: str, *, commit: bool = True) -> str:
    return access.bootstrap_admin(db, caller, commit=commit)


def grant_operator(db: Session, caller: str, identity: str, *, commit: bool = True) -> None:
    access.grant(db, caller, identity, commit=commit)


def revoke_operator(db: Session, caller: str, identity: str, *, commit: bool = True) -> None:
    access.revoke(db, caller, identity, commit=commit)


# --- threshold ---

def get_late_threshold(db: Session) -> int:
    row = db.get(ReliabilitySettings, SETTINGS_SLOT)
    if row is None:
        return get_settings().late_threshold_default_seconds
    return int(row.late_threshold_seconds)


def set_late_threshold(db: Session, caller: str, seconds: int, *, commit: bool = True) -> int:
    """
    Replace the on-time threshold. Only arrivals recorded afterwards see it;
    stored on_time flags are never recomputed.
    """
    if seconds < 0:
        raise ValueError("threshold must be unsigned")

    with atomic(db, "reliability.set_late_threshold", commit=commit):
        lock_chain(db, SUBSYSTEM)
        access.require_admin(db, caller)

        row = db.get(ReliabilitySettings, SETTINGS_SLOT)
        previous = get_late_threshold(db)
        if row is None:
            db.add(ReliabilitySettings(slot=SETTINGS_SLOT, late_threshold_seconds=seconds, updated_by=caller))
        else:
            row.late_threshold_seconds = seconds
            row.updated_by = caller

        append_event(
            db,
            subsystem=SUBSYSTEM,
            event_name="threshold.updated",
            actor=caller,
            payload={"previous_seconds": previous, "seconds": seconds},
        )

    return seconds


# --- arrivals ---

def _validate_arrival_args(
    route: str, stop: str, vehicle: str, actual_ts: int, scheduled_ts: int, dwell_seconds: int, service_date: int
) -> None:
    for name, value in (("route", route), ("stop", stop), ("vehicle", vehicle)):
        if not value or len(value) > TEXT_FIELD_MAX_LEN:
            raise ValueError(f"{name} must be 1..{TEXT_FIELD_MAX_LEN} characters")
    for name, value in (("actual_ts", actual_ts), ("scheduled_ts", scheduled_ts), ("dwell_seconds", dwell_seconds)):
        if not 0 <= int(value) <= SECONDS_MAX:
            raise ValueError(f"{name} must be in 0..{SECONDS_MAX}")
    if not 0 <= int(service_date) <= BIGINT_MAX:
        raise ValueError(f"service_date must be in 0..{BIGINT_MAX}")


def _apply_to_aggregate(db: Session, route: str, service_date: int, contrib: RouteDayTotals) -> RouteDayAgg:
    agg = db.get(RouteDayAgg, (route, service_date))
    current = EMPTY_TOTALS if agg is None else RouteDayTotals(
        n_arrivals=int(agg.n_arrivals),
        n_on_time=int(agg.n_on_time),
        sum_deviation=int(agg.sum_deviation),
        sum_abs_deviation=int(agg.sum_abs_deviation),
        total_dwell=int(agg.total_dwell),
    )
    totals = add_totals(current, contrib)
    # sum_deviation never exceeds sum_abs_deviation in magnitude
    if max(totals.sum_abs_deviation, totals.total_dwell) > BIGINT_MAX:
        raise ValueError(f"route {route!r} day {service_date} aggregate would overflow")

    if agg is None:
        agg = RouteDayAgg(route=route, service_date=service_date)
        db.add(agg)
    agg.n_arrivals = totals.n_arrivals
    agg.n_on_time = totals.n_on_time
    agg.sum_deviation = totals.sum_deviation
    agg.sum_abs_deviation = totals.sum_abs_deviation
    agg.total_dwell = totals.total_dwell
    return agg


def record_arrival(
    db: Session,
    caller: str,
    *,
    route: str,
    stop: str,
    vehicle: str,
    actual_ts: int,
    scheduled_ts: int,
    dwell_seconds: int,
    service_date: int,
    commit: bool = True,
) -> int:
    """
    Record one arrival and fold it into its route/day aggregate. Returns the arrival id.

    Not idempotent: every successful call mints a new id, so callers that may
    retry must de-duplicate upstream.
    """
    _validate_arrival_args(route, stop, vehicle, actual_ts, scheduled_ts, dwell_seconds, service_date)

    with atomic(db, "reliability.record_arrival", commit=commit):
        lock_chain(db, SUBSYSTEM)
        access.require_writer(db, caller)

        threshold = get_late_threshold(db)
        c = classify_arrival(actual_ts=actual_ts, scheduled_ts=scheduled_ts, threshold_seconds=threshold)

        arrival_id = next_id(db, ARRIVALS)
        db.add(
            Arrival(
                id=arrival_id,
                route=route,
                stop=stop,
                vehicle=vehicle,
                actual_ts=actual_ts,
                scheduled_ts=scheduled_ts,
                deviation_seconds=c.deviation_seconds,
                abs_deviation_seconds=c.abs_deviation_seconds,
                on_time=c.on_time,
                dwell_seconds=dwell_seconds,
                service_date=service_date,
            )
        )
        _apply_to_aggregate(db, route, service_date, arrival_contribution(c, dwell_seconds=dwell_seconds))

        append_event(
            db,
            subsystem=SUBSYSTEM,
            event_name="arrival.recorded",
            actor=caller,
            subject_id=arrival_id,
            payload={"id": arrival_id, "route": route, "stop": stop, "on_time": c.on_time},
        )

    return arrival_id


# --- read-only queries: absent keys return None / 0 ---

def get_arrival(db: Session, arrival_id: int) -> Optional[Arrival]:
    return db.get(Arrival, arrival_id)


def get_aggregate(db: Session, route: str, service_date: int) -> Optional[RouteDayAgg]:
    return db.get(RouteDayAgg, (route, service_date))


def on_time_rate_bps(db: Session, route: str, service_date: int) -> int:
    agg = get_aggregate(db, route, service_date)
    if agg is None:
        return 0
    return _rate_bps(n_on_time=int(agg.n_on_time), n_arrivals=int(agg.n_arrivals))


def is_operator(db: Session, identity: str) -> bool:
    return access.has_role(db, identity)


def get_admin(db: Session) -> Optional[str]:
    return access.get_admin(db)
