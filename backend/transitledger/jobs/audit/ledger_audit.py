"""
Offline ledger audit (read-only).

1) route_day_agg replay:
   For every stored (route, service_date) aggregate, re-fold the arrivals rows
   for that key through the same per-arrival contribution the writer uses and
   compare field by field. Keys that have arrivals but no aggregate row are
   reported too. Stored aggregates are never rewritten.

2) event chain:
   Recompute the hash chain of ledger_events per subsystem.

Usage:
  audit_route_day_aggs(db, route="R1", from_date=20240101, to_date=20240131)
  run_ledger_audit(db)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from itertools import groupby
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from transitledger.ledger.events import verify_event_chain
from transitledger.models.arrivals import Arrival
from transitledger.models.job_runs import JobRun
from transitledger.models.route_day_agg import RouteDayAgg
from transitledger.scoring.v1.punctuality import (
    EMPTY_TOTALS,
    ArrivalClassification,
    RouteDayTotals,
    arrival_contribution,
    fold_contributions,
)

logger = logging.getLogger(__name__)

SUBSYSTEMS = ("registry", "reliability")


@dataclass(frozen=True)
class AggMismatch:
    route: str
    service_date: int
    stored: Optional[dict]
    replayed: dict


@dataclass(frozen=True)
class RouteDayAggAuditResult:
    keys_checked: int
    mismatches: list[AggMismatch] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.mismatches


def _totals_of(agg: RouteDayAgg) -> RouteDayTotals:
    return RouteDayTotals(
        n_arrivals=int(agg.n_arrivals),
        n_on_time=int(agg.n_on_time),
        sum_deviation=int(agg.sum_deviation),
        sum_abs_deviation=int(agg.sum_abs_deviation),
        total_dwell=int(agg.total_dwell),
    )


def _replay_query(route: Optional[str], from_date: Optional[int], to_date: Optional[int]):
    q = select(Arrival).order_by(Arrival.route, Arrival.service_date, Arrival.id)

    if route is not None:
        q = q.where(Arrival.route == route)
    if from_date is not None:
        q = q.where(Arrival.service_date >= from_date)
    if to_date is not None:
        q = q.where(Arrival.service_date <= to_date)
    return q


def _contribution_of(a: Arrival) -> RouteDayTotals:
    # on_time as stored: it reflects the threshold at recording time
    c = ArrivalClassification(
        deviation_seconds=int(a.deviation_seconds),
        abs_deviation_seconds=int(a.abs_deviation_seconds),
        on_time=bool(a.on_time),
    )
    return arrival_contribution(c, dwell_seconds=int(a.dwell_seconds))


def audit_route_day_aggs(
    db: Session,
    *,
    route: Optional[str] = None,
    from_date: Optional[int] = None,
    to_date: Optional[int] = None,
) -> RouteDayAggAuditResult:
    rows = db.execute(_replay_query(route, from_date, to_date)).scalars()
    replayed: dict[tuple[str, int], RouteDayTotals] = {
        key: fold_contributions(_contribution_of(a) for a in group)
        for key, group in groupby(rows, key=lambda a: (a.route, int(a.service_date)))
    }

    stored_q = select(RouteDayAgg)
    if route is not None:
        stored_q = stored_q.where(RouteDayAgg.route == route)
    if from_date is not None:
        stored_q = stored_q.where(RouteDayAgg.service_date >= from_date)
    if to_date is not None:
        stored_q = stored_q.where(RouteDayAgg.service_date <= to_date)

    stored: dict[tuple[str, int], RouteDayTotals] = {
        (agg.route, int(agg.service_date)): _totals_of(agg) for agg in db.execute(stored_q).scalars()
    }

    mismatches: list[AggMismatch] = []
    for key in sorted(set(stored) | set(replayed)):
        s = stored.get(key)
        r = replayed.get(key, EMPTY_TOTALS)
        if s != r:
            logger.warning("route_day_agg mismatch route=%s service_date=%s stored=%s replayed=%s", key[0], key[1], s, r)
            mismatches.append(
                AggMismatch(
                    route=key[0],
                    service_date=key[1],
                    stored=asdict(s) if s is not None else None,
                    replayed=asdict(r),
                )
            )

    return RouteDayAggAuditResult(keys_checked=len(set(stored) | set(replayed)), mismatches=mismatches)


# --- job wrapper ---

def _start_job(db: Session, job_name: str, meta: dict) -> uuid.UUID:
    run_id = uuid.uuid4()
    db.add(JobRun(run_id=run_id, job_name=job_name, status="running", meta=meta))
    db.commit()
    return run_id


def _finish_job(db: Session, run_id: uuid.UUID, status: str, meta_updates: dict) -> None:
    jr = db.get(JobRun, run_id)
    jr.status = status
    jr.ended_at = datetime.now(timezone.utc)
    jr.meta = {**(jr.meta or {}), **meta_updates}
    db.commit()


def run_ledger_audit(
    db: Session,
    *,
    route: Optional[str] = None,
    from_date: Optional[int] = None,
    to_date: Optional[int] = None,
    check_aggs: bool = True,
    check_chains: bool = True,
) -> dict:
    run_id = _start_job(
        db,
        "ledger_audit",
        {
            "filters": {"route": route, "from_date": from_date, "to_date": to_date},
            "check_aggs": check_aggs,
            "check_chains": check_chains,
        },
    )

    try:
        payload: dict = {"run_id": str(run_id)}

        if check_aggs:
            agg_result = audit_route_day_aggs(db, route=route, from_date=from_date, to_date=to_date)
            payload["aggs"] = {
                "keys_checked": agg_result.keys_checked,
                "mismatches": [asdict(m) for m in agg_result.mismatches],
            }

        if check_chains:
            payload["chains"] = {s: asdict(verify_event_chain(db, s)) for s in SUBSYSTEMS}

        ok = not payload.get("aggs", {}).get("mismatches") and all(
            c["ok"] for c in payload.get("chains", {}).values()
        )
        payload["ok"] = ok

        _finish_job(db, run_id, "success" if ok else "mismatch", {"result": payload})
        return payload

    except Exception as e:
        db.rollback()
        _finish_job(db, run_id, "fail", {"error": repr(e)})
        raise
