from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

BPS_SCALE = 10_000


@dataclass(frozen=True)
class ArrivalClassification:
    deviation_seconds: int
    abs_deviation_seconds: int
    on_time: bool


@dataclass(frozen=True)
class RouteDayTotals:
    n_arrivals: int
    n_on_time: int
    sum_deviation: int
    sum_abs_deviation: int
    total_dwell: int


EMPTY_TOTALS = RouteDayTotals(n_arrivals=0, n_on_time=0, sum_deviation=0, sum_abs_deviation=0, total_dwell=0)


def classify_arrival(*, actual_ts: int, scheduled_ts: int, threshold_seconds: int) -> ArrivalClassification:
    """
    deviation = actual - scheduled (negative = early)
    on_time   = |deviation| <= threshold   (boundary counts as on time)
    """
    deviation = int(actual_ts) - int(scheduled_ts)
    abs_deviation = abs(deviation)
    return ArrivalClassification(
        deviation_seconds=deviation,
        abs_deviation_seconds=abs_deviation,
        on_time=abs_deviation <= int(threshold_seconds),
    )


def arrival_contribution(c: ArrivalClassification, *, dwell_seconds: int) -> RouteDayTotals:
    return RouteDayTotals(
        n_arrivals=1,
        n_on_time=1 if c.on_time else 0,
        sum_deviation=c.deviation_seconds,
        sum_abs_deviation=c.abs_deviation_seconds,
        total_dwell=int(dwell_seconds),
    )


def add_totals(a: RouteDayTotals, b: RouteDayTotals) -> RouteDayTotals:
    # Field-wise sums only, so folding is commutative and associative.
    return RouteDayTotals(
        n_arrivals=a.n_arrivals + b.n_arrivals,
        n_on_time=a.n_on_time + b.n_on_time,
        sum_deviation=a.sum_deviation + b.sum_deviation,
        sum_abs_deviation=a.sum_abs_deviation + b.sum_abs_deviation,
        total_dwell=a.total_dwell + b.total_dwell,
    )


def fold_contributions(items: Iterable[RouteDayTotals]) -> RouteDayTotals:
    totals = EMPTY_TOTALS
    for item in items:
        totals = add_totals(totals, item)
    return totals


def on_time_rate_bps(*, n_on_time: int, n_arrivals: int) -> int:
    """
    Integer basis points, rounded down. No data -> 0.
    """
    if n_arrivals <= 0:
        return 0
    return (int(n_on_time) * BPS_SCALE) // int(n_arrivals)


def mean_floor(total: int, n: int) -> Optional[int]:
    # Whole seconds only; floors toward -inf for negative sums.
    if n <= 0:
        return None
    return int(total) // int(n)
