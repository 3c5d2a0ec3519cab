"""
HTTP client for the ledger API.

Only duplicate-safe calls are retried (reads, role grant/revoke, deprecate,
set-threshold). publish_schedule, record_arrival and bootstrap are sent once:
a lost response there must be reconciled by the caller, not replayed.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Optional
from urllib.parse import quote

import httpx

from transitledger.core.config import get_settings
from transitledger.core.errors import ERRORS_BY_KIND, LedgerError
from transitledger.utils.time import service_date_for

logger = logging.getLogger(__name__)

RETRY_STATUSES = {429, 502, 503, 504, 520, 522, 524}


def _seg(value) -> str:
    # one path segment; "/", "?" and "#" in keys must not reshape the URL
    return quote(str(value), safe="")


class LedgerClient:
    def __init__(
        self,
        caller: str,
        *,
        base_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        agency_timezone: Optional[str] = None,
    ):
        if client is None and base_url is None:
            raise ValueError("either base_url or client is required")

        cfg = get_settings()
        self.caller = caller
        self.retries = max(1, cfg.client_retries if retries is None else retries)
        self.backoff_base = cfg.client_backoff_base if backoff_base is None else backoff_base
        self.agency_timezone = agency_timezone or cfg.agency_timezone
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(cfg.client_timeout),
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "LedgerClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --- transport ---

    def _sleep_backoff(self, attempt: int, path: str) -> None:
        sleep_s = self.backoff_base * (2 ** (attempt - 1))
        if sleep_s > 0:
            sleep_s += random.uniform(0, 0.5 * self.backoff_base)
        logger.info("Sleeping %.2fs before retrying %s", sleep_s, path)
        time.sleep(sleep_s)

    def _raise_for_ledger_error(self, r: httpx.Response) -> None:
        if r.status_code < 400:
            return
        try:
            body = r.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error") in ERRORS_BY_KIND:
            raise ERRORS_BY_KIND[body["error"]](body.get("detail", ""))
        r.raise_for_status()

    def _request(self, method: str, path: str, *, json: Optional[dict] = None, retry: bool = False):
        attempts = self.retries if retry else 1
        headers = {"X-Caller-Id": self.caller}
        last_err: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                r = self._client.request(method, path, json=json, headers=headers)
                if r.status_code in RETRY_STATUSES and attempt < attempts:
                    logger.warning("Retryable HTTP %d (attempt %d/%d) %s %s", r.status_code, attempt, attempts, method, path)
                    last_err = httpx.HTTPStatusError("Retryable status", request=r.request, response=r)
                else:
                    self._raise_for_ledger_error(r)
                    return r.json()

            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_err = e
                logger.warning(
                    "%s (attempt %d/%d) %s %s", e.__class__.__name__, attempt, attempts, method, path
                )
                if attempt >= attempts:
                    raise

            self._sleep_backoff(attempt, path)

        raise last_err  # type: ignore[misc]

    # --- registry ---

    def bootstrap_registry_admin(self) -> str:
        return self._request("POST", "/v1/registry/admin/bootstrap")["admin"]

    def grant_publisher(self, identity: str) -> None:
        self._request("PUT", f"/v1/registry/publishers/{_seg(identity)}", retry=True)

    def revoke_publisher(self, identity: str) -> None:
        self._request("DELETE", f"/v1/registry/publishers/{_seg(identity)}", retry=True)

    def publish_schedule(
        self,
        *,
        route: str,
        content_hash: bytes,
        version: int,
        timestamp: int,
        signature: bytes,
        notes: str = "",
    ) -> int:
        body = {
            "route": route,
            "content_hash": content_hash.hex(),
            "version": version,
            "notes": notes,
            "timestamp": timestamp,
            "signature": signature.hex(),
        }
        return int(self._request("POST", "/v1/registry/schedules", json=body)["id"])

    def deprecate_schedule(self, schedule_id: int) -> dict:
        return self._request("POST", f"/v1/registry/schedules/{schedule_id}/deprecate", retry=True)

    def get_schedule(self, schedule_id: int) -> Optional[dict]:
        return self._request("GET", f"/v1/registry/schedules/{schedule_id}", retry=True)

    def get_schedule_version(self, schedule_id: int, version: int) -> Optional[dict]:
        return self._request("GET", f"/v1/registry/schedules/{schedule_id}/versions/{version}", retry=True)

    def get_route_latest(self, route: str) -> Optional[dict]:
        return self._request("GET", f"/v1/registry/routes/{_seg(route)}/latest", retry=True)

    def get_schedule_id(self, route: str, version: int) -> Optional[int]:
        out = self._request("GET", f"/v1/registry/routes/{_seg(route)}/versions/{version}", retry=True)
        return int(out["id"]) if out is not None else None

    # --- reliability ---

    def bootstrap_reliability_admin(self) -> str:
        return self._request("POST", "/v1/reliability/admin/bootstrap")["admin"]

    def grant_operator(self, identity: str) -> None:
        self._request("PUT", f"/v1/reliability/operators/{_seg(identity)}", retry=True)

    def revoke_operator(self, identity: str) -> None:
        self._request("DELETE", f"/v1/reliability/operators/{_seg(identity)}", retry=True)

    def get_late_threshold(self) -> int:
        return int(self._request("GET", "/v1/reliability/threshold", retry=True)["seconds"])

    def set_late_threshold(self, seconds: int) -> int:
        return int(self._request("PUT", "/v1/reliability/threshold", json={"seconds": seconds}, retry=True)["seconds"])

    def record_arrival(
        self,
        *,
        route: str,
        stop: str,
        vehicle: str,
        actual_ts: int,
        scheduled_ts: int,
        dwell_seconds: int = 0,
        service_date: Optional[int] = None,
    ) -> int:
        if service_date is None:
            service_date = service_date_for(scheduled_ts, self.agency_timezone)
        body = {
            "route": route,
            "stop": stop,
            "vehicle": vehicle,
            "actual_ts": actual_ts,
            "scheduled_ts": scheduled_ts,
            "dwell_seconds": dwell_seconds,
            "service_date": service_date,
        }
        return int(self._request("POST", "/v1/reliability/arrivals", json=body)["id"])

    def get_arrival(self, arrival_id: int) -> Optional[dict]:
        return self._request("GET", f"/v1/reliability/arrivals/{arrival_id}", retry=True)

    def get_aggregate(self, route: str, service_date: int) -> Optional[dict]:
        return self._request("GET", f"/v1/reliability/routes/{_seg(route)}/days/{service_date}", retry=True)

    def on_time_rate_bps(self, route: str, service_date: int) -> int:
        out = self._request("GET", f"/v1/reliability/routes/{_seg(route)}/days/{service_date}/on-time-rate", retry=True)
        return int(out["on_time_rate_bps"])


__all__ = ["LedgerClient", "LedgerError"]
