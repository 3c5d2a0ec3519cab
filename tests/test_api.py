"""HTTP surface: status codes, structured failures, null for absent keys."""
import pytest
from fastapi import HTTPException

from conftest import ADMIN, HASH_A, HASH_B, OPERATOR, PUBLISHER, SIG, STRANGER
from transitledger.core.deps import get_caller
from transitledger.models.arrivals import SECONDS_MAX


def as_(caller):
    return {"X-Caller-Id": caller}


def schedule_body(version=1, content_hash=HASH_A, route="R1"):
    return {
        "route": route,
        "content_hash": content_hash.hex(),
        "version": version,
        "notes": "spring timetable",
        "timestamp": 1_700_000_000,
        "signature": SIG.hex(),
    }


def arrival_body(**overrides):
    body = {
        "route": "R1",
        "stop": "S1",
        "vehicle": "V1",
        "actual_ts": 1000,
        "scheduled_ts": 900,
        "dwell_seconds": 20,
        "service_date": 20240101,
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_health(self, http):
        r = http.get("/v1/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}


class TestRegistryApi:
    def test_missing_caller_header(self, http):
        r = http.post("/v1/registry/admin/bootstrap")
        assert r.status_code == 401

    def test_bootstrap_twice(self, http):
        assert http.post("/v1/registry/admin/bootstrap", headers=as_(ADMIN)).json() == {"admin": ADMIN}
        r = http.post("/v1/registry/admin/bootstrap", headers=as_(STRANGER))
        assert r.status_code == 409
        assert r.json()["error"] == "AlreadyInitialized"
        assert http.get("/v1/registry/admin").json() == {"admin": ADMIN}

    def test_publish_flow(self, http):
        http.post("/v1/registry/admin/bootstrap", headers=as_(ADMIN))
        assert http.put(f"/v1/registry/publishers/{PUBLISHER}", headers=as_(ADMIN)).json()["member"] is True
        assert http.get(f"/v1/registry/publishers/{PUBLISHER}").json()["member"] is True

        r = http.post("/v1/registry/schedules", json=schedule_body(1), headers=as_(PUBLISHER))
        assert r.status_code == 201
        assert r.json() == {"id": 1}

        r = http.post("/v1/registry/schedules", json=schedule_body(1, HASH_B), headers=as_(PUBLISHER))
        assert r.status_code == 409
        assert r.json()["error"] == "VersionConflict"

        assert http.post("/v1/registry/schedules", json=schedule_body(2, HASH_B), headers=as_(ADMIN)).json() == {"id": 2}
        assert http.get("/v1/registry/routes/R1/latest").json() == {"route": "R1", "id": 2, "version": 2}
        assert http.get("/v1/registry/routes/R1/versions/1").json() == {"route": "R1", "version": 1, "id": 1}

        s = http.get("/v1/registry/schedules/2").json()
        assert s["content_hash"] == HASH_B.hex()
        assert s["signature"] == SIG.hex()
        assert s["publisher"] == ADMIN
        assert s["active"] is True

        snap = http.get("/v1/registry/schedules/1/versions/1").json()
        assert snap["content_hash"] == HASH_A.hex()
        assert snap["notes"] == "spring timetable"

    def test_unauthorized_publish(self, http):
        http.post("/v1/registry/admin/bootstrap", headers=as_(ADMIN))
        r = http.post("/v1/registry/schedules", json=schedule_body(), headers=as_(STRANGER))
        assert r.status_code == 403
        assert r.json()["error"] == "Unauthorized"
        assert http.get("/v1/registry/schedules/1").json() is None

    def test_deprecate(self, http):
        http.post("/v1/registry/admin/bootstrap", headers=as_(ADMIN))
        r = http.post("/v1/registry/schedules/5/deprecate", headers=as_(ADMIN))
        assert r.status_code == 404
        assert r.json()["error"] == "NotFound"

        http.post("/v1/registry/schedules", json=schedule_body(), headers=as_(ADMIN))
        for _ in range(2):
            r = http.post("/v1/registry/schedules/1/deprecate", headers=as_(ADMIN))
            assert r.status_code == 200
            assert r.json()["active"] is False

    def test_payload_validation(self, http):
        http.post("/v1/registry/admin/bootstrap", headers=as_(ADMIN))
        bad_hash = schedule_body()
        bad_hash["content_hash"] = "ab" * 31
        assert http.post("/v1/registry/schedules", json=bad_hash, headers=as_(ADMIN)).status_code == 422

        negative = schedule_body(version=-1)
        assert http.post("/v1/registry/schedules", json=negative, headers=as_(ADMIN)).status_code == 422

        prefixed = schedule_body()
        prefixed["content_hash"] = "0x" + HASH_A.hex()
        assert http.post("/v1/registry/schedules", json=prefixed, headers=as_(ADMIN)).status_code == 201

    def test_absent_reads_are_null(self, http):
        assert http.get("/v1/registry/admin").json() is None
        assert http.get("/v1/registry/routes/R9/latest").json() is None
        assert http.get("/v1/registry/routes/R9/versions/1").json() is None
        assert http.get("/v1/registry/schedules/1/versions/1").json() is None

    def test_route_with_reserved_characters(self, http):
        http.post("/v1/registry/admin/bootstrap", headers=as_(ADMIN))
        for version, route in enumerate(("10/11", "a?b#c"), start=1):
            r = http.post("/v1/registry/schedules", json=schedule_body(version, route=route), headers=as_(ADMIN))
            assert r.status_code == 201

        assert http.get("/v1/registry/routes/10%2F11/latest").json() == {"route": "10/11", "id": 1, "version": 1}
        assert http.get("/v1/registry/routes/10%2F11/versions/1").json() == {"route": "10/11", "version": 1, "id": 1}
        assert http.get("/v1/registry/routes/a%3Fb%23c/latest").json() == {"route": "a?b#c", "id": 2, "version": 2}
        assert http.get("/v1/registry/routes/10/latest").json() is None

    def test_identity_with_slash(self, http):
        http.post("/v1/registry/admin/bootstrap", headers=as_(ADMIN))
        r = http.put("/v1/registry/publishers/team%2Ffeed", headers=as_(ADMIN))
        assert r.json() == {"role": "publisher", "identity": "team/feed", "member": True}
        assert http.get("/v1/registry/publishers/team%2Ffeed").json()["member"] is True


class TestReliabilityApi:
    def setup_ledger(self, http):
        http.post("/v1/reliability/admin/bootstrap", headers=as_(ADMIN))
        http.put(f"/v1/reliability/operators/{OPERATOR}", headers=as_(ADMIN))

    def test_record_and_aggregate(self, http):
        self.setup_ledger(http)
        assert http.post("/v1/reliability/arrivals", json=arrival_body(), headers=as_(OPERATOR)).json() == {"id": 1}
        r = http.post("/v1/reliability/arrivals", json=arrival_body(scheduled_ts=500, dwell_seconds=40), headers=as_(OPERATOR))
        assert r.json() == {"id": 2}

        a = http.get("/v1/reliability/arrivals/2").json()
        assert a["deviation_seconds"] == 500
        assert a["on_time"] is False

        agg = http.get("/v1/reliability/routes/R1/days/20240101").json()
        assert agg == {
            "route": "R1",
            "service_date": 20240101,
            "count": 2,
            "on_time_count": 1,
            "sum_deviation": 600,
            "sum_abs_deviation": 600,
            "total_dwell": 60,
            "mean_deviation_seconds": 300,
            "mean_abs_deviation_seconds": 300,
            "on_time_rate_bps": 5000,
        }
        rate = http.get("/v1/reliability/routes/R1/days/20240101/on-time-rate").json()
        assert rate["on_time_rate_bps"] == 5000

    def test_absent_reads(self, http):
        assert http.get("/v1/reliability/arrivals/1").json() is None
        assert http.get("/v1/reliability/routes/R1/days/20240101").json() is None
        assert http.get("/v1/reliability/routes/R1/days/20240101/on-time-rate").json()["on_time_rate_bps"] == 0

    def test_threshold(self, http):
        self.setup_ledger(http)
        assert http.get("/v1/reliability/threshold").json() == {"seconds": 300}

        r = http.put("/v1/reliability/threshold", json={"seconds": 60}, headers=as_(OPERATOR))
        assert r.status_code == 403

        assert http.put("/v1/reliability/threshold", json={"seconds": 60}, headers=as_(ADMIN)).json() == {"seconds": 60}
        http.post("/v1/reliability/arrivals", json=arrival_body(actual_ts=1000, scheduled_ts=900), headers=as_(ADMIN))
        assert http.get("/v1/reliability/arrivals/1").json()["on_time"] is False

    def test_unauthorized_record(self, http):
        self.setup_ledger(http)
        r = http.post("/v1/reliability/arrivals", json=arrival_body(), headers=as_(STRANGER))
        assert r.status_code == 403
        assert http.get("/v1/reliability/routes/R1/days/20240101").json() is None

    def test_validation(self, http):
        self.setup_ledger(http)
        too_long = arrival_body(vehicle="v" * 65)
        assert http.post("/v1/reliability/arrivals", json=too_long, headers=as_(ADMIN)).status_code == 422
        negative = arrival_body(dwell_seconds=-1)
        assert http.post("/v1/reliability/arrivals", json=negative, headers=as_(ADMIN)).status_code == 422

    def test_operator_membership(self, http):
        self.setup_ledger(http)
        assert http.get(f"/v1/reliability/operators/{OPERATOR}").json()["member"] is True
        http.delete(f"/v1/reliability/operators/{OPERATOR}", headers=as_(ADMIN))
        assert http.get(f"/v1/reliability/operators/{OPERATOR}").json()["member"] is False

    def test_timestamp_and_dwell_bounds(self, http):
        self.setup_ledger(http)
        for field in ("actual_ts", "scheduled_ts", "dwell_seconds"):
            body = arrival_body(**{field: SECONDS_MAX + 1})
            assert http.post("/v1/reliability/arrivals", json=body, headers=as_(ADMIN)).status_code == 422
        at_bound = arrival_body(actual_ts=SECONDS_MAX, scheduled_ts=0, dwell_seconds=SECONDS_MAX)
        assert http.post("/v1/reliability/arrivals", json=at_bound, headers=as_(ADMIN)).status_code == 201

    def test_route_with_slash(self, http):
        self.setup_ledger(http)
        http.post("/v1/reliability/arrivals", json=arrival_body(route="N/S", actual_ts=905), headers=as_(ADMIN))

        agg = http.get("/v1/reliability/routes/N%2FS/days/20240101").json()
        assert (agg["route"], agg["count"]) == ("N/S", 1)
        rate = http.get("/v1/reliability/routes/N%2FS/days/20240101/on-time-rate").json()
        assert rate == {"route": "N/S", "service_date": 20240101, "on_time_rate_bps": 10000}


class TestCallerHeader:
    def test_identity_passed_through_unchanged(self):
        assert get_caller("alice") == "alice"
        assert get_caller(" alice") == " alice"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_identity_rejected(self, value):
        with pytest.raises(HTTPException) as exc:
            get_caller(value)
        assert exc.value.status_code == 401
