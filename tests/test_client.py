"""LedgerClient against the app, plus retry behaviour over a mock transport."""
import httpx
import pytest

from conftest import ADMIN, HASH_A, HASH_B, OPERATOR, SIG, STRANGER
from transitledger.client import LedgerClient
from transitledger.core.errors import NotFound, Unauthorized, VersionConflict


@pytest.fixture
def admin_client(http):
    return LedgerClient(ADMIN, client=http, retries=1, backoff_base=0)


class TestAgainstApp:
    def test_registry_round(self, http, admin_client):
        assert admin_client.bootstrap_registry_admin() == ADMIN
        sid = admin_client.publish_schedule(route="R1", content_hash=HASH_A, version=1, timestamp=5, signature=SIG)
        assert sid == 1

        with pytest.raises(VersionConflict):
            admin_client.publish_schedule(route="R1", content_hash=HASH_B, version=1, timestamp=6, signature=SIG)
        with pytest.raises(NotFound):
            admin_client.deprecate_schedule(42)

        assert admin_client.deprecate_schedule(sid)["active"] is False
        assert admin_client.get_route_latest("R1") == {"route": "R1", "id": 1, "version": 1}
        assert admin_client.get_schedule_id("R1", 1) == 1
        assert admin_client.get_schedule_id("R1", 2) is None
        assert admin_client.get_schedule(7) is None

    def test_reliability_round(self, http, admin_client):
        admin_client.bootstrap_reliability_admin()
        admin_client.grant_operator(OPERATOR)
        feed = LedgerClient(OPERATOR, client=http, retries=1, backoff_base=0)

        # 2024-01-01 12:00 UTC, London is on GMT
        scheduled = 1704110400
        arrival_id = feed.record_arrival(
            route="R1", stop="S1", vehicle="V1", actual_ts=scheduled + 30, scheduled_ts=scheduled
        )
        assert arrival_id == 1
        assert feed.get_arrival(1)["service_date"] == 20240101
        assert feed.on_time_rate_bps("R1", 20240101) == 10000
        assert feed.get_aggregate("R1", 20240101)["count"] == 1

        with pytest.raises(Unauthorized):
            feed.set_late_threshold(10)
        assert admin_client.set_late_threshold(10) == 10
        assert feed.get_late_threshold() == 10

        stranger = LedgerClient(STRANGER, client=http, retries=1, backoff_base=0)
        with pytest.raises(Unauthorized):
            stranger.record_arrival(route="R1", stop="S1", vehicle="V1", actual_ts=1, scheduled_ts=1, service_date=1)

    def test_keys_are_quoted_into_paths(self, http, admin_client):
        admin_client.bootstrap_registry_admin()
        admin_client.grant_publisher("ops/team a")
        team = LedgerClient("ops/team a", client=http, retries=1, backoff_base=0)

        for version, route in enumerate(("10/11", "a?b#c", "x%2Fy"), start=1):
            team.publish_schedule(route=route, content_hash=HASH_A, version=version, timestamp=1, signature=SIG)

        assert admin_client.get_route_latest("10/11") == {"route": "10/11", "id": 1, "version": 1}
        assert admin_client.get_schedule_id("a?b#c", 2) == 2
        assert admin_client.get_schedule_id("x%2Fy", 3) == 3
        assert admin_client.get_route_latest("10") is None

        admin_client.revoke_publisher("ops/team a")
        with pytest.raises(Unauthorized):
            team.publish_schedule(route="10/11", content_hash=HASH_B, version=9, timestamp=1, signature=SIG)

        admin_client.bootstrap_reliability_admin()
        admin_client.grant_operator("feeds/avl")
        feed = LedgerClient("feeds/avl", client=http, retries=1, backoff_base=0)
        feed.record_arrival(route="N/S", stop="S1", vehicle="V1", actual_ts=950, scheduled_ts=900, service_date=20240101)
        assert feed.get_aggregate("N/S", 20240101)["count"] == 1
        assert feed.on_time_rate_bps("N/S", 20240101) == 10000


class TestRetries:
    def _mock(self, statuses, payload):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            status = statuses[min(len(calls) - 1, len(statuses) - 1)]
            if status == 200:
                return httpx.Response(200, json=payload)
            return httpx.Response(status, text="busy")

        client = httpx.Client(base_url="http://ledger.test", transport=httpx.MockTransport(handler))
        return client, calls

    def test_reads_are_retried(self):
        http, calls = self._mock([503, 503, 200], {"seconds": 300})
        c = LedgerClient(ADMIN, client=http, retries=3, backoff_base=0)
        assert c.get_late_threshold() == 300
        assert len(calls) == 3
        assert calls[0].headers["X-Caller-Id"] == ADMIN

    def test_record_arrival_is_sent_once(self):
        http, calls = self._mock([503, 200], {"id": 1})
        c = LedgerClient(ADMIN, client=http, retries=3, backoff_base=0)
        with pytest.raises(httpx.HTTPStatusError):
            c.record_arrival(route="R1", stop="S1", vehicle="V1", actual_ts=1, scheduled_ts=1, service_date=1)
        assert len(calls) == 1

    def test_gives_up_after_retries(self):
        http, calls = self._mock([503], {})
        c = LedgerClient(ADMIN, client=http, retries=2, backoff_base=0)
        with pytest.raises(httpx.HTTPStatusError):
            c.get_schedule(1)
        assert len(calls) == 2

    def test_requires_target(self):
        with pytest.raises(ValueError):
            LedgerClient(ADMIN)
