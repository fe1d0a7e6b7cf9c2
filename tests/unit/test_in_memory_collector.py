"""Tests for the in-memory telemetry collector adapter."""

import pytest

from runtimectl.adapters.telemetry import InMemoryTelemetryCollector
from runtimectl.core.errors import ServiceError
from runtimectl.core.ports import TelemetryCollectorPort
from runtimectl.core.telemetry import TelemetrySnapshotter, anonymize_token

pytestmark = [pytest.mark.unit, pytest.mark.tier(1)]


@pytest.fixture
def telemetry_collector() -> InMemoryTelemetryCollector:
    collector = InMemoryTelemetryCollector(app_name="engine", version="1.0.0")
    collector.increment("requests_total", labels={"method": "GET"})
    collector.increment("requests_total", 2, labels={"method": "POST"})
    collector.set_gauge("segments", 4)
    return collector


class TestInMemoryTelemetryCollector:
    def test_satisfies_collector_port(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        assert isinstance(telemetry_collector, TelemetryCollectorPort)

    async def test_level_zero_reports_totals(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        data = await telemetry_collector.prepare_data(0)
        assert data["app"]["name"] == "engine"
        assert data["app"]["version"] == "1.0.0"
        assert data["counters"] == {"requests_total": 3.0}
        assert data["gauges"] == {"segments": 4}
        assert "details" not in data
        assert "system" not in data["app"]

    async def test_level_one_adds_label_breakdown_and_host(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        data = await telemetry_collector.prepare_data(1)
        assert data["details"]["counters"] == {
            "requests_total": {"series": {"method=GET": 1.0, "method=POST": 2.0}}
        }
        assert data["details"]["gauges"] == {}
        assert "hostname" in data["app"]["system"]

    async def test_sections_respect_min_level(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        telemetry_collector.register_section(
            "collections", lambda level: {"orders": {"vectors": 10 * level}}, min_level=2
        )
        assert "collections" not in await telemetry_collector.prepare_data(1)
        data = await telemetry_collector.prepare_data(3)
        assert data["collections"] == {"orders": {"vectors": 30}}

    def test_duplicate_section_is_rejected(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        telemetry_collector.register_section("a", lambda level: {})
        with pytest.raises(ValueError, match="already registered"):
            telemetry_collector.register_section("a", lambda level: {})

    async def test_prepare_data_returns_a_copy(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        data = await telemetry_collector.prepare_data(1)
        data["details"]["counters"]["requests_total"]["series"]["method=GET"] = 100.0
        again = await telemetry_collector.prepare_data(1)
        assert again["details"]["counters"]["requests_total"]["series"]["method=GET"] == 1.0

    async def test_closed_collector_surfaces_service_error(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        telemetry_collector.close()
        snapshotter = TelemetrySnapshotter(telemetry_collector)
        with pytest.raises(ServiceError, match="shut down"):
            await snapshotter.snapshot(0)

    async def test_metrics_are_stable_between_scrapes(
        self, telemetry_collector: InMemoryTelemetryCollector
    ) -> None:
        snapshotter = TelemetrySnapshotter(telemetry_collector)
        first = await snapshotter.metrics(anonymize=True)
        second = await snapshotter.metrics(anonymize=True)
        assert first.text == second.text
        assert "counters_requests_total 3.0" in first.lines
        assert not any("hostname" in line for line in first.lines)

    async def test_labelled_gauges_report_no_total(self) -> None:
        collector = InMemoryTelemetryCollector()
        collector.set_gauge("queue_depth", 3, labels={"queue": "a"})
        collector.set_gauge("queue_depth", 5, labels={"queue": "b"})
        collector.set_gauge("segments", 4)

        data = await collector.prepare_data(1)

        assert data["gauges"] == {"segments": 4}
        assert data["details"]["gauges"] == {
            "queue_depth": {"series": {"queue=a": 3, "queue=b": 5}}
        }

    async def test_anonymized_snapshot_hides_label_values_and_instance_id(
        self,
    ) -> None:
        collector = InMemoryTelemetryCollector()
        collector.increment("writes_total", labels={"user": "alice@example.com"})
        snapshotter = TelemetrySnapshotter(collector)

        snapshot = await snapshotter.telemetry(details_level=1, anonymize=True)
        metrics = await snapshotter.metrics(anonymize=True)

        data = snapshot.to_dict()
        assert "id" not in data
        assert data["details"]["counters"]["writes_total"]["series"] == {
            anonymize_token("user=alice@example.com"): 1.0
        }
        assert collector.instance_id not in metrics.text
        assert "alice" not in metrics.text
        assert "alice" not in str(data)

    async def test_sections_can_be_registered_while_snapshotting(self) -> None:
        collector = InMemoryTelemetryCollector()

        registered: list[str] = []

        def provider(level: int) -> dict[str, int]:
            if not registered:
                collector.register_section("late", lambda level: {"n": 1})
                registered.append("late")
            return {"n": level}

        collector.register_section("early", provider)

        first = await collector.prepare_data(0)
        second = await collector.prepare_data(0)

        assert "late" not in first
        assert second["late"] == {"n": 1}
