"""Tests for the flat metrics text projection."""

import math
from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from runtimectl.core.encoding.metrics_text import as_metrics_view
from runtimectl.core.models import MetricsView, TelemetrySnapshot

pytestmark = [pytest.mark.encoding, pytest.mark.tier(0)]

numbers = st.integers(-(10**6), 10**6) | st.floats(allow_nan=True, allow_infinity=True)
leaves = numbers | st.booleans() | st.text(max_size=5) | st.none()
trees = st.recursive(
    leaves,
    lambda children: st.lists(children, max_size=3)
    | st.dictionaries(st.text(min_size=1, max_size=6), children, max_size=4),
    max_leaves=25,
)


def _view(data: dict[str, Any]) -> MetricsView:
    return as_metrics_view(TelemetrySnapshot(details_level=1, data=data))


class TestAsMetricsView:
    def test_flattens_nested_numeric_leaves(self) -> None:
        view = _view({"requests": {"rest": {"total": 12, "avg_ms": 3.5}}})
        assert view.lines == ("requests_rest_avg_ms 3.5", "requests_rest_total 12")

    def test_text_ends_with_newline(self) -> None:
        assert _view({"a": 1}).text == "a 1\n"

    def test_empty_snapshot_renders_empty_text(self) -> None:
        assert _view({}).text == ""

    def test_skips_non_numeric_leaves(self) -> None:
        view = _view({"version": "1.2.3", "status": None, "count": 2})
        assert view.lines == ("count 2",)

    def test_booleans_render_as_zero_or_one(self) -> None:
        view = _view({"cluster": {"enabled": True, "leader": False}})
        assert view.lines == ("cluster_enabled 1", "cluster_leader 0")

    def test_sequence_items_use_their_index(self) -> None:
        view = _view({"shards": [{"points": 5}, {"points": 7}]})
        assert view.lines == ("shards_0_points 5", "shards_1_points 7")

    def test_non_finite_floats(self) -> None:
        view = _view({"a": math.nan, "b": math.inf, "c": -math.inf})
        assert view.lines == ("a NaN", "b +Inf", "c -Inf")

    def test_invalid_name_characters_are_replaced(self) -> None:
        view = _view({"details": {"method=GET,status=200": 4}})
        assert view.lines == ("details_method_GET_status_200 4",)

    def test_colliding_names_are_disambiguated(self) -> None:
        view = _view({"counters": {"a.b": 1, "a_b": 2}})
        names = [line.split(" ")[0] for line in view.lines]
        assert len(set(names)) == 2
        assert all(name.startswith("counters_a_b_") for name in names)
        assert sorted(line.split(" ")[1] for line in view.lines) == ["1", "2"]
        assert _view({"counters": {"a_b": 2, "a.b": 1}}).text == view.text

    def test_non_colliding_names_have_no_suffix(self) -> None:
        view = _view({"counters": {"a.b": 1, "c_d": 2}})
        assert view.lines == ("counters_a_b 1", "counters_c_d 2")

    def test_leading_digit_is_prefixed(self) -> None:
        view = _view({"0day": 1})
        assert view.lines == ("_0day 1",)

    def test_prefix_is_prepended(self) -> None:
        view = as_metrics_view(
            TelemetrySnapshot(details_level=1, data={"total": 1}), prefix="engine"
        )
        assert view.lines == ("engine_total 1",)

    def test_content_type_is_plain_text(self) -> None:
        assert _view({}).content_type.startswith("text/plain")

    def test_key_insertion_order_does_not_matter(self) -> None:
        first = _view({"b": 2, "a": {"y": 1, "x": 0}})
        second = _view({"a": {"x": 0, "y": 1}, "b": 2})
        assert first.text == second.text

    @given(st.dictionaries(st.text(min_size=1, max_size=6), trees, max_size=5))
    def test_projection_is_deterministic(self, data: dict[str, Any]) -> None:
        snapshot = TelemetrySnapshot(details_level=1, data=data)
        first = as_metrics_view(snapshot)
        second = as_metrics_view(snapshot)
        assert first.text == second.text
        assert list(first.lines) == sorted(first.lines)
        names = [line.rsplit(" ", 1)[0] for line in first.lines]
        assert len(names) == len(set(names))
