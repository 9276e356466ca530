"""Tests for TelemetryView routing, state handling and chart lifecycle."""

import threading
import time

import pytest
from PySide6.QtCore import QCoreApplication, QThreadPool

from panelmon.api import ApiError
from panelmon.loader import ViewMode, ViewState
from panelmon.models import (
    DetailPayload,
    DisconnectEvent,
    NodeDetail,
    NodeSummary,
    NodeView,
    OverviewResult,
    ProbeSample,
    ProbeTarget,
)
from panelmon.ui.main_window import TelemetryView


def process_events():
    QCoreApplication.processEvents()


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        process_events()
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def overview(range_key, count=3):
    nodes = [NodeView(node=NodeSummary(id=i, name=f"{range_key}-node-{i}", status=1)) for i in range(1, count + 1)]
    return OverviewResult(nodes=nodes, errors=[])


def detail_payload(sla=0.9987, disconnects=(), count=30):
    results = [ProbeSample(1, 1_700_000_000_000 + i * 1000, True, 10.0 + i) for i in range(count)]
    return DetailPayload(
        results=results,
        targets={"1": ProbeTarget(1, "Tokyo")},
        disconnects=list(disconnects),
        sla=sla,
    )


class StubAggregator:
    """DashboardAggregator stand-in; loads for a gated range block until released."""

    def __init__(self):
        self.gates = {}
        self.error = None
        self.calls = []
        # Per-range (sla, sample count) for detail loads
        self.detail_shapes = {}

    def gate(self, range_key):
        self.gates[range_key] = threading.Event()
        return self.gates[range_key]

    def _wait(self, range_key):
        gate = self.gates.get(range_key)
        if gate is not None:
            gate.wait(2)
        if self.error is not None:
            raise self.error

    def aggregate(self, range_key):
        self.calls.append(("aggregate", range_key))
        self._wait(range_key)
        return overview(range_key)

    def aggregate_shared(self, range_key):
        self.calls.append(("aggregate_shared", range_key))
        self._wait(range_key)
        return overview(range_key)

    def detail(self, node_id, range_key, shared=False):
        self.calls.append(("detail", node_id, range_key, shared))
        self._wait(range_key)
        name = "" if shared else f"node-{node_id}"
        sla, count = self.detail_shapes.get(range_key, (0.9987, 30))
        return NodeDetail(node_id=node_id, payload=detail_payload(sla=sla, count=count), name=name)


@pytest.fixture
def make_window(qapp):
    windows = []

    def factory(**kwargs):
        pool = QThreadPool()
        pool.setMaxThreadCount(4)
        aggregator = kwargs.pop("aggregator", None) or StubAggregator()
        window = TelemetryView(None, thread_pool=pool, aggregator=aggregator, **kwargs)
        windows.append((window, aggregator))
        return window, aggregator

    yield factory

    for window, aggregator in windows:
        for gate in aggregator.gates.values():
            gate.set()
        window.loader.cancel()
        window.close()
        window.loader.thread_pool.waitForDone(2000)
        window.deleteLater()
    process_events()


def finish(window):
    window.loader.thread_pool.waitForDone(2000)
    process_events()


class TestModes:
    """Test the layout each mode shows."""

    def test_overview_mode(self, make_window):
        """Test the initial overview layout."""
        window, _ = make_window()

        assert window.mode is ViewMode.OVERVIEW
        assert window.pages.currentWidget() is window.overview_page
        assert window.title_label.text() == "Node network overview (1h)"
        assert window.back_button.isHidden()
        assert not window.cycle_row.isHidden()
        assert window.sla_label.isHidden()

    def test_shared_overview_hides_cycle_preview(self, make_window):
        """Test shared overview uses the share loader and hides the cycle preview."""
        window, aggregator = make_window(shared=True)

        window.load()
        finish(window)

        assert window.mode is ViewMode.SHARED_OVERVIEW
        assert window.cycle_row.isHidden()
        assert aggregator.calls == [("aggregate_shared", "1h")]

    def test_detail_mode(self, make_window):
        """Test the initial detail layout before data arrives."""
        window, _ = make_window(node_id=2)

        assert window.mode is ViewMode.DETAIL
        assert window.pages.currentWidget() is window.detail_page
        assert not window.back_button.isHidden()
        assert window.sla_label.text() == "SLA: -"

    def test_unknown_initial_range_falls_back(self, make_window):
        """Test an unknown initial range falls back to 1h."""
        window, _ = make_window(range_key="3h")

        assert window.range_key == "1h"


class TestOverviewLoading:
    """Test overview loads, ranges and failures."""

    def test_load_fills_grid(self, make_window):
        """Test an overview load fills the grid."""
        window, aggregator = make_window()

        window.load()
        finish(window)

        assert window.state is ViewState.READY
        assert window.node_model.rowCount() == 3
        assert aggregator.calls == [("aggregate", "1h")]
        assert window.status_label.text() == "Status: Ready"

    def test_refresh_disabled_while_loading(self, make_window):
        """Test refresh is disabled until the load finishes."""
        window, aggregator = make_window()
        gate = aggregator.gate("1h")

        window.load()

        assert window.state is ViewState.LOADING
        assert not window.refresh_button.isEnabled()
        assert window.status_label.text() == "Status: Loading..."

        gate.set()
        finish(window)

        assert window.refresh_button.isEnabled()

    def test_stale_range_result_not_applied(self, make_window):
        """A slow 1h load finishing after the 1d load never replaces the grid."""
        window, aggregator = make_window()
        gate = aggregator.gate("1h")

        window.load()
        window.set_range("1d")
        assert wait_until(lambda: window.node_model.rowCount() == 3)

        gate.set()
        finish(window)

        assert window.range_key == "1d"
        assert window.node_model.node_at(0).node.name == "1d-node-1"
        assert window.range_buttons["1d"].isChecked()

    def test_same_range_does_not_reload(self, make_window):
        """Test reselecting the current range does not reload."""
        window, aggregator = make_window()

        window.set_range("1h")
        finish(window)

        assert aggregator.calls == []

    def test_unknown_range_ignored(self, make_window):
        """Test an unknown range is ignored."""
        window, aggregator = make_window()

        window.set_range("2w")

        assert window.range_key == "1h"
        assert aggregator.calls == []

    def test_failure_keeps_previous_rows(self, make_window):
        """Test a failed load keeps the grid and shows the message."""
        window, aggregator = make_window()
        window.load()
        finish(window)

        aggregator.error = ApiError(1, "panel offline")
        window.load()
        finish(window)

        assert window.status_label.text() == "Status: panel offline"
        assert window.node_model.rowCount() == 3
        assert window.state is ViewState.READY

    def test_roster_failure_keeps_previous_rows(self, make_window):
        """Test a roster failure keeps the grid and lists every error."""
        window, _ = make_window()
        window.apply_overview(overview("1h"))

        window.apply_overview(OverviewResult(nodes=None, errors=["Network error", "stats down"]))

        assert window.node_model.rowCount() == 3
        assert window.status_label.text() == "Status: Network error; stats down"

    def test_cycle_preview_updates_selected_row(self, make_window):
        """Test the cycle combo previews a cycle for the selected node only."""
        window, _ = make_window()
        window.apply_overview(overview("1h"))

        window.node_table.setCurrentIndex(window.node_model.index(1, 0))
        assert window.cycle_combo.isEnabled()
        window.cycle_combo.setCurrentText("Quarterly (90 days)")

        assert window.node_model.cycle_override(2) == 90
        assert window.node_model.cycle_override(1) is None


class TestDetail:
    """Test detail loads, navigation and the chart lifecycle."""

    def test_detail_load_renders_chart_and_sla(self, make_window):
        """Test a detail load renders the chart, title and SLA."""
        window, _ = make_window(node_id=2)

        window.load()
        finish(window)

        assert window.sla_label.text() == "SLA: 99.87%"
        assert window.title_label.text() == "node-2 network detail"
        assert window.chart is not None and window.chart.created
        assert window.chart.series_count() == 2
        assert list(window.grouped) == ["1"]
        assert not window.no_disconnects_label.isHidden()

    def test_disconnect_records_shown(self, make_window):
        """Test disconnect records replace the empty placeholder."""
        window, _ = make_window(node_id=2)
        events = [DisconnectEvent(id=1, down_at_ms=0, up_at_ms=5000), DisconnectEvent(id=2, down_at_ms=9000)]

        window.apply_detail(NodeDetail(node_id=2, payload=detail_payload(disconnects=events), name="n"))

        assert window.disconnect_model.rowCount() == 2
        assert window.no_disconnects_label.isHidden()

    def test_second_detail_load_reuses_chart(self, make_window):
        """Test a second detail load updates the existing chart."""
        window, _ = make_window(node_id=2)
        window.apply_detail(NodeDetail(node_id=2, payload=detail_payload(), name="n"))
        first = window.chart

        window.apply_detail(NodeDetail(node_id=2, payload=detail_payload(sla=0.5), name="n"))

        assert window.chart is first
        assert window.sla_label.text() == "SLA: 50.00%"

    def test_navigate_to_overview_disposes_chart(self, make_window):
        """Test leaving the detail view disposes the chart and loads the overview."""
        window, aggregator = make_window(node_id=2)
        window.load()
        finish(window)
        assert window.chart is not None

        window.navigate(None)

        assert window.chart is None
        assert window.detail is None
        assert window.disconnect_model.rowCount() == 0
        assert window.pages.currentWidget() is window.overview_page
        finish(window)
        assert aggregator.calls[-1] == ("aggregate", "1h")

    def test_stale_detail_not_applied_after_navigation(self, make_window):
        """Test a detail result arriving after navigation is dropped."""
        window, aggregator = make_window(node_id=2)
        gate = aggregator.gate("1h")
        window.load()

        window.navigate(None)
        gate.set()
        finish(window)

        assert window.chart is None
        assert window.detail is None
        assert window.mode is ViewMode.OVERVIEW

    def test_shared_detail_title_from_roster(self, make_window):
        """Test shared detail takes its title from the last roster."""
        window, aggregator = make_window(shared=True)
        window.apply_overview(overview("1h"))

        window.navigate(3)
        finish(window)

        assert aggregator.calls[-1] == ("detail", 3, "1h", True)
        assert window.title_label.text() == "1h-node-3 network detail"

    def test_title_falls_back_to_node_id(self, make_window):
        """Test the title falls back to the node id."""
        window, _ = make_window(node_id=9, shared=True)

        assert window.title_label.text() == "Node 9 network detail"

    def test_activating_row_opens_detail(self, make_window):
        """Test double-clicking a row opens that node's detail."""
        window, aggregator = make_window()
        window.apply_overview(overview("1h"))

        window.on_node_activated(window.node_model.index(0, 0))
        finish(window)

        assert window.node_id == 1
        assert aggregator.calls[-1] == ("detail", 1, "1h", False)
        assert window.chart is not None

    def test_stale_detail_range_not_applied(self, make_window):
        """Test a slow 1h detail load finishing after the 1d load leaves the 1d data shown."""
        window, aggregator = make_window(node_id=2)
        aggregator.detail_shapes = {"1h": (0.9987, 30), "1d": (0.5, 60)}
        gate = aggregator.gate("1h")

        window.load()
        window.set_range("1d")
        assert wait_until(lambda: window.detail is not None)

        gate.set()
        finish(window)

        assert window.sla_label.text() == "SLA: 50.00%"
        assert len(window.grouped["1"]) == 60
        assert window.detail.payload.sla == 0.5
        assert window.chart is not None and window.chart.series_count() == 2
