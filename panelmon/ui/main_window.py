"""Main window: node overview grid and single-node telemetry detail."""

import logging
from functools import partial

from PySide6.QtCore import QThreadPool
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QAbstractItemView,
    QButtonGroup,
    QComboBox,
    QFrame,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from panelmon.aggregator import DashboardAggregator
from panelmon.api import PanelClient
from panelmon.billing import CYCLE_OPTIONS
from panelmon.formatting import format_sla
from panelmon.loader import LoadKey, ViewLoader, ViewMode, ViewState
from panelmon.models import DEFAULT_RANGE, RANGE_OPTIONS, NodeDetail, OverviewResult
from panelmon.series import build_chart_series, group_by_target
from panelmon.ui.chart import ChartSurface
from panelmon.ui.node_model import DisconnectModel, NodeGridModel

logger = logging.getLogger(__name__)


class TelemetryView(QMainWindow):
    """Telemetry window for the overview grid and single-node detail.

    The route is ``node_id`` (None for the overview) plus ``range_key``;
    any change to either starts a fresh load that fully replaces the
    displayed state. Shared mode uses the read-only endpoints and hides the
    billing-cycle preview.
    """

    def __init__(
        self,
        client: PanelClient,
        shared: bool = False,
        node_id: int | None = None,
        range_key: str = DEFAULT_RANGE,
        thread_pool: QThreadPool | None = None,
        aggregator: DashboardAggregator | None = None,
    ):
        super().__init__()
        self.setWindowTitle("Node Network" + (" (shared)" if shared else ""))
        self.setGeometry(100, 100, 1200, 760)

        self.client = client
        self.aggregator = aggregator if aggregator is not None else DashboardAggregator(client)
        self.shared = shared
        self.node_id = node_id
        self.range_key = range_key if range_key in RANGE_OPTIONS else DEFAULT_RANGE

        self.loader = ViewLoader(thread_pool, parent=self)
        self.loader.loaded.connect(self.on_loaded)
        self.loader.failed.connect(self.on_load_failed)
        self.loader.state_changed.connect(self.on_state_changed)

        # Detail state, replaced wholesale per load
        self.detail: NodeDetail | None = None
        self.grouped = {}
        self.chart: ChartSurface | None = None

        # Names from the last roster, used for shared detail headers
        self._roster_names: dict[int, str] = {}

        self.node_model = NodeGridModel()
        self.disconnect_model = DisconnectModel()

        self.setup_ui()
        self._show_mode()

    @property
    def mode(self) -> ViewMode:
        return ViewMode.select(self.node_id, self.shared)

    @property
    def state(self) -> ViewState:
        return self.loader.state

    def closeEvent(self, event: QCloseEvent) -> None:
        """Handle window close - drop pending loads and release the chart."""
        self.loader.cancel()
        self._dispose_chart()
        self.loader.thread_pool.waitForDone(1000)
        super().closeEvent(event)

    def setup_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)

        main_layout.addLayout(self.create_header())
        main_layout.addLayout(self.create_range_bar())

        self.pages = QStackedWidget()
        self.overview_page = self.create_overview_page()
        self.detail_page = self.create_detail_page()
        self.pages.addWidget(self.overview_page)
        self.pages.addWidget(self.detail_page)
        main_layout.addWidget(self.pages, 1)

        self.status_label = QLabel("Status: Ready")
        self.status_label.setStyleSheet("font-weight: bold;")
        main_layout.addWidget(self.status_label)

    def create_header(self):
        layout = QHBoxLayout()

        self.back_button = QPushButton("← Overview")
        self.back_button.clicked.connect(lambda _checked=False: self.navigate(None))
        layout.addWidget(self.back_button)

        self.title_label = QLabel()
        self.title_label.setStyleSheet("font-weight: bold; font-size: 16px; margin: 6px;")
        layout.addWidget(self.title_label, 1)

        self.sla_label = QLabel()
        self.sla_label.setStyleSheet("font-family: monospace;")
        layout.addWidget(self.sla_label)

        return layout

    def create_range_bar(self):
        layout = QHBoxLayout()

        self.range_group = QButtonGroup(self)
        self.range_group.setExclusive(True)
        self.range_buttons = {}
        for key, label in RANGE_OPTIONS.items():
            button = QPushButton(label)
            button.setCheckable(True)
            button.setChecked(key == self.range_key)
            button.clicked.connect(lambda _checked=False, k=key: self.set_range(k))
            self.range_group.addButton(button)
            self.range_buttons[key] = button
            layout.addWidget(button)

        layout.addStretch()

        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.clicked.connect(self.load)
        layout.addWidget(self.refresh_button)

        return layout

    def create_overview_page(self):
        page = QFrame()
        layout = QVBoxLayout(page)

        self.node_table = QTableView()
        self.node_table.setModel(self.node_model)
        self.node_table.setAlternatingRowColors(True)
        self.node_table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.node_table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.node_table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self.node_table.horizontalHeader().setStretchLastSection(True)
        self.node_table.doubleClicked.connect(self.on_node_activated)
        self.node_table.selectionModel().currentRowChanged.connect(self.on_node_selected)
        layout.addWidget(self.node_table)

        # Billing-cycle preview, authenticated only
        self.cycle_row = QWidget()
        cycle_layout = QHBoxLayout(self.cycle_row)
        cycle_layout.setContentsMargins(0, 0, 0, 0)
        cycle_layout.addWidget(QLabel("Renewal cycle preview:"))
        self.cycle_combo = QComboBox()
        self.cycle_combo.addItems(list(CYCLE_OPTIONS.keys()))
        self.cycle_combo.setEnabled(False)
        self.cycle_combo.currentTextChanged.connect(self.on_cycle_changed)
        cycle_layout.addWidget(self.cycle_combo)
        cycle_layout.addStretch()
        layout.addWidget(self.cycle_row)

        return page

    def create_detail_page(self):
        page = QFrame()
        layout = QVBoxLayout(page)

        title = QLabel("Ping statistics (per target)")
        title.setStyleSheet("font-weight: bold;")
        layout.addWidget(title)

        # Chart view is mounted here lazily by ChartSurface
        self.chart_container = QWidget()
        self.chart_container.setMinimumHeight(360)
        self.chart_layout = QVBoxLayout(self.chart_container)
        self.chart_layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.chart_container, 2)

        disconnect_title = QLabel("Disconnect records")
        disconnect_title.setStyleSheet("font-weight: bold;")
        layout.addWidget(disconnect_title)

        self.disconnect_table = QTableView()
        self.disconnect_table.setModel(self.disconnect_model)
        self.disconnect_table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        layout.addWidget(self.disconnect_table, 1)

        self.no_disconnects_label = QLabel("No records")
        self.no_disconnects_label.setStyleSheet("color: gray;")
        layout.addWidget(self.no_disconnects_label)

        return page

    def navigate(self, node_id: int | None):
        """Switch to a node's detail (or the overview for None) and reload."""
        if node_id == self.node_id:
            return

        logger.info("Navigate: node_id=%s -> %s", self.node_id, node_id)
        # The chart belongs to one node's detail view
        self._dispose_chart()
        self.node_id = node_id
        self.detail = None
        self.grouped = {}
        self.disconnect_model.clear()
        self._show_mode()
        self.load()

    def set_range(self, range_key: str):
        if range_key not in RANGE_OPTIONS:
            logger.warning("Unknown range ignored: %s", range_key)
            return
        self.range_buttons[range_key].setChecked(True)
        if range_key == self.range_key:
            return
        self.range_key = range_key
        self._show_mode()
        self.load()

    def load(self):
        """Start a load for the current route; older in-flight loads become stale."""
        key = LoadKey(self.mode, self.node_id, self.range_key)
        return self.loader.load(key, partial(self.fetch, key))

    def fetch(self, key: LoadKey):
        """Blocking fetch for ``key``; runs on a worker thread."""
        if key.mode.detail:
            return self.aggregator.detail(key.node_id, key.range_key, shared=key.mode.shared)
        if key.mode.shared:
            return self.aggregator.aggregate_shared(key.range_key)
        return self.aggregator.aggregate(key.range_key)

    def on_loaded(self, key: LoadKey, result):
        if key.mode.detail:
            self.apply_detail(result)
        else:
            self.apply_overview(result)

    def on_load_failed(self, key: LoadKey, message: str):
        logger.warning("Load failed: key=%s, message=%s", key, message)
        self.status_label.setText(f"Status: {message}")

    def on_state_changed(self, state: ViewState):
        self.refresh_button.setEnabled(state is not ViewState.LOADING)
        if state is ViewState.LOADING:
            self.status_label.setText("Status: Loading...")
        elif state is ViewState.READY and self.status_label.text() == "Status: Loading...":
            self.status_label.setText("Status: Ready")

    def apply_overview(self, result: OverviewResult):
        if result.nodes is not None:
            self.node_model.set_rows(result.nodes)
            self._roster_names = {row.id: row.node.name for row in result.nodes}
        if result.errors:
            self.status_label.setText(f"Status: {'; '.join(result.errors)}")
        self._show_mode()

    def apply_detail(self, detail: NodeDetail):
        self.detail = detail
        self.grouped = group_by_target(detail.payload.results)
        series = build_chart_series(self.grouped, detail.payload.targets)

        if self.chart is None:
            self.chart = ChartSurface(self.chart_container, parent=self)
            self.chart_layout.addWidget(self.chart.create())
        self.chart.update(series)
        logger.debug("Detail applied: node_id=%s, series=%d", detail.node_id, self.chart.series_count())

        self.disconnect_model.set_events(detail.payload.disconnects)
        self.no_disconnects_label.setVisible(not detail.payload.disconnects)
        self._show_mode()

    def node_title(self) -> str:
        name = ""
        if self.detail is not None and self.detail.node_id == self.node_id:
            name = self.detail.name
        name = name or self._roster_names.get(self.node_id, "") or f"Node {self.node_id}"
        return f"{name} network detail"

    def on_node_activated(self, index):
        row = self.node_model.node_at(index.row())
        if row is not None:
            self.navigate(row.id)

    def on_node_selected(self, current, previous):
        row = self.node_model.node_at(current.row())
        self.cycle_combo.setEnabled(row is not None)
        if row is None:
            return
        override = self.node_model.cycle_override(row.id)
        label = next((k for k, v in CYCLE_OPTIONS.items() if v == override), "Default")
        self.cycle_combo.blockSignals(True)
        self.cycle_combo.setCurrentText(label)
        self.cycle_combo.blockSignals(False)

    def on_cycle_changed(self, text: str):
        row = self.node_model.node_at(self.node_table.currentIndex().row())
        if row is None or text not in CYCLE_OPTIONS:
            return
        self.node_model.set_cycle_override(row.id, CYCLE_OPTIONS[text])

    def _show_mode(self):
        mode = self.mode
        self.back_button.setVisible(mode.detail)
        self.cycle_row.setVisible(not mode.shared)
        if mode.detail:
            self.pages.setCurrentWidget(self.detail_page)
            self.title_label.setText(self.node_title())
            sla = self.detail.payload.sla if self.detail is not None else None
            self.sla_label.setText(f"SLA: {format_sla(sla)}")
            self.sla_label.setVisible(True)
        else:
            self.pages.setCurrentWidget(self.overview_page)
            suffix = " (shared)" if mode.shared else ""
            self.title_label.setText(f"Node network overview ({self.range_key}){suffix}")
            self.sla_label.setVisible(False)

    def _dispose_chart(self):
        if self.chart is not None:
            self.chart.dispose()
            self.chart.deleteLater()
            self.chart = None
