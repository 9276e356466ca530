"""Qt models for the overview grid and the disconnect log."""

import time

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from panelmon.billing import format_billing
from panelmon.formatting import (
    UNAVAILABLE,
    format_duration,
    format_latency_stat,
    format_percent,
    format_timestamp,
    format_traffic,
    format_uptime,
)
from panelmon.models import DisconnectEvent, NodeView


def _now_ms() -> int:
    return int(time.time() * 1000)


class NodeGridModel(QAbstractTableModel):
    """Table model for the overview grid, one row per node.

    Rows are replaced wholesale on every load. Live system metrics read as
    unavailable while a node is offline, even when a stale snapshot exists.
    Billing-cycle overrides are a transient preview kept only in this model.
    """

    COL_NAME, COL_STATUS, COL_CPU, COL_MEM, COL_UPTIME, COL_NETWORK, COL_UP, COL_DOWN, COL_BILLING = range(9)

    def __init__(self, now_ms=_now_ms, parent=None):
        super().__init__(parent)
        self._rows: list[NodeView] = []
        self._cycle_overrides: dict[int, int] = {}
        self._now_ms = now_ms

        self._columns = ["Name", "Status", "CPU", "Memory", "Uptime", "Network", "↑ Upload", "↓ Download", "Billing"]

    def rowCount(self, parent=QModelIndex()):
        """Return the number of rows (nodes)."""
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        """Return the number of columns."""
        if parent.isValid():
            return 0
        return len(self._columns)

    def data(self, index, role=Qt.DisplayRole):
        """Return data for a given cell."""
        if not index.isValid() or not 0 <= index.row() < len(self._rows):
            return None

        row = self._rows[index.row()]
        col = index.column()

        if role == Qt.DisplayRole:
            return self._display(row, col)
        elif role == Qt.TextAlignmentRole:
            if col in (self.COL_NAME, self.COL_BILLING):
                return Qt.AlignLeft | Qt.AlignVCenter
            elif col == self.COL_STATUS:
                return Qt.AlignCenter
            return Qt.AlignRight | Qt.AlignVCenter
        elif role == Qt.UserRole:
            return row.id

        return None

    def _display(self, row: NodeView, col: int):
        node = row.node
        # Offline nodes never show live metrics
        snap = row.snapshot if node.online else None

        if col == self.COL_NAME:
            return node.name
        elif col == self.COL_STATUS:
            return "Online" if node.online else "Offline"
        elif col == self.COL_CPU:
            return format_percent(snap.cpu) if snap else UNAVAILABLE
        elif col == self.COL_MEM:
            return format_percent(snap.mem) if snap else UNAVAILABLE
        elif col == self.COL_UPTIME:
            return format_uptime(snap.uptime) if snap else UNAVAILABLE
        elif col == self.COL_NETWORK:
            return format_latency_stat(row.latency)
        elif col == self.COL_UP:
            return format_traffic(snap.bytes_tx) if snap else UNAVAILABLE
        elif col == self.COL_DOWN:
            return format_traffic(snap.bytes_rx) if snap else UNAVAILABLE
        elif col == self.COL_BILLING:
            return format_billing(node, self._now_ms(), self._cycle_overrides.get(node.id))
        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        """Return header data."""
        if role == Qt.DisplayRole and orientation == Qt.Horizontal:
            if 0 <= section < len(self._columns):
                return self._columns[section]
        return None

    def flags(self, index):
        """Rows are selectable but not editable."""
        if not index.isValid():
            return Qt.NoItemFlags
        return Qt.ItemIsEnabled | Qt.ItemIsSelectable

    def set_rows(self, rows: list[NodeView]):
        """Replace all rows at once."""
        self.beginResetModel()
        self._rows = list(rows)
        self.endResetModel()

    def node_at(self, row: int) -> NodeView | None:
        """Return the node shown at ``row``, or None when out of range."""
        if 0 <= row < len(self._rows):
            return self._rows[row]
        return None

    def set_cycle_override(self, node_id: int, cycle_days: int | None):
        """Preview a different billing cycle for one node; None clears it."""
        if cycle_days:
            self._cycle_overrides[node_id] = cycle_days
        else:
            self._cycle_overrides.pop(node_id, None)

        for i, row in enumerate(self._rows):
            if row.id == node_id:
                cell = self.index(i, self.COL_BILLING)
                self.dataChanged.emit(cell, cell, [Qt.DisplayRole])

    def cycle_override(self, node_id: int) -> int | None:
        """Return the previewed cycle length for a node, if any."""
        return self._cycle_overrides.get(node_id)


class DisconnectModel(QAbstractTableModel):
    """Table model for a node's disconnect events, read-only."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._events: list[DisconnectEvent] = []
        self._columns = ["Start", "Recovered", "Duration"]

    def rowCount(self, parent=QModelIndex()):
        """Return the number of rows (events)."""
        if parent.isValid():
            return 0
        return len(self._events)

    def columnCount(self, parent=QModelIndex()):
        """Return the number of columns."""
        if parent.isValid():
            return 0
        return len(self._columns)

    def data(self, index, role=Qt.DisplayRole):
        """Return data for a given cell."""
        if not index.isValid() or not 0 <= index.row() < len(self._events):
            return None

        event = self._events[index.row()]
        col = index.column()

        if role == Qt.DisplayRole:
            if col == 0:
                return format_timestamp(event.down_at_ms)
            elif col == 1:
                return format_timestamp(event.up_at_ms)
            elif col == 2:
                return format_duration(event.resolved_duration_s)
        elif role == Qt.TextAlignmentRole and col == 2:
            return Qt.AlignRight | Qt.AlignVCenter

        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        """Return header data."""
        if role == Qt.DisplayRole and orientation == Qt.Horizontal:
            if 0 <= section < len(self._columns):
                return self._columns[section]
        return None

    def flags(self, index):
        """Rows are selectable but not editable."""
        if not index.isValid():
            return Qt.NoItemFlags
        return Qt.ItemIsEnabled | Qt.ItemIsSelectable

    def set_events(self, events: list[DisconnectEvent]):
        """Replace all events at once."""
        self.beginResetModel()
        self._events = list(events)
        self.endResetModel()

    def clear(self):
        self.set_events([])
