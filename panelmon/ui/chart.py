"""Dual-axis latency/loss chart owned by the detail view."""

import logging

from PySide6.QtCharts import QChart, QChartView, QDateTimeAxis, QLineSeries, QValueAxis
from PySide6.QtCore import QDateTime, QEvent, QObject, Qt
from PySide6.QtGui import QPainter
from PySide6.QtWidgets import QWidget

from panelmon.series import (
    LOSS_AXIS_LABEL_FORMAT,
    LOSS_AXIS_RANGE,
    Axis,
    ChartSeries,
    downsample_series,
)

logger = logging.getLogger(__name__)

# Down-sampling budget: points per series per pixel of plot width
POINTS_PER_PIXEL = 1
MIN_THRESHOLD = 50


class ChartSurface(QObject):
    """Owns one QChart plus the resize listener on its host widget.

    Lifecycle: ``create`` once per mount (idempotent), ``update`` to replace
    the displayed series, ``resize`` to re-sample the retained series for a
    new width, ``dispose`` to drop the listener and release the chart.
    """

    def __init__(self, host: QWidget, parent=None):
        super().__init__(parent)
        self.host = host
        self.chart = None
        self.view = None
        self._series: list[ChartSeries] = []
        self._axis_x = None
        self._axis_latency = None
        self._axis_loss = None
        self._width = 0

    @property
    def created(self) -> bool:
        return self.view is not None

    def create(self) -> QChartView:
        if self.view is not None:
            return self.view

        self.chart = QChart()
        self.chart.legend().setAlignment(Qt.AlignBottom)

        self._axis_x = QDateTimeAxis()
        self._axis_x.setFormat("MM-dd HH:mm")
        self.chart.addAxis(self._axis_x, Qt.AlignBottom)

        self._axis_latency = QValueAxis()
        self._axis_latency.setTitleText("RTT (ms)")
        self._axis_latency.setLabelFormat("%.0f")
        self.chart.addAxis(self._axis_latency, Qt.AlignLeft)

        self._axis_loss = QValueAxis()
        self._axis_loss.setTitleText("Loss (%)")
        self._axis_loss.setRange(*LOSS_AXIS_RANGE)
        self._axis_loss.setLabelFormat(LOSS_AXIS_LABEL_FORMAT)
        self.chart.addAxis(self._axis_loss, Qt.AlignRight)

        self.view = QChartView(self.chart, self.host)
        self.view.setRenderHint(QPainter.Antialiasing)
        self.host.installEventFilter(self)

        logger.debug("Chart created")
        return self.view

    def update(self, series: list[ChartSeries]) -> None:
        """Replace every displayed series with ``series``."""
        if self.view is None:
            self.create()
        self._series = list(series)
        self._render()

    def resize(self) -> None:
        """Re-render the retained series for the current width, no refetch."""
        if self.view is None:
            return
        width = self.view.width()
        if width == self._width:
            return
        self._render()

    def dispose(self) -> None:
        if self.view is None:
            return
        self.host.removeEventFilter(self)
        self.chart.removeAllSeries()
        self.view.setParent(None)
        self.view.deleteLater()
        self.view = None
        self.chart = None
        self._series = []
        self._width = 0
        logger.debug("Chart disposed")

    def eventFilter(self, watched, event):
        if watched is self.host and event.type() == QEvent.Resize:
            self.resize()
        return False

    def threshold(self) -> int:
        """Per-series point budget derived from the plot width."""
        return max(MIN_THRESHOLD, int(self._width * POINTS_PER_PIXEL))

    def series_count(self) -> int:
        return len(self._series)

    def _render(self) -> None:
        self._width = self.view.width()
        self.chart.removeAllSeries()
        threshold = self.threshold()

        min_x = max_x = None
        max_latency = 0.0
        for item in self._series:
            axis_y = self._axis_latency if item.axis is Axis.LATENCY else self._axis_loss
            first_line = None
            for segment in downsample_series(item.points, threshold):
                line = QLineSeries()
                line.setName(item.name)
                for x, y in segment:
                    line.append(float(x), float(y))
                # A lone point between two failures has no line to draw
                line.setPointsVisible(len(segment) == 1)
                self.chart.addSeries(line)
                line.attachAxis(self._axis_x)
                line.attachAxis(axis_y)
                # One colour and legend entry per logical series, not per gap-free run
                if first_line is None:
                    first_line = line
                else:
                    line.setColor(first_line.color())
                    for marker in self.chart.legend().markers(line):
                        marker.setVisible(False)

                xs = [p[0] for p in segment]
                min_x = min(xs) if min_x is None else min(min_x, min(xs))
                max_x = max(xs) if max_x is None else max(max_x, max(xs))
                if item.axis is Axis.LATENCY:
                    max_latency = max(max_latency, max(p[1] for p in segment))

        if min_x is not None:
            self._axis_x.setRange(_to_datetime(min_x), _to_datetime(max(max_x, min_x + 1)))
        self._axis_latency.setRange(0, max(10.0, max_latency * 1.1))
        self._axis_loss.setRange(*LOSS_AXIS_RANGE)

        logger.debug("Chart rendered: series=%d, threshold=%d", len(self._series), threshold)


def _to_datetime(ms: int) -> QDateTime:
    return QDateTime.fromMSecsSinceEpoch(int(ms))
