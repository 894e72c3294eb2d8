import logging
from typing import Any, Callable, Iterable, Mapping, Optional

import pyqtgraph as pg
from PyQt6.QtCore import QSettings, pyqtSignal
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import (
    QButtonGroup,
    QCheckBox,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from sharechart.core.config import ChartLayout, ChartTheme, DEFAULT_LAYOUT, DEFAULT_THEME
from sharechart.core.models import TIMEFRAMES, ChartSeries, normalize_series
from sharechart.core.shapes import sparkline_points
from sharechart.core.tooltip import price_change_percent, price_summary

from .charts.candlestick_chart import CandlestickChart

logger = logging.getLogger(__name__)

SeriesLoader = Callable[[str], Optional[Iterable[Mapping[str, Any]]]]


class ChartView(QWidget):
    """
    Timeframe picker plus the price chart.

    Rows come from `series_loader(timeframe)`; they are normalised here, before
    they reach the chart. Empty or failed loads show the placeholder instead of
    the chart.
    """

    hover_changed = pyqtSignal(object)
    timeframe_changed = pyqtSignal(str)

    def __init__(
        self,
        series_loader: SeriesLoader,
        parent: Optional[QWidget] = None,
        chart_layout: ChartLayout = DEFAULT_LAYOUT,
        theme: ChartTheme = DEFAULT_THEME,
        settings: Optional[QSettings] = None,
    ) -> None:
        super().__init__(parent)
        self._series_loader = series_loader
        self._theme = theme
        self._settings = settings if settings is not None else QSettings('ShareChart', 'ShareChart')
        self.series: ChartSeries = ()
        self.last_error: Optional[str] = None

        timeframe = str(self._settings.value('chart/timeframe', '1d'))
        if timeframe not in TIMEFRAMES:
            timeframe = '1d'
        self.timeframe = timeframe
        show_volume = self._settings.value('chart/show_volume', chart_layout.show_volume, type=bool)

        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(6)

        toolbar = QHBoxLayout()
        toolbar.setSpacing(4)
        self._timeframe_group = QButtonGroup(self)
        self._timeframe_group.setExclusive(True)
        self.timeframe_buttons: dict[str, QPushButton] = {}
        for tf in TIMEFRAMES:
            button = QPushButton(tf.upper())
            button.setObjectName('TimeframeButton')
            button.setCheckable(True)
            button.setChecked(tf == self.timeframe)
            button.clicked.connect(lambda _checked=False, value=tf: self.set_timeframe(value))
            self._timeframe_group.addButton(button)
            toolbar.addWidget(button)
            self.timeframe_buttons[tf] = button
        toolbar.addStretch(1)
        self.summary_label = QLabel('')
        self.summary_label.setObjectName('PriceSummary')
        toolbar.addWidget(self.summary_label)
        self.sparkline = pg.PlotWidget()
        self.sparkline.setFixedSize(100, 40)
        self.sparkline.hideAxis('left')
        self.sparkline.hideAxis('bottom')
        self.sparkline.hideButtons()
        self.sparkline.setMenuEnabled(False)
        self.sparkline.setMouseEnabled(x=False, y=False)
        spark_box = self.sparkline.getViewBox()
        spark_box.invertY(True)
        spark_box.setRange(xRange=(0.0, 100.0), yRange=(0.0, 40.0), padding=0.0)
        self._sparkline_curve = self.sparkline.plot([], [])
        toolbar.addWidget(self.sparkline)
        self.volume_toggle = QCheckBox('Volume')
        self.volume_toggle.setChecked(show_volume)
        self.volume_toggle.toggled.connect(self.set_show_volume)
        toolbar.addWidget(self.volume_toggle)
        root.addLayout(toolbar)

        self.stack = QStackedWidget()
        self.placeholder = QLabel(theme.placeholder)
        self.placeholder.setObjectName('ChartPlaceholder')
        self.placeholder.setWordWrap(True)
        self.plot_widget = pg.PlotWidget()
        self.chart = CandlestickChart(
            self.plot_widget,
            layout=chart_layout.with_options(show_volume=show_volume),
            theme=theme,
            on_hover=self.hover_changed.emit,
        )
        self.stack.addWidget(self.placeholder)
        self.stack.addWidget(self.plot_widget)
        root.addWidget(self.stack, 1)

        self.reload()

    def set_timeframe(self, timeframe: str) -> None:
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"unsupported timeframe {timeframe!r}; expected one of {', '.join(TIMEFRAMES)}")
        button = self.timeframe_buttons.get(timeframe)
        if button is not None and not button.isChecked():
            button.setChecked(True)
        if timeframe == self.timeframe:
            return
        self.timeframe = timeframe
        self._settings.setValue('chart/timeframe', timeframe)
        self.timeframe_changed.emit(timeframe)
        self.reload()

    def set_show_volume(self, show_volume: bool) -> None:
        show_volume = bool(show_volume)
        if self.volume_toggle.isChecked() != show_volume:
            self.volume_toggle.setChecked(show_volume)
        self._settings.setValue('chart/show_volume', show_volume)
        self.chart.set_show_volume(show_volume)

    def reload(self) -> None:
        try:
            rows = self._series_loader(self.timeframe)
            series = normalize_series(rows)
        except Exception as exc:
            # Loader failures come from outside the chart; keep the UI alive.
            logger.exception("Failed to load %s price history", self.timeframe)
            self.last_error = str(exc)
            self.set_series(())
            self.placeholder.setText(f"{self._theme.placeholder}\n{exc}")
            return
        self.last_error = None
        self.set_series(series)

    def set_series(self, series: ChartSeries) -> None:
        # A new timeframe replaces the whole series; nothing is merged.
        self.series = tuple(series)
        self.chart.set_series(self.series)
        self._update_summary()
        if not self.series:
            self.placeholder.setText(self._theme.placeholder)
            self.stack.setCurrentWidget(self.placeholder)
            return
        self.stack.setCurrentWidget(self.plot_widget)

    def _update_summary(self) -> None:
        # Compact market-card view of the same series: last price, move, sparkline.
        color = self._theme.bullish if price_change_percent(self.series) >= 0 else self._theme.bearish
        self.summary_label.setText(price_summary(self.series))
        self.summary_label.setStyleSheet(f'color: {color};')
        points = sparkline_points([record.close for record in self.series])
        if not points:
            self._sparkline_curve.setData([], [])
            return
        xs, ys = zip(*points)
        self._sparkline_curve.setData(list(xs), list(ys), pen=pg.mkPen(QColor(color), width=1.5))
