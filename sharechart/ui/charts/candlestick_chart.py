from typing import Callable, List, Optional, Sequence

import pyqtgraph as pg
from PyQt6.QtCore import QEvent, QObject, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QPainter, QPainterPath, QPicture

from sharechart.core.config import ChartLayout, ChartTheme, DEFAULT_LAYOUT, DEFAULT_THEME
from sharechart.core.hit_test import PointerTracker
from sharechart.core.models import ChartSeries, HoverSelection, OHLCRecord
from sharechart.core.shapes import BULLISH, ChartGeometry, build_geometry
from sharechart.core.tooltip import Tooltip, format_price, present

from .volume_histogram import VolumeHistogramItem


class CandlestickItem(pg.GraphicsObject):
    def __init__(self, theme: ChartTheme = DEFAULT_THEME, layout: ChartLayout = DEFAULT_LAYOUT) -> None:
        super().__init__()
        self.base_color = QColor(theme.bullish)
        self.down_color = QColor(theme.bearish)
        self.grid_color = QColor(theme.grid)
        self.grid_color.setAlpha(theme.grid_alpha)
        self.geometry: Optional[ChartGeometry] = None
        self.picture = QPicture()
        self._layout = layout
        self._cached_bounds: Optional[QRectF] = None
        self._pen_cache: dict[tuple[int, int, int, int], pg.QtGui.QPen] = {}
        self._brush_cache: dict[tuple[int, int, int, int], pg.QtGui.QBrush] = {}
        self._is_painting = False

    def _get_pen(self, color: QColor) -> pg.QtGui.QPen:
        key = color.getRgb()
        pen = self._pen_cache.get(key)
        if pen is None:
            pen = pg.mkPen(color, width=1)
            self._pen_cache[key] = pen
        return pen

    def _get_brush(self, color: QColor) -> pg.QtGui.QBrush:
        key = color.getRgb()
        brush = self._brush_cache.get(key)
        if brush is None:
            brush = pg.mkBrush(color)
            self._brush_cache[key] = brush
        return brush

    def set_geometry(self, geometry: Optional[ChartGeometry]) -> None:
        self.geometry = geometry
        if geometry is not None:
            self._layout = geometry.layout
        self.prepareGeometryChange()
        self._cached_bounds = QRectF(0.0, 0.0, self._layout.virtual_width, self._layout.total_height)
        self.generate_picture()
        self.update()

    def generate_picture(self) -> None:
        if self._is_painting:
            return
        self._is_painting = True
        try:
            self.picture = QPicture()
            if self.geometry is None or not self.geometry.candles:
                return
            painter = QPainter(self.picture)
            try:
                self._draw_grid(painter)
                self._draw_candles(painter)
            finally:
                painter.end()
        finally:
            self._is_painting = False

    def _draw_grid(self, painter: QPainter) -> None:
        pen = pg.mkPen(self.grid_color, width=1, style=Qt.PenStyle.DashLine)
        painter.setPen(pen)
        left = self._layout.padding_left
        right = self._layout.virtual_width - self._layout.padding_right
        for line in self.geometry.grid_lines:
            painter.drawLine(QPointF(left, line.y), QPointF(right, line.y))

    def _draw_candles(self, painter: QPainter) -> None:
        for candle in self.geometry.candles:
            color = self.base_color if candle.direction == BULLISH else self.down_color
            painter.setPen(self._get_pen(color))
            painter.drawLine(
                QPointF(candle.center_x, candle.wick_top),
                QPointF(candle.center_x, candle.wick_bottom),
            )
            painter.setBrush(self._get_brush(color))
            painter.drawRect(QRectF(candle.body_x, candle.body_top, candle.body_width, candle.body_height))

    def boundingRect(self) -> QRectF:
        if self._cached_bounds is not None and self._cached_bounds.isValid():
            return self._cached_bounds
        return QRectF(0, 0, 1, 1)

    def paint(self, painter: QPainter, option, widget) -> None:
        if self.geometry is None:
            return
        painter.drawPicture(0, 0, self.picture)


class CandlestickChart(QObject):
    """
    Price-history chart bound to one `pg.PlotWidget`.

    The view box shows the virtual canvas with y pointing down, so geometry from
    `build_geometry` is drawn without further transforms. Pointer moves over the
    plot go through a `PointerTracker`; `hover_changed` carries the resulting
    `HoverSelection` or None.
    """

    hover_changed = pyqtSignal(object)

    def __init__(
        self,
        plot_widget: pg.PlotWidget,
        layout: ChartLayout = DEFAULT_LAYOUT,
        theme: ChartTheme = DEFAULT_THEME,
        on_hover: Optional[Callable[[Optional[HoverSelection]], None]] = None,
    ) -> None:
        super().__init__()
        self.plot_widget = plot_widget
        self.layout = layout
        self.theme = theme
        self.series: ChartSeries = ()
        self.geometry: Optional[ChartGeometry] = None
        self.tooltip: Optional[Tooltip] = None
        self.hover_label: Optional[pg.QtWidgets.QGraphicsTextItem] = None
        self.hover_label_bg: Optional[pg.QtWidgets.QGraphicsPathItem] = None
        self.empty_label: Optional[pg.QtWidgets.QGraphicsTextItem] = None
        self.volume_label: Optional[pg.TextItem] = None
        self.price_labels: List[pg.TextItem] = []
        self._tracker = PointerTracker(layout, on_hover=self.hover_changed.emit)
        if on_hover is not None:
            self.hover_changed.connect(on_hover)

        self.plot_widget.hideAxis('left')
        self.plot_widget.hideAxis('bottom')
        self.plot_widget.hideButtons()
        self.plot_widget.setMenuEnabled(False)
        self.plot_widget.setMouseEnabled(x=False, y=False)
        try:
            self.plot_widget.setCursor(Qt.CursorShape.CrossCursor)
        except Exception:
            pass
        view_box = self.plot_widget.getViewBox()
        view_box.invertY(True)
        view_box.enableAutoRange('xy', False)

        self.item = CandlestickItem(theme, layout)
        self.plot_widget.addItem(self.item)
        self.volume_item = VolumeHistogramItem(theme, layout)
        self.volume_item.setZValue(10)
        self.plot_widget.addItem(self.volume_item)

        self.plot_widget.scene().sigMouseMoved.connect(self._on_mouse_moved)
        self.plot_widget.installEventFilter(self)
        self._apply_range()
        self._show_empty_state()

    @property
    def selection(self) -> Optional[HoverSelection]:
        return self._tracker.selection

    def set_series(self, series: Sequence[OHLCRecord]) -> None:
        self.series = tuple(series or ())
        self._tracker.reset(self.layout)
        self._hide_tooltip()
        self._render()

    def set_show_volume(self, show_volume: bool) -> None:
        if show_volume == self.layout.show_volume:
            return
        self.set_layout(self.layout.with_options(show_volume=bool(show_volume)))

    def set_height(self, height: float) -> None:
        if height == self.layout.height:
            return
        self.set_layout(self.layout.with_options(height=float(height)))

    def set_layout(self, layout: ChartLayout) -> None:
        self.layout = layout
        self._tracker.reset(layout)
        self._hide_tooltip()
        self._render()

    def clear_hover(self) -> None:
        self._tracker.leave()
        self._hide_tooltip()

    def _render(self) -> None:
        if not self.series:
            self.geometry = None
            self.item.set_geometry(None)
            self.volume_item.clear()
            self._update_price_labels()
            self._apply_range()
            self._show_empty_state()
            return
        self.geometry = build_geometry(self.series, self.layout)
        self.item.set_geometry(self.geometry)
        self.volume_item.set_bars(self.geometry.volume_bars, self.layout)
        self._update_price_labels()
        self._apply_range()
        self._hide_empty_state()

    def _apply_range(self) -> None:
        view_box = self.plot_widget.getViewBox()
        view_box.setRange(
            xRange=(0.0, self.layout.virtual_width),
            yRange=(0.0, self.layout.total_height),
            padding=0.0,
        )

    def _update_price_labels(self) -> None:
        for label in self.price_labels:
            self.plot_widget.removeItem(label)
        self.price_labels = []
        if self.volume_label is not None:
            self.plot_widget.removeItem(self.volume_label)
            self.volume_label = None
        if self.geometry is None:
            return
        font = QFont()
        font.setPointSize(7)
        x = self.layout.virtual_width - self.layout.padding_right + 0.5
        for line in self.geometry.grid_lines:
            label = pg.TextItem(format_price(line.price), color=QColor(self.theme.text), anchor=(0, 0.5))
            label.setFont(font)
            label.setPos(x, line.y)
            self.plot_widget.addItem(label)
            self.price_labels.append(label)
        if self.layout.show_volume:
            self.volume_label = pg.TextItem('Volume', color=QColor(self.theme.text), anchor=(0, 1))
            self.volume_label.setFont(font)
            self.volume_label.setPos(self.layout.padding_left, self.layout.volume_top)
            self.plot_widget.addItem(self.volume_label)

    def eventFilter(self, obj, event) -> bool:
        if obj is self.plot_widget and event.type() == QEvent.Type.Leave:
            self.clear_hover()
        return False

    def _on_mouse_moved(self, scene_pos) -> None:
        if not self.series:
            return
        view_box = self.plot_widget.getViewBox()
        rect = view_box.sceneBoundingRect()
        if not rect.contains(scene_pos):
            self.clear_hover()
            return
        pointer = (scene_pos.x() - rect.left(), scene_pos.y() - rect.top())
        selection = self._tracker.move(self.series, pointer, (rect.width(), rect.height()))
        if selection is None:
            self._hide_tooltip()
            return
        self._show_tooltip(selection, rect)

    def _ensure_hover_label(self) -> None:
        if self.hover_label is None:
            self.hover_label = pg.QtWidgets.QGraphicsTextItem()
            font = QFont()
            font.setPointSize(8)
            self.hover_label.setFont(font)
            self.hover_label.setDefaultTextColor(QColor(self.theme.text))
            self.hover_label.document().setDocumentMargin(0)
            self.hover_label.setZValue(60)
            self.plot_widget.scene().addItem(self.hover_label)
        if self.hover_label_bg is None:
            self.hover_label_bg = pg.QtWidgets.QGraphicsPathItem()
            self.hover_label_bg.setZValue(59)
            self.plot_widget.scene().addItem(self.hover_label_bg)

    def _show_tooltip(self, selection: HoverSelection, rect: QRectF) -> None:
        self.tooltip = present(selection, rect.width(), self.layout)
        if self.tooltip is None:
            self._hide_tooltip()
            return
        self._ensure_hover_label()
        color = QColor(self.theme.bullish) if selection.record.is_bullish else QColor(self.theme.bearish)
        self.hover_label.setDefaultTextColor(color)
        self.hover_label.setPlainText(self.tooltip.text())
        padding_x = 6
        padding_y = 3
        x = rect.left() + self.tooltip.left
        y = max(rect.top(), rect.top() + self.tooltip.top)
        self.hover_label.setPos(x + padding_x, y + padding_y)
        text_rect = self.hover_label.boundingRect()
        path = QPainterPath()
        path.addRoundedRect(QRectF(x, y, text_rect.width() + padding_x * 2, text_rect.height() + padding_y * 2), 6.0, 6.0)
        bg_color = QColor(self.theme.tooltip_bg)
        bg_color.setAlpha(self.theme.tooltip_bg_alpha)
        self.hover_label_bg.setPath(path)
        self.hover_label_bg.setBrush(bg_color)
        self.hover_label_bg.setPen(pg.mkPen(QColor(0, 0, 0, 0), width=0))
        self.hover_label.show()
        self.hover_label_bg.show()

    def _hide_tooltip(self) -> None:
        self.tooltip = None
        if self.hover_label is not None:
            self.hover_label.hide()
        if self.hover_label_bg is not None:
            self.hover_label_bg.hide()

    def _show_empty_state(self) -> None:
        if self.empty_label is None:
            self.empty_label = pg.QtWidgets.QGraphicsTextItem()
            self.empty_label.setDefaultTextColor(QColor('#6B7280'))
            self.empty_label.setZValue(20)
            self.empty_label.setPlainText(self.theme.placeholder)
            self.plot_widget.scene().addItem(self.empty_label)
        scene_rect = self.plot_widget.getPlotItem().sceneBoundingRect()
        label_rect = self.empty_label.boundingRect()
        x = scene_rect.center().x() - (label_rect.width() / 2.0)
        y = scene_rect.center().y() - (label_rect.height() / 2.0)
        self.empty_label.setPos(x, y)
        self.empty_label.show()

    def _hide_empty_state(self) -> None:
        if self.empty_label is not None:
            self.empty_label.hide()
