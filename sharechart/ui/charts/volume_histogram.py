from typing import List, Optional, Tuple

import pyqtgraph as pg
from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QColor, QPainter, QPicture

from sharechart.core.config import ChartLayout, ChartTheme, DEFAULT_LAYOUT, DEFAULT_THEME
from sharechart.core.shapes import BULLISH, VolumeBarShape


class VolumeHistogramItem(pg.GraphicsObject):
    def __init__(self, theme: ChartTheme = DEFAULT_THEME, layout: ChartLayout = DEFAULT_LAYOUT) -> None:
        super().__init__()
        self._theme = theme
        self._layout = layout
        self._up_color = QColor(theme.bullish)
        self._up_color.setAlpha(theme.volume_alpha)
        self._down_color = QColor(theme.bearish)
        self._down_color.setAlpha(theme.volume_alpha)
        self._bars: List[VolumeBarShape] = []
        self.picture = QPicture()
        self._cached_bounds: Optional[QRectF] = None
        self._render_key: Optional[Tuple[int, float, float]] = None

    @property
    def bars(self) -> List[VolumeBarShape]:
        return list(self._bars)

    def set_bars(self, bars: List[VolumeBarShape], layout: Optional[ChartLayout] = None) -> None:
        if layout is not None:
            self._layout = layout
        self._bars = list(bars or [])
        render_key = (len(self._bars), self._layout.volume_top, self._layout.volume_track_height)
        if render_key != self._render_key:
            self.prepareGeometryChange()
            self._render_key = render_key
        self._cached_bounds = QRectF(
            0.0,
            self._layout.volume_top,
            self._layout.virtual_width,
            self._layout.volume_track_height,
        )
        self.generate_picture()
        self.update()

    def clear(self) -> None:
        self.set_bars([])

    def generate_picture(self) -> None:
        self.picture = QPicture()
        if not self._bars:
            return
        painter = QPainter(self.picture)
        try:
            painter.setPen(pg.mkPen(QColor(0, 0, 0, 0)))
            for bar in self._bars:
                # Zero-volume buckets leave an empty slot.
                if bar.height <= 0:
                    continue
                painter.setBrush(self._up_color if bar.direction == BULLISH else self._down_color)
                painter.drawRect(QRectF(bar.x, bar.top, bar.width, bar.height))
        finally:
            painter.end()

    def boundingRect(self) -> QRectF:
        if self._cached_bounds is not None and self._cached_bounds.isValid():
            return self._cached_bounds
        return QRectF(0, 0, 1, 1)

    def paint(self, painter: QPainter, option, widget) -> None:
        if not self._bars:
            return
        painter.drawPicture(0, 0, self.picture)
