from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from .config import ChartLayout, DEFAULT_LAYOUT
from .models import OHLCRecord
from .scale import ScaleMapper

BULLISH = "bullish"
BEARISH = "bearish"


@dataclass(frozen=True)
class CandleShape:
    index: int
    direction: str
    center_x: float
    body_x: float
    body_width: float
    wick_top: float
    wick_bottom: float
    body_top: float
    body_height: float


@dataclass(frozen=True)
class VolumeBarShape:
    index: int
    direction: str
    x: float
    width: float
    top: float
    height: float


@dataclass(frozen=True)
class GridLine:
    price: float
    y: float


@dataclass(frozen=True)
class ChartGeometry:
    scale: ScaleMapper
    slot_width: float
    candles: List[CandleShape] = field(default_factory=list)
    volume_bars: List[VolumeBarShape] = field(default_factory=list)
    grid_lines: List[GridLine] = field(default_factory=list)

    @property
    def layout(self) -> ChartLayout:
        return self.scale.layout


def classify(record: OHLCRecord) -> str:
    # Flat candles count as bullish.
    return BULLISH if record.close >= record.open else BEARISH


def slot_width(count: int, layout: ChartLayout = DEFAULT_LAYOUT) -> float:
    if count <= 0:
        raise ValueError("series length must be positive")
    return layout.plot_width / count


def candle_width(count: int, layout: ChartLayout = DEFAULT_LAYOUT) -> float:
    slot = slot_width(count, layout)
    return min(slot, max(layout.min_candle_width, slot * layout.body_ratio))


def _slot_left(index: int, count: int, layout: ChartLayout) -> float:
    return layout.padding_left + index * slot_width(count, layout)


def candle_shape(
    record: OHLCRecord,
    index: int,
    count: int,
    scale: ScaleMapper,
    layout: ChartLayout = DEFAULT_LAYOUT,
) -> CandleShape:
    slot = slot_width(count, layout)
    width = candle_width(count, layout)
    body_x = _slot_left(index, count, layout) + (slot - width) / 2.0
    body_top = float(scale.price_to_y(max(record.open, record.close)))
    body_bottom = float(scale.price_to_y(min(record.open, record.close)))
    return CandleShape(
        index=index,
        direction=classify(record),
        center_x=body_x + width / 2.0,
        body_x=body_x,
        body_width=width,
        wick_top=float(scale.price_to_y(record.high)),
        wick_bottom=float(scale.price_to_y(record.low)),
        body_top=body_top,
        body_height=max(layout.min_body_height, body_bottom - body_top),
    )


def volume_bar_shape(
    record: OHLCRecord,
    index: int,
    count: int,
    scale: ScaleMapper,
    layout: ChartLayout = DEFAULT_LAYOUT,
) -> VolumeBarShape:
    slot = slot_width(count, layout)
    width = candle_width(count, layout)
    height = float(scale.volume_to_bar_height(record.volume))
    return VolumeBarShape(
        index=index,
        direction=classify(record),
        x=_slot_left(index, count, layout) + (slot - width) / 2.0,
        width=width,
        top=layout.volume_top + layout.volume_track_height - height,
        height=height,
    )


def build_geometry(series: Sequence[OHLCRecord], layout: ChartLayout = DEFAULT_LAYOUT) -> ChartGeometry:
    """
    Compute every primitive for one render pass.

    Same numbers as calling `candle_shape` / `volume_bar_shape` per record, but
    done column-wise with numpy so long series stay cheap on pointer-driven
    re-renders.
    """
    scale = ScaleMapper.from_series(series, layout)
    count = len(series)
    slot = slot_width(count, layout)
    width = candle_width(count, layout)

    arr = np.array([[r.open, r.high, r.low, r.close, r.volume] for r in series], dtype=np.float64)
    opens, highs, lows, closes, volumes = arr.T
    body_x = layout.padding_left + np.arange(count, dtype=np.float64) * slot + (slot - width) / 2.0
    center_x = body_x + width / 2.0
    wick_top = scale.price_to_y(highs)
    wick_bottom = scale.price_to_y(lows)
    body_top = scale.price_to_y(np.maximum(opens, closes))
    body_bottom = scale.price_to_y(np.minimum(opens, closes))
    body_height = np.maximum(layout.min_body_height, body_bottom - body_top)
    is_up = closes >= opens

    candles = [
        CandleShape(
            index=idx,
            direction=BULLISH if is_up[idx] else BEARISH,
            center_x=float(center_x[idx]),
            body_x=float(body_x[idx]),
            body_width=width,
            wick_top=float(wick_top[idx]),
            wick_bottom=float(wick_bottom[idx]),
            body_top=float(body_top[idx]),
            body_height=float(body_height[idx]),
        )
        for idx in range(count)
    ]

    volume_bars: List[VolumeBarShape] = []
    if layout.show_volume:
        bar_height = scale.volume_to_bar_height(volumes)
        track_bottom = layout.volume_top + layout.volume_track_height
        volume_bars = [
            VolumeBarShape(
                index=idx,
                direction=BULLISH if is_up[idx] else BEARISH,
                x=float(body_x[idx]),
                width=width,
                top=float(track_bottom - bar_height[idx]),
                height=float(bar_height[idx]),
            )
            for idx in range(count)
        ]

    grid_lines = [GridLine(price=p, y=float(scale.price_to_y(p))) for p in scale.grid_levels()]
    return ChartGeometry(
        scale=scale,
        slot_width=slot,
        candles=candles,
        volume_bars=volume_bars,
        grid_lines=grid_lines,
    )


def sparkline_points(values: Sequence[float], width: float = 100.0, height: float = 40.0) -> List[Tuple[float, float]]:
    """Polyline points for the compact market-card sparkline."""
    if values is None or len(values) < 2:
        return []
    data = np.asarray(values, dtype=np.float64)
    low = float(data.min())
    span = float(data.max()) - low
    if not span > 0:
        span = 1.0
    xs = np.arange(data.size, dtype=np.float64) / (data.size - 1) * width
    ys = height - ((data - low) / span) * height
    return [(float(x), float(y)) for x, y in zip(xs, ys)]
