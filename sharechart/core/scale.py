from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np

from .config import ChartLayout, DEFAULT_LAYOUT
from .models import OHLCRecord

Number = Union[float, np.ndarray]


@dataclass(frozen=True)
class ScaleMapper:
    """
    Linear mapping from price/volume into the virtual canvas.

    Built once per render pass from the whole series. Instances are frozen, so two
    mappers built from the same series are interchangeable.
    """

    min_price: float
    max_price: float
    price_range: float
    max_volume: float
    layout: ChartLayout = DEFAULT_LAYOUT

    @classmethod
    def from_series(cls, series: Sequence[OHLCRecord], layout: ChartLayout = DEFAULT_LAYOUT) -> "ScaleMapper":
        if not series:
            raise ValueError("cannot build a price scale from an empty series")
        lows = np.fromiter((r.low for r in series), dtype=np.float64, count=len(series))
        highs = np.fromiter((r.high for r in series), dtype=np.float64, count=len(series))
        volumes = np.fromiter((r.volume for r in series), dtype=np.float64, count=len(series))
        # Malformed rows may have low > high; take extrema over both columns.
        min_price = float(min(lows.min(), highs.min())) * layout.price_pad_low
        max_price = float(max(lows.max(), highs.max())) * layout.price_pad_high
        price_range = max_price - min_price
        if not price_range > 0:
            price_range = 1.0
        max_volume = float(volumes.max())
        if not max_volume > 0:
            max_volume = 1.0
        return cls(
            min_price=min_price,
            max_price=max_price,
            price_range=price_range,
            max_volume=max_volume,
            layout=layout,
        )

    def price_to_y(self, price: Number) -> Number:
        plot_height = self.layout.plot_height
        return self.layout.padding_top + plot_height - ((price - self.min_price) / self.price_range) * plot_height

    def volume_to_bar_height(self, volume: Number) -> Number:
        return (volume / self.max_volume) * self.layout.volume_track_height

    def grid_levels(self, count: Optional[int] = None) -> List[float]:
        if count is None:
            count = self.layout.grid_levels
        if count <= 0:
            return []
        if count == 1:
            return [self.min_price]
        step = self.price_range / (count - 1)
        return [self.min_price + step * i for i in range(count)]
