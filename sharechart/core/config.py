from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple


@dataclass(frozen=True)
class ChartLayout:
    """
    Virtual canvas shared by shape generation and hit-testing.

    All coordinates are in virtual units: x spans `[0, virtual_width]` and y grows
    downward from the top of the price plot. The drawing surface stretches the
    canvas to whatever pixel size it is given, so hit-testing must normalise the
    pointer back into the same units.
    """

    virtual_width: float = 100.0
    height: float = 300.0
    volume_gap: float = 60.0
    volume_track_height: float = 50.0
    padding_top: float = 20.0
    padding_left: float = 2.0
    padding_right: float = 12.0
    price_pad_low: float = 0.995
    price_pad_high: float = 1.005
    body_ratio: float = 0.7
    min_candle_width: float = 0.2
    min_body_height: float = 0.5
    show_volume: bool = True
    tooltip_width_estimate: float = 200.0
    tooltip_offset: Tuple[float, float] = (10.0, -100.0)
    grid_levels: int = 5

    def __post_init__(self) -> None:
        if self.virtual_width <= 0:
            raise ValueError("virtual_width must be positive")
        if self.height <= self.volume_gap:
            raise ValueError("height must leave room above the volume gap")
        if self.volume_track_height < 0:
            raise ValueError("volume_track_height must be non-negative")
        if self.plot_width <= 0:
            raise ValueError("horizontal padding leaves no plot width")
        if not 0 < self.body_ratio <= 1:
            raise ValueError("body_ratio must be in (0, 1]")
        if self.min_candle_width < 0 or self.min_body_height < 0:
            raise ValueError("minimum sizes must be non-negative")
        if self.grid_levels < 0:
            raise ValueError("grid_levels must be non-negative")

    @property
    def plot_width(self) -> float:
        return self.virtual_width - self.padding_left - self.padding_right

    @property
    def plot_height(self) -> float:
        return self.height - self.volume_gap

    @property
    def volume_top(self) -> float:
        return self.height + 10.0

    @property
    def total_height(self) -> float:
        if self.show_volume:
            return self.height + self.volume_track_height + 20.0
        return self.height

    def with_options(self, **changes) -> "ChartLayout":
        return replace(self, **changes)


@dataclass(frozen=True)
class ChartTheme:
    bullish: str = "#10B981"
    bearish: str = "#EF4444"
    volume_alpha: int = 0x40
    grid: str = "#6B7280"
    grid_alpha: int = 26
    text: str = "#B2B5BE"
    tooltip_bg: str = "#0F141E"
    tooltip_bg_alpha: int = 220
    placeholder: str = "No price data available"


DEFAULT_LAYOUT = ChartLayout()
DEFAULT_THEME = ChartTheme()
