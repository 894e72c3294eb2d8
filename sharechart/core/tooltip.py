from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from .config import ChartLayout, DEFAULT_LAYOUT
from .models import HoverSelection, OHLCRecord


def format_price(value: float) -> str:
    return f"${value:,.2f}"


def format_volume(value: float) -> str:
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    # Below the K threshold the raw value is shown, never rounded up to "1000".
    return f"{value:.10g}"


def format_currency(value: float) -> str:
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.1f}K"
    return f"${value:.2f}"


def format_period_start(ts: datetime) -> str:
    # Shown in the bucket's own offset; no conversion to local time.
    return ts.strftime("%b %d, %I:%M %p")


@dataclass(frozen=True)
class Tooltip:
    title: str
    rows: List[Tuple[str, str]] = field(default_factory=list)
    left: float = 0.0
    top: float = 0.0

    def text(self) -> str:
        lines = [self.title]
        lines.extend(f"{label}: {value}" for label, value in self.rows)
        return "\n".join(lines)


def tooltip_rows(record: OHLCRecord) -> List[Tuple[str, str]]:
    return [
        ("Open", format_price(record.open)),
        ("High", format_price(record.high)),
        ("Low", format_price(record.low)),
        ("Close", format_price(record.close)),
        ("Volume", format_volume(record.volume)),
    ]


def tooltip_position(
    pointer: Tuple[float, float],
    viewport_width: float,
    layout: ChartLayout = DEFAULT_LAYOUT,
) -> Tuple[float, float]:
    dx, dy = layout.tooltip_offset
    left = min(pointer[0] + dx, viewport_width - layout.tooltip_width_estimate)
    # Narrow viewports would otherwise push the box off the left edge.
    left = max(0.0, left)
    return left, pointer[1] + dy


def present(
    selection: Optional[HoverSelection],
    viewport_width: float,
    layout: ChartLayout = DEFAULT_LAYOUT,
) -> Optional[Tooltip]:
    if selection is None:
        return None
    left, top = tooltip_position(selection.pixel_position, viewport_width, layout)
    record = selection.record
    return Tooltip(
        title=format_period_start(record.period_start),
        rows=tooltip_rows(record),
        left=left,
        top=top,
    )


def price_change_percent(series: Sequence[OHLCRecord]) -> float:
    """Percent move from the first bucket's open to the last bucket's close."""
    if not series:
        return 0.0
    first_open = series[0].open
    if not first_open > 0:
        return 0.0
    return (series[-1].close - first_open) / first_open * 100.0


def price_summary(series: Sequence[OHLCRecord]) -> str:
    if not series:
        return ""
    change = price_change_percent(series)
    total_volume = sum(record.volume for record in series)
    return f"{format_currency(series[-1].close)}  {change:+.2f}%  Vol {format_volume(total_volume)}"
