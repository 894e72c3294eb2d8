from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import math
import re
from typing import Any, Iterable, Mapping, Optional, Tuple

RECORD_FIELDS = ("period_start", "open", "high", "low", "close", "volume")
PRICE_FIELDS = ("open", "high", "low", "close", "volume")

TIMEFRAMES = ("1h", "4h", "1d", "1w")

# Postgres renders offsets as "+00" or "+0530"; fromisoformat before 3.11 wants "+HH:MM".
_SHORT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})?$")


class InvalidRecordError(ValueError):
    pass


class InvalidSeriesError(ValueError):
    pass


@dataclass(frozen=True)
class OHLCRecord:
    period_start: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def is_bullish(self) -> bool:
        return self.close >= self.open


# A chart series is borrowed for one render pass; tuples keep it read-only.
ChartSeries = Tuple[OHLCRecord, ...]


@dataclass(frozen=True)
class HoverSelection:
    index: int
    record: OHLCRecord
    pixel_position: Tuple[float, float]


def parse_period_start(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidRecordError(f"period_start must be an ISO-8601 string, got {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    if len(text) > 10 and text[10] == " ":
        text = text[:10] + "T" + text[11:]
    match = _SHORT_OFFSET.search(text)
    if match is not None and len(text) > 10:
        text = text[: match.start()] + match.group(1) + ":" + (match.group(2) or "00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidRecordError(f"period_start is not ISO-8601: {value!r}") from exc
    return parsed


def _coerce_number(name: str, value: Any) -> float:
    # bool is an int subclass; a True "volume" is a bad payload, not 1.0.
    if isinstance(value, bool) or value is None:
        raise InvalidRecordError(f"{name} must be numeric, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRecordError(f"{name} must be numeric, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidRecordError(f"{name} must be finite, got {value!r}")
    if number < 0:
        raise InvalidRecordError(f"{name} must be non-negative, got {value!r}")
    return number


def record_from_mapping(data: Mapping[str, Any]) -> OHLCRecord:
    """
    Build an `OHLCRecord` from a fetched row.

    Only the six chart fields are read; anything else on the row is ignored.
    The high/low envelope is deliberately not checked: an inverted candle is
    drawn as-is rather than rejected.
    """
    if not isinstance(data, Mapping):
        raise InvalidRecordError(f"record must be a mapping, got {type(data).__name__}")
    missing = [name for name in RECORD_FIELDS if name not in data]
    if missing:
        raise InvalidRecordError(f"record is missing fields: {', '.join(missing)}")
    values = {name: _coerce_number(name, data[name]) for name in PRICE_FIELDS}
    return OHLCRecord(period_start=parse_period_start(data["period_start"]), **values)


def _sort_key(ts: datetime) -> float:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


def normalize_series(rows: Optional[Iterable[Any]]) -> ChartSeries:
    if rows is None:
        return ()
    series = []
    prev_key: Optional[float] = None
    for idx, row in enumerate(rows):
        if isinstance(row, OHLCRecord):
            record = row
        else:
            try:
                record = record_from_mapping(row)
            except InvalidRecordError as exc:
                raise InvalidRecordError(f"row {idx}: {exc}") from exc
        key = _sort_key(record.period_start)
        if prev_key is not None and key <= prev_key:
            raise InvalidSeriesError(
                f"row {idx}: period_start {record.period_start.isoformat()} is not after the previous bucket"
            )
        prev_key = key
        series.append(record)
    return tuple(series)

