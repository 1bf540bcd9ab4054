"""
Relative time expressions ("90s", "5m", "24h", "7d", "2w").

Used by the range query (relative ``start``) and by the alert history lookup
(look-back window and step selection). Pure functions only; the one clock is
``now_utc`` so tests can pin it.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from prometheus_mcp.exceptions import InvalidTimeExpression

_RELATIVE_RE = re.compile(r"([0-9]+)([smhdw])")

UNIT_MS: dict[str, int] = {
    "s": 1_000,
    "m": 60 * 1_000,
    "h": 60 * 60 * 1_000,
    "d": 24 * 60 * 60 * 1_000,
    "w": 7 * 24 * 60 * 60 * 1_000,
}

ONE_DAY_MS = UNIT_MS["d"]
ONE_WEEK_MS = UNIT_MS["w"]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def is_relative(expr: str) -> bool:
    """True if *expr* is a ``<int><unit>`` duration."""
    return _RELATIVE_RE.fullmatch(expr) is not None


def parse_duration_ms(expr: str) -> int:
    """Convert ``<int><unit>`` to milliseconds.

    Raises ``InvalidTimeExpression`` for anything else, including surrounding
    whitespace and compound durations such as ``1h30m``.
    """
    match = _RELATIVE_RE.fullmatch(expr)
    if match is None:
        raise InvalidTimeExpression(expr)
    value, unit = match.groups()
    return int(value) * UNIT_MS[unit]


def step_for_lookback(duration_ms: int) -> str:
    """Pick a range-query step that keeps the sample count bounded."""
    if duration_ms <= ONE_DAY_MS:
        return "1m"
    if duration_ms <= ONE_WEEK_MS:
        return "5m"
    return "15m"


def lookback(duration_ms: int, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` for a window ending at *now*."""
    end = now or now_utc()
    return end - timedelta(milliseconds=duration_ms), end


def to_iso(instant: datetime) -> str:
    """RFC 3339 in UTC with millisecond precision, e.g. ``2024-01-01T00:00:00.000Z``."""
    return instant.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_seconds_to_iso(seconds: float) -> Optional[str]:
    try:
        return to_iso(datetime.fromtimestamp(float(seconds), tz=timezone.utc))
    except (OverflowError, OSError, ValueError, TypeError):
        return None


def epoch_ms_to_iso(millis: float) -> Optional[str]:
    # Prometheus reports math.MaxInt64 / MinInt64 for an empty head block.
    try:
        return epoch_seconds_to_iso(float(millis) / 1000)
    except (OverflowError, ValueError, TypeError):
        return None
