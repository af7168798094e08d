"""
Weekly time windows

Windows are {days: [1..7], start: "HH:MM", end: "HH:MM"} with Monday = 1.
start == end covers the whole day; end before start wraps past midnight
into the following day.
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config_schema.definitions import WINDOW_DEFAULTS
from ..utils.issues import IssueCollector, BAD_WINDOW

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
ALL_DAYS = (1, 2, 3, 4, 5, 6, 7)

_HHMM_RE = re.compile(r"^\s*(\d{1,2})\s*[:.hH]\s*(\d{1,2})\s*$")


@dataclass(frozen=True)
class WindowSegment:
    """Half-open [start_min, end_min) range on one weekday."""
    day: int
    start_min: int
    end_min: int

    def contains(self, day: int, minute: int) -> bool:
        return day == self.day and self.start_min <= minute < self.end_min

    @property
    def start(self) -> str:
        return format_hhmm(self.start_min)

    @property
    def end(self) -> str:
        return format_hhmm(self.end_min)


def format_hhmm(minutes: int) -> str:
    """Minutes since midnight -> "HH:MM" (1440 renders as "24:00")."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_hhmm(value: Any) -> Optional[int]:
    """
    Parse "H:MM", "HH:MM", "6.30" or a minute count into minutes since midnight.

    Returns None for anything that is not a valid time of day.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if value != value or not 0 <= value < MINUTES_PER_DAY:
            return None
        return int(value)
    if not isinstance(value, str):
        return None

    m = _HHMM_RE.match(value)
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def days_from_mask(mask: int) -> List[int]:
    """Bitmask with bit 0 = Monday -> sorted weekday list."""
    return [day for day in ALL_DAYS if mask & (1 << (day - 1))]


def days_to_mask(days: Iterable[int]) -> int:
    mask = 0
    for day in days:
        mask |= 1 << (day - 1)
    return mask


def _normalize_days(raw: Any) -> Optional[List[int]]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return days_from_mask(raw)
    if not isinstance(raw, (list, tuple, set)):
        return None

    days = set()
    for item in raw:
        try:
            day = int(item)
        except (TypeError, ValueError, OverflowError):
            continue
        if 1 <= day <= 7:
            days.add(day)
    return sorted(days)


def normalize_window(raw: Any, issues: Optional[IssueCollector] = None,
                     path: str = "windows") -> Dict[str, Any]:
    """
    Coerce one stored window into canonical form.

    Accepts "from"/"to" and "startMin"/"endMin" spellings and a
    "daysMask" bitmask. An empty day set means every day.
    """
    if not isinstance(raw, dict):
        if issues is not None:
            issues.add(BAD_WINDOW, path, "Window is not an object, replaced with default")
        return {
            "days": list(WINDOW_DEFAULTS["days"]),
            "start": WINDOW_DEFAULTS["start"],
            "end": WINDOW_DEFAULTS["end"],
        }

    window = {k: v for k, v in raw.items()
              if k not in ("from", "to", "startMin", "endMin", "daysMask")}

    start = parse_hhmm(raw.get("start", raw.get("from", raw.get("startMin"))))
    end = parse_hhmm(raw.get("end", raw.get("to", raw.get("endMin"))))
    if start is None:
        start = parse_hhmm(WINDOW_DEFAULTS["start"])
        if issues is not None:
            issues.add(BAD_WINDOW, f"{path}.start", "Invalid start time, default used")
    if end is None:
        end = parse_hhmm(WINDOW_DEFAULTS["end"])
        if issues is not None:
            issues.add(BAD_WINDOW, f"{path}.end", "Invalid end time, default used")

    days = _normalize_days(raw.get("days", raw.get("daysMask")))
    if not days:
        days = list(WINDOW_DEFAULTS["days"])

    window["days"] = days
    window["start"] = format_hhmm(start)
    window["end"] = format_hhmm(end)
    return window


def normalize_windows(raw: Any, issues: Optional[IssueCollector] = None,
                      path: str = "windows") -> List[Dict[str, Any]]:
    if isinstance(raw, dict):
        raw = [raw[k] for k in sorted(raw, key=lambda k: (len(str(k)), str(k)))]
    if not isinstance(raw, list):
        return []
    return [normalize_window(w, issues, f"{path}[{i}]") for i, w in enumerate(raw)]


def _next_day(day: int) -> int:
    return 1 if day == 7 else day + 1


def expand_window(window: Dict[str, Any]) -> List[WindowSegment]:
    """
    Expand a window into per-day segments.

    A Friday 22:00 -> 06:00 window yields Fri [22:00, 24:00) and
    Sat [00:00, 06:00).
    """
    start = parse_hhmm(window.get("start")) if isinstance(window, dict) else None
    end = parse_hhmm(window.get("end")) if isinstance(window, dict) else None
    if start is None or end is None:
        return []

    days = _normalize_days(window.get("days")) or list(ALL_DAYS)

    segments: List[WindowSegment] = []
    for day in days:
        if start == end:
            segments.append(WindowSegment(day, 0, MINUTES_PER_DAY))
        elif start < end:
            segments.append(WindowSegment(day, start, end))
        else:
            segments.append(WindowSegment(day, start, MINUTES_PER_DAY))
            if end > 0:
                segments.append(WindowSegment(_next_day(day), 0, end))
    return segments


def is_window_active(windows: Iterable[Dict[str, Any]], day: int, minute: int) -> bool:
    """True if any window covers the given weekday (1..7) and minute of day."""
    for window in windows or []:
        for segment in expand_window(window):
            if segment.contains(day, minute):
                return True
    return False


def weekday_minute(dt) -> Tuple[int, int]:
    """datetime -> (weekday with Monday = 1, minute of day)"""
    return dt.isoweekday(), dt.hour * 60 + dt.minute
