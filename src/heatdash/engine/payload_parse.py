"""
MQTT payload temperature parsing

Thermometers publish anything from "21.5" to nested JSON documents. The
dashboard uses the same rules as the device so a topic preview shows the
value the controller will act on.
"""

import json
import math
import re
from typing import Any, Optional

AUTO_KEYS = ("tempC", "temperature", "temp", "t", "value")

# Number with optional unit suffix: "21.5", "21,5 °C", "-3C"
_LOOSE_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+)(?:[eE][+-]?\d+)?)\s*(?:°\s*)?[cC]?\s*$")
_PATH_SPLIT_RE = re.compile(r"[./]")


def parse_float_loose(text: Any) -> Optional[float]:
    if not isinstance(text, str):
        return None
    m = _LOOSE_NUMBER_RE.match(text)
    if not m:
        return None
    value = float(m.group(1).replace(",", "."))
    return value if math.isfinite(value) else None


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        return parse_float_loose(value)
    return None


def get_by_path(root: Any, path: str) -> Any:
    """Walk a dotted or slashed path; numeric segments index into lists."""
    if not path:
        return None
    current = root
    for segment in _PATH_SPLIT_RE.split(path):
        segment = segment.strip()
        if not segment:
            continue
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return None
        else:
            return None
    return current


def parse_payload_temp(payload: Any, json_key: str = "") -> Optional[float]:
    """
    Extract a temperature from an MQTT payload.

    Tried in order: a plain number, a JSON scalar, json_key as a path,
    then the usual keys (tempC, temperature, temp, t, value).

    Returns:
        Temperature in °C or None
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str):
        return _to_float(payload)

    value = parse_float_loose(payload)
    if value is not None:
        return value

    text = payload.strip()
    if not text or text[0] not in '{["':
        return None
    try:
        root = json.loads(text)
    except ValueError:
        return None

    value = _to_float(root)
    if value is not None:
        return value

    if isinstance(json_key, str) and json_key:
        value = _to_float(get_by_path(root, json_key))
        if value is not None:
            return value

    for key in AUTO_KEYS:
        value = _to_float(get_by_path(root, key))
        if value is not None:
            return value
    return None
