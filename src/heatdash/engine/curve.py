"""
Equitherm Curve Calculator

target = clamp((20 - outdoor) * slope + 20 + shift + curveOffsetC, minFlowC, maxFlowC)

slope/shift of a branch come from explicit slopeDay/shiftDay (or the
night pair) when either of the pair is present, otherwise from the two
reference points of that branch.
"""

import math
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..models.config_schema.definitions import (
    CURVE_PARAM_DEFAULTS,
    SECTION_DEFAULTS,
    PROFILE_OFFSETS_C,
)

logger = logging.getLogger(__name__)

ROOM_REFERENCE_C = 20.0

_EQ_DEFAULTS = SECTION_DEFAULTS["equitherm"]


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return float(default)
    try:
        number = float(value)
    except OverflowError:
        return float(default)
    return number if math.isfinite(number) else float(default)


def derive_slope_shift(point: Any) -> Tuple[float, float]:
    """
    (slope, shift) through two calibration points.

    Degenerate points (equal outdoor temperatures, missing or non-finite
    values) give the flat curve (0, 0).
    """
    if not isinstance(point, dict):
        return 0.0, 0.0
    try:
        out1 = float(point["outdoorC1"])
        flow1 = float(point["flowC1"])
        out2 = float(point["outdoorC2"])
        flow2 = float(point["flowC2"])
    except (KeyError, TypeError, ValueError, OverflowError):
        return 0.0, 0.0

    if out1 == out2:
        return 0.0, 0.0
    slope = (flow1 - flow2) / (out2 - out1)
    shift = flow1 - (ROOM_REFERENCE_C - out1) * slope - ROOM_REFERENCE_C
    if not (math.isfinite(slope) and math.isfinite(shift)):
        return 0.0, 0.0
    return slope, shift


def effective_curve_params(eq: Any, is_night: bool) -> Tuple[float, float]:
    """(slope, shift) the curve uses for the selected branch"""
    if not isinstance(eq, dict):
        eq = {}
    branch = "Night" if is_night else "Day"
    slope_key, shift_key = f"slope{branch}", f"shift{branch}"

    if slope_key in eq or shift_key in eq:
        return (_number(eq.get(slope_key), CURVE_PARAM_DEFAULTS[slope_key]),
                _number(eq.get(shift_key), CURVE_PARAM_DEFAULTS[shift_key]))

    refs = eq.get("refs")
    point = refs.get(branch.lower()) if isinstance(refs, dict) else None
    if point is None:
        point = _EQ_DEFAULTS["refs"][branch.lower()]
    return derive_slope_shift(point)


def flow_limits(eq: Any) -> Tuple[float, float]:
    """(minFlowC, maxFlowC), swapped into order if needed"""
    if not isinstance(eq, dict):
        eq = {}
    low = _number(eq.get("minFlowC"), _EQ_DEFAULTS["minFlowC"])
    high = _number(eq.get("maxFlowC"), _EQ_DEFAULTS["maxFlowC"])
    if low > high:
        low, high = high, low
    return low, high


def target_flow_c(outdoor_c: Any, is_night: bool, eq: Any) -> float:
    """
    Target flow temperature for an outdoor temperature.

    Never raises. A non-numeric outdoor temperature uses
    equitherm.fallbackOutdoorC.
    """
    if not isinstance(eq, dict):
        eq = {}
    outdoor = _number(outdoor_c, _number(eq.get("fallbackOutdoorC"), _EQ_DEFAULTS["fallbackOutdoorC"]))
    slope, shift = effective_curve_params(eq, is_night)
    offset = _number(eq.get("curveOffsetC"), 0.0)
    low, high = flow_limits(eq)

    target = (ROOM_REFERENCE_C - outdoor) * slope + ROOM_REFERENCE_C + shift + offset
    if not math.isfinite(target):
        return low
    return min(max(target, low), high)


def profile_offset_c(profile: Optional[str]) -> float:
    """Setpoint offset of a system profile (comfort +1, eco -1)"""
    return PROFILE_OFFSETS_C.get(profile, 0.0) if isinstance(profile, str) else 0.0


def curve_points(eq: Any, is_night: bool,
                 outdoor_range: Tuple[float, float] = (-20.0, 20.0),
                 step: float = 1.0) -> List[Tuple[float, float]]:
    """Sample the curve as (outdoorC, targetFlowC) pairs for charts"""
    start, stop = outdoor_range
    if start > stop:
        start, stop = stop, start
    if step <= 0:
        step = 1.0

    points = []
    count = int(math.floor((stop - start) / step)) + 1
    for i in range(count):
        outdoor = start + i * step
        points.append((outdoor, target_flow_c(outdoor, is_night, eq)))
    return points
