"""
Engine Package

Render-time computations over a canonical config:
    source_resolver: role -> live reading from a telemetry snapshot
    curve: equitherm target flow temperature
    payload_parse: temperature extraction from MQTT payloads
"""

from .source_resolver import resolve_reading, resolve_role, resolve_all_roles, resolve_recirc_return
from .curve import target_flow_c, derive_slope_shift, effective_curve_params, curve_points, profile_offset_c
from .payload_parse import parse_payload_temp

__all__ = [
    'resolve_reading',
    'resolve_role',
    'resolve_all_roles',
    'resolve_recirc_return',
    'target_flow_c',
    'derive_slope_shift',
    'effective_curve_params',
    'curve_points',
    'profile_offset_c',
    'parse_payload_temp',
]
