"""
Heating Controller Configuration Schema Package

Provides the declarative defaults and legacy key tables, validation, and
default configuration generation.
"""

from .definitions import (
    TERMINAL_COUNT,
    DALLAS_BUS_COUNT,
    MQTT_THERMOMETER_COUNT,
    SECTION_DEFAULTS,
    SEQUENCE_DEFAULTS,
    CURVE_PARAM_DEFAULTS,
    VALVE_PARAM_DEFAULTS,
    FIXED_OUTPUTS,
    FIXED_INPUTS,
)
from .defaults import create_default_config
from .validator import ConfigValidator

__all__ = [
    "TERMINAL_COUNT",
    "DALLAS_BUS_COUNT",
    "MQTT_THERMOMETER_COUNT",
    "SECTION_DEFAULTS",
    "SEQUENCE_DEFAULTS",
    "CURVE_PARAM_DEFAULTS",
    "VALVE_PARAM_DEFAULTS",
    "FIXED_OUTPUTS",
    "FIXED_INPUTS",
    "ConfigValidator",
    "create_default_config",
]
