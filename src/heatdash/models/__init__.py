"""
Models Package

Contains configuration models and managers for the heating controller.
"""

from .role_registry import SystemRole, InputRole, OutputRole, resolve_alias, is_known_role
from .source_descriptor import SourceDescriptor, SourceKind, parse_source
from .config_migration import ConfigMigration
from .config_normalizer import normalize_config, normalize_with_report, to_device_payload
from .valve_binder import ValveBinding, ValveCalibration, resolve_valve_outputs, valve_controlled_relays
from .config_manager import ConfigManager

__all__ = [
    'SystemRole',
    'InputRole',
    'OutputRole',
    'resolve_alias',
    'is_known_role',
    'SourceDescriptor',
    'SourceKind',
    'parse_source',
    'ConfigMigration',
    'normalize_config',
    'normalize_with_report',
    'to_device_payload',
    'ValveBinding',
    'ValveCalibration',
    'resolve_valve_outputs',
    'valve_controlled_relays',
    'ConfigManager',
]
