"""
Configuration Validator
Checks a canonical configuration for values the controller cannot act on.

Normalization never rejects a document; this validator is what the
editor runs before saving to tell the operator what is wrong.
"""

from typing import Dict, Any, List, Tuple
import logging

from .definitions import (
    TERMINAL_COUNT,
    DALLAS_BUS_COUNT,
    MQTT_THERMOMETER_COUNT,
    SEQUENCE_DEFAULTS,
    SECTION_ENUMS,
    VALVE_POSITIONS,
)
from ..role_registry import is_known_role
from ..source_descriptor import SourceDescriptor, SourceKind, MQTT_CUSTOM, LEGACY_TEMP_COUNT
from ..time_windows import parse_hhmm
from ..valve_binder import resolve_valve_outputs

logger = logging.getLogger(__name__)


class ConfigValidator:
    """Configuration validator for the heating controller"""

    @staticmethod
    def validate_type(value: Any, expected_type: str, path: str) -> Tuple[bool, str]:
        """Validate value type"""
        type_map = {
            "string": str,
            "integer": int,
            "number": (int, float),
            "boolean": bool,
            "array": list,
            "object": dict
        }

        expected_py_type = type_map.get(expected_type)
        if expected_type in ("integer", "number") and isinstance(value, bool):
            return False, f"{path}: expected {expected_type}, got bool"
        if not isinstance(value, expected_py_type):
            return False, f"{path}: expected {expected_type}, got {type(value).__name__}"
        return True, ""

    @staticmethod
    def validate_range(value: float, minimum: float = None, maximum: float = None, path: str = "") -> Tuple[bool, str]:
        """Validate numeric value range"""
        if minimum is not None and value < minimum:
            return False, f"{path}: value {value} is less than minimum {minimum}"
        if maximum is not None and value > maximum:
            return False, f"{path}: value {value} is greater than maximum {maximum}"
        return True, ""

    @staticmethod
    def validate_enum(value: str, allowed_values, path: str) -> Tuple[bool, str]:
        """Validate enumeration value"""
        if value not in allowed_values:
            return False, f"{path}: '{value}' is not one of {list(allowed_values)}"
        return True, ""

    @staticmethod
    def validate_descriptor(raw: Any, path: str) -> Tuple[bool, str]:
        """Validate one source descriptor"""
        desc = SourceDescriptor.from_dict(raw)
        kind = desc.source_kind
        if kind is None:
            return False, f"{path}: unsupported source kind '{desc.kind}'"

        if kind == SourceKind.DALLAS:
            return ConfigValidator.validate_range(desc.bus_index, 0, DALLAS_BUS_COUNT - 1, f"{path}.busIndex")
        if kind == SourceKind.LEGACY_TEMP:
            return ConfigValidator.validate_range(desc.index, 1, LEGACY_TEMP_COUNT, f"{path}.index")
        if kind == SourceKind.MQTT and desc.slot_index == MQTT_CUSTOM and not desc.topic:
            return False, f"{path}: custom MQTT source needs a topic"
        return True, ""

    @staticmethod
    def validate_config(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate a canonical configuration

        Returns:
            Tuple[bool, List[str]]: (is_valid, list_of_errors)
        """
        errors = []

        if not isinstance(config, dict):
            return False, ["Configuration must be an object"]

        # Terminal sequences
        for name, (length, _default) in SEQUENCE_DEFAULTS.items():
            value = config.get(name)
            if not isinstance(value, list):
                errors.append(f"Field '{name}' must be an array")
            elif len(value) != length:
                errors.append(f"Field '{name}' must have {length} entries, has {len(value)}")

        # I/O functions
        io = config.get("ioFunctions")
        if not isinstance(io, dict):
            errors.append("Field 'ioFunctions' must be an object")
        else:
            for side, kind in (("inputs", "input"), ("outputs", "output")):
                entries = io.get(side)
                if not isinstance(entries, list) or len(entries) != TERMINAL_COUNT:
                    errors.append(f"ioFunctions.{side} must have {TERMINAL_COUNT} entries")
                    continue
                for i, entry in enumerate(entries):
                    path = f"ioFunctions.{side}[{i}]"
                    if not isinstance(entry, dict):
                        errors.append(f"{path} must be an object")
                    elif not is_known_role(entry.get("role"), kind):
                        errors.append(f"{path}.role: unknown {kind} role '{entry.get('role')}'")
            errors.extend(ConfigValidator._validate_valves(config))

        # Thermometer roles
        roles = config.get("thermometerRoles")
        if not isinstance(roles, dict):
            errors.append("Field 'thermometerRoles' must be an object")
        else:
            for role, desc in roles.items():
                path = f"thermometerRoles.{role}"
                if not is_known_role(role, "system"):
                    errors.append(f"{path}: unknown thermometer role")
                    continue
                valid, error = ConfigValidator.validate_descriptor(desc, path)
                if not valid:
                    errors.append(error)

        mqtt = config.get("mqttThermometers")
        if isinstance(mqtt, list) and len(mqtt) > MQTT_THERMOMETER_COUNT:
            errors.append(f"mqttThermometers has more than {MQTT_THERMOMETER_COUNT} slots")

        # Feature sections
        errors.extend(ConfigValidator._validate_equitherm(config.get("equitherm")))

        recirc = config.get("dhwRecirc")
        if isinstance(recirc, dict):
            valid, error = ConfigValidator.validate_descriptor(
                recirc.get("tempReturnSource"), "dhwRecirc.tempReturnSource")
            if not valid:
                errors.append(error)

        for name, enums in SECTION_ENUMS.items():
            section = config.get(name)
            if not isinstance(section, dict):
                continue
            for key, allowed in enums.items():
                valid, error = ConfigValidator.validate_enum(section.get(key), allowed, f"{name}.{key}")
                if not valid:
                    errors.append(error)

        for name in ("dhwRecirc", "akuHeater"):
            section = config.get(name)
            if isinstance(section, dict):
                errors.extend(ConfigValidator._validate_windows(section.get("windows"), f"{name}.windows"))

        is_valid = len(errors) == 0
        if not is_valid:
            logger.debug(f"Validation found {len(errors)} errors")
        return is_valid, errors

    @staticmethod
    def _validate_equitherm(eq: Any) -> List[str]:
        """Validate the weather-compensation section"""
        errors = []
        if not isinstance(eq, dict):
            return ["Field 'equitherm' must be an object"]

        for key in ("minFlowC", "maxFlowC", "curveOffsetC"):
            valid, error = ConfigValidator.validate_type(eq.get(key), "number", f"equitherm.{key}")
            if not valid:
                errors.append(error)
        if not errors and eq["minFlowC"] > eq["maxFlowC"]:
            errors.append("equitherm.minFlowC must not be above maxFlowC")

        control = eq.get("control", {})
        checks = [
            ("minPct", 0, 100),
            ("maxPctDay", 0, 100),
            ("maxPctNight", 0, 100),
            ("stepPct", 1, 25),
            ("periodMs", 500, 600000),
            ("deadbandC", 0, None),
        ]
        for key, minimum, maximum in checks:
            path = f"equitherm.control.{key}"
            valid, error = ConfigValidator.validate_type(control.get(key), "number", path)
            if valid:
                valid, error = ConfigValidator.validate_range(control[key], minimum, maximum, path)
            if not valid:
                errors.append(error)

        refs = eq.get("refs", {})
        for branch in ("day", "night"):
            point = refs.get(branch) if isinstance(refs, dict) else None
            if not isinstance(point, dict):
                errors.append(f"equitherm.refs.{branch} must be an object")
                continue
            if point.get("outdoorC1") == point.get("outdoorC2") and "slope" + branch.title() not in eq:
                errors.append(f"equitherm.refs.{branch}: reference outdoor temperatures must differ")

        return errors

    @staticmethod
    def _validate_valves(config: Dict[str, Any]) -> List[str]:
        """Each mixing valve needs a peer; params must be sane"""
        errors = []
        outputs = config["ioFunctions"].get("outputs")
        if not isinstance(outputs, list):
            return errors

        bindings = {b.master_index: b for b in resolve_valve_outputs(config)}
        for i, entry in enumerate(outputs):
            if not isinstance(entry, dict):
                continue
            params = entry.get("params") or {}
            path = f"ioFunctions.outputs[{i}].params"
            if entry.get("role") == "valve_3way_mix":
                binding = bindings.get(i)
                if binding is None:
                    errors.append(f"ioFunctions.outputs[{i}]: relay is already used as a valve peer")
                elif binding.peer_index is None:
                    errors.append(f"ioFunctions.outputs[{i}]: no free relay for the valve peer")
            if entry.get("role") in ("valve_3way_mix", "valve_3way_tuv"):
                valid, error = ConfigValidator.validate_enum(params.get("defaultPosition", "A"),
                                                             VALVE_POSITIONS, f"{path}.defaultPosition")
                if not valid:
                    errors.append(error)
                travel = params.get("travelTimeSeconds")
                if isinstance(travel, (int, float)) and travel <= 0:
                    errors.append(f"{path}.travelTimeSeconds must be positive")
        return errors

    @staticmethod
    def _validate_windows(windows: Any, path: str) -> List[str]:
        errors = []
        if not isinstance(windows, list):
            return [f"{path} must be an array"]
        for i, window in enumerate(windows):
            if not isinstance(window, dict):
                errors.append(f"{path}[{i}] must be an object")
                continue
            for key in ("start", "end"):
                if parse_hhmm(window.get(key)) is None:
                    errors.append(f"{path}[{i}].{key}: '{window.get(key)}' is not a time of day")
        return errors

    @staticmethod
    def format_validation_errors(errors: List[str]) -> str:
        """Format validation errors for user display"""
        if not errors:
            return ""

        error_msg = "Configuration validation failed:\n\n"
        for i, error in enumerate(errors, 1):
            error_msg += f"{i}. {error}\n"

        return error_msg
