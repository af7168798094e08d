"""
Configuration Normalizer

Turns any configuration document the device has ever stored into the
canonical in-memory shape, and turns the canonical shape back into the
payload the firmware reads.

normalize_config() never raises and is idempotent:
normalize_config(normalize_config(x)) == normalize_config(x).
"""

import copy
import math
import logging
from typing import Any, Dict, List, Optional, Tuple

from .config_schema.definitions import (
    TERMINAL_COUNT,
    MQTT_THERMOMETER_COUNT,
    EQUITHERM_ROLE_OBJECTS,
    SECTION_DEFAULTS,
    DEPENDENT_DEFAULTS,
    SECTION_ENUMS,
    SEQUENCE_DEFAULTS,
    INDEXED_OBJECT_FIELDS,
    MQTT_THERMOMETER_DEFAULT,
    VALVE_PARAM_DEFAULTS,
    VALVE_PARAM_RENAMES,
    VALVE_POSITIONS,
    CURVE_PARAM_DEFAULTS,
    TWO_POINT_RENAMES,
    FIXED_OUTPUTS,
    FIXED_INPUTS,
)
from .config_migration import ConfigMigration
from .role_registry import (
    VALVE_3WAY_ROLES,
    OutputRole,
    resolve_alias,
    is_known_role,
    system_role_ids,
    device_role_name,
)
from .source_descriptor import SourceDescriptor
from .time_windows import normalize_windows
from .valve_binder import resolve_valve_outputs
from ..utils.issues import (
    ConfigIssue,
    IssueCollector,
    UNSUPPORTED_ROLE,
    UNSUPPORTED_SOURCE,
    SWAPPED_LIMITS,
    PEER_CONFLICT,
    IssueSeverity,
    IssueCategory,
)

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "1", "on", "yes", "high"}
_FALSE_STRINGS = {"false", "0", "off", "no", "low", ""}

_VALVE_ROLE_IDS = {r.value for r in VALVE_3WAY_ROLES}
_PINNED_OUTPUT_ROLES = {OutputRole.VALVE_3WAY_MIX.value, OutputRole.VALVE_3WAY_PEER.value}

_WINDOW_SECTIONS = ("dhwRecirc", "akuHeater")
_NORMALIZED_SECTIONS = ("equitherm", "dhwRecirc", "akuHeater", "tuv", "sensors", "system", "bleThermometer")


# ============================================================================
# Value coercion
# ============================================================================

def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return value if math.isfinite(value) else None
        except OverflowError:
            return None
    if isinstance(value, str):
        text = value.strip().replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number
    return None


def _coerce_like(value: Any, default: Any) -> Any:
    """Coerce value to the type of default; fall back to default if impossible."""
    if default is None:
        return value

    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        return default

    if isinstance(default, (int, float)):
        number = _parse_number(value)
        return default if number is None else number

    if isinstance(default, str):
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return default

    if isinstance(default, list):
        return value if isinstance(value, list) else copy.deepcopy(default)

    if isinstance(default, dict):
        if not isinstance(value, dict):
            return copy.deepcopy(default)
        return _apply_defaults(value, default)

    return value


def _apply_defaults(target: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Fill missing (or null) keys from defaults; keep every present value that fits."""
    for key, default in defaults.items():
        if target.get(key) is None:
            target[key] = copy.deepcopy(default)
        else:
            target[key] = _coerce_like(target[key], default)
    return target


def _coerce_level(value: Any) -> int:
    """Input active level: 1 = active HIGH, 0 = active LOW"""
    if isinstance(value, str):
        return 1 if value.strip().lower() in _TRUE_STRINGS else 0
    if isinstance(value, (bool, int, float)):
        return 1 if value else 0
    return 0


def _coerce_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def _coerce_gpio(value: Any) -> int:
    number = _parse_number(value)
    return int(number) if number is not None else -1


# ============================================================================
# Normalizer
# ============================================================================

class _Normalizer:
    """One normalization run over a private copy of the raw document."""

    def __init__(self, raw: Any, issues: IssueCollector, pin_fixed_roles: bool = True):
        self.issues = issues
        self.pin_fixed_roles = pin_fixed_roles
        if isinstance(raw, dict):
            self.config: Dict[str, Any] = copy.deepcopy(raw)
        else:
            if raw is not None:
                issues.add("not_an_object", "", f"Configuration is {type(raw).__name__}, defaults used",
                           IssueSeverity.WARNING)
            self.config = {}
        self.legacy_role_objects: Dict[str, Any] = {}

    def run(self) -> Dict[str, Any]:
        cfg = self.config
        ConfigMigration.hoist_equitherm_sections(cfg, self.issues)
        ConfigMigration.rename_top_level(cfg, self.issues)

        self._normalize_sequences()
        self._normalize_io_functions()
        for name in _NORMALIZED_SECTIONS:
            self._normalize_section(name)
        self._normalize_mqtt_thermometers()
        self._normalize_thermometer_roles()
        return cfg

    # ========== Terminal sequences ==========

    def _normalize_sequences(self) -> None:
        cfg = self.config

        # inputs[i].activeLevel is only a mirror of inputActiveLevels
        legacy_inputs = cfg.pop("inputs", None)
        if "inputActiveLevels" not in cfg and isinstance(legacy_inputs, list):
            levels = []
            for entry in legacy_inputs[:TERMINAL_COUNT]:
                level = entry.get("activeLevel", entry.get("active_level")) if isinstance(entry, dict) else None
                levels.append(_coerce_level(level))
            cfg["inputActiveLevels"] = levels
            self.issues.legacy("inputs", "Active levels taken from inputs[].activeLevel")

        coercers = {
            "inputNames": _coerce_text,
            "relayNames": _coerce_text,
            "inputActiveLevels": _coerce_level,
            "tempRoles": self._coerce_temp_role,
            "dallasGpios": _coerce_gpio,
            "dallasAddrs": lambda v: _coerce_text(v).strip().upper(),
            "dallasNames": _coerce_text,
        }
        for name, (length, default) in SEQUENCE_DEFAULTS.items():
            value = cfg.get(name)
            if isinstance(value, dict) and name in INDEXED_OBJECT_FIELDS:
                self.issues.legacy(name, f"'{name}' decoded from indexed-object form")
            cfg[name] = ConfigMigration.decode_indexed(value, length, default, coercers[name])

        for i, role in enumerate(cfg["tempRoles"]):
            if role != "none" and not is_known_role(role, "system"):
                self.issues.unsupported(UNSUPPORTED_ROLE, f"tempRoles[{i}]", f"Unknown thermometer role '{role}'")

    @staticmethod
    def _coerce_temp_role(value: Any) -> str:
        text = _coerce_text(value).strip()
        if not text or text.lower() == "none":
            return "none"
        return resolve_alias(text, "system")

    # ========== I/O functions ==========

    def _normalize_io_functions(self) -> None:
        cfg = self.config
        io = cfg.get("ioFunctions")
        if not isinstance(io, dict):
            io = {}

        for side, kind in (("inputs", "input"), ("outputs", "output")):
            entries = ConfigMigration.decode_indexed(io.get(side), TERMINAL_COUNT, None)
            io[side] = [self._normalize_io_entry(entry, kind, f"ioFunctions.{side}[{i}]")
                        for i, entry in enumerate(entries)]

        if self.pin_fixed_roles:
            self._pin_fixed_roles(io)
        cfg["ioFunctions"] = io
        self._report_peer_conflicts(io)

    def _report_peer_conflicts(self, io: Dict[str, Any]) -> None:
        for binding in resolve_valve_outputs({"ioFunctions": io}):
            requested = io["outputs"][binding.master_index]["params"].get("peerRelay")
            if not isinstance(requested, int) or requested <= 0 or requested == binding.peer_relay:
                continue
            chosen = f"R{binding.peer_relay}" if binding.peer_relay is not None else "no peer"
            self.issues.add(PEER_CONFLICT, f"ioFunctions.outputs[{binding.master_index}].params.peerRelay",
                            f"Relay {requested} cannot drive valve R{binding.master_relay}, using {chosen}",
                            IssueSeverity.WARNING)

    def _normalize_io_entry(self, raw: Any, kind: str, path: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        role: Any = "none"

        if isinstance(raw, str):
            role = raw
        elif isinstance(raw, dict):
            role = raw.get("role", raw.get("function", "none"))
            if isinstance(raw.get("params"), dict):
                params = raw["params"]
            flattened = [k for k in raw if k not in ("role", "function", "params")]
            for key in flattened:
                params.setdefault(key, raw[key])
            if flattened:
                self.issues.legacy(path, "Flattened parameters moved into 'params'")

        role = _coerce_text(role).strip() or "none"
        resolved = resolve_alias(role, kind)
        if not is_known_role(resolved, kind):
            self.issues.unsupported(UNSUPPORTED_ROLE, f"{path}.role", f"Unknown {kind} role '{resolved}'")

        if kind == "output" and resolved in _VALVE_ROLE_IDS:
            self._normalize_valve_params(params, f"{path}.params")

        return {"role": resolved, "params": params}

    def _normalize_valve_params(self, params: Dict[str, Any], path: str) -> None:
        ConfigMigration.migrate_valve_params(params, self.issues, path)
        _apply_defaults(params, VALVE_PARAM_DEFAULTS)

        if "peerRelay" in params:
            peer = _parse_number(params["peerRelay"])
            params["peerRelay"] = int(peer) if peer is not None else 0

        position = str(params.get("defaultPosition", "A")).strip().upper()
        if position not in VALVE_POSITIONS:
            self.issues.add("bad_value", f"{path}.defaultPosition",
                            f"Default position '{position}' is not A or B, using A")
            position = "A"
        params["defaultPosition"] = position

    def _pin_fixed_roles(self, io: Dict[str, Any]) -> None:
        outputs = io["outputs"]
        for idx, fixed in FIXED_OUTPUTS.items():
            entry = outputs[idx]
            path = f"ioFunctions.outputs[{idx}]"
            if entry["role"] != fixed["role"]:
                if entry["role"] != "none":
                    self.issues.pinned(f"{path}.role",
                                       f"Relay {idx + 1} is fixed to '{fixed['role']}' (was '{entry['role']}')")
                entry["role"] = fixed["role"]
            for key, value in fixed["params"].items():
                if key in entry["params"] and entry["params"][key] != value:
                    self.issues.pinned(f"{path}.params.{key}", f"Relay {idx + 1} {key} is fixed to {value}")
                entry["params"][key] = value
            if entry["role"] in _VALVE_ROLE_IDS:
                self._normalize_valve_params(entry["params"], f"{path}.params")

        for idx, entry in enumerate(outputs):
            if idx in FIXED_OUTPUTS or entry["role"] not in _PINNED_OUTPUT_ROLES:
                continue
            self.issues.pinned(f"ioFunctions.outputs[{idx}].role",
                               f"'{entry['role']}' is reserved for relays 1 and 2")
            outputs[idx] = {"role": "none", "params": {}}

        inputs = io["inputs"]
        for idx, role in FIXED_INPUTS.items():
            if inputs[idx]["role"] != role:
                if inputs[idx]["role"] != "none":
                    self.issues.pinned(f"ioFunctions.inputs[{idx}].role",
                                       f"Input {idx + 1} is fixed to '{role}' (was '{inputs[idx]['role']}')")
                inputs[idx]["role"] = role

    # ========== Feature sections ==========

    def _normalize_section(self, name: str) -> None:
        cfg = self.config
        section = cfg.get(name)
        if not isinstance(section, dict):
            if section is not None:
                self.issues.add("bad_value", name, f"'{name}' is not an object, defaults used",
                                IssueSeverity.WARNING)
            section = {}
        cfg[name] = section

        ConfigMigration.rename_section_keys(cfg, name, self.issues)

        if name == "equitherm":
            self._prepare_equitherm(section)

        for section_name, key, source in DEPENDENT_DEFAULTS:
            if section_name == name and not ConfigMigration.has_path(section, key) \
                    and ConfigMigration.get_path(section, source) is not None:
                ConfigMigration.set_path(section, key, ConfigMigration.get_path(section, source))

        _apply_defaults(section, SECTION_DEFAULTS[name])

        for key, allowed in SECTION_ENUMS.get(name, {}).items():
            if section.get(key) not in allowed:
                self.issues.unsupported("unsupported_value", f"{name}.{key}",
                                        f"Unknown {key} '{section.get(key)}'")

        if name == "equitherm":
            self._swap_flow_limits(section)
        if name in _WINDOW_SECTIONS:
            section["windows"] = normalize_windows(section.get("windows"), self.issues, f"{name}.windows")
        if name == "dhwRecirc":
            section["tempReturnSource"] = self._normalize_descriptor(
                section.get("tempReturnSource"), "dhwRecirc.tempReturnSource").to_dict()
        if name == "bleThermometer":
            section["role"] = self._coerce_temp_role(section.get("role"))

    def _prepare_equitherm(self, eq: Dict[str, Any]) -> None:
        for legacy_key in EQUITHERM_ROLE_OBJECTS:
            if isinstance(eq.get(legacy_key), dict):
                self.legacy_role_objects[legacy_key] = eq.pop(legacy_key)
                self.issues.legacy(f"equitherm.{legacy_key}",
                                   f"Sensor object 'equitherm.{legacy_key}' moved to thermometerRoles")

        refs = eq.get("refs")
        if isinstance(refs, dict):
            for branch in ("day", "night"):
                ConfigMigration.migrate_two_point(refs.get(branch), self.issues, f"equitherm.refs.{branch}")

        for key in CURVE_PARAM_DEFAULTS:
            if key not in eq:
                continue
            number = _parse_number(eq[key])
            if number is None:
                self.issues.add("bad_value", f"equitherm.{key}",
                                f"'{key}' is not a number, curve derived from reference points")
                del eq[key]
            else:
                eq[key] = number

    def _swap_flow_limits(self, eq: Dict[str, Any]) -> None:
        if eq["minFlowC"] > eq["maxFlowC"]:
            eq["minFlowC"], eq["maxFlowC"] = eq["maxFlowC"], eq["minFlowC"]
            self.issues.add(SWAPPED_LIMITS, "equitherm.minFlowC", "minFlowC was above maxFlowC, swapped",
                            IssueSeverity.WARNING)

    # ========== Thermometers ==========

    def _normalize_mqtt_thermometers(self) -> None:
        cfg = self.config
        thermometers = cfg.get("thermometers")
        legacy_mqtt: List[Any] = []
        if isinstance(thermometers, dict):
            legacy_mqtt = ConfigMigration.decode_indexed(thermometers.pop("mqtt", None),
                                                         MQTT_THERMOMETER_COUNT, None)
            ble = thermometers.pop("ble", None)
            if isinstance(ble, dict):
                for key in ("name", "id"):
                    if cfg["bleThermometer"].get(key) in (None, "", SECTION_DEFAULTS["bleThermometer"][key]) \
                            and isinstance(ble.get(key), str) and ble[key]:
                        cfg["bleThermometer"][key] = ble[key]
                self.issues.legacy("thermometers.ble", "'thermometers.ble' merged into 'bleThermometer'")

        slots = ConfigMigration.decode_indexed(cfg.get("mqttThermometers"), MQTT_THERMOMETER_COUNT, None)
        result = []
        for i, slot in enumerate(slots):
            slot = dict(slot) if isinstance(slot, dict) else {}
            legacy = legacy_mqtt[i] if i < len(legacy_mqtt) else None
            if isinstance(legacy, dict):
                for key in ("name", "topic", "jsonKey"):
                    if not slot.get(key) and legacy.get(key):
                        slot[key] = legacy[key]
                self.issues.legacy(f"thermometers.mqtt[{i}]", "Merged into 'mqttThermometers'")
            _apply_defaults(slot, MQTT_THERMOMETER_DEFAULT)
            slot["role"] = self._coerce_temp_role(slot.get("role"))
            result.append(slot)
        cfg["mqttThermometers"] = result

    def _normalize_descriptor(self, raw: Any, path: str) -> SourceDescriptor:
        desc = SourceDescriptor.from_dict(raw)
        if not desc.supported:
            self.issues.unsupported(UNSUPPORTED_SOURCE, path, f"Unknown source kind '{desc.kind}'")
        return desc

    def _normalize_thermometer_roles(self) -> None:
        cfg = self.config
        roles: Dict[str, SourceDescriptor] = {}
        unknown: Dict[str, SourceDescriptor] = {}

        def merge(table: Any, origin: str, overwrite: bool) -> None:
            if not isinstance(table, dict):
                return
            for key, raw in table.items():
                role = resolve_alias(str(key), "system")
                desc = self._normalize_descriptor(raw, f"{origin}.{key}")
                if not is_known_role(role, "system"):
                    self.issues.unsupported(UNSUPPORTED_ROLE, f"{origin}.{key}",
                                            f"Unknown thermometer role '{key}'")
                    unknown.setdefault(str(key), desc)
                    continue
                current = roles.get(role)
                if overwrite and (current is None or key == role):
                    roles[role] = desc
                elif current is None or current.is_none:
                    roles[role] = desc

        merge(cfg.get("thermometerRoles"), "thermometerRoles", overwrite=True)

        thermometers = cfg.get("thermometers")
        if isinstance(thermometers, dict) and "roles" in thermometers:
            merge(thermometers.pop("roles"), "thermometers.roles", overwrite=False)
            self.issues.legacy("thermometers.roles", "'thermometers.roles' merged into 'thermometerRoles'")
        if isinstance(thermometers, dict) and not thermometers:
            del cfg["thermometers"]

        merge({EQUITHERM_ROLE_OBJECTS[k]: v for k, v in self.legacy_role_objects.items()},
              "equitherm", overwrite=False)

        for role in system_role_ids():
            if role not in roles or roles[role].is_none:
                fallback = self._legacy_fallback(role)
                if fallback is not None:
                    roles[role] = fallback

        result: Dict[str, Any] = {}
        for role in system_role_ids():
            result[role] = roles.get(role, SourceDescriptor()).to_dict()
        for key, desc in unknown.items():
            result[key] = desc.to_dict()
        cfg["thermometerRoles"] = result

    def _legacy_fallback(self, role: str) -> Optional[SourceDescriptor]:
        """Derive a descriptor from the per-terminal and virtual thermometer tables."""
        cfg = self.config

        for i, temp_role in enumerate(cfg["tempRoles"]):
            if temp_role == role:
                return SourceDescriptor.legacy_temp(i + 1)

        ble = cfg["bleThermometer"]
        if ble.get("role") == role:
            return SourceDescriptor.ble(_coerce_text(ble.get("id")))

        for i, slot in enumerate(cfg["mqttThermometers"]):
            if slot.get("topic") and slot.get("role") == role:
                return SourceDescriptor.mqtt(i + 1)

        ot = cfg.get("openthermThermometers")
        if isinstance(ot, dict) and isinstance(ot.get("boiler"), dict):
            if self._coerce_temp_role(ot["boiler"].get("role")) == role:
                return SourceDescriptor(kind="openthermBoiler")

        return None


# ============================================================================
# Public API
# ============================================================================

def normalize_with_report(raw: Any, pin_fixed_roles: bool = True) -> Tuple[Dict[str, Any], List[ConfigIssue]]:
    """
    Normalize a configuration document and report what was changed.

    Args:
        raw: Parsed JSON document (any shape), or None
        pin_fixed_roles: Force the firmware's fixed relay/input placements

    Returns:
        (canonical config, list of ConfigIssue)
    """
    issues = IssueCollector()
    try:
        config = _Normalizer(raw, issues, pin_fixed_roles).run()
    except Exception as e:
        # Document shape no pass anticipated
        logger.error(f"Normalization failed, using defaults: {e}")
        issues.add("normalize_failed", "", f"Normalization failed: {e}", IssueSeverity.WARNING)
        config = _Normalizer(None, IssueCollector(), pin_fixed_roles).run()

    if issues.by_category(IssueCategory.UNSUPPORTED):
        logger.warning(f"Configuration has {len(issues.by_category(IssueCategory.UNSUPPORTED))} unsupported values")
    return config, issues.issues


def normalize_config(raw: Any) -> Dict[str, Any]:
    """Canonical configuration for any raw document (None gives all defaults)."""
    config, _ = normalize_with_report(raw)
    return config


def unsupported_paths(raw: Any) -> List[str]:
    """Paths holding values the UI should show as unsupported."""
    _, issues = normalize_with_report(raw)
    return [i.path for i in issues if i.unsupported]


# ============================================================================
# Device payload
# ============================================================================

def _equitherm_for_device(eq: Dict[str, Any], roles: Dict[str, Any]) -> Dict[str, Any]:
    eq = copy.deepcopy(eq)
    eq["minFlow"] = eq.get("minFlowC")
    eq["maxFlow"] = eq.get("maxFlowC")
    eq["valve"] = {"master": eq.get("valveMaster", 0)}

    for branch in ("day", "night"):
        point = eq.get("refs", {}).get(branch)
        if isinstance(point, dict):
            for legacy, canonical in TWO_POINT_RENAMES:
                if canonical in point:
                    point[legacy] = point[canonical]

    control = eq.get("control", {})
    control["maxPct_day"] = control.get("maxPctDay")
    control["maxPct_night"] = control.get("maxPctNight")

    no_flow = eq.get("noFlowDetect", {})
    eq["noFlowDetectEnabled"] = no_flow.get("enabled")
    eq["noFlowTimeoutMs"] = no_flow.get("timeoutMs")
    eq["noFlowTestPeriodMs"] = no_flow.get("testPeriodMs")

    aku = eq.get("akuSupport", {})
    eq["akuSupportEnabled"] = aku.get("enabled")
    eq["akuNoSupportBehavior"] = aku.get("noSupportBehavior")
    for name in ("MinTopC", "MinDeltaToTargetC", "MinDeltaToBoilerInC"):
        canonical = name[0].lower() + name[1:]
        eq[f"aku{name}_day"] = aku.get(f"{canonical}Day")
        eq[f"aku{name}_night"] = aku.get(f"{canonical}Night")

    for legacy_key, role in EQUITHERM_ROLE_OBJECTS.items():
        if legacy_key in eq and not isinstance(eq[legacy_key], dict):
            continue
        eq[legacy_key] = SourceDescriptor.from_dict(roles.get(role)).to_legacy()
    return eq


def _valve_params_for_device(params: Dict[str, Any]) -> Dict[str, Any]:
    params = dict(params)
    for legacy, canonical in VALVE_PARAM_RENAMES:
        if legacy in ("partnerRelay", "travelTimeS"):
            continue
        if canonical in params:
            params[legacy] = params[canonical]
    return params


def to_device_payload(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Re-encode a canonical config into the shape the firmware reads.

    Canonical keys are kept alongside the firmware spellings, so
    normalize_config(to_device_payload(c)) == c for a canonical c whose
    thermometers value, if present, is an object. Other thermometers
    values are replaced by the firmware object.
    """
    payload = copy.deepcopy(config)
    roles = payload.get("thermometerRoles", {})

    io = payload.pop("ioFunctions", {"inputs": [], "outputs": []})
    outputs = []
    for entry in io.get("outputs", []):
        params = entry.get("params", {})
        if entry.get("role") in _VALVE_ROLE_IDS:
            params = _valve_params_for_device(params)
        outputs.append({"role": entry.get("role"), "params": params})
    payload["iofunc"] = dict(io, inputs=io.get("inputs", []), outputs=outputs)

    for name in INDEXED_OBJECT_FIELDS:
        if isinstance(payload.get(name), list):
            payload[name] = ConfigMigration.encode_indexed(
                [device_role_name(v) if isinstance(v, str) else v for v in payload[name]])

    payload["mqttThermometers"] = [
        dict(slot, role=device_role_name(slot.get("role", "none")))
        for slot in payload.get("mqttThermometers", [])
    ]
    ble = payload.get("bleThermometer", {})
    payload["bleThermometer"] = dict(ble, role=device_role_name(ble.get("role", "none")))

    thermometers = payload.get("thermometers") if isinstance(payload.get("thermometers"), dict) else {}
    payload["thermometers"] = {
        **thermometers,
        "mqtt": [{"name": s.get("name", ""), "topic": s.get("topic", ""), "jsonKey": s.get("jsonKey", "")}
                 for s in payload["mqttThermometers"]],
        "ble": {"name": ble.get("name", ""), "id": ble.get("id", "")},
        "roles": {role: SourceDescriptor.from_dict(desc).to_legacy() for role, desc in roles.items()},
    }

    if isinstance(payload.get("equitherm"), dict):
        payload["equitherm"] = _equitherm_for_device(payload["equitherm"], roles)

    tuv = payload.get("tuv")
    if isinstance(tuv, dict):
        tuv["relay"] = tuv.get("requestRelay", 0)

    recirc = payload.get("dhwRecirc")
    if isinstance(recirc, dict):
        recirc["tempReturnSource"] = SourceDescriptor.from_dict(recirc.get("tempReturnSource")).to_legacy()

    payload["inputs"] = [{"activeLevel": "HIGH" if level else "LOW"}
                         for level in payload.get("inputActiveLevels", [])]

    return payload
