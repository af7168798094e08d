"""
Role Registry - Known roles and their display metadata

Static tables of thermometer (system) roles and I/O function roles, plus
the alias table that maps historical spellings onto canonical role ids.
Nothing here is mutable at runtime.
"""

import re
from enum import Enum
from typing import Dict, List, Tuple, Union


class SystemRole(Enum):
    """Thermometer roles a source descriptor can be bound to"""
    OUTDOOR = "outdoor"
    FLOW = "flow"
    RETURN = "return"
    DHW = "dhw"
    DHW_RETURN = "dhwReturn"
    TANK_TOP = "tankTop"
    TANK_MID = "tankMid"
    TANK_BOTTOM = "tankBottom"
    BOILER_IN = "boilerIn"
    REFERENCE_ROOM = "referenceRoom"


class InputRole(Enum):
    """Digital input functions"""
    NONE = "none"
    THERMOSTAT = "thermostat"
    HEAT_CALL = "heat_call"
    MODE_TRIGGER = "mode_trigger"
    DHW_ENABLE = "dhw_enable"
    NIGHT_MODE = "night_mode"
    RECIRC_DEMAND = "recirc_demand"
    GENERIC = "generic"


class OutputRole(Enum):
    """Relay output functions"""
    NONE = "none"
    VALVE_ONOFF = "valve_onoff"
    VALVE_3WAY_MIX = "valve_3way_mix"
    VALVE_3WAY_TUV = "valve_3way_tuv"
    VALVE_3WAY_PEER = "valve_3way_peer"
    BOILER_ENABLE_DHW = "boiler_enable_dhw"
    BOILER_ENABLE_NM = "boiler_enable_nm"
    HEATER_AKU = "heater_aku"
    DHW_RECIRC_PUMP = "dhw_recirc_pump"
    CIRC_PUMP = "circ_pump"
    GENERIC = "generic"


SYSTEM_ROLE_LABELS: Dict[SystemRole, str] = {
    SystemRole.OUTDOOR: "Outdoor temperature",
    SystemRole.FLOW: "Heating flow",
    SystemRole.RETURN: "Heating return",
    SystemRole.DHW: "DHW tank",
    SystemRole.DHW_RETURN: "DHW recirculation return",
    SystemRole.TANK_TOP: "Accumulator top",
    SystemRole.TANK_MID: "Accumulator middle",
    SystemRole.TANK_BOTTOM: "Accumulator bottom",
    SystemRole.BOILER_IN: "Boiler inlet",
    SystemRole.REFERENCE_ROOM: "Reference room",
}

INPUT_ROLE_LABELS: Dict[InputRole, str] = {
    InputRole.NONE: "Unused",
    InputRole.THERMOSTAT: "Room thermostat",
    InputRole.HEAT_CALL: "Heat call",
    InputRole.MODE_TRIGGER: "Mode trigger",
    InputRole.DHW_ENABLE: "DHW request",
    InputRole.NIGHT_MODE: "Night mode",
    InputRole.RECIRC_DEMAND: "Recirculation demand",
    InputRole.GENERIC: "Generic input",
}

OUTPUT_ROLE_LABELS: Dict[OutputRole, str] = {
    OutputRole.NONE: "Unused",
    OutputRole.VALVE_ONOFF: "On/off valve",
    OutputRole.VALVE_3WAY_MIX: "3-way mixing valve (master)",
    OutputRole.VALVE_3WAY_TUV: "3-way DHW diverter valve",
    OutputRole.VALVE_3WAY_PEER: "3-way valve peer relay",
    OutputRole.BOILER_ENABLE_DHW: "Boiler enable (DHW)",
    OutputRole.BOILER_ENABLE_NM: "Boiler enable (night mode)",
    OutputRole.HEATER_AKU: "Accumulator heater",
    OutputRole.DHW_RECIRC_PUMP: "DHW recirculation pump",
    OutputRole.CIRC_PUMP: "Circulation pump",
    OutputRole.GENERIC: "Generic relay",
}

# Output roles driving a 3-way valve (peer is computed, never configured)
VALVE_3WAY_ROLES = (OutputRole.VALVE_3WAY_MIX, OutputRole.VALVE_3WAY_TUV)

# Historical spellings, keyed by the normalized form (lowercase, '_' separators)
SYSTEM_ROLE_ALIASES: Dict[str, SystemRole] = {
    # Outdoor
    "outdoor": SystemRole.OUTDOOR,
    "outside": SystemRole.OUTDOOR,
    "venek": SystemRole.OUTDOOR,
    # Flow
    "flow": SystemRole.FLOW,
    "heating_flow": SystemRole.FLOW,
    "heatingflow": SystemRole.FLOW,
    "heating": SystemRole.FLOW,
    "boiler_out": SystemRole.FLOW,
    "boiler_output": SystemRole.FLOW,
    # Return
    "return": SystemRole.RETURN,
    "ret": SystemRole.RETURN,
    "heating_return": SystemRole.RETURN,
    "heatingreturn": SystemRole.RETURN,
    # DHW
    "dhw": SystemRole.DHW,
    "dhw_tank": SystemRole.DHW,
    "tuv": SystemRole.DHW,
    "hotwater": SystemRole.DHW,
    "hot_water": SystemRole.DHW,
    "dhw_return": SystemRole.DHW_RETURN,
    "dhwreturn": SystemRole.DHW_RETURN,
    "recirc_return": SystemRole.DHW_RETURN,
    # Accumulator
    "tanktop": SystemRole.TANK_TOP,
    "tank_top": SystemRole.TANK_TOP,
    "top": SystemRole.TANK_TOP,
    "aku_top": SystemRole.TANK_TOP,
    "akutop": SystemRole.TANK_TOP,
    "aku_horni": SystemRole.TANK_TOP,
    "tankmid": SystemRole.TANK_MID,
    "tank_mid": SystemRole.TANK_MID,
    "mid": SystemRole.TANK_MID,
    "aku_mid": SystemRole.TANK_MID,
    "akumid": SystemRole.TANK_MID,
    "aku_middle": SystemRole.TANK_MID,
    "aku_uprostred": SystemRole.TANK_MID,
    "tankbottom": SystemRole.TANK_BOTTOM,
    "tank_bottom": SystemRole.TANK_BOTTOM,
    "bottom": SystemRole.TANK_BOTTOM,
    "aku_bottom": SystemRole.TANK_BOTTOM,
    "akubottom": SystemRole.TANK_BOTTOM,
    "aku_dolni": SystemRole.TANK_BOTTOM,
    "aku_low": SystemRole.TANK_BOTTOM,
    # Boiler inlet
    "boilerin": SystemRole.BOILER_IN,
    "boiler_in": SystemRole.BOILER_IN,
    "boiler_inlet": SystemRole.BOILER_IN,
    # Reference room
    "referenceroom": SystemRole.REFERENCE_ROOM,
    "reference_room": SystemRole.REFERENCE_ROOM,
    "room": SystemRole.REFERENCE_ROOM,
}

INPUT_ROLE_ALIASES: Dict[str, InputRole] = {
    "temp_dallas": InputRole.NONE,
    "heatcall": InputRole.HEAT_CALL,
    "dhw_request": InputRole.DHW_ENABLE,
    "tuv_enable": InputRole.DHW_ENABLE,
    "nightmode": InputRole.NIGHT_MODE,
    "night": InputRole.NIGHT_MODE,
    "recirc": InputRole.RECIRC_DEMAND,
}

OUTPUT_ROLE_ALIASES: Dict[str, OutputRole] = {
    "valve_3way_spring": OutputRole.VALVE_3WAY_MIX,
    "valve_3way_2rel": OutputRole.VALVE_3WAY_MIX,
    "valve_3way_dhw": OutputRole.VALVE_3WAY_TUV,
    "valve_3way_peer": OutputRole.VALVE_3WAY_PEER,
    "recirc_pump": OutputRole.DHW_RECIRC_PUMP,
    "aku_heater": OutputRole.HEATER_AKU,
}

_VALUES_BY_KIND = {
    "system": {r.value for r in SystemRole},
    "input": {r.value for r in InputRole},
    "output": {r.value for r in OutputRole},
}

_ALIASES_BY_KIND = {
    "system": SYSTEM_ROLE_ALIASES,
    "input": INPUT_ROLE_ALIASES,
    "output": OUTPUT_ROLE_ALIASES,
}

_SEPARATORS = re.compile(r"[\s\-]+")


def alias_key(text) -> str:
    """Normalized lookup key: trimmed, lowercase, spaces and dashes as '_'"""
    if text is None:
        return ""
    return _SEPARATORS.sub("_", str(text).strip().lower())


def resolve_alias(text, kind: str = "system") -> Union[str, object]:
    """
    Map a free-text role string onto its canonical role id.

    Exact canonical ids are returned as-is. Known historical spellings
    are matched case-insensitively after trimming. Unknown text comes
    back trimmed but otherwise verbatim so the caller can flag it;
    non-string input is returned unchanged.

    Args:
        text: Role text from a config document
        kind: "system", "input" or "output"
    """
    if not isinstance(text, str):
        return text

    trimmed = text.strip()
    values = _VALUES_BY_KIND.get(kind, _VALUES_BY_KIND["system"])
    if trimmed in values:
        return trimmed

    key = alias_key(trimmed)
    aliases = _ALIASES_BY_KIND.get(kind, SYSTEM_ROLE_ALIASES)
    if key in aliases:
        return aliases[key].value
    if key in values:
        return key

    # Canonical ids compared without case ("TankTop", "BOILERIN")
    for value in values:
        if value.lower() == key.replace("_", "") or value.lower() == key:
            return value

    return trimmed


def is_known_role(role_id, kind: str = None) -> bool:
    """Check whether role_id is a canonical id (of kind, or of any kind)"""
    if not isinstance(role_id, str):
        return False
    if kind is not None:
        return role_id in _VALUES_BY_KIND.get(kind, set())
    return any(role_id in values for values in _VALUES_BY_KIND.values())


def role_label(role_id: str, kind: str = "system") -> str:
    """Display label for a role id; unknown ids label themselves."""
    tables = {
        "system": (SystemRole, SYSTEM_ROLE_LABELS),
        "input": (InputRole, INPUT_ROLE_LABELS),
        "output": (OutputRole, OUTPUT_ROLE_LABELS),
    }
    enum_cls, labels = tables.get(kind, tables["system"])
    try:
        return labels[enum_cls(role_id)]
    except ValueError:
        return str(role_id)


def role_options(kind: str = "system") -> List[Tuple[str, str]]:
    """Ordered (role_id, label) pairs for dropdowns."""
    if kind == "input":
        return [(r.value, INPUT_ROLE_LABELS[r]) for r in InputRole]
    if kind == "output":
        return [(r.value, OUTPUT_ROLE_LABELS[r]) for r in OutputRole]
    return [(r.value, SYSTEM_ROLE_LABELS[r]) for r in SystemRole]


def system_role_ids() -> List[str]:
    return [r.value for r in SystemRole]


# Spellings the firmware role parser accepts for per-terminal role tables
DEVICE_ROLE_NAMES: Dict[str, str] = {
    SystemRole.TANK_TOP.value: "aku_top",
    SystemRole.TANK_MID.value: "aku_mid",
    SystemRole.TANK_BOTTOM.value: "aku_bottom",
    SystemRole.DHW_RETURN.value: "dhw_return",
    SystemRole.REFERENCE_ROOM.value: "reference_room",
}


def device_role_name(role_id: str) -> str:
    """Canonical role id -> spelling written to the device"""
    return DEVICE_ROLE_NAMES.get(role_id, role_id)
