"""
Configuration schema tables

Declarative defaults and legacy key spellings for the heating controller
configuration document. The normalizer and create_default_config() both
read these tables; nothing else should hardcode a default.
"""

from typing import Any, Dict, List, Tuple, Union

TERMINAL_COUNT = 8
DALLAS_BUS_COUNT = 4
MQTT_THERMOMETER_COUNT = 2

# Top-level spellings used by older firmware/UI generations
TOP_LEVEL_ALIASES: List[Tuple[str, str]] = [
    ("input_names", "inputNames"),
    ("relay_names", "relayNames"),
    ("outputNames", "relayNames"),
    ("output_names", "relayNames"),
    ("input_active_levels", "inputActiveLevels"),
    ("activeLevels", "inputActiveLevels"),
    ("iofunc", "ioFunctions"),
    ("ioFunc", "ioFunctions"),
    ("io_functions", "ioFunctions"),
    ("thermometer_roles", "thermometerRoles"),
    ("dhw_recirc", "dhwRecirc"),
    ("recirc", "dhwRecirc"),
    ("aku_heater", "akuHeater"),
    ("temp_roles", "tempRoles"),
    ("dallas_gpios", "dallasGpios"),
    ("dallas_addrs", "dallasAddrs"),
    ("dallas_names", "dallasNames"),
    ("mqtt_thermometers", "mqttThermometers"),
    ("ble_thermometer", "bleThermometer"),
]

# Sections older UIs stored under "equitherm"
EQUITHERM_NESTED_SECTIONS = (
    "ble", "bleThermometer", "mqttThermometers", "tempRoles",
    "opentherm", "iofunc", "dhwRecirc", "akuHeater",
)

# Equitherm per-role sensor objects ({source, gpio, rom, ...})
EQUITHERM_ROLE_OBJECTS: Dict[str, str] = {
    "outdoor": "outdoor",
    "flow": "flow",
    "boilerIn": "boilerIn",
    "akuTop": "tankTop",
    "akuMid": "tankMid",
    "akuBottom": "tankBottom",
}

# (legacy dotted path, canonical dotted path or paths), applied in order.
# An earlier entry wins when several legacy spellings target one key.
RenameTarget = Union[str, Tuple[str, ...]]

SECTION_RENAMES: Dict[str, List[Tuple[str, RenameTarget]]] = {
    "equitherm": [
        ("minFlow", "minFlowC"),
        ("maxFlow", "maxFlowC"),
        ("curveOffset", "curveOffsetC"),
        ("valve.master", "valveMaster"),
        ("refDay", "refs.day"),
        ("refNight", "refs.night"),
        ("control.deadband", "control.deadbandC"),
        ("control.step", "control.stepPct"),
        ("control.period", "control.periodMs"),
        ("control.maxPct_day", "control.maxPctDay"),
        ("control.maxPct_night", "control.maxPctNight"),
        ("deadbandC", "control.deadbandC"),
        ("stepPct", "control.stepPct"),
        ("controlPeriodMs", "control.periodMs"),
        ("minPct", "control.minPct"),
        ("maxPct_day", "control.maxPctDay"),
        ("maxPctDay", "control.maxPctDay"),
        ("maxPct_night", "control.maxPctNight"),
        ("maxPctNight", "control.maxPctNight"),
        ("control.maxPct", ("control.maxPctDay", "control.maxPctNight")),
        ("maxPct", ("control.maxPctDay", "control.maxPctNight")),
        ("noFlowDetectEnabled", "noFlowDetect.enabled"),
        ("noFlowTimeoutMs", "noFlowDetect.timeoutMs"),
        ("noFlowTestPeriodMs", "noFlowDetect.testPeriodMs"),
        ("akuSupportEnabled", "akuSupport.enabled"),
        ("akuNoSupportBehavior", "akuSupport.noSupportBehavior"),
        ("akuMinTopC_day", "akuSupport.minTopCDay"),
        ("akuMinTopCDay", "akuSupport.minTopCDay"),
        ("akuMinTopC_night", "akuSupport.minTopCNight"),
        ("akuMinTopCNight", "akuSupport.minTopCNight"),
        ("akuMinTopC", ("akuSupport.minTopCDay", "akuSupport.minTopCNight")),
        ("akuMinDeltaToTargetC_day", "akuSupport.minDeltaToTargetCDay"),
        ("akuMinDeltaToTargetCDay", "akuSupport.minDeltaToTargetCDay"),
        ("akuMinDeltaToTargetC_night", "akuSupport.minDeltaToTargetCNight"),
        ("akuMinDeltaToTargetCNight", "akuSupport.minDeltaToTargetCNight"),
        ("akuMinDeltaToTargetC", ("akuSupport.minDeltaToTargetCDay", "akuSupport.minDeltaToTargetCNight")),
        ("akuMinDeltaToBoilerInC_day", "akuSupport.minDeltaToBoilerInCDay"),
        ("akuMinDeltaToBoilerInCDay", "akuSupport.minDeltaToBoilerInCDay"),
        ("akuMinDeltaToBoilerInC_night", "akuSupport.minDeltaToBoilerInCNight"),
        ("akuMinDeltaToBoilerInCNight", "akuSupport.minDeltaToBoilerInCNight"),
        ("akuMinDeltaToBoilerInC", ("akuSupport.minDeltaToBoilerInCDay", "akuSupport.minDeltaToBoilerInCNight")),
    ],
    "tuv": [
        ("relay", "requestRelay"),
        ("bypass", "bypassValve"),
    ],
    "dhwRecirc": [
        ("returnSource", "tempReturnSource"),
        ("tempReturn", "tempReturnSource"),
        ("relay", "pumpRelay"),
    ],
    "akuHeater": [
        ("heaterRelay", "relay"),
    ],
}

TWO_POINT_RENAMES: List[Tuple[str, str]] = [
    ("tout1", "outdoorC1"),
    ("tflow1", "flowC1"),
    ("tout2", "outdoorC2"),
    ("tflow2", "flowC2"),
]

VALVE_PARAM_RENAMES: List[Tuple[str, str]] = [
    ("peerRel", "peerRelay"),
    ("partnerRelay", "peerRelay"),
    ("travelTime", "travelTimeSeconds"),
    ("travelTimeS", "travelTimeSeconds"),
    ("pulseTime", "pulseTimeSeconds"),
    ("guardTime", "guardTimeSeconds"),
    ("minSwitchS", "minSwitchSeconds"),
    ("defaultPos", "defaultPosition"),
    ("invertDir", "invertDirection"),
]

VALVE_PARAM_DEFAULTS: Dict[str, Any] = {
    "travelTimeSeconds": 6.0,
    "pulseTimeSeconds": 0.8,
    "guardTimeSeconds": 0.3,
    "minSwitchSeconds": 30.0,
    "invertDirection": False,
    "defaultPosition": "A",
}

VALVE_POSITIONS = ("A", "B")

TWO_POINT_DEFAULTS: Dict[str, Dict[str, float]] = {
    "day": {"outdoorC1": -10.0, "flowC1": 55.0, "outdoorC2": 15.0, "flowC2": 30.0},
    "night": {"outdoorC1": -10.0, "flowC1": 50.0, "outdoorC2": 15.0, "flowC2": 25.0},
}

# Explicit curve parameters used when only one of a branch pair is set
CURVE_PARAM_DEFAULTS: Dict[str, float] = {
    "slopeDay": 1.0,
    "shiftDay": 5.0,
    "slopeNight": 1.0,
    "shiftNight": 0.0,
}

WINDOW_DEFAULTS: Dict[str, Any] = {
    "start": "06:00",
    "end": "07:00",
    "days": [1, 2, 3, 4, 5, 6, 7],
}

# Section defaults. No slope/shift keys here: their absence selects the
# two-point derivation.
SECTION_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "equitherm": {
        "enabled": False,
        "minFlowC": 25.0,
        "maxFlowC": 55.0,
        "curveOffsetC": 0.0,
        "refs": {
            "day": dict(TWO_POINT_DEFAULTS["day"]),
            "night": dict(TWO_POINT_DEFAULTS["night"]),
        },
        "control": {
            "deadbandC": 0.5,
            "stepPct": 4,
            "periodMs": 30000,
            "minPct": 0,
            "maxPctDay": 100,
            "maxPctNight": 50,
        },
        "valveMaster": 0,
        "maxBoilerInC": 55.0,
        "noFlowDetect": {
            "enabled": True,
            "timeoutMs": 180000,
            "testPeriodMs": 180000,
        },
        "fallbackOutdoorC": 0.0,
        "requireHeatCall": False,
        "noHeatCallBehavior": "hold",
        "akuSupport": {
            "enabled": True,
            "noSupportBehavior": "close",
            "minTopCDay": 42.0,
            "minTopCNight": 45.0,
            "minDeltaToTargetCDay": 2.0,
            "minDeltaToTargetCNight": 3.0,
            "minDeltaToBoilerInCDay": 3.0,
            "minDeltaToBoilerInCNight": 4.0,
        },
    },
    "dhwRecirc": {
        "enabled": False,
        "mode": "on_demand",
        "demandInput": 0,
        "pumpRelay": 0,
        "onDemandRunMs": 120000,
        "minOffMs": 300000,
        "minOnMs": 30000,
        "cycleMode": "solid",
        "cycleOnMs": 0,
        "cycleOffMs": 0,
        "stopTempC": 42.0,
        "windows": [],
    },
    "akuHeater": {
        "enabled": False,
        "relay": 0,
        "mode": "manual",
        "manualOn": False,
        "targetTopC": 50.0,
        "hysteresisC": 2.0,
        "maxOnMs": 7200000,
        "minOffMs": 600000,
        "windows": [],
    },
    "tuv": {
        "enabled": False,
        "demandInput": 0,
        "requestRelay": 0,
        "eqValveTargetPct": 0,
        "valveMaster": 0,
        "valveTargetPct": 0,
        "restoreEqValveAfter": True,
        "bypassValve": {
            "enabled": True,
            "mode": "single_relay_spdt",
            "masterRelay": 0,
            "bypassPct": 100,
            "chPct": 100,
            "invert": False,
        },
    },
    "sensors": {
        "outdoor": {"maxAgeMs": 900000},
    },
    "system": {
        "profile": "standard",
        "nightModeSource": "heat_call",
        "nightModeManual": False,
    },
    "bleThermometer": {
        "name": "BLE Meteo",
        "id": "meteo.tempC",
        "role": "none",
    },
}

# (section, dotted key, dotted key it copies when missing)
DEPENDENT_DEFAULTS: List[Tuple[str, str, str]] = [
    ("equitherm", "noFlowDetect.testPeriodMs", "noFlowDetect.timeoutMs"),
]

SECTION_ENUMS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "dhwRecirc": {
        "mode": ("on_demand", "time_windows", "hybrid"),
        "cycleMode": ("solid", "cycle"),
    },
    "akuHeater": {"mode": ("manual", "schedule", "thermostatic")},
    "system": {
        "profile": ("standard", "comfort", "eco"),
        "nightModeSource": ("heat_call", "manual", "input", "schedule"),
    },
}

# Terminal-indexed sequences: name -> (length, default item)
SEQUENCE_DEFAULTS: Dict[str, Tuple[int, Any]] = {
    "inputNames": (TERMINAL_COUNT, ""),
    "relayNames": (TERMINAL_COUNT, ""),
    "inputActiveLevels": (TERMINAL_COUNT, 0),
    "tempRoles": (TERMINAL_COUNT, "none"),
    "dallasGpios": (DALLAS_BUS_COUNT, -1),
    "dallasAddrs": (DALLAS_BUS_COUNT, ""),
    "dallasNames": (DALLAS_BUS_COUNT, ""),
}

# Sequences the firmware expects as {"0": ..., "1": ...} objects
INDEXED_OBJECT_FIELDS = ("tempRoles",)

MQTT_THERMOMETER_DEFAULT: Dict[str, Any] = {"name": "", "topic": "", "jsonKey": "tempC", "role": "none"}

# Firmware placements that the device enforces regardless of the stored value
FIXED_OUTPUTS: Dict[int, Dict[str, Any]] = {
    0: {"role": "valve_3way_mix", "params": {"peerRelay": 2}},
    1: {"role": "valve_3way_peer", "params": {"master": 1}},
    2: {"role": "valve_3way_tuv", "params": {}},
}

FIXED_INPUTS: Dict[int, str] = {
    0: "dhw_enable",
    1: "night_mode",
    2: "recirc_demand",
}

PROFILE_OFFSETS_C: Dict[str, float] = {
    "comfort": 1.0,
    "eco": -1.0,
}
