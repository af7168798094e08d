"""
Default Configuration Generator
Creates the canonical configuration of a controller with nothing set up.
"""

import copy
from typing import Dict, Any

from .definitions import (
    TERMINAL_COUNT,
    MQTT_THERMOMETER_COUNT,
    SEQUENCE_DEFAULTS,
    SECTION_DEFAULTS,
    MQTT_THERMOMETER_DEFAULT,
    VALVE_PARAM_DEFAULTS,
    FIXED_OUTPUTS,
    FIXED_INPUTS,
)
from ..role_registry import SystemRole, VALVE_3WAY_ROLES


def create_default_config() -> Dict[str, Any]:
    """Create the default canonical configuration.

    Fixed firmware placements (mixing valve on relays 1+2, DHW diverter
    on relay 3, inputs 1-3) are already applied.

    Returns:
        Canonical configuration dictionary.
    """
    config: Dict[str, Any] = {}

    for name, (length, default) in SEQUENCE_DEFAULTS.items():
        config[name] = [copy.deepcopy(default) for _ in range(length)]

    inputs = [{"role": "none", "params": {}} for _ in range(TERMINAL_COUNT)]
    for idx, role in FIXED_INPUTS.items():
        inputs[idx]["role"] = role

    valve_roles = {r.value for r in VALVE_3WAY_ROLES}
    outputs = [{"role": "none", "params": {}} for _ in range(TERMINAL_COUNT)]
    for idx, fixed in FIXED_OUTPUTS.items():
        params = dict(fixed["params"])
        if fixed["role"] in valve_roles:
            params.update(VALVE_PARAM_DEFAULTS)
        outputs[idx] = {"role": fixed["role"], "params": params}

    config["ioFunctions"] = {"inputs": inputs, "outputs": outputs}

    for name, defaults in SECTION_DEFAULTS.items():
        config[name] = copy.deepcopy(defaults)
    config["dhwRecirc"]["tempReturnSource"] = {"kind": "none"}

    config["mqttThermometers"] = [dict(MQTT_THERMOMETER_DEFAULT) for _ in range(MQTT_THERMOMETER_COUNT)]
    config["thermometerRoles"] = {role.value: {"kind": "none"} for role in SystemRole}

    return config
