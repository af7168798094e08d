"""
Valve/Output Role Binder

Pairs every 3-way valve master relay with the relay that drives its
other direction. Relay indices are 0-based here; relay numbers stored in
params (peerRelay, master) are 1-based like the terminal labels.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .config_schema.definitions import TERMINAL_COUNT, VALVE_PARAM_DEFAULTS
from .role_registry import OutputRole, VALVE_3WAY_ROLES

logger = logging.getLogger(__name__)

_VALVE_ROLE_IDS = [r.value for r in VALVE_3WAY_ROLES]


@dataclass
class ValveCalibration:
    """Motor timing and direction settings of one valve"""
    travel_time_s: float = VALVE_PARAM_DEFAULTS["travelTimeSeconds"]
    pulse_time_s: float = VALVE_PARAM_DEFAULTS["pulseTimeSeconds"]
    guard_time_s: float = VALVE_PARAM_DEFAULTS["guardTimeSeconds"]
    min_switch_s: float = VALVE_PARAM_DEFAULTS["minSwitchSeconds"]
    invert_direction: bool = VALVE_PARAM_DEFAULTS["invertDirection"]
    default_position: str = VALVE_PARAM_DEFAULTS["defaultPosition"]

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "ValveCalibration":
        def number(key: str) -> float:
            value = params.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                try:
                    number = float(value)
                except OverflowError:
                    number = math.nan
                if math.isfinite(number):
                    return number
            return float(VALVE_PARAM_DEFAULTS[key])

        position = params.get("defaultPosition", "A")
        return cls(
            travel_time_s=number("travelTimeSeconds"),
            pulse_time_s=number("pulseTimeSeconds"),
            guard_time_s=number("guardTimeSeconds"),
            min_switch_s=number("minSwitchSeconds"),
            invert_direction=bool(params.get("invertDirection", False)),
            default_position=position if position in ("A", "B") else "A",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "travelTimeSeconds": self.travel_time_s,
            "pulseTimeSeconds": self.pulse_time_s,
            "guardTimeSeconds": self.guard_time_s,
            "minSwitchSeconds": self.min_switch_s,
            "invertDirection": self.invert_direction,
            "defaultPosition": self.default_position,
        }


@dataclass
class ValveBinding:
    """A valve master relay and its computed peer"""
    master_index: int
    peer_index: Optional[int]
    role: str
    calibration: ValveCalibration = field(default_factory=ValveCalibration)

    @property
    def master_relay(self) -> int:
        return self.master_index + 1

    @property
    def peer_relay(self) -> Optional[int]:
        return None if self.peer_index is None else self.peer_index + 1

    @property
    def single_relay(self) -> bool:
        return self.peer_index is None

    @property
    def relay_indices(self) -> List[int]:
        if self.peer_index is None:
            return [self.master_index]
        return [self.master_index, self.peer_index]


def _outputs(config: Any) -> List[Dict[str, Any]]:
    if not isinstance(config, dict):
        return []
    io = config.get("ioFunctions")
    if not isinstance(io, dict) or not isinstance(io.get("outputs"), list):
        return []
    return [o if isinstance(o, dict) else {} for o in io["outputs"][:TERMINAL_COUNT]]


def _requested_peer(params: Dict[str, Any]) -> Optional[int]:
    value = params.get("peerRelay")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return int(value) - 1
    except (OverflowError, ValueError):
        return None


def resolve_valve_outputs(config: Dict[str, Any]) -> List[ValveBinding]:
    """
    Compute valve bindings from ioFunctions.outputs.

    Masters are scanned in relay order. A mixing valve pairs with
    params.peerRelay, or master+1 when that is missing or unusable, or
    else the first free relay not holding a valve role. A DHW diverter
    is single-relay unless it names a peerRelay. A relay already claimed
    by an earlier binding is never claimed again, so each physical
    relay appears in at most one binding.
    """
    outputs = _outputs(config)
    count = len(outputs)
    master_indices = [i for i, o in enumerate(outputs) if o.get("role") in _VALVE_ROLE_IDS]

    claimed: Set[int] = set()
    bindings: List[ValveBinding] = []

    def usable(idx: Optional[int], master: int) -> bool:
        return (idx is not None and 0 <= idx < count and idx != master
                and idx not in claimed and idx not in master_indices)

    for master in master_indices:
        if master in claimed:
            logger.debug(f"Relay {master + 1} already claimed as a valve peer, skipped")
            continue

        entry = outputs[master]
        role = entry["role"]
        params = entry.get("params") if isinstance(entry.get("params"), dict) else {}
        requested = _requested_peer(params)

        peer: Optional[int] = None
        if role == OutputRole.VALVE_3WAY_MIX.value or requested is not None:
            if usable(requested, master):
                peer = requested
            elif usable(master + 1, master):
                peer = master + 1
            elif role == OutputRole.VALVE_3WAY_MIX.value:
                peer = next((i for i in range(count) if usable(i, master)), None)

            if requested is not None and peer != requested:
                logger.debug(f"Valve R{master + 1}: peer R{requested + 1} unusable, using "
                             f"{'R' + str(peer + 1) if peer is not None else 'none'}")

        claimed.add(master)
        if peer is not None:
            claimed.add(peer)

        bindings.append(ValveBinding(
            master_index=master,
            peer_index=peer,
            role=role,
            calibration=ValveCalibration.from_params(params),
        ))

    return bindings


def valve_controlled_relays(config: Dict[str, Any]) -> Set[int]:
    """0-based relay indices driven by a valve (excluded from the plain relay grid)."""
    relays: Set[int] = set()
    for binding in resolve_valve_outputs(config):
        relays.update(binding.relay_indices)
    return relays


def valve_options(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Entries for valve-selection dropdowns: master relay number and label."""
    names = config.get("relayNames", []) if isinstance(config, dict) else []
    options = []
    for binding in resolve_valve_outputs(config):
        name = names[binding.master_index] if binding.master_index < len(names) else ""
        label = f"R{binding.master_relay}"
        if binding.peer_relay is not None:
            label += f"+R{binding.peer_relay}"
        if name:
            label += f" ({name})"
        options.append({"master": binding.master_relay, "label": label, "role": binding.role})
    return options
