"""
Heating Controller Telemetry Data Structures

Typed views over the JSON the device returns from /api/status and
/api/dash. Every field is optional on the wire; parsing never raises and
missing parts become empty lists or None.

Dash payload (fields used here):
- temps[8] / tempsValid[8]: legacy TEMP1..TEMP8 channels
- dallas[] (older name) or oneWireBuses[]: {gpio, status, devices[{rom, valid, tempC}]}
- mqttTemps[]: {idx, name, topic, jsonKey, valid, tempC, ageMs}
- bleTemps[]: {id, label, valid, tempC}
- opentherm: {ready, boilerTempC, returnTempC}
- relays[], inputs[]: live output/input states
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _float_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _int_or_none(value: Any) -> Optional[int]:
    number = _float_or_none(value)
    return None if number is None else int(number)


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ("" if value is None else str(value))


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


@dataclass
class Reading:
    """Resolved temperature for one role; produced fresh on every refresh."""
    valid: bool = False
    temp_c: Optional[float] = None
    age_ms: Optional[int] = None

    @classmethod
    def invalid(cls) -> "Reading":
        return cls()

    @property
    def display(self) -> str:
        if not self.valid or self.temp_c is None:
            return "--"
        return f"{self.temp_c:.1f} °C"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"valid": self.valid}
        if self.temp_c is not None:
            data["tempC"] = self.temp_c
        if self.age_ms is not None:
            data["ageMs"] = self.age_ms
        return data


@dataclass
class OneWireDevice:
    """One DS18B20 found on a bus"""
    rom: str = ""
    valid: bool = False
    temp_c: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "OneWireDevice":
        if not isinstance(data, dict):
            return cls()
        return cls(
            rom=_str(data.get("rom")),
            valid=data.get("valid") is True,
            temp_c=_float_or_none(data.get("tempC")),
        )


@dataclass
class OneWireBus:
    """Diagnostics of one 1-Wire GPIO bus"""
    gpio: Optional[int] = None
    status: str = "unknown"
    devices: List[OneWireDevice] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "OneWireBus":
        if not isinstance(data, dict):
            return cls()
        return cls(
            gpio=_int_or_none(data.get("gpio")),
            status=_str(data.get("status")) or "unknown",
            devices=[OneWireDevice.from_dict(d) for d in _list(data.get("devices"))],
        )


@dataclass
class RemoteTemp:
    """MQTT or BLE thermometer entry as reported by the device"""
    idx: Optional[int] = None
    id: str = ""
    name: str = ""
    topic: str = ""
    json_key: str = ""
    valid: bool = False
    temp_c: Optional[float] = None
    age_ms: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "RemoteTemp":
        if not isinstance(data, dict):
            return cls()
        temp = data.get("tempC")
        if temp is None:
            temp = data.get("valueC")
        return cls(
            idx=_int_or_none(data.get("idx")),
            id=_str(data.get("id")),
            name=_str(data.get("name", data.get("label"))),
            topic=_str(data.get("topic")),
            json_key=_str(data.get("jsonKey")),
            valid=data.get("valid") is True,
            temp_c=_float_or_none(temp),
            age_ms=_int_or_none(data.get("ageMs")),
        )


@dataclass
class OpenThermState:
    ready: bool = False
    boiler_temp_c: Optional[float] = None
    return_temp_c: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "OpenThermState":
        if not isinstance(data, dict):
            return cls()
        return cls(
            ready=data.get("ready") is not False,
            boiler_temp_c=_float_or_none(data.get("boilerTempC")),
            return_temp_c=_float_or_none(data.get("returnTempC")),
        )


@dataclass
class TelemetrySnapshot:
    """Point-in-time device state used to resolve roles to readings"""
    temps: List[Optional[float]] = field(default_factory=list)
    temps_valid: List[bool] = field(default_factory=list)
    one_wire_buses: List[OneWireBus] = field(default_factory=list)
    mqtt_temps: List[RemoteTemp] = field(default_factory=list)
    ble_temps: List[RemoteTemp] = field(default_factory=list)
    opentherm: Optional[OpenThermState] = None
    relays: List[Any] = field(default_factory=list)
    inputs: List[Any] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "TelemetrySnapshot":
        """Parse a /api/dash or /api/status body; anything unexpected is ignored."""
        if not isinstance(data, dict):
            return cls()

        buses = data.get("oneWireBuses")
        if not isinstance(buses, list):
            buses = data.get("dallas")

        opentherm = data.get("opentherm")
        return cls(
            temps=[_float_or_none(t) for t in _list(data.get("temps"))],
            temps_valid=[v is True for v in _list(data.get("tempsValid"))],
            one_wire_buses=[OneWireBus.from_dict(b) for b in _list(buses)],
            mqtt_temps=[RemoteTemp.from_dict(m) for m in _list(data.get("mqttTemps"))],
            ble_temps=[RemoteTemp.from_dict(b) for b in _list(data.get("bleTemps"))],
            opentherm=OpenThermState.from_dict(opentherm) if isinstance(opentherm, dict) else None,
            relays=list(_list(data.get("relays"))),
            inputs=list(_list(data.get("inputs"))),
            raw=data,
        )

    def bus(self, bus_index: int) -> Optional[OneWireBus]:
        """Bus by GPIO number, falling back to list position"""
        for bus in self.one_wire_buses:
            if bus.gpio == bus_index:
                return bus
        if 0 <= bus_index < len(self.one_wire_buses) and self.one_wire_buses[bus_index].gpio is None:
            return self.one_wire_buses[bus_index]
        return None

    def mqtt_slot(self, slot_index: int) -> Optional[RemoteTemp]:
        """MQTT entry by its 1-based idx, falling back to list position"""
        for entry in self.mqtt_temps:
            if entry.idx == slot_index:
                return entry
        pos = slot_index - 1
        if 0 <= pos < len(self.mqtt_temps) and self.mqtt_temps[pos].idx is None:
            return self.mqtt_temps[pos]
        return None

    def legacy_temp(self, index: int) -> Reading:
        """TEMP<index> channel (1-based)"""
        pos = index - 1
        if not 0 <= pos < len(self.temps):
            return Reading.invalid()
        temp = self.temps[pos]
        valid = pos < len(self.temps_valid) and self.temps_valid[pos] and temp is not None
        return Reading(valid=valid, temp_c=temp if valid else None)
