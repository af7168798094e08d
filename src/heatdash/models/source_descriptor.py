"""
Source Descriptor - Sensor binding for a thermometer role

A descriptor is a tagged union over the physical sensor kinds the device
understands. Older firmware generations stored the same information as
prefixed strings ("temp3", "mqtt1", "dallas:1:28FF...") or as loose role
objects ({source, gpio, rom, ...}); both are decoded here once.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Physical sensor kinds"""
    NONE = "none"
    DALLAS = "dallas"
    MQTT = "mqtt"
    BLE = "ble"
    LEGACY_TEMP = "legacyTemp"
    OPENTHERM_BOILER = "openthermBoiler"
    OPENTHERM_RETURN = "openthermReturn"


SOURCE_KIND_LABELS = {
    SourceKind.NONE: "Not assigned",
    SourceKind.DALLAS: "1-Wire (Dallas)",
    SourceKind.MQTT: "MQTT thermometer",
    SourceKind.BLE: "BLE thermometer",
    SourceKind.LEGACY_TEMP: "TEMP input",
    SourceKind.OPENTHERM_BOILER: "OpenTherm: boiler",
    SourceKind.OPENTHERM_RETURN: "OpenTherm: return",
}

# Spellings of the kind tag seen in stored documents
KIND_ALIASES = {
    "": SourceKind.NONE,
    "none": SourceKind.NONE,
    "off": SourceKind.NONE,
    "dallas": SourceKind.DALLAS,
    "onewire": SourceKind.DALLAS,
    "ds18b20": SourceKind.DALLAS,
    "mqtt": SourceKind.MQTT,
    "ble": SourceKind.BLE,
    "legacytemp": SourceKind.LEGACY_TEMP,
    "legacy_temp": SourceKind.LEGACY_TEMP,
    "temp": SourceKind.LEGACY_TEMP,
    "openthermboiler": SourceKind.OPENTHERM_BOILER,
    "opentherm_boiler": SourceKind.OPENTHERM_BOILER,
    "openthermreturn": SourceKind.OPENTHERM_RETURN,
    "opentherm_return": SourceKind.OPENTHERM_RETURN,
}

DALLAS_BUS_COUNT = 4
MQTT_SLOT_COUNT = 2
LEGACY_TEMP_COUNT = 8
MQTT_CUSTOM = "custom"

_TEMP_RE = re.compile(r"^temp\s*(\d+)$", re.IGNORECASE)
_MQTT_RE = re.compile(r"^mqtt\s*:?\s*(\d+)$", re.IGNORECASE)
_NON_HEX_RE = re.compile(r"[^0-9A-F]")


def normalize_rom(rom: Any) -> str:
    """Uppercase a ROM code and strip everything that is not a hex digit."""
    if rom is None:
        return ""
    return _NON_HEX_RE.sub("", str(rom).upper())


def _to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else default
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except (ValueError, OverflowError):
            return default
    return default


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _first(obj: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Value of the first key present (and not None) in obj."""
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return default


def _slot(value: Any) -> Union[int, str]:
    if isinstance(value, str) and value.strip().lower() == MQTT_CUSTOM:
        return MQTT_CUSTOM
    idx = _to_int(value, 0)
    if 1 <= idx <= MQTT_SLOT_COUNT:
        return idx
    return MQTT_CUSTOM


@dataclass
class SourceDescriptor:
    """
    Sensor binding for one role.

    Only the fields of the active kind are meaningful. A kind this code
    does not know keeps its original fields in `extra` so that saving the
    config does not destroy what the operator set.
    """
    kind: str = SourceKind.NONE.value
    bus_index: int = 0
    rom_hex: str = ""
    slot_index: Union[int, str] = MQTT_CUSTOM
    topic: str = ""
    json_key: str = ""
    peripheral_id: str = ""
    index: int = 0
    max_age_ms: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def supported(self) -> bool:
        return self.kind in {k.value for k in SourceKind}

    @property
    def is_none(self) -> bool:
        return self.kind == SourceKind.NONE.value

    @property
    def source_kind(self) -> Optional[SourceKind]:
        try:
            return SourceKind(self.kind)
        except ValueError:
            return None

    # ========== Constructors ==========

    @classmethod
    def none(cls) -> "SourceDescriptor":
        return cls()

    @classmethod
    def dallas(cls, bus_index: int, rom_hex: str = "") -> "SourceDescriptor":
        return cls(kind=SourceKind.DALLAS.value, bus_index=bus_index, rom_hex=normalize_rom(rom_hex))

    @classmethod
    def mqtt(cls, slot_index: Union[int, str] = MQTT_CUSTOM, topic: str = "",
             json_key: str = "") -> "SourceDescriptor":
        return cls(kind=SourceKind.MQTT.value, slot_index=_slot(slot_index),
                   topic=topic, json_key=json_key)

    @classmethod
    def ble(cls, peripheral_id: str = "") -> "SourceDescriptor":
        return cls(kind=SourceKind.BLE.value, peripheral_id=peripheral_id)

    @classmethod
    def legacy_temp(cls, index: int) -> "SourceDescriptor":
        return cls(kind=SourceKind.LEGACY_TEMP.value, index=index)

    # ========== Serialization ==========

    def to_dict(self) -> Dict[str, Any]:
        """Canonical dict form used inside CanonicalConfig"""
        kind = self.source_kind
        if kind is None:
            data = dict(self.extra)
            data["kind"] = self.kind
            return data

        data: Dict[str, Any] = {"kind": self.kind}
        if kind == SourceKind.DALLAS:
            data["busIndex"] = self.bus_index
            data["romHex"] = self.rom_hex
        elif kind == SourceKind.MQTT:
            data["slotIndex"] = self.slot_index
            data["topic"] = self.topic
            data["jsonKey"] = self.json_key
        elif kind == SourceKind.BLE:
            data["peripheralId"] = self.peripheral_id
        elif kind == SourceKind.LEGACY_TEMP:
            data["index"] = self.index

        if kind != SourceKind.NONE and self.max_age_ms > 0:
            data["maxAgeMs"] = self.max_age_ms
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "SourceDescriptor":
        """
        Decode any stored form of a source binding.

        Accepts the canonical {"kind": ...} dict, a legacy role object
        ({"source": ...}), a legacy source string, or None.
        """
        if data is None:
            return cls()
        if isinstance(data, str):
            return parse_source(data)
        if not isinstance(data, dict):
            return cls()
        if "kind" in data:
            return cls._from_canonical(data)
        if "source" in data:
            return parse_legacy_object(data)
        return cls()

    @classmethod
    def _from_canonical(cls, data: Dict[str, Any]) -> "SourceDescriptor":
        raw_kind = data.get("kind")
        kind = KIND_ALIASES.get(_to_str(raw_kind).lower())
        if kind is None:
            extra = {k: v for k, v in data.items() if k != "kind"}
            return cls(kind=_to_str(raw_kind) or str(raw_kind), extra=extra)

        max_age = max(0, _to_int(_first(data, "maxAgeMs", "max_age_ms", default=0)))

        if kind == SourceKind.DALLAS:
            desc = cls.dallas(_to_int(_first(data, "busIndex", "bus", "gpio", default=0)),
                              _first(data, "romHex", "rom", "addr", default=""))
        elif kind == SourceKind.MQTT:
            desc = cls.mqtt(_first(data, "slotIndex", "mqttIdx", "preset"),
                            _to_str(data.get("topic")),
                            _to_str(_first(data, "jsonKey", "key", "field", default="")))
        elif kind == SourceKind.BLE:
            desc = cls.ble(_to_str(_first(data, "peripheralId", "bleId", "id", default="")))
        elif kind == SourceKind.LEGACY_TEMP:
            desc = cls.legacy_temp(_to_int(data.get("index"), 0))
        else:
            desc = cls(kind=kind.value)

        desc.max_age_ms = max_age
        return desc

    def to_legacy(self) -> Dict[str, Any]:
        """Role object in the {source, gpio, rom, ...} form the firmware reads"""
        kind = self.source_kind
        if kind is None:
            data = {k: v for k, v in self.extra.items() if k != "source"}
            data["source"] = self.kind
            return data

        if kind == SourceKind.DALLAS:
            data = {"source": "dallas", "gpio": self.bus_index, "rom": self.rom_hex}
        elif kind == SourceKind.MQTT:
            mqtt_idx = self.slot_index if isinstance(self.slot_index, int) else 0
            data = {"source": "mqtt", "mqttIdx": mqtt_idx, "topic": self.topic,
                    "jsonKey": self.json_key}
        elif kind == SourceKind.BLE:
            data = {"source": "ble", "bleId": self.peripheral_id}
        elif kind == SourceKind.LEGACY_TEMP:
            data = {"source": f"temp{self.index}"}
        elif kind == SourceKind.OPENTHERM_BOILER:
            data = {"source": "opentherm_boiler"}
        elif kind == SourceKind.OPENTHERM_RETURN:
            data = {"source": "opentherm_return"}
        else:
            data = {"source": "none"}

        if kind != SourceKind.NONE and self.max_age_ms > 0:
            data["maxAgeMs"] = self.max_age_ms
        return data

    def describe(self) -> str:
        """Short human-readable summary"""
        kind = self.source_kind
        if kind is None:
            return f"Unsupported source '{self.kind}'"
        if kind == SourceKind.DALLAS:
            rom = self.rom_hex or "first valid"
            return f"1-Wire bus {self.bus_index} ({rom})"
        if kind == SourceKind.MQTT:
            if self.slot_index == MQTT_CUSTOM:
                return f"MQTT {self.topic or '?'}"
            return f"MQTT #{self.slot_index}"
        if kind == SourceKind.BLE:
            return f"BLE {self.peripheral_id or 'default'}"
        if kind == SourceKind.LEGACY_TEMP:
            return f"TEMP{self.index}"
        return SOURCE_KIND_LABELS[kind]


def parse_source(text: Any) -> SourceDescriptor:
    """
    Decode a legacy source string.

    Examples: "none", "dallas", "dallas:1:28FF...", "temp3", "mqtt",
    "mqtt1", "mqtt:2", "ble", "ble:meteo.tempC", "opentherm_boiler".
    Anything else becomes a descriptor of that (unsupported) kind.
    """
    s = _to_str(text)
    lower = s.lower()

    if lower in ("", "none", "off"):
        return SourceDescriptor()

    if lower == "dallas" or lower.startswith("dallas:"):
        parts = s.split(":", 2)
        bus = _to_int(parts[1], 0) if len(parts) > 1 else 0
        rom = parts[2] if len(parts) > 2 else ""
        return SourceDescriptor.dallas(bus, rom)

    m = _TEMP_RE.match(s)
    if m:
        return SourceDescriptor.legacy_temp(int(m.group(1)))

    if lower == "mqtt":
        return SourceDescriptor.mqtt()
    m = _MQTT_RE.match(s)
    if m:
        return SourceDescriptor.mqtt(int(m.group(1)))

    if lower == "ble":
        return SourceDescriptor.ble()
    if lower.startswith("ble:"):
        return SourceDescriptor.ble(s[4:].strip())

    kind = KIND_ALIASES.get(lower)
    if kind is not None:
        return SourceDescriptor(kind=kind.value)

    logger.debug(f"Unsupported source string '{s}'")
    return SourceDescriptor(kind=s)


def parse_legacy_object(obj: Dict[str, Any]) -> SourceDescriptor:
    """Decode a {source, gpio|bus, rom|addr, topic, jsonKey, mqttIdx, bleId} role object."""
    desc = parse_source(obj.get("source"))
    kind = desc.source_kind

    if kind is None:
        desc.extra = {k: v for k, v in obj.items() if k != "source"}
        return desc

    source_text = _to_str(obj.get("source")).lower()

    if kind == SourceKind.DALLAS:
        if ":" not in source_text:
            desc.bus_index = _to_int(_first(obj, "gpio", "bus", "busIndex", default=0))
        rom = _first(obj, "rom", "addr", "romHex")
        if rom is not None and not desc.rom_hex:
            desc.rom_hex = normalize_rom(rom)
    elif kind == SourceKind.MQTT:
        if source_text == "mqtt":
            desc.slot_index = _slot(_first(obj, "mqttIdx", "preset", "slotIndex"))
        desc.topic = _to_str(obj.get("topic"))
        desc.json_key = _to_str(_first(obj, "jsonKey", "key", "field", default=""))
    elif kind == SourceKind.BLE:
        if not desc.peripheral_id:
            desc.peripheral_id = _to_str(_first(obj, "bleId", "id", "peripheralId", default=""))

    if kind != SourceKind.NONE:
        desc.max_age_ms = max(0, _to_int(_first(obj, "maxAgeMs", "max_age_ms", default=0)))
    return desc
