"""
Source Resolver

Maps a SourceDescriptor to a live Reading from a telemetry snapshot.
Pure lookups only; callers re-resolve on every telemetry refresh.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..communication.telemetry import Reading, RemoteTemp, TelemetrySnapshot
from ..models.role_registry import SystemRole, system_role_ids
from ..models.source_descriptor import SourceDescriptor, SourceKind, MQTT_CUSTOM, normalize_rom

logger = logging.getLogger(__name__)

DescriptorLike = Union[SourceDescriptor, Dict[str, Any], str, None]
SnapshotLike = Union[TelemetrySnapshot, Dict[str, Any], None]


def _as_descriptor(descriptor: DescriptorLike) -> SourceDescriptor:
    if isinstance(descriptor, SourceDescriptor):
        return descriptor
    return SourceDescriptor.from_dict(descriptor)


def _as_snapshot(snapshot: SnapshotLike) -> TelemetrySnapshot:
    if isinstance(snapshot, TelemetrySnapshot):
        return snapshot
    return TelemetrySnapshot.from_dict(snapshot)


def _remote_reading(entry: Optional[RemoteTemp]) -> Reading:
    if entry is None or not entry.valid or entry.temp_c is None:
        return Reading.invalid()
    return Reading(valid=True, temp_c=entry.temp_c, age_ms=entry.age_ms)


def _resolve_dallas(desc: SourceDescriptor, snapshot: TelemetrySnapshot) -> Reading:
    bus = snapshot.bus(desc.bus_index)
    if bus is None:
        return Reading.invalid()

    wanted = normalize_rom(desc.rom_hex)
    for device in bus.devices:
        if wanted:
            if normalize_rom(device.rom) != wanted:
                continue
        elif not device.valid:
            continue
        if device.valid and device.temp_c is not None:
            return Reading(valid=True, temp_c=device.temp_c)
        return Reading.invalid()
    return Reading.invalid()


def _resolve_mqtt(desc: SourceDescriptor, snapshot: TelemetrySnapshot) -> Reading:
    if desc.slot_index != MQTT_CUSTOM:
        return _remote_reading(snapshot.mqtt_slot(int(desc.slot_index)))

    if not desc.topic:
        return Reading.invalid()
    for entry in snapshot.mqtt_temps:
        if entry.topic == desc.topic and (not desc.json_key or entry.json_key == desc.json_key):
            return _remote_reading(entry)
    return Reading.invalid()


def _ble_id_matches(wanted: str, reported: str) -> bool:
    if wanted == reported:
        return True
    # "meteo.tempC" selects the field of peripheral "meteo"
    return wanted.split(".", 1)[0] == reported.split(".", 1)[0]


def _resolve_ble(desc: SourceDescriptor, snapshot: TelemetrySnapshot) -> Reading:
    if not snapshot.ble_temps:
        return Reading.invalid()
    if not desc.peripheral_id:
        return _remote_reading(snapshot.ble_temps[0])
    for entry in snapshot.ble_temps:
        if _ble_id_matches(desc.peripheral_id, entry.id):
            return _remote_reading(entry)
    return Reading.invalid()


def _resolve_opentherm(desc: SourceDescriptor, snapshot: TelemetrySnapshot) -> Reading:
    ot = snapshot.opentherm
    if ot is None or not ot.ready:
        return Reading.invalid()
    temp = ot.boiler_temp_c if desc.kind == SourceKind.OPENTHERM_BOILER.value else ot.return_temp_c
    if temp is None:
        return Reading.invalid()
    return Reading(valid=True, temp_c=temp)


_RESOLVERS = {
    SourceKind.DALLAS: _resolve_dallas,
    SourceKind.MQTT: _resolve_mqtt,
    SourceKind.BLE: _resolve_ble,
    SourceKind.LEGACY_TEMP: lambda desc, snapshot: snapshot.legacy_temp(desc.index),
    SourceKind.OPENTHERM_BOILER: _resolve_opentherm,
    SourceKind.OPENTHERM_RETURN: _resolve_opentherm,
}


def resolve_reading(descriptor: DescriptorLike, snapshot: SnapshotLike,
                    config: Optional[Dict[str, Any]] = None) -> Reading:
    """
    Resolve one descriptor against a telemetry snapshot.

    Never raises: unknown kinds, missing buses or slots and malformed
    snapshots all give an invalid Reading. A descriptor with maxAgeMs
    set rejects readings the device reports as older than that.

    Args:
        descriptor: SourceDescriptor or any stored form of one
        snapshot: TelemetrySnapshot or the raw dash/status dict
        config: Canonical config (accepted for callers that pass it; the
            lookup itself only needs the snapshot)
    """
    try:
        desc = _as_descriptor(descriptor)
        snap = _as_snapshot(snapshot)
        resolver = _RESOLVERS.get(desc.source_kind)
        if resolver is None:
            return Reading.invalid()
        reading = resolver(desc, snap)
    except Exception as e:
        logger.debug(f"Resolution failed for {descriptor!r}: {e}")
        return Reading.invalid()

    if reading.valid and desc.max_age_ms > 0 and reading.age_ms is not None \
            and reading.age_ms > desc.max_age_ms:
        return Reading(valid=False, age_ms=reading.age_ms)
    return reading


def role_descriptor(role: str, config: Dict[str, Any]) -> SourceDescriptor:
    """Effective descriptor of a role, with boilerIn falling back to flow"""
    roles = config.get("thermometerRoles") if isinstance(config, dict) else None
    if not isinstance(roles, dict):
        roles = {}
    desc = SourceDescriptor.from_dict(roles.get(role))
    if desc.is_none and role == SystemRole.BOILER_IN.value:
        desc = SourceDescriptor.from_dict(roles.get(SystemRole.FLOW.value))
    return desc


def resolve_role(role: str, snapshot: SnapshotLike, config: Dict[str, Any]) -> Reading:
    """Reading for a thermometer role of a canonical config"""
    return resolve_reading(role_descriptor(role, config), snapshot, config)


def resolve_all_roles(snapshot: SnapshotLike, config: Dict[str, Any]) -> Dict[str, Reading]:
    """Readings for every system role, parsed from the snapshot once"""
    snap = _as_snapshot(snapshot)
    return {role: resolve_role(role, snap, config) for role in system_role_ids()}


def recirc_return_descriptor(config: Dict[str, Any]) -> SourceDescriptor:
    """
    Return-line sensor of DHW recirculation.

    dhwRecirc.tempReturnSource when set, else the dhwReturn role, else
    the heating return role.
    """
    recirc = config.get("dhwRecirc") if isinstance(config, dict) else None
    if isinstance(recirc, dict):
        desc = SourceDescriptor.from_dict(recirc.get("tempReturnSource"))
        if not desc.is_none:
            return desc
    desc = role_descriptor(SystemRole.DHW_RETURN.value, config)
    if not desc.is_none:
        return desc
    return role_descriptor(SystemRole.RETURN.value, config)


def resolve_recirc_return(snapshot: SnapshotLike, config: Dict[str, Any]) -> Reading:
    return resolve_reading(recirc_return_descriptor(config), snapshot, config)
