"""
Source resolver tests
Role descriptors resolved against /api/dash style telemetry.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from heatdash.engine.source_resolver import (
    resolve_reading,
    resolve_role,
    resolve_all_roles,
    resolve_recirc_return,
    role_descriptor,
)
from heatdash.communication.telemetry import TelemetrySnapshot, Reading
from heatdash.models.config_normalizer import normalize_config
from heatdash.models.source_descriptor import SourceDescriptor
from heatdash.models.role_registry import system_role_ids


@pytest.fixture
def snapshot():
    return {
        "temps": [21.5, None, 48.0, 0, 0, 0, 0, 0],
        "tempsValid": [True, False, True, False, False, False, False, False],
        "oneWireBuses": [
            {"devices": []},
            {"devices": [{"rom": "28FF01", "valid": False, "tempC": 10},
                         {"rom": "28FF02", "valid": True, "tempC": 42.5}]},
        ],
        "mqttTemps": [
            {"idx": 1, "topic": "garden/temp", "jsonKey": "t", "valid": True, "tempC": -3.5, "ageMs": 12000},
            {"idx": 2, "topic": "attic/temp", "jsonKey": "", "valid": False, "tempC": None},
        ],
        "bleTemps": [{"id": "meteo.tempC", "label": "BLE Meteo", "valid": True, "tempC": 4.2}],
        "opentherm": {"ready": True, "boilerTempC": 61.0, "returnTempC": 44.0},
    }


class TestDallas:

    def test_first_valid_device(self, snapshot):
        reading = resolve_reading({"kind": "dallas", "busIndex": 1, "romHex": ""}, snapshot, {})
        assert reading.valid
        assert reading.temp_c == 42.5

    def test_rom_match_ignores_format(self, snapshot):
        reading = resolve_reading({"kind": "dallas", "busIndex": 1, "romHex": "28:ff:02"}, snapshot)
        assert reading.temp_c == 42.5

    def test_rom_match_invalid_device(self, snapshot):
        assert not resolve_reading({"kind": "dallas", "busIndex": 1, "romHex": "28FF01"}, snapshot).valid

    def test_unknown_rom(self, snapshot):
        assert not resolve_reading({"kind": "dallas", "busIndex": 1, "romHex": "28FF99"}, snapshot).valid

    def test_missing_bus(self, snapshot):
        assert not resolve_reading({"kind": "dallas", "busIndex": 3}, snapshot).valid
        assert not resolve_reading({"kind": "dallas", "busIndex": 0}, snapshot).valid

    def test_dallas_alias_with_gpio(self):
        snap = {"dallas": [{"gpio": 2, "devices": [{"rom": "28AA", "valid": True, "tempC": 30.0}]}]}
        assert resolve_reading(SourceDescriptor.dallas(2), snap).temp_c == 30.0
        assert not resolve_reading(SourceDescriptor.dallas(0), snap).valid


class TestMqtt:

    def test_slot(self, snapshot):
        reading = resolve_reading(SourceDescriptor.mqtt(1), snapshot)
        assert reading == Reading(valid=True, temp_c=-3.5, age_ms=12000)

    def test_invalid_slot(self, snapshot):
        assert not resolve_reading(SourceDescriptor.mqtt(2), snapshot).valid

    def test_custom_topic(self, snapshot):
        assert resolve_reading(SourceDescriptor.mqtt("custom", "garden/temp", "t"), snapshot).valid
        assert not resolve_reading(SourceDescriptor.mqtt("custom", "garden/temp", "x"), snapshot).valid
        assert not resolve_reading(SourceDescriptor.mqtt("custom", "", ""), snapshot).valid

    def test_max_age(self, snapshot):
        desc = SourceDescriptor.mqtt(1)
        desc.max_age_ms = 10000
        reading = resolve_reading(desc, snapshot)
        assert not reading.valid
        assert reading.age_ms == 12000
        desc.max_age_ms = 60000
        assert resolve_reading(desc, snapshot).valid


class TestOtherKinds:

    def test_ble_default(self, snapshot):
        assert resolve_reading(SourceDescriptor.ble(), snapshot).temp_c == 4.2

    def test_ble_id(self, snapshot):
        assert resolve_reading(SourceDescriptor.ble("meteo.tempC"), snapshot).valid
        assert resolve_reading(SourceDescriptor.ble("meteo"), snapshot).valid
        assert not resolve_reading(SourceDescriptor.ble("garage"), snapshot).valid

    def test_legacy_temp(self, snapshot):
        assert resolve_reading(SourceDescriptor.legacy_temp(1), snapshot).temp_c == 21.5
        assert not resolve_reading(SourceDescriptor.legacy_temp(2), snapshot).valid
        assert not resolve_reading(SourceDescriptor.legacy_temp(9), snapshot).valid

    def test_opentherm(self, snapshot):
        assert resolve_reading({"kind": "openthermBoiler"}, snapshot).temp_c == 61.0
        assert resolve_reading({"kind": "openthermReturn"}, snapshot).temp_c == 44.0
        snapshot["opentherm"]["ready"] = False
        assert not resolve_reading({"kind": "openthermBoiler"}, snapshot).valid

    def test_none_and_unknown(self, snapshot):
        assert not resolve_reading({"kind": "none"}, snapshot).valid
        assert not resolve_reading({"kind": "zigbee"}, snapshot).valid

    def test_legacy_string(self, snapshot):
        assert resolve_reading("temp3", snapshot).temp_c == 48.0


class TestTotality:

    @pytest.mark.parametrize("snap", [None, {}, [], "x", {"oneWireBuses": "x", "mqttTemps": [None, 5],
                                                          "bleTemps": {}, "temps": "abc", "opentherm": 3}])
    @pytest.mark.parametrize("desc", [None, {"kind": "dallas", "busIndex": 9}, {"kind": "mqtt", "slotIndex": 2},
                                      {"kind": "ble"}, {"kind": "legacyTemp", "index": 1}, 17, "mqtt1"])
    def test_never_raises(self, snap, desc):
        assert isinstance(resolve_reading(desc, snap), Reading)


class TestRoles:

    def test_boiler_in_falls_back_to_flow(self, snapshot):
        config = normalize_config({"thermometerRoles": {"flow": "temp3"}})
        assert config["thermometerRoles"]["boilerIn"] == {"kind": "none"}
        assert role_descriptor("boilerIn", config).index == 3
        assert resolve_role("boilerIn", snapshot, config).temp_c == 48.0

    def test_resolve_all_roles(self, snapshot):
        config = normalize_config({"tempRoles": ["outdoor"],
                                   "thermometerRoles": {"dhw": {"kind": "dallas", "busIndex": 1}}})
        readings = resolve_all_roles(snapshot, config)
        assert set(readings) == set(system_role_ids())
        assert readings["outdoor"].temp_c == 21.5
        assert readings["dhw"].temp_c == 42.5
        assert not readings["tankTop"].valid

    def test_recirc_return_order(self, snapshot):
        config = normalize_config({"thermometerRoles": {"return": "temp1"}})
        assert resolve_recirc_return(snapshot, config).temp_c == 21.5

        config["thermometerRoles"]["dhwReturn"] = {"kind": "legacyTemp", "index": 3}
        assert resolve_recirc_return(snapshot, config).temp_c == 48.0

        config["dhwRecirc"]["tempReturnSource"] = {"kind": "openthermReturn"}
        assert resolve_recirc_return(snapshot, config).temp_c == 44.0

    def test_snapshot_object_reused(self, snapshot):
        snap = TelemetrySnapshot.from_dict(snapshot)
        assert resolve_reading(SourceDescriptor.legacy_temp(3), snap).temp_c == 48.0

    def test_oversized_numbers_read_invalid(self):
        config = normalize_config({"tempRoles": ["outdoor"]})
        snap = {"temps": [10**400], "tempsValid": [True],
                "mqttTemps": [{"idx": 10**400, "valid": True, "tempC": 10**400, "ageMs": 10**400}],
                "opentherm": {"ready": True, "boilerTempC": -10**400}}
        readings = resolve_all_roles(snap, config)
        assert set(readings) == set(system_role_ids())
        assert not readings["outdoor"].valid
        assert resolve_all_roles({"temps": [10**400]}, normalize_config({}))["outdoor"] == Reading.invalid()
