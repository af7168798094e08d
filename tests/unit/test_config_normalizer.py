"""
Configuration normalizer tests

Covers defaults, legacy migrations, role precedence, fixed placements,
idempotence over malformed documents and the device payload round trip.
"""

import copy
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from heatdash.models.config_normalizer import (
    normalize_config,
    normalize_with_report,
    unsupported_paths,
    to_device_payload,
)
from heatdash.models.config_schema import create_default_config
from heatdash.models.config_migration import ConfigMigration
from heatdash.models.role_registry import system_role_ids
from heatdash.utils.issues import IssueCategory


# ============================================================================
# Fixtures
# ============================================================================

MALFORMED_DOCUMENTS = [
    None,
    {},
    [],
    "config",
    42,
    {"equitherm": None},
    {"equitherm": []},
    {"equitherm": {"refs": "x", "control": 5}},
    {"equitherm": {"minFlowC": "abc", "maxFlowC": None, "slopeDay": "steep"}},
    {"ioFunctions": []},
    {"ioFunctions": {"inputs": "x", "outputs": {"5": "heater_aku", "99": "none"}}},
    {"ioFunctions": {"outputs": [None, 3, {"role": None}, {"params": []}]}},
    {"tempRoles": {"0": None, "x": "flow", "3": ["a"]}},
    {"thermometerRoles": []},
    {"thermometerRoles": {"outdoor": 5, "flow": [], "mystery": {"kind": "zigbee"}}},
    {"thermometers": {"roles": "x", "mqtt": 4}},
    {"thermometers": {"mqtt": [{"topic": "a/b"}, None, {"topic": "c"}]}},
    {"dhwRecirc": {"windows": [None, {"start": "25:00"}, {"days": "mon"}], "tempReturnSource": 7}},
    {"akuHeater": {"windows": {"0": {"from": "06:00", "to": "07:30", "daysMask": 5}}}},
    {"inputActiveLevels": ["HIGH", "low", True, 0, None, "1"]},
    {"inputs": [{"activeLevel": "HIGH"}, "x", None]},
    {"mqttThermometers": {"1": {"topic": "t", "role": "aku_top"}}},
    {"bleThermometer": "meteo"},
    {"equitherm": {"bleThermometer": {"role": "outdoor"}, "outdoor": {"source": "dallas:1:28FF"}}},
    {"openthermThermometers": {"boiler": {"role": "boiler_in"}}},
    {"system": {"profile": "turbo"}},
    {"inputNames": ["Kitchen"], "equitherm": {"curveOffsetC": 10**400}},
    {"relayNames": ["Pump"], "thermometerRoles": {"flow": {"kind": "dallas", "busIndex": "1e999"}}},
    {"equitherm": {"minFlowC": -10**400, "refs": {"day": {"outdoorC1": 10**400}}}},
    {"ioFunctions": {"outputs": [{"role": "valve_3way_mix", "params": {"peerRelay": 10**400, "travelTimeSeconds": 10**400}}]}},
    {"akuHeater": {"windows": [{"start": "06:00", "end": "07:00", "days": [float("inf"), 2]}]}},
]


@pytest.fixture
def legacy_document():
    """Document written by an older firmware/UI generation."""
    return {
        "input_names": {"0": "TUV", "1": "Night"},
        "relay_names": ["Valve +", "Valve -", "DHW"],
        "iofunc": {
            "inputs": [{"role": "dhw_request"}, {"role": "nightmode"}, {"role": "recirc"},
                       {"role": "temp_dallas"}],
            "outputs": [
                {"role": "valve_3way_spring", "peerRel": 2, "travelTime": 120},
                {"role": "valve_3way_peer"},
                {"role": "valve_3way_dhw", "params": {"defaultPos": "b"}},
                {"role": "aku_heater"},
            ],
        },
        "tempRoles": {"0": "venek", "1": "heating_flow", "4": "aku_top"},
        "equitherm": {
            "enabled": True,
            "minFlow": 60,
            "maxFlow": 30,
            "refDay": {"tout1": -12, "tflow1": 58, "tout2": 12, "tflow2": 32},
            "deadbandC": 0.8,
            "maxPct": 90,
            "noFlowTimeoutMs": 120000,
            "akuMinTopC": 40,
            "valve": {"master": 1},
            "boilerIn": {"source": "dallas", "gpio": 2, "rom": "28-aa-bb"},
            "dhwRecirc": {"enabled": True, "relay": 4, "returnSource": "temp6"},
        },
        "tuv": {"relay": 3, "bypass": {"enabled": False}},
        "thermometers": {
            "mqtt": [{"name": "Garden", "topic": "garden/temp", "jsonKey": "t"}],
            "roles": {"dhw": {"source": "mqtt1"}},
        },
        "mqttThermometers": [{"role": "dhw"}],
        "inputs": [{"activeLevel": "HIGH"}, {"activeLevel": "LOW"}],
        "customField": {"keep": True},
    }


# ============================================================================
# Defaults
# ============================================================================

class TestDefaults:

    def test_empty_document(self):
        config = normalize_config({})
        for name in ("inputNames", "relayNames", "inputActiveLevels", "tempRoles"):
            assert len(config[name]) == 8
        assert len(config["ioFunctions"]["inputs"]) == 8
        assert len(config["ioFunctions"]["outputs"]) == 8
        assert config["equitherm"]["enabled"] is False
        assert config["thermometerRoles"]["outdoor"]["kind"] == "none"

    def test_none_equals_empty(self):
        assert normalize_config(None) == normalize_config({})

    def test_matches_create_default_config(self):
        assert normalize_config({}) == create_default_config()

    def test_every_role_has_descriptor(self):
        roles = normalize_config({})["thermometerRoles"]
        assert set(roles) == set(system_role_ids())

    def test_explicit_falsy_values_kept(self):
        config = normalize_config({
            "equitherm": {"minFlowC": 0, "enabled": False, "curveOffsetC": 0},
            "relayNames": ["", "x"],
            "dhwRecirc": {"stopTempC": 0},
        })
        assert config["equitherm"]["minFlowC"] == 0
        assert config["dhwRecirc"]["stopTempC"] == 0
        assert config["relayNames"][:2] == ["", "x"]

    def test_slope_shift_not_defaulted(self):
        eq = normalize_config({})["equitherm"]
        assert "slopeDay" not in eq
        assert "shiftNight" not in eq

    def test_test_period_follows_timeout(self):
        eq = normalize_config({"equitherm": {"noFlowDetect": {"timeoutMs": 60000}}})["equitherm"]
        assert eq["noFlowDetect"]["testPeriodMs"] == 60000

    def test_unknown_top_level_kept(self):
        assert normalize_config({"wifi": {"ssid": "x"}})["wifi"] == {"ssid": "x"}


# ============================================================================
# Legacy migration
# ============================================================================

class TestLegacyMigration:

    def test_names(self, legacy_document):
        config = normalize_config(legacy_document)
        assert config["inputNames"][:3] == ["TUV", "Night", ""]
        assert config["relayNames"][:3] == ["Valve +", "Valve -", "DHW"]
        assert "input_names" not in config

    def test_io_roles(self, legacy_document):
        io = normalize_config(legacy_document)["ioFunctions"]
        assert [e["role"] for e in io["inputs"][:4]] == ["dhw_enable", "night_mode", "recirc_demand", "none"]
        assert [e["role"] for e in io["outputs"][:4]] == [
            "valve_3way_mix", "valve_3way_peer", "valve_3way_tuv", "heater_aku"]

    def test_valve_params(self, legacy_document):
        outputs = normalize_config(legacy_document)["ioFunctions"]["outputs"]
        mix = outputs[0]["params"]
        assert mix["peerRelay"] == 2
        assert mix["travelTimeSeconds"] == 120
        assert mix["pulseTimeSeconds"] == 0.8
        assert "peerRel" not in mix
        assert outputs[2]["params"]["defaultPosition"] == "B"

    def test_equitherm(self, legacy_document):
        eq = normalize_config(legacy_document)["equitherm"]
        assert (eq["minFlowC"], eq["maxFlowC"]) == (30, 60)
        assert eq["refs"]["day"] == {"outdoorC1": -12, "flowC1": 58, "outdoorC2": 12, "flowC2": 32}
        assert eq["control"]["deadbandC"] == 0.8
        assert eq["valveMaster"] == 1
        assert eq["noFlowDetect"]["timeoutMs"] == 120000
        assert eq["noFlowDetect"]["testPeriodMs"] == 120000
        assert eq["akuSupport"]["minTopCDay"] == 40
        assert eq["akuSupport"]["minTopCNight"] == 40
        for legacy in ("minFlow", "refDay", "deadbandC", "valve", "boilerIn", "dhwRecirc"):
            assert legacy not in eq

    def test_flat_max_pct_fills_both(self):
        control = normalize_config({"equitherm": {"maxPct": 70}})["equitherm"]["control"]
        assert control["maxPctDay"] == 70
        assert control["maxPctNight"] == 70

    def test_hoisted_recirc(self, legacy_document):
        recirc = normalize_config(legacy_document)["dhwRecirc"]
        assert recirc["enabled"] is True
        assert recirc["pumpRelay"] == 4
        assert recirc["tempReturnSource"] == {"kind": "legacyTemp", "index": 6}

    def test_tuv(self, legacy_document):
        tuv = normalize_config(legacy_document)["tuv"]
        assert tuv["requestRelay"] == 3
        assert tuv["bypassValve"]["enabled"] is False
        assert tuv["bypassValve"]["bypassPct"] == 100

    def test_active_levels_from_inputs(self, legacy_document):
        config = normalize_config(legacy_document)
        assert config["inputActiveLevels"][:3] == [1, 0, 0]
        assert "inputs" not in config

    def test_mqtt_thermometers_merged(self, legacy_document):
        config = normalize_config(legacy_document)
        slot = config["mqttThermometers"][0]
        assert slot["topic"] == "garden/temp"
        assert slot["jsonKey"] == "t"
        assert slot["name"] == "Garden"
        assert slot["role"] == "dhw"
        assert "thermometers" not in config

    def test_custom_field_preserved(self, legacy_document):
        assert normalize_config(legacy_document)["customField"] == {"keep": True}

    def test_input_does_not_mutate(self, legacy_document):
        before = copy.deepcopy(legacy_document)
        normalize_config(legacy_document)
        assert legacy_document == before


# ============================================================================
# Thermometer roles
# ============================================================================

class TestThermometerRoles:

    def test_temp_roles_fallback(self, legacy_document):
        roles = normalize_config(legacy_document)["thermometerRoles"]
        assert roles["outdoor"] == {"kind": "legacyTemp", "index": 1}
        assert roles["flow"] == {"kind": "legacyTemp", "index": 2}
        assert roles["tankTop"] == {"kind": "legacyTemp", "index": 5}

    def test_equitherm_object_role(self, legacy_document):
        roles = normalize_config(legacy_document)["thermometerRoles"]
        assert roles["boilerIn"] == {"kind": "dallas", "busIndex": 2, "romHex": "28AABB"}

    def test_thermometers_roles(self, legacy_document):
        roles = normalize_config(legacy_document)["thermometerRoles"]
        assert roles["dhw"] == {"kind": "mqtt", "slotIndex": 1, "topic": "", "jsonKey": ""}

    def test_canonical_beats_legacy(self):
        config = normalize_config({
            "thermometerRoles": {"outdoor": {"kind": "ble", "peripheralId": "meteo"}},
            "thermometers": {"roles": {"outdoor": {"source": "temp2"}}},
            "equitherm": {"outdoor": {"source": "dallas", "gpio": 1}},
            "tempRoles": ["outdoor"],
        })
        assert config["thermometerRoles"]["outdoor"] == {"kind": "ble", "peripheralId": "meteo"}

    def test_thermometers_roles_beats_equitherm_object(self):
        config = normalize_config({
            "thermometers": {"roles": {"flow": {"source": "temp2"}}},
            "equitherm": {"flow": {"source": "dallas", "gpio": 1}},
        })
        assert config["thermometerRoles"]["flow"] == {"kind": "legacyTemp", "index": 2}

    def test_alias_keys(self):
        config = normalize_config({"thermometerRoles": {"aku_top": "temp4"}})
        assert config["thermometerRoles"]["tankTop"] == {"kind": "legacyTemp", "index": 4}
        assert "aku_top" not in config["thermometerRoles"]

    def test_exact_key_beats_alias(self):
        config = normalize_config({"thermometerRoles": {"tankTop": "temp1", "aku_top": "temp4"}})
        assert config["thermometerRoles"]["tankTop"]["index"] == 1

    def test_ble_role_fallback(self):
        config = normalize_config({"bleThermometer": {"id": "meteo.tempC", "role": "outdoor"}})
        assert config["thermometerRoles"]["outdoor"] == {"kind": "ble", "peripheralId": "meteo.tempC"}

    def test_mqtt_role_fallback_needs_topic(self):
        config = normalize_config({"mqttThermometers": [
            {"topic": "", "role": "outdoor"},
            {"topic": "x/y", "role": "outdoor"},
        ]})
        assert config["thermometerRoles"]["outdoor"]["slotIndex"] == 2

    def test_opentherm_fallback(self):
        config = normalize_config({"openthermThermometers": {"boiler": {"role": "boilerIn"}}})
        assert config["thermometerRoles"]["boilerIn"] == {"kind": "openthermBoiler"}

    def test_unknown_role_and_kind_kept(self):
        raw = {"thermometerRoles": {"solar": {"kind": "dallas", "busIndex": 1},
                                    "outdoor": {"kind": "zigbee", "node": 9}}}
        config, issues = normalize_with_report(raw)
        assert config["thermometerRoles"]["solar"] == {"kind": "dallas", "busIndex": 1, "romHex": ""}
        assert config["thermometerRoles"]["outdoor"] == {"kind": "zigbee", "node": 9}
        paths = [i.path for i in issues if i.category == IssueCategory.UNSUPPORTED]
        assert "thermometerRoles.solar" in paths
        assert "thermometerRoles.outdoor" in paths

    def test_unsupported_paths(self):
        paths = unsupported_paths({"ioFunctions": {"outputs": [None, None, None, "laser"]}})
        assert "ioFunctions.outputs[3].role" in paths


# ============================================================================
# Fixed placements
# ============================================================================

class TestFixedPlacements:

    def test_relays_pinned(self):
        outputs = normalize_config({"ioFunctions": {"outputs": ["heater_aku", "circ_pump", "none"]}})["ioFunctions"]["outputs"]
        assert outputs[0]["role"] == "valve_3way_mix"
        assert outputs[0]["params"]["peerRelay"] == 2
        assert outputs[1] == {"role": "valve_3way_peer", "params": {"master": 1}}
        assert outputs[2]["role"] == "valve_3way_tuv"

    def test_stray_valve_roles_cleared(self):
        config, issues = normalize_with_report(
            {"ioFunctions": {"outputs": [None, None, None, None, "valve_3way_mix", "valve_3way_peer"]}})
        outputs = config["ioFunctions"]["outputs"]
        assert outputs[4] == {"role": "none", "params": {}}
        assert outputs[5] == {"role": "none", "params": {}}
        assert any(i.category == IssueCategory.PINNED for i in issues)

    def test_inputs_pinned(self):
        inputs = normalize_config({"ioFunctions": {"inputs": ["thermostat"]}})["ioFunctions"]["inputs"]
        assert [e["role"] for e in inputs[:3]] == ["dhw_enable", "night_mode", "recirc_demand"]

    def test_calibration_kept_on_pinned_relay(self):
        outputs = normalize_config({"ioFunctions": {"outputs": [
            {"role": "valve_3way_mix", "params": {"travelTimeSeconds": 150, "peerRelay": 5}}]}})["ioFunctions"]["outputs"]
        assert outputs[0]["params"]["travelTimeSeconds"] == 150
        assert outputs[0]["params"]["peerRelay"] == 2

    def test_unpinned_mode(self):
        config, _ = normalize_with_report({"ioFunctions": {"outputs": ["heater_aku"]}}, pin_fixed_roles=False)
        assert config["ioFunctions"]["outputs"][0]["role"] == "heater_aku"


# ============================================================================
# Properties
# ============================================================================

class TestProperties:

    @pytest.mark.parametrize("raw", MALFORMED_DOCUMENTS)
    def test_total(self, raw):
        config = normalize_config(raw)
        assert len(config["ioFunctions"]["outputs"]) == 8
        assert config["equitherm"]["minFlowC"] <= config["equitherm"]["maxFlowC"]

    @pytest.mark.parametrize("raw", MALFORMED_DOCUMENTS)
    def test_idempotent(self, raw):
        once = normalize_config(raw)
        assert normalize_config(once) == once

    def test_idempotent_legacy(self, legacy_document):
        once = normalize_config(legacy_document)
        assert normalize_config(once) == once

    def test_oversized_number_keeps_document(self):
        config = normalize_config({"inputNames": ["Kitchen"], "equitherm": {"curveOffsetC": 10**400}})
        assert config["inputNames"][0] == "Kitchen"
        assert config["equitherm"]["curveOffsetC"] == 0.0

    def test_overflowing_bus_index_keeps_document(self):
        raw = {"relayNames": ["Pump"], "thermometerRoles": {"flow": {"kind": "dallas", "busIndex": "1e999"}}}
        config = normalize_config(raw)
        assert config["relayNames"][0] == "Pump"
        assert config["thermometerRoles"]["flow"]["kind"] == "dallas"
        assert config["thermometerRoles"]["flow"]["busIndex"] == 0

    def test_min_max_swapped(self):
        eq = normalize_config({"equitherm": {"minFlowC": 70, "maxFlowC": 20}})["equitherm"]
        assert (eq["minFlowC"], eq["maxFlowC"]) == (20, 70)

    def test_out_of_range_terminals_dropped(self):
        config = normalize_config({"ioFunctions": {"outputs": {"7": "circ_pump", "8": "heater_aku"}}})
        outputs = config["ioFunctions"]["outputs"]
        assert len(outputs) == 8
        assert outputs[7]["role"] == "circ_pump"

    def test_windows_canonical(self):
        config = normalize_config({"akuHeater": {"windows": [{"from": "6:5", "to": 480, "days": [5, 1, 9]}]}})
        assert config["akuHeater"]["windows"] == [{"days": [1, 5], "start": "06:05", "end": "08:00"}]


# ============================================================================
# Device payload
# ============================================================================

class TestDevicePayload:

    def test_indexed_temp_roles(self):
        config = normalize_config({"tempRoles": ["outdoor", "tankTop"]})
        payload = to_device_payload(config)
        assert payload["tempRoles"]["0"] == "outdoor"
        assert payload["tempRoles"]["1"] == "aku_top"
        assert payload["tempRoles"]["7"] == "none"

    def test_firmware_mirrors(self):
        payload = to_device_payload(normalize_config({}))
        assert payload["equitherm"]["minFlow"] == 25.0
        assert payload["equitherm"]["refs"]["day"]["tout1"] == -10.0
        assert payload["equitherm"]["valve"] == {"master": 0}
        assert payload["iofunc"]["outputs"][0]["params"]["peerRel"] == 2
        assert payload["tuv"]["relay"] == 0
        assert payload["thermometers"]["roles"]["outdoor"] == {"source": "none"}
        assert payload["inputs"][0] == {"activeLevel": "LOW"}
        assert "ioFunctions" not in payload

    def test_legacy_role_objects(self):
        config = normalize_config({"thermometerRoles": {"flow": {"kind": "dallas", "busIndex": 1, "romHex": "28FF"}}})
        payload = to_device_payload(config)
        assert payload["equitherm"]["flow"] == {"source": "dallas", "gpio": 1, "rom": "28FF"}

    def test_round_trip_defaults(self):
        config = normalize_config({})
        assert normalize_config(to_device_payload(config)) == config

    def test_round_trip_legacy(self, legacy_document):
        config = normalize_config(legacy_document)
        assert normalize_config(to_device_payload(config)) == config

    def test_temp_roles_round_trip(self):
        roles = ["outdoor", "flow", "none", "dhw", "tankTop", "tankMid", "tankBottom", "referenceRoom"]
        config = normalize_config({"tempRoles": roles})
        payload = to_device_payload(config)
        assert ConfigMigration.decode_indexed(payload["tempRoles"], 8, "none")[0] == "outdoor"
        assert normalize_config(payload)["tempRoles"] == roles

    def test_payload_does_not_mutate(self):
        config = normalize_config({})
        before = copy.deepcopy(config)
        to_device_payload(config)
        assert config == before

    def test_round_trip_extra_io_keys(self):
        config = normalize_config({"ioFunctions": {"schemaVersion": 2}})
        payload = to_device_payload(config)
        assert payload["iofunc"]["schemaVersion"] == 2
        assert normalize_config(payload) == config

    def test_round_trip_unknown_equitherm_sensor_value(self):
        config = normalize_config({"equitherm": {"outdoor": "auto"}})
        assert config["equitherm"]["outdoor"] == "auto"
        assert normalize_config(to_device_payload(config)) == config
