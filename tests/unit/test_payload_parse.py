"""
MQTT payload parsing tests
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'src'))

from heatdash.engine.payload_parse import parse_float_loose, get_by_path, parse_payload_temp


class TestLooseNumbers:

    @pytest.mark.parametrize("text,value", [
        ("21.5", 21.5),
        (" -3 ", -3.0),
        ("21,5", 21.5),
        ("21,5 °C", 21.5),
        ("-3C", -3.0),
        (".5", 0.5),
        ("1e1", 10.0),
    ])
    def test_parsed(self, text, value):
        assert parse_float_loose(text) == pytest.approx(value)

    @pytest.mark.parametrize("text", ["", "abc", "21.5 F", "1e400", None, 21.5, "1.2.3"])
    def test_rejected(self, text):
        assert parse_float_loose(text) is None


class TestPaths:

    def test_nested(self):
        root = {"sensor": {"readings": [{"t": 1}, {"t": 2}]}}
        assert get_by_path(root, "sensor.readings.1.t") == 2
        assert get_by_path(root, "sensor/readings/0/t") == 1

    def test_missing(self):
        root = {"a": [1]}
        assert get_by_path(root, "a.5") is None
        assert get_by_path(root, "a.x") is None
        assert get_by_path(root, "b.c") is None
        assert get_by_path(root, "") is None


class TestPayloads:

    def test_plain_number(self):
        assert parse_payload_temp("22.75") == 22.75
        assert parse_payload_temp(b"18,0") == 18.0

    def test_json_scalar(self):
        assert parse_payload_temp('"19.5"') == 19.5
        assert parse_payload_temp(17) == 17.0

    def test_json_key(self):
        payload = '{"temperature": 10, "env": {"temp_c": "4,5"}}'
        assert parse_payload_temp(payload, "env.temp_c") == 4.5

    def test_json_key_falls_back_to_auto_keys(self):
        assert parse_payload_temp('{"temperature": 10}', "missing") == 10.0

    def test_auto_key_order(self):
        assert parse_payload_temp('{"t": 3, "tempC": 7}') == 7.0

    @pytest.mark.parametrize("payload", ["", "on", "{broken", '{"humidity": 40}', "[]", None, True, b"\xff\xfe"])
    def test_no_temperature(self, payload):
        assert parse_payload_temp(payload) is None

    def test_non_string_key_ignored(self):
        assert parse_payload_temp('{"t": 3}', None) == 3.0

    def test_oversized_integer_skipped(self):
        assert parse_payload_temp(10**400) is None
        assert parse_payload_temp('{"tempC": ' + "9" * 400 + ', "t": 5}') == 5.0
