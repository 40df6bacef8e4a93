#!/usr/bin/env python3
"""
Tests for configuration loading, validators and models.
"""

import os
import tempfile
import unittest
from unittest.mock import patch

import yaml

from unbound_control_api.exceptions import ConfigError
from unbound_control_api.models import Record, Zone
from unbound_control_api.utils.config import (
    API_KEY_ENV,
    get_default_config,
    load_config,
    merge_config,
)
from unbound_control_api.utils.validators import (
    validate_command,
    validate_record,
    validate_record_class,
    validate_record_name,
    validate_record_type,
    validate_ttl,
    validate_zone,
    validate_zone_name,
)


class TestValidators(unittest.TestCase):
    """Test the validation functions."""

    def test_validate_zone_name_valid(self):
        for zone in ["example.com", "example.com.", "sub.example.com", "_dmarc.example.com", "*.example.com"]:
            with self.subTest(zone=zone):
                self.assertTrue(validate_zone_name(zone))

    def test_validate_zone_name_invalid(self):
        invalid = [
            "",  # Empty
            "bad name.com",  # Whitespace
            "example..com",  # Empty label
            "a" * 64 + ".com",  # Label too long
            None,
        ]
        for zone in invalid:
            with self.subTest(zone=zone):
                self.assertFalse(validate_zone_name(zone))

    def test_validate_record_name(self):
        self.assertTrue(validate_record_name("@"))
        self.assertTrue(validate_record_name("www"))
        self.assertFalse(validate_record_name("w w"))

    def test_validate_record_type(self):
        for record_type in ["A", "aaaa", "MX", "SOA", "TYPE65"]:
            with self.subTest(record_type=record_type):
                self.assertTrue(validate_record_type(record_type))
        for record_type in ["", "BOGUS", "IN"]:
            with self.subTest(record_type=record_type):
                self.assertFalse(validate_record_type(record_type))

    def test_validate_record_class(self):
        self.assertTrue(validate_record_class(""))
        self.assertTrue(validate_record_class("IN"))
        self.assertTrue(validate_record_class("CH"))
        self.assertFalse(validate_record_class("XX"))

    def test_validate_ttl(self):
        self.assertTrue(validate_ttl(0))
        self.assertTrue(validate_ttl(2147483647))
        self.assertFalse(validate_ttl(-1))
        self.assertFalse(validate_ttl(2147483648))
        self.assertFalse(validate_ttl(True))
        self.assertFalse(validate_ttl("60"))

    def test_validate_record_lists_problems(self):
        record = Record(name="bad name", type="BOGUS", rdata="", ttl=-5)
        with self.assertRaises(ValueError) as ctx:
            validate_record(record)

        message = str(ctx.exception)
        self.assertIn("invalid record name", message)
        self.assertIn("invalid record type", message)
        self.assertIn("invalid TTL", message)
        self.assertIn("record data is empty", message)

    def test_validate_record_rejects_multiline_comment(self):
        record = Record(name="www", type="A", rdata="10.0.0.1", comments="one\ntwo")
        with self.assertRaises(ValueError):
            validate_record(record)

    def test_validate_record_rejects_control_characters(self):
        cases = [
            ("name", "www\nevil"),
            ("type", "A\r"),
            ("rclass", "IN\x00"),
            ("rdata", "10.0.0.2\nevil\tIN\tA\t6.6.6.6"),
            ("rdata", "10.0.0.2\u2028evil A 6.6.6.6"),
            ("comments", "note\x1b[31m"),
            ("comments", "a\x85b"),
        ]
        for field, value in cases:
            with self.subTest(field=field, value=value):
                values = {"name": "www", "type": "A", "rdata": "10.0.0.1", "rclass": "IN"}
                values[field] = value
                with self.assertRaises(ValueError):
                    validate_record(Record(**values))

    def test_validate_record_allows_tab_in_data(self):
        validate_record(Record(name="txt", type="TXT", rdata='"a"\t"b"'))

    def test_validate_zone(self):
        validate_zone(Zone(name="example.com", type="primary"))
        with self.assertRaises(ValueError):
            validate_zone(Zone(name="example.com", type="slave"))

    def test_validate_command(self):
        validate_command("flush example.com")
        for command in ["", "   ", "a\rb", "zone ünïcode"]:
            with self.subTest(command=command):
                with self.assertRaises(ValueError):
                    validate_command(command)


class TestModels(unittest.TestCase):
    """Test JSON conversion of zones and records."""

    def test_zone_to_dict_omits_empty(self):
        self.assertEqual(Zone(name="a.example", type="stub").to_dict(), {"name": "a.example", "type": "stub"})

    def test_zone_from_dict_requires_fields(self):
        for data in [{}, {"name": "a.example"}, {"type": "stub"}, [], {"name": "a", "type": "stub", "masters": "x"}]:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    Zone.from_dict(data)

    def test_record_from_dict_defaults(self):
        record = Record.from_dict({"name": "www", "type": "A", "rdata": "10.0.0.1"})

        self.assertEqual(record.rclass, "IN")
        self.assertEqual(record.ttl, 0)
        self.assertEqual(record.comments, "")
        self.assertEqual(record.to_dict()["class"], "IN")

    def test_record_from_dict_rejects_bad_ttl(self):
        for ttl in ["60", 1.5, True]:
            with self.subTest(ttl=ttl):
                with self.assertRaises(ValueError):
                    Record.from_dict({"name": "www", "type": "A", "rdata": "1.2.3.4", "ttl": ttl})

    def test_record_from_dict_rejects_control_characters(self):
        for key in ("name", "type", "rdata", "class", "comments"):
            with self.subTest(key=key):
                data = {"name": "www", "type": "A", "rdata": "10.0.0.1", "class": "IN", "comments": ""}
                data[key] = "x\ny" if key != "rdata" else "10.0.0.2\nevil IN A 6.6.6.6"
                with self.assertRaises(ValueError):
                    Record.from_dict(data)

    def test_record_matches_case_insensitive(self):
        record = Record(name="WWW", type="a", rdata="10.0.0.1")
        self.assertTrue(record.matches("www", "A"))
        self.assertFalse(record.matches("www", "AAAA"))


class TestConfig(unittest.TestCase):
    """Test configuration loading."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp_dir.name, "config.yaml")

    def tearDown(self):
        self.tmp_dir.cleanup()

    def write(self, content):
        with open(self.path, "w") as f:
            f.write(content)

    def test_missing_file_uses_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_config(self.path), get_default_config())

    def test_merge_over_defaults(self):
        self.write(yaml.safe_dump({"unbound": {"transport": "unix"}, "server": {"port": 9090}}))

        with patch.dict(os.environ, {}, clear=True):
            config = load_config(self.path)

        self.assertEqual(config["unbound"]["transport"], "unix")
        self.assertEqual(config["unbound"]["control_port"], 8953)
        self.assertEqual(config["server"]["port"], 9090)
        self.assertEqual(config["server"]["host"], "127.0.0.1")

    def test_env_overrides_api_key(self):
        self.write("security:\n  api_key: from-file\n")

        with patch.dict(os.environ, {API_KEY_ENV: "from-env"}):
            config = load_config(self.path)

        self.assertEqual(config["security"]["api_key"], "from-env")

    def test_invalid_yaml(self):
        self.write("server: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_non_mapping(self):
        self.write("- just\n- a list\n")
        with self.assertRaises(ConfigError):
            load_config(self.path)

    def test_empty_file(self):
        self.write("")
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_config(self.path), get_default_config())

    def test_merge_config_does_not_mutate(self):
        base = {"a": {"b": 1}}
        merged = merge_config(base, {"a": {"c": 2}})

        self.assertEqual(merged, {"a": {"b": 1, "c": 2}})
        self.assertEqual(base, {"a": {"b": 1}})


if __name__ == "__main__":
    unittest.main()
