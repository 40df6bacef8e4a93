#!/usr/bin/env python3
"""
Tests for the zone file engine.
"""

import os
import stat
import tempfile
import unittest
from collections import Counter

from unbound_control_api.exceptions import ZoneFileError
from unbound_control_api.models import Record
from unbound_control_api.parsers.zonefile import (
    ZoneFile,
    format_record,
    load_zone_file,
    parse_record_line,
    parse_zone_text,
    render_zone_file,
    save_zone_file,
)

ZONE_TEXT = """$ORIGIN example.com.
$TTL 3600
; web server
www 300 IN A 10.0.0.1
@ IN SOA ns1.example.com. hostmaster.example.com. (
        2024010101 ; serial
        7200       ; refresh
        3600
        1209600
        3600 )
@ IN NS ns1.example.com.
@ IN MX 10 mail.example.com.
mail IN A 10.0.0.2 ; mail host

; round robin
rr A 10.0.0.10
rr A 10.0.0.11
txt IN TXT "v=spf1 ; -all"
"""


def tuples(zone_file):
    return Counter((r.name, r.ttl, r.rclass, r.type, r.rdata) for r in zone_file.records)


class TestParseRecordLine(unittest.TestCase):
    """Test the field position heuristic."""

    def test_ttl_and_class(self):
        record = parse_record_line("www.example.com 3600 IN A 10.0.0.1")

        self.assertEqual(record.name, "www.example.com")
        self.assertEqual(record.ttl, 3600)
        self.assertEqual(record.rclass, "IN")
        self.assertEqual(record.type, "A")
        self.assertEqual(record.rdata, "10.0.0.1")

    def test_class_without_ttl(self):
        record = parse_record_line("www.example.com IN A 10.0.0.1")

        self.assertEqual(record.ttl, 0)
        self.assertEqual(record.rclass, "IN")
        self.assertEqual(record.type, "A")
        self.assertEqual(record.rdata, "10.0.0.1")

    def test_class_before_ttl(self):
        record = parse_record_line("www IN 600 A 10.0.0.1")
        self.assertEqual(record.ttl, 600)
        self.assertEqual(record.rclass, "IN")

    def test_minimal_record(self):
        record = parse_record_line("www A 10.0.0.1")
        self.assertEqual((record.ttl, record.rclass, record.type), (0, "", "A"))

    def test_multi_token_rdata(self):
        record = parse_record_line("@ 3600 IN MX 10 mail.example.com.")
        self.assertEqual(record.type, "MX")
        self.assertEqual(record.rdata, "10 mail.example.com.")

    def test_too_few_fields(self):
        self.assertIsNone(parse_record_line("www A"))
        self.assertIsNone(parse_record_line(""))

    def test_unknown_type_falls_back_to_positions(self):
        record = parse_record_line("host 60 IN BOGUS data")
        self.assertEqual(record.type, "BOGUS")
        self.assertEqual(record.rdata, "data")
        self.assertEqual(record.ttl, 60)
        self.assertEqual(record.rclass, "IN")

    def test_unit_ttl(self):
        record = parse_record_line("www 1h IN A 10.0.0.1")
        self.assertEqual(record.ttl, 3600)
        self.assertEqual(record.rclass, "IN")
        self.assertEqual(record.rdata, "10.0.0.1")

    def test_compound_unit_ttl_after_class(self):
        record = parse_record_line("www IN 1d12h A 10.0.0.1")
        self.assertEqual(record.ttl, 129600)
        self.assertEqual(record.rclass, "IN")

    def test_later_token_does_not_replace_class(self):
        record = parse_record_line("www IN CH A 10.0.0.1")
        self.assertEqual(record.rclass, "IN")
        self.assertEqual(record.type, "A")

    def test_quoted_spacing_kept(self):
        record = parse_record_line('txt IN TXT "hello   world"  "second"')
        self.assertEqual(record.rdata, '"hello   world"  "second"')


class TestParseZoneText(unittest.TestCase):
    """Test whole-file parsing."""

    def setUp(self):
        self.zone_file = parse_zone_text(ZONE_TEXT, name="example.com.zone")

    def test_directives_kept(self):
        self.assertEqual(self.zone_file.directives, ["$ORIGIN example.com.", "$TTL 3600"])

    def test_records(self):
        types = [r.type for r in self.zone_file.records]
        self.assertEqual(types, ["A", "SOA", "NS", "MX", "A", "A", "A", "TXT"])

    def test_multiline_soa_joined(self):
        soa = self.zone_file.get_soa()
        self.assertEqual(
            soa.rdata,
            "ns1.example.com. hostmaster.example.com. 2024010101 7200 3600 1209600 3600",
        )

    def test_comments(self):
        www = self.zone_file.get_record("www", "A")
        mail = self.zone_file.get_record("mail", "A")
        ns = self.zone_file.get_record("@", "NS")

        self.assertEqual(www.comments, "web server")
        self.assertEqual(mail.comments, "mail host")
        self.assertEqual(ns.comments, "")
        self.assertEqual(self.zone_file.records[5].comments, "round robin")
        self.assertEqual(self.zone_file.records[6].comments, "")

    def test_semicolon_inside_quotes(self):
        txt = self.zone_file.get_record("txt", "TXT")
        self.assertEqual(txt.rdata, '"v=spf1 ; -all"')


class TestZoneFileMutations(unittest.TestCase):
    """Test record level CRUD."""

    def setUp(self):
        self.zone_file = parse_zone_text(ZONE_TEXT, name="example.com.zone")

    def test_add_record_appends(self):
        record = Record(name="api", type="A", rdata="10.0.0.3", ttl=60, rclass="IN")
        self.zone_file.add_record(record)
        self.assertEqual(self.zone_file.records[-1], record)
        self.assertIsNot(self.zone_file.records[-1], record)

    def test_serial_bump_leaves_caller_record_alone(self):
        soa = Record(name="@", type="SOA", rdata="ns1.example.com. hostmaster.example.com. 7 1 2 3 4")
        self.assertTrue(self.zone_file.update_record(soa))
        self.zone_file.increment_serial()

        self.assertEqual(soa.rdata.split()[2], "7")
        self.assertEqual(self.zone_file.get_soa().rdata.split()[2], "8")

    def test_remove_all_matches(self):
        removed = self.zone_file.remove_record("rr", "A")
        self.assertEqual(removed, 2)
        self.assertIsNone(self.zone_file.get_record("rr", "A"))

    def test_remove_is_idempotent(self):
        self.zone_file.remove_record("rr", "A")
        once = tuples(self.zone_file)
        self.assertEqual(self.zone_file.remove_record("rr", "A"), 0)
        self.assertEqual(tuples(self.zone_file), once)

    def test_identity_is_case_insensitive(self):
        self.assertIsNotNone(self.zone_file.get_record("WWW", "a"))

    def test_update_first_match_only(self):
        updated = Record(name="rr", type="A", rdata="10.0.0.99")
        self.assertTrue(self.zone_file.update_record(updated))

        rr = [r.rdata for r in self.zone_file.records if r.name == "rr"]
        self.assertEqual(rr, ["10.0.0.99", "10.0.0.11"])

    def test_update_missing(self):
        self.assertFalse(self.zone_file.update_record(Record(name="nope", type="A", rdata="1.2.3.4")))

    def test_increment_serial(self):
        self.assertTrue(self.zone_file.increment_serial())
        self.assertEqual(self.zone_file.get_soa().rdata.split()[2], "2024010102")

    def test_increment_serial_wraps(self):
        zone_file = parse_zone_text("@ IN SOA ns. host. 4294967295 1 2 3 4\n")
        zone_file.increment_serial()
        self.assertEqual(zone_file.get_soa().rdata.split()[2], "0")

    def test_increment_serial_without_soa(self):
        self.assertFalse(ZoneFile(name="empty").increment_serial())


class TestZoneFileSerialization(unittest.TestCase):
    """Test rendering and disk round trips."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp_dir.name, "example.com.zone")

    def tearDown(self):
        self.tmp_dir.cleanup()

    def test_format_record(self):
        record = Record(name="www", type="A", rdata="10.0.0.1", ttl=300, rclass="IN", comments="web")
        self.assertEqual(format_record(record), ["; web", "www\t300\tIN\tA\t10.0.0.1"])

    def test_format_record_omits_empty_fields(self):
        record = Record(name="www", type="A", rdata="10.0.0.1")
        self.assertEqual(format_record(record), ["www\tA\t10.0.0.1"])

    def test_soa_written_first(self):
        zone_file = parse_zone_text(ZONE_TEXT)
        lines = render_zone_file(zone_file).splitlines()

        self.assertEqual(lines[:2], ["$ORIGIN example.com.", "$TTL 3600"])
        self.assertTrue(lines[2].startswith("@\tIN\tSOA"))

    def test_round_trip(self):
        original = parse_zone_text(ZONE_TEXT, name="example.com.zone")
        save_zone_file(self.path, original)
        loaded = load_zone_file(self.path)

        self.assertEqual(tuples(loaded), tuples(original))
        self.assertEqual(loaded.records[0].type, "SOA")
        self.assertEqual(loaded.directives, original.directives)
        self.assertEqual(loaded.name, "example.com.zone")
        self.assertEqual(loaded.get_record("www", "A").comments, "web server")

    def test_write_is_stable(self):
        save_zone_file(self.path, parse_zone_text(ZONE_TEXT))
        with open(self.path) as f:
            first = f.read()

        save_zone_file(self.path, load_zone_file(self.path))
        with open(self.path) as f:
            self.assertEqual(f.read(), first)

    def test_save_preserves_mode(self):
        with open(self.path, "w") as f:
            f.write("www A 10.0.0.1\n")
        os.chmod(self.path, 0o640)

        save_zone_file(self.path, load_zone_file(self.path))

        self.assertEqual(stat.S_IMODE(os.stat(self.path).st_mode), 0o640)
        self.assertEqual(
            [n for n in os.listdir(self.tmp_dir.name) if n.endswith(".tmp")], []
        )

    def test_load_missing_file(self):
        with self.assertRaises(ZoneFileError) as ctx:
            load_zone_file(self.path)
        self.assertIn(self.path, str(ctx.exception))
        self.assertEqual(ctx.exception.path, self.path)

    def test_save_to_unwritable_path(self):
        blocker = os.path.join(self.tmp_dir.name, "blocker")
        with open(blocker, "w") as f:
            f.write("")

        with self.assertRaises(ZoneFileError):
            save_zone_file(os.path.join(blocker, "zone"), ZoneFile(name="zone"))

    def test_quoted_spacing_survives_round_trip(self):
        text = '@ IN SOA ns1.example.com. hostmaster.example.com. 1 2 3 4 5\n' \
               'txt IN TXT "hello   world"\n' \
               'spf IN TXT ( "v=spf1   include:a.example"\n' \
               '             "  -all" )\n'
        save_zone_file(self.path, parse_zone_text(text))
        loaded = load_zone_file(self.path)

        self.assertEqual(loaded.get_record("txt", "TXT").rdata, '"hello   world"')
        self.assertEqual(loaded.get_record("spf", "TXT").rdata, '"v=spf1   include:a.example" "  -all"')

    def test_unit_ttl_survives_rewrite(self):
        save_zone_file(self.path, parse_zone_text("www 1h IN A 10.0.0.1\n"))
        record = load_zone_file(self.path).get_record("www", "A")
        self.assertEqual((record.ttl, record.rclass), (3600, "IN"))

    def test_dict_round_trip(self):
        zone_file = parse_zone_text(ZONE_TEXT, name="example.com.zone")
        restored = ZoneFile.from_dict(zone_file.to_dict())
        self.assertEqual(tuples(restored), tuples(zone_file))
        self.assertEqual(restored.directives, zone_file.directives)

    def test_from_dict_rejects_bad_directives(self):
        with self.assertRaises(ValueError):
            ZoneFile.from_dict({"name": "x", "records": [], "directives": ["ORIGIN x."]})

    def test_from_dict_rejects_directive_line_breaks(self):
        for directive in ["$TTL 3600\nevil IN A 6.6.6.6", "$ORIGIN example.com.\r", "$TTL\x00 60"]:
            with self.subTest(directive=directive):
                with self.assertRaises(ValueError):
                    ZoneFile.from_dict({"name": "x", "records": [], "directives": [directive]})


if __name__ == "__main__":
    unittest.main()
