#!/usr/bin/env python3
"""
Tests for the command line interface.
"""

import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from unbound_control_api.cli.main import build_parser, main
from unbound_control_api.exceptions import ConfigError
from unbound_control_api.utils.config import get_default_config

ZONE_TEXT = """@ IN SOA ns1.example.com. hostmaster.example.com. 1 7200 3600 1209600 3600
www IN A 10.0.0.1
"""


class TestCLI(unittest.TestCase):
    """Run CLI commands against the mock transport."""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        zone_path = os.path.join(self.tmp_dir, "example.com.zone")
        with open(zone_path, "w") as f:
            f.write(ZONE_TEXT)

        self.config = get_default_config()
        self.config["unbound"] = {
            "transport": "mock",
            "zones": [{"name": "example.com", "type": "primary", "file": zone_path}],
        }
        self.load_patch = patch("unbound_control_api.cli.main.load_config", return_value=self.config)
        self.logger_patch = patch("unbound_control_api.cli.main.config_logger")
        self.load_patch.start()
        self.logger_patch.start()

    def tearDown(self):
        self.load_patch.stop()
        self.logger_patch.stop()
        shutil.rmtree(self.tmp_dir)

    def run_cli(self, *argv):
        with self.assertRaises(SystemExit) as ctx:
            main(list(argv))
        return ctx.exception.code

    def test_commands_succeed(self):
        for argv in [["status"], ["stats"], ["reload"], ["flush"], ["flush", "--domain", "example.com"],
                     ["zones"], ["records", "example.com"], ["check"]]:
            with self.subTest(argv=argv):
                self.assertEqual(self.run_cli(*argv), 0)

    def test_failure_exit_code(self):
        self.config["unbound"]["fail_commands"] = ["reload"]
        self.assertEqual(self.run_cli("reload"), 1)

    def test_records_for_unknown_zone(self):
        self.assertEqual(self.run_cli("records", "missing.example"), 1)

    def test_invalid_config(self):
        with patch("unbound_control_api.cli.main.load_config", side_effect=ConfigError("bad yaml")):
            self.assertEqual(self.run_cli("status"), 1)

    def test_verbose_sets_debug(self):
        self.run_cli("--verbose", "status")
        self.assertEqual(self.config["logging"]["level"], "DEBUG")

    def test_command_required(self):
        with self.assertRaises(SystemExit):
            build_parser().parse_args([])


if __name__ == "__main__":
    unittest.main()
