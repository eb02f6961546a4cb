"""Tests for probe.config -- settings persistence."""

import json
import os
import tempfile
import unittest
from unittest import mock

from probe.config import (
    DEFAULTS,
    get_config_value,
    load_config,
    parse_assignment,
    save_config,
    set_config_value,
)
from probe.exceptions import PersistenceError


class TestConfigDefaults(unittest.TestCase):
    def test_defaults_have_required_keys(self):
        for key in ("ping_count", "endpoints", "download_url", "upload_url",
                    "request_timeout", "auto_test_interval", "speed_unit",
                    "notifications", "servers"):
            self.assertIn(key, DEFAULTS)

    def test_default_values(self):
        self.assertEqual(DEFAULTS["ping_count"], 10)
        self.assertEqual(DEFAULTS["auto_test_interval"], 1800)
        self.assertEqual(len(DEFAULTS["endpoints"]), 3)


class TestLoadSaveConfig(unittest.TestCase):
    def test_load_defaults_when_missing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "settings.json")
            with mock.patch("probe.config._config_path", return_value=path):
                cfg = load_config()
                self.assertEqual(cfg, DEFAULTS)

    def test_loaded_config_does_not_alias_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "settings.json")
            with mock.patch("probe.config._config_path", return_value=path):
                cfg = load_config()
                cfg["servers"].append({"name": "x", "url": "y"})
                self.assertNotEqual(len(DEFAULTS["servers"]), len(cfg["servers"]))

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "nested", "settings.json")
            with mock.patch("probe.config._config_path", return_value=path):
                save_config({"ping_count": 25, "upload_url": None})
                cfg = load_config()
                self.assertEqual(cfg["ping_count"], 25)
                self.assertIsNone(cfg["upload_url"])
                # Defaults still present
                self.assertEqual(cfg["request_timeout"], 10.0)

    def test_corrupt_file_returns_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "settings.json")
            with open(path, "w") as f:
                f.write("NOT JSON")
            with mock.patch("probe.config._config_path", return_value=path):
                with self.assertLogs("probe.config", level="WARNING"):
                    cfg = load_config()
                self.assertEqual(cfg["ping_count"], 10)

    def test_invalid_speed_unit_reset(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "settings.json")
            with open(path, "w") as f:
                json.dump({"speed_unit": "furlongs"}, f)
            with mock.patch("probe.config._config_path", return_value=path):
                self.assertEqual(load_config()["speed_unit"], "Mbps")

    def test_get_set_value(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "settings.json")
            with mock.patch("probe.config._config_path", return_value=path):
                set_config_value("speed_unit", "Gbps")
                self.assertEqual(get_config_value("speed_unit"), "Gbps")

                set_config_value("notifications", False)
                self.assertFalse(get_config_value("notifications"))

    def test_set_rejects_unknown_key_and_bad_unit(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "settings.json")
            with mock.patch("probe.config._config_path", return_value=path):
                with self.assertRaises(ValueError):
                    set_config_value("colour", "blue")
                with self.assertRaises(ValueError):
                    set_config_value("speed_unit", "furlongs")
                with self.assertRaises(ValueError):
                    get_config_value("colour")
                self.assertFalse(os.path.exists(path))

    def test_unwritable_location_raises_persistence_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = os.path.join(tmpdir, "file")
            with open(blocker, "w") as f:
                f.write("x")
            path = os.path.join(blocker, "settings.json")
            with mock.patch("probe.config._config_path", return_value=path):
                with self.assertRaises(PersistenceError):
                    save_config({"ping_count": 5})


class TestParseAssignment(unittest.TestCase):
    def test_json_values(self):
        self.assertEqual(parse_assignment("ping_count=20"), ("ping_count", 20))
        self.assertEqual(parse_assignment("notifications=false"), ("notifications", False))
        self.assertEqual(parse_assignment("upload_url=null"), ("upload_url", None))
        self.assertEqual(parse_assignment('endpoints=["https://a.test/"]'), ("endpoints", ["https://a.test/"]))

    def test_plain_string_value(self):
        self.assertEqual(parse_assignment("speed_unit=Gbps"), ("speed_unit", "Gbps"))
        self.assertEqual(parse_assignment("download_url=https://x.test/?a=1"), ("download_url", "https://x.test/?a=1"))

    def test_missing_equals(self):
        with self.assertRaises(ValueError):
            parse_assignment("ping_count")
        with self.assertRaises(ValueError):
            parse_assignment("=5")


if __name__ == "__main__":
    unittest.main()
