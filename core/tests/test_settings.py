"""Tests for extraction settings loading."""

import os
import tempfile
import unittest
from unittest import mock

from core.settings import (
    ConfigValidationError,
    ExtractSettings,
    load_settings,
    load_settings_file,
)
from extraction.config import OBJECT_SUFFIX, SETUP_ANCHOR, TEMP_DIR_PREFIX

_CLEAN_ENV = {
    key: value
    for key, value in os.environ.items()
    if not key.startswith("DOCTRACT_") and key != "STRICT_CONFIG_VALIDATION"
}


class TestLoadSettings(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        patchers = [
            mock.patch.dict(os.environ, _CLEAN_ENV, clear=True),
            mock.patch("core.settings.load_dotenv"),
            mock.patch("core.settings.DEFAULT_CONFIG_PATH", os.path.join(self._tmp.name, "doctract.yml")),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, content: str) -> str:
        path = os.path.join(self._tmp.name, "settings.yml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_defaults_without_file(self) -> None:
        self.assertEqual(load_settings(), ExtractSettings())

    def test_defaults_come_from_extraction_config(self) -> None:
        settings = ExtractSettings()
        self.assertEqual(settings.object_suffix, OBJECT_SUFFIX)
        self.assertEqual(settings.setup_anchor, SETUP_ANCHOR)
        self.assertEqual(settings.temp_dir_prefix, TEMP_DIR_PREFIX)

    def test_yaml_values(self) -> None:
        path = self._write(
            "setup_anchor: prelude\n"
            "strict_setup: true\n"
            "temp_dir_root: /var/tmp\n"
            "log_level: debug\n"
        )
        settings = load_settings(path)
        self.assertEqual(settings.setup_anchor, "prelude")
        self.assertTrue(settings.strict_setup)
        self.assertEqual(settings.temp_dir_root, "/var/tmp")
        self.assertEqual(settings.log_level, "debug")
        self.assertEqual(settings.object_suffix, ".o")

    def test_config_path_from_env(self) -> None:
        path = self._write("object_suffix: .obj\n")
        os.environ["DOCTRACT_CONFIG"] = path
        self.assertEqual(load_settings().object_suffix, ".obj")

    def test_env_overrides_file(self) -> None:
        path = self._write("setup_anchor: prelude\nstrict_setup: true\n")
        os.environ["DOCTRACT_SETUP_ANCHOR"] = "init"
        os.environ["DOCTRACT_STRICT_SETUP"] = "no"
        settings = load_settings(path)
        self.assertEqual(settings.setup_anchor, "init")
        self.assertFalse(settings.strict_setup)

    def test_invalid_values_fall_back_in_non_strict_mode(self) -> None:
        path = self._write("strict_setup: maybe\nlog_level: LOUD\nunknown_key: 1\n")
        with self.assertLogs("core.settings", level="WARNING") as logs:
            settings = load_settings(path, strict=False)
        self.assertFalse(settings.strict_setup)
        self.assertEqual(settings.log_level, "INFO")
        self.assertEqual(len(logs.output), 3)

    def test_invalid_value_raises_in_strict_mode(self) -> None:
        path = self._write("strict_setup: maybe\n")
        with self.assertRaises(ConfigValidationError):
            load_settings(path, strict=True)

    def test_unknown_key_raises_in_strict_mode(self) -> None:
        path = self._write("output_format: xml\n")
        with self.assertRaises(ConfigValidationError):
            load_settings(path, strict=True)

    def test_strict_mode_from_env(self) -> None:
        os.environ["STRICT_CONFIG_VALIDATION"] = "true"
        with self.assertRaises(ConfigValidationError):
            load_settings(os.path.join(self._tmp.name, "missing.yml"))


class TestLoadSettingsFile(unittest.TestCase):
    def test_missing_non_strict_returns_empty(self) -> None:
        self.assertEqual(load_settings_file("/definitely/missing.yml", strict=False), {})

    def test_missing_strict_raises(self) -> None:
        with self.assertRaises(ConfigValidationError):
            load_settings_file("/definitely/missing.yml", strict=True)

    def test_malformed_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "bad.yml")
            with open(path, "w", encoding="utf-8") as f:
                f.write("key: [unclosed\n")
            self.assertEqual(load_settings_file(path, strict=False), {})
            with self.assertRaises(ConfigValidationError):
                load_settings_file(path, strict=True)

    def test_non_mapping_payload(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "list.yml")
            with open(path, "w", encoding="utf-8") as f:
                f.write("- a\n- b\n")
            self.assertEqual(load_settings_file(path, strict=False), {})


if __name__ == "__main__":
    unittest.main()
