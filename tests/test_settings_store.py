from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from gareporter.config.models import ReporterSettings
from gareporter.config.store import SettingsStore
from gareporter.runtime_logging import RuntimeLogger


class SettingsStoreTests(unittest.TestCase):
    def test_load_save_update_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            store = SettingsStore(path)

            settings = store.load()
            self.assertTrue(path.exists())
            self.assertEqual(settings.schema_version, 1)
            self.assertIsNone(settings.tracker.tracker_id)
            self.assertTrue(settings.tracker.quiet_mode)
            self.assertTrue(settings.tracker.anonymize_ip)

            updated = store.update("tracker.opted_out", True)
            self.assertTrue(updated.tracker.opted_out)

            reloaded = store.load()
            self.assertTrue(reloaded.tracker.opted_out)

    def test_update_custom_dimension_creates_mapping(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SettingsStore(Path(tmp) / "settings.json")
            updated = store.update("tracker.custom_dimensions.cd1", "pro")
            self.assertEqual(updated.tracker.custom_dimensions, {"cd1": "pro"})

    def test_unknown_path_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SettingsStore(Path(tmp) / "settings.json")
            with self.assertRaises(KeyError):
                store.update("app.name.first", "x")

    def test_corrupt_file_is_backed_up(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.write_text("{broken", encoding="utf-8")

            log_path = Path(tmp) / "runtime.jsonl"
            settings = SettingsStore(path, logger=RuntimeLogger(level="debug", sink_path=log_path)).load()

            self.assertIsNone(settings.tracker.tracker_id)
            self.assertEqual(path.with_suffix(".corrupt.json").read_text(encoding="utf-8"), "{broken")
            self.assertIn("settings.corrupt", log_path.read_text(encoding="utf-8"))

    def test_unreadable_file_yields_defaults_without_writing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.mkdir()
            log_path = Path(tmp) / "runtime.jsonl"

            settings = SettingsStore(path, logger=RuntimeLogger(level="debug", sink_path=log_path)).load()

            self.assertIsNone(settings.tracker.tracker_id)
            self.assertTrue(path.is_dir())
            self.assertFalse(path.with_suffix(".corrupt.json").exists())
            events = [json.loads(line)["event"] for line in log_path.read_text(encoding="utf-8").splitlines()]
            self.assertEqual(events, ["settings.unreadable"])

    def test_unwritable_location_still_loads_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "not-a-dir"
            blocker.write_text("", encoding="utf-8")
            log_path = Path(tmp) / "runtime.jsonl"
            store = SettingsStore(blocker / "settings.json", logger=RuntimeLogger(level="debug", sink_path=log_path))

            settings = store.load()

            self.assertTrue(settings.tracker.quiet_mode)
            self.assertIn("settings.save_failed", log_path.read_text(encoding="utf-8"))


class ReporterSettingsTests(unittest.TestCase):
    def test_blank_tracker_id_is_unset(self) -> None:
        settings = ReporterSettings.model_validate({"tracker": {"tracker_id": "   "}})
        self.assertIsNone(settings.tracker.tracker_id)
        self.assertFalse(settings.tracker.is_configured)

    def test_setting_items_flatten_nested_values(self) -> None:
        settings = ReporterSettings.model_validate(
            {"tracker": {"tracker_id": "UA-1-1", "custom_dimensions": {"cd1": "pro"}}, "app": {"name": "Tool"}}
        )
        items = dict(settings.setting_items())
        self.assertEqual(items["tracker.tracker_id"], "UA-1-1")
        self.assertEqual(items["tracker.custom_dimensions.cd1"], "pro")
        self.assertEqual(items["app.name"], "Tool")


if __name__ == "__main__":
    unittest.main()
