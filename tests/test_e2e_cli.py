from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

from click.testing import CliRunner

from gareporter.cli import main


class CliE2ETests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.settings_file = root / "settings.json"
        self.identity_file = root / "identity.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def invoke(self, *args: str):
        base = [
            "--settings",
            str(self.settings_file),
            "--identity-file",
            str(self.identity_file),
            "--log-level",
            "off",
        ]
        return self.runner.invoke(main, [*base, *args])

    def configure(self) -> None:
        result = self.invoke("configure", "UA-1-1", "--app-name", "Tool", "--app-id", "org.example.tool")
        self.assertEqual(result.exit_code, 0, result.output)

    def dry_run_query(self, *args: str) -> dict[str, str]:
        result = self.invoke(*args, "--dry-run")
        self.assertEqual(result.exit_code, 0, result.output)
        url = result.output.strip().splitlines()[-1]
        self.assertTrue(url.startswith("https://www.google-analytics.com/collect?"))
        return {key: values[0] for key, values in parse_qs(urlsplit(url).query, keep_blank_values=True).items()}

    def test_help(self) -> None:
        result = self.runner.invoke(main, ["--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Commands:", result.output)
        self.assertIn("event", result.output)

    def test_about(self) -> None:
        result = self.invoke("about")
        self.assertEqual(result.exit_code, 0)
        payload = json.loads(result.output)
        self.assertEqual(payload["name"], "gareporter")
        self.assertIn("version", payload)

    def test_settings_path(self) -> None:
        result = self.invoke("settings-path")
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output.strip(), str(self.settings_file))

    def test_configure_persists_settings(self) -> None:
        result = self.invoke("configure", "UA-1-1", "-d", "cd1=pro", "--no-anonymize-ip")
        self.assertEqual(result.exit_code, 0, result.output)

        listing = self.invoke("settings").output
        self.assertIn("tracker.tracker_id = UA-1-1", listing)
        self.assertIn("tracker.custom_dimensions.cd1 = pro", listing)
        self.assertIn("tracker.anonymize_ip = False", listing)

    def test_event_requires_configuration(self) -> None:
        result = self.invoke("event", "video", "play")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("No tracker ID configured", result.output)

    def test_event_dry_run(self) -> None:
        self.configure()
        hit = self.dry_run_query("event", "video", "play", "--label", "trailer", "-p", "cd2=x")
        self.assertEqual(hit["tid"], "UA-1-1")
        self.assertEqual(hit["t"], "event")
        self.assertEqual((hit["ec"], hit["ea"], hit["el"]), ("video", "play", "trailer"))
        self.assertEqual(hit["cd2"], "x")
        self.assertEqual(hit["an"], "Tool")
        self.assertEqual(hit["aid"], "org.example.tool")

    def test_screen_view_and_timing_dry_run(self) -> None:
        self.configure()
        view = self.dry_run_query("screen-view", "Settings Page")
        self.assertEqual(view["dp"], "/SettingsPage")
        self.assertEqual(view["dt"], "Settings Page")
        self.assertEqual(view["dh"], "org.example.tool")

        timing = self.dry_run_query("timing", "load", "home", "1.234")
        self.assertEqual(timing["utt"], "1234")
        self.assertEqual(timing["t"], "timing")

    def test_session_and_exception_dry_run(self) -> None:
        self.configure()
        start = self.dry_run_query("session", "start")
        self.assertEqual(start["sc"], "start")
        self.assertNotIn("t", start)

        crash = self.dry_run_query("exception", "Boom", "--fatal")
        self.assertEqual(crash["exf"], "true")

    def test_identity_is_stable(self) -> None:
        first = self.invoke("identity")
        second = self.invoke("identity")
        self.assertEqual(first.exit_code, 0)
        self.assertEqual(first.output, second.output)
        self.assertTrue(self.identity_file.exists())

    def test_dry_run_uses_stored_identity(self) -> None:
        self.configure()
        cid = self.invoke("identity").output.strip()
        hit = self.dry_run_query("event", "a", "b")
        self.assertEqual(hit["cid"], cid)

    def test_opt_out_skips_hits(self) -> None:
        self.configure()
        self.assertEqual(self.invoke("opt-out").exit_code, 0)

        result = self.invoke("event", "video", "play", "--dry-run")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Opted out", result.output)
        self.assertNotIn("collect?", result.output)

        self.invoke("opt-in")
        self.assertIn("ec=video", self.invoke("event", "video", "play", "--dry-run").output)

    def test_bad_param_is_usage_error(self) -> None:
        self.configure()
        result = self.invoke("event", "video", "play", "-p", "novalue")
        self.assertEqual(result.exit_code, 2)

    def test_non_finite_timing_sends_nothing(self) -> None:
        self.configure()
        for seconds in ("nan", "inf"):
            result = self.invoke("timing", "load", "home", seconds, "--dry-run")
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertNotIn("collect?", result.output)

    def test_send_goes_through_reporter(self) -> None:
        self.configure()
        with patch("gareporter.cli.Reporter.event") as event_mock:
            result = self.invoke("event", "video", "play")

        self.assertEqual(result.exit_code, 0, result.output)
        event_mock.assert_called_once()


if __name__ == "__main__":
    unittest.main()
