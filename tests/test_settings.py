from pathlib import Path
import tempfile
import unittest

from brainz_scrobbler.exceptions import SettingsError
from brainz_scrobbler.settings import ScrobblerConfig, Settings


class SettingsTests(unittest.TestCase):
    """Tests for brainz_scrobbler.settings.Settings"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "settings" / "brainz.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_values_survive_reload(self):
        settings = Settings(self.path)
        settings.set_value("ListenBrainz", "user_token", "abc")
        settings.set_values("Scrobbler", {"offline": True, "submit_delay": 60})

        reloaded = Settings(self.path)
        self.assertEqual(reloaded.value("ListenBrainz", "user_token"), "abc")
        self.assertTrue(reloaded.value("Scrobbler", "offline"))
        self.assertEqual(reloaded.value("Scrobbler", "submit_delay"), 60)
        self.assertFalse(self.path.with_suffix(".json.tmp").exists())

    def test_remove(self):
        settings = Settings(self.path)
        settings.set_values("ListenBrainz", {"a": 1, "b": 2, "c": 3})
        settings.remove("ListenBrainz", "a", "b", "missing")

        reloaded = Settings(self.path)
        self.assertFalse(reloaded.contains("ListenBrainz", "a"))
        self.assertFalse(reloaded.contains("ListenBrainz", "b"))
        self.assertTrue(reloaded.contains("ListenBrainz", "c"))

    def test_defaults(self):
        settings = Settings()
        self.assertIsNone(settings.value("ListenBrainz", "nothing"))
        self.assertEqual(settings.value("Nope", "nothing", 5), 5)

    def test_broken_file_raises(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{ definitely not json")
        with self.assertRaises(SettingsError):
            Settings(self.path)

        self.path.write_text("[1, 2, 3]")
        with self.assertRaises(SettingsError):
            Settings(self.path)


class ScrobblerConfigTests(unittest.TestCase):
    """Tests for brainz_scrobbler.settings.ScrobblerConfig"""

    def test_defaults(self):
        config = ScrobblerConfig.from_settings(Settings())
        self.assertFalse(config.enabled)
        self.assertEqual(config.user_token, "")
        self.assertEqual(config.submit_delay, 0)
        self.assertEqual(config.api_url, "https://api.listenbrainz.org")
        self.assertEqual(config.redirect_url, "http://localhost")

    def test_from_settings(self):
        settings = Settings()
        settings.set_values("ListenBrainz", {"enabled": True, "user_token": "tok"})
        settings.set_values(
            "Scrobbler",
            {
                "albumartist": True,
                "offline": True,
                "show_error_dialog": True,
                "submit_delay": "30",
            },
        )

        config = ScrobblerConfig.from_settings(settings, api_url="http://lb.test")
        self.assertTrue(config.enabled)
        self.assertEqual(config.user_token, "tok")
        self.assertTrue(config.prefer_albumartist)
        self.assertTrue(config.offline)
        self.assertTrue(config.show_error_dialog)
        self.assertEqual(config.submit_delay, 30)
        self.assertEqual(config.api_url, "http://lb.test")

    def test_snapshot_is_immutable(self):
        config = ScrobblerConfig()
        with self.assertRaises(AttributeError):
            config.enabled = True

        changed = config.replace(enabled=True)
        self.assertTrue(changed.enabled)
        self.assertFalse(config.enabled)
