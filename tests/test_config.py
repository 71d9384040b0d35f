import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from netlocations.core.config import DEFAULT_CONFIG_DIR, SettingsError, load_settings
from netlocations.core.vault import DEFAULT_KEY_FILE


class LoadSettingsTests(unittest.TestCase):
    def test_missing_file_uses_defaults(self) -> None:
        with TemporaryDirectory() as tmpdir:
            settings = load_settings(Path(tmpdir) / "local.yml")

        self.assertIsNone(settings.source)
        self.assertEqual(DEFAULT_CONFIG_DIR / "network_locations.json", settings.paths.store)
        self.assertEqual(DEFAULT_CONFIG_DIR / "credentials", settings.paths.credentials_dir)
        self.assertEqual(DEFAULT_KEY_FILE, settings.paths.key_file)
        self.assertEqual(5.0, settings.probe_timeout)
        self.assertEqual(("github.com", 443, 3), (settings.retry.host, settings.retry.port, settings.retry.retries))

    def test_sections_override_defaults(self) -> None:
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "local.yml"
            config_file.write_text(
                "\n".join(
                    [
                        "paths:",
                        f"  config_dir: {tmpdir}/commautil",
                        f"  key_file: {tmpdir}/device_key",
                        "probe:",
                        "  timeout: 2.5",
                        "retry:",
                        "  host: 1.1.1.1",
                        "  port: 53",
                        "  retries: 5",
                        "  delay: 0",
                        "logging:",
                        "  level: DEBUG",
                    ]
                ),
                encoding="utf-8",
            )

            settings = load_settings(config_file)

        self.assertEqual(config_file, settings.source)
        self.assertEqual(Path(tmpdir) / "commautil" / "network_locations.json", settings.paths.store)
        self.assertEqual(Path(tmpdir) / "commautil" / "credentials", settings.paths.credentials_dir)
        self.assertEqual(Path(tmpdir) / "device_key", settings.paths.key_file)
        self.assertEqual(2.5, settings.probe_timeout)
        self.assertEqual("1.1.1.1", settings.retry.host)
        self.assertEqual(53, settings.retry.port)
        self.assertEqual(5, settings.retry.retries)
        self.assertEqual(0, settings.retry.delay)
        self.assertEqual(3, settings.retry.connectivity_retries)

    def test_invalid_values_are_rejected(self) -> None:
        documents = [
            "- just\n- a list\n",
            "paths: nope\n",
            "paths:\n  store: 12\n",
            "probe:\n  timeout: 0\n",
            "retry:\n  retries: 0\n",
            "retry:\n  retries: 1.5\n",
            "retry:\n  delay: fast\n",
            "retry:\n  port: 70000\n",
            "retry:\n  host: ''\n",
            "retry: [unterminated\n",
        ]
        with TemporaryDirectory() as tmpdir:
            config_file = Path(tmpdir) / "local.yml"
            for document in documents:
                config_file.write_text(document, encoding="utf-8")
                with self.assertRaises(SettingsError, msg=document):
                    load_settings(config_file)


if __name__ == "__main__":
    unittest.main()
