import sys
import unittest
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from netlocations.core.errors import LocationValidationError
from netlocations.core.models import (
    KeyAuth,
    Location,
    credential_filename,
    generate_location_id,
)


class LocationIdTests(unittest.TestCase):
    def test_same_inputs_give_same_id(self) -> None:
        first = generate_location_id("nas.local", "backups", "Home_NAS", "route_sync")
        second = generate_location_id("nas.local", "backups", "Home_NAS", "route_sync")
        self.assertEqual(first, second)
        self.assertEqual(32, len(first))

    def test_each_field_changes_id(self) -> None:
        base = generate_location_id("nas.local", "backups", "Home_NAS", "route_sync")
        variants = [
            generate_location_id("nas2.local", "backups", "Home_NAS", "route_sync"),
            generate_location_id("nas.local", "media", "Home_NAS", "route_sync"),
            generate_location_id("nas.local", "backups", "Office_NAS", "route_sync"),
            generate_location_id("nas.local", "backups", "Home_NAS", "device_backup"),
        ]
        for variant in variants:
            self.assertNotEqual(base, variant)

    def test_port_as_int_or_text_is_equivalent(self) -> None:
        self.assertEqual(
            generate_location_id("10.0.0.2", 22, "srv", "device_backup"),
            generate_location_id("10.0.0.2", "22", "srv", "device_backup"),
        )


class LocationRecordTests(unittest.TestCase):
    def test_ssh_key_record_round_trips_through_dict(self) -> None:
        raw = {
            "location_id": "abc",
            "type": "device_backup",
            "protocol": "ssh",
            "label": "srv",
            "server": "192.168.1.10",
            "port": "2222",
            "path": "/backups",
            "username": "comma",
            "key_path": "/home/comma/.ssh/github",
            "auth_type": "key",
        }

        location = Location.from_dict(raw)

        self.assertEqual("ssh", location.protocol)
        self.assertEqual("key", location.auth_type)
        self.assertIsInstance(location.endpoint.auth, KeyAuth)
        self.assertIsNone(location.credential_file)
        self.assertEqual({**raw, "port": 2222}, location.to_dict())

    def test_smb_record_exposes_credential_file(self) -> None:
        location = Location.from_dict(
            {
                "type": "route_sync",
                "protocol": "smb",
                "server": "nas.local",
                "share": "backups",
                "username": "u",
                "credential_file": "/tmp/creds/smb_route_sync_nas.local_backups",
            }
        )

        self.assertEqual("password", location.auth_type)
        self.assertEqual("/tmp/creds/smb_route_sync_nas.local_backups", location.credential_file)
        self.assertNotIn("auth_type", location.to_dict())
        self.assertEqual(generate_location_id("nas.local", "backups", "", "route_sync"), location.location_id)

    def test_rejects_smb_with_key_path(self) -> None:
        with self.assertRaises(LocationValidationError):
            Location.from_dict(
                {
                    "type": "route_sync",
                    "protocol": "smb",
                    "server": "nas.local",
                    "share": "backups",
                    "username": "u",
                    "credential_file": "/tmp/c",
                    "key_path": "/tmp/key",
                }
            )

    def test_rejects_key_auth_with_credential_file(self) -> None:
        with self.assertRaises(LocationValidationError):
            Location.from_dict(
                {
                    "type": "device_backup",
                    "protocol": "ssh",
                    "server": "h",
                    "username": "u",
                    "auth_type": "key",
                    "key_path": "/tmp/key",
                    "credential_file": "/tmp/c",
                }
            )

    def test_rejects_unknown_protocol_and_bad_port(self) -> None:
        with self.assertRaises(LocationValidationError):
            Location.from_dict({"type": "x", "protocol": "ftp", "server": "h", "username": "u"})
        with self.assertRaises(LocationValidationError):
            Location.from_dict(
                {"type": "x", "protocol": "ssh", "server": "h", "username": "u", "port": 70000, "key_path": "/k"}
            )


class CredentialFilenameTests(unittest.TestCase):
    def test_name_is_derived_from_identifying_fields(self) -> None:
        self.assertEqual("ssh_device_backup_10.0.0.2_22", credential_filename("ssh", "device_backup", "10.0.0.2", 22))

    def test_path_separators_are_replaced(self) -> None:
        self.assertNotIn("/", credential_filename("smb", "route_sync", "nas/evil", "share"))


if __name__ == "__main__":
    unittest.main()
