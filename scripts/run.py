#!/usr/bin/env python3
"""Entry point for the network location registry."""

from __future__ import annotations

import argparse
import getpass
import logging
import os
import sys
from pathlib import Path

# Ensure src/ is on sys.path for local imports when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from netlocations.common.prober import Prober  # noqa: E402
from netlocations.common.retry import with_retry  # noqa: E402
from netlocations.core.config import Settings, SettingsError, load_settings  # noqa: E402
from netlocations.core.errors import LocationValidationError, NetLocationsError  # noqa: E402
from netlocations.core.logging import setup_logging  # noqa: E402
from netlocations.core.models import Location, SmbEndpoint  # noqa: E402
from netlocations.core.registry import LocationRegistry  # noqa: E402
from netlocations.core.store import ConfigStore  # noqa: E402
from netlocations.core.vault import CredentialVault  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""

    parser = argparse.ArgumentParser(
        description=(
            "Manage remote backup/sync locations (SMB shares or SSH hosts) and their "
            "encrypted credentials, and check that they are reachable."
        ),
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=ROOT_DIR / "config" / "local.yml",
        help="Path to the local settings file (YAML)",
    )
    parser.add_argument("--store", type=Path, default=None, help="Location store file. Overrides local.yml.")
    parser.add_argument(
        "--credentials-dir", type=Path, default=None, help="Credential directory. Overrides local.yml."
    )
    parser.add_argument("--key-file", type=Path, default=None, help="Device key material. Overrides local.yml.")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging for troubleshooting. Overrides local.yml logging.level.",
    )

    subcommands = parser.add_subparsers(dest="command", title="commands")

    subcommands.add_parser("init", help="Create the location store if it does not exist")
    subcommands.add_parser("list", help="List configured locations")

    show_parser = subcommands.add_parser("show", help="Show the location configured for a type")
    show_parser.add_argument("type", help="Location type, e.g. route_sync or device_backup")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("type", help="Location type, e.g. route_sync or device_backup")
    common.add_argument("--server", required=True, help="Server IP or hostname")
    common.add_argument("--username", required=True)
    common.add_argument("--label", default="", help="Human readable name, e.g. Home_NAS")
    common.add_argument("--path", default="", help="Base path on the remote side")
    common.add_argument("--replace", action="store_true", help="Replace an existing location of this type")
    common.add_argument(
        "--password-env",
        metavar="VAR",
        default=None,
        help="Read the password from this environment variable instead of prompting",
    )

    smb_parser = subcommands.add_parser("add-smb", help="Configure an SMB share", parents=[common])
    smb_parser.add_argument("--share", required=True)

    ssh_parser = subcommands.add_parser("add-ssh", help="Configure an SSH location", parents=[common])
    ssh_parser.add_argument("--port", type=int, default=22)
    ssh_parser.add_argument("--key-path", default=None, help="Use key authentication with this private key")

    remove_parser = subcommands.add_parser("remove", help="Remove a location and its credential")
    remove_parser.add_argument("type")

    test_parser = subcommands.add_parser("test", help="Test connectivity of one or all locations")
    test_parser.add_argument("type", nargs="?", default=None)
    test_parser.add_argument("--retry", action="store_true", help="Retry per the local.yml retry policy")

    exists_parser = subcommands.add_parser("exists", help="Check whether a remote artifact is present")
    exists_parser.add_argument("type")
    exists_parser.add_argument("remote_path")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logger = setup_logging(args.settings, cli_level=logging.DEBUG if args.debug else None)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = _resolve_settings(args, logger)
    except SettingsError:
        logger.exception("Failed to load settings.")
        return 1

    store = ConfigStore(settings.paths.store)
    vault = CredentialVault(settings.paths.key_file)
    registry = LocationRegistry(store, vault, settings.paths.credentials_dir)
    prober = Prober(vault, settings.probe_timeout)

    handlers = {
        "init": lambda: _cmd_init(store, settings, logger),
        "list": lambda: _cmd_list(registry),
        "show": lambda: _cmd_show(registry, args.type),
        "add-smb": lambda: _cmd_add(registry, args, "smb", logger),
        "add-ssh": lambda: _cmd_add(registry, args, "ssh", logger),
        "remove": lambda: _cmd_remove(registry, args.type),
        "test": lambda: _cmd_test(registry, prober, settings, args, logger),
        "exists": lambda: _cmd_exists(registry, prober, args),
    }

    try:
        return handlers[args.command]()
    except LocationValidationError as exc:
        logger.error("%s", exc)
        return 2
    except NetLocationsError as exc:
        logger.error("%s failed: %s", args.command, exc.reason, extra={"location": getattr(args, "type", None)})
        return 1


def _resolve_settings(args: argparse.Namespace, logger: logging.Logger) -> Settings:
    settings = load_settings(args.settings, logger)
    if args.store is not None:
        settings.paths.store = args.store
    if args.credentials_dir is not None:
        settings.paths.credentials_dir = args.credentials_dir
    if args.key_file is not None:
        settings.paths.key_file = args.key_file
    return settings


def _cmd_init(store: ConfigStore, settings: Settings, logger: logging.Logger) -> int:
    store.init()
    settings.paths.credentials_dir.mkdir(parents=True, exist_ok=True)
    logger.info("store=%s credentials_dir=%s", store.path, settings.paths.credentials_dir)
    return 0


def _describe(location: Location) -> str:
    endpoint = location.endpoint
    if isinstance(endpoint, SmbEndpoint):
        target = f"//{location.server}/{endpoint.share}"
    else:
        target = f"{location.username}@{location.server}:{endpoint.port}"
    return (
        f"{location.type}: {location.label or '-'} {location.protocol} {target} "
        f"path={location.path or '-'} auth={location.auth_type} id={location.location_id}"
    )


def _cmd_list(registry: LocationRegistry) -> int:
    locations = registry.list()
    if not locations:
        print("No network locations configured.")
    for location in locations:
        print(_describe(location))
    return 0


def _cmd_show(registry: LocationRegistry, location_type: str) -> int:
    print(_describe(registry.get(location_type)))
    return 0


def _read_password(args: argparse.Namespace) -> str:
    if args.password_env:
        value = os.environ.get(args.password_env)
        if value is None:
            raise LocationValidationError(f"environment variable {args.password_env} is not set.")
        return value
    return getpass.getpass("Password (will be encrypted): ")


def _cmd_add(registry: LocationRegistry, args: argparse.Namespace, protocol: str, logger: logging.Logger) -> int:
    key_path = getattr(args, "key_path", None)
    password = None if key_path else _read_password(args)
    extra = {"share": args.share} if protocol == "smb" else {"port": args.port, "key_path": key_path}

    location = registry.add(
        args.type,
        protocol,
        server=args.server,
        username=args.username,
        label=args.label,
        path=args.path,
        password=password,
        replace=args.replace,
        **extra,
    )
    logger.info("%s location configured id=%s", protocol.upper(), location.location_id, extra={"location": args.type})
    return 0


def _cmd_remove(registry: LocationRegistry, location_type: str) -> int:
    registry.remove(location_type)
    return 0


def _cmd_test(
    registry: LocationRegistry,
    prober: Prober,
    settings: Settings,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    resolved = registry.resolve(args.type)
    locations = [resolved] if isinstance(resolved, Location) else resolved
    if not locations:
        logger.warning("No network locations configured.")
        return 1

    failures = 0
    for location in locations:
        log_extra = {"location": location.type}
        if args.retry:
            try:
                with_retry(
                    lambda: prober.verify(location),
                    f"Connection test for {location.type} failed",
                    settings.retry.retries,
                    settings.retry.delay,
                    connectivity=settings.retry.is_online,
                )
                status = "Connected"
            except NetLocationsError as exc:
                status = f"Failed: {exc.reason}"
        else:
            result = prober.test(location)
            status = "Connected" if result.valid else f"Failed: {result.reason}"
        if status != "Connected":
            failures += 1
        logger.info("label=%s protocol=%s status=%s", location.label or "-", location.protocol, status, extra=log_extra)
        print(f"{location.type} ({location.label or '-'}): {status}")

    return 1 if failures else 0


def _cmd_exists(registry: LocationRegistry, prober: Prober, args: argparse.Namespace) -> int:
    location = registry.get(args.type)
    present = prober.artifact_exists(location, args.remote_path)
    print("present" if present else "missing")
    return 0 if present else 1


if __name__ == "__main__":
    raise SystemExit(main())
