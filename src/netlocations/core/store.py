"""JSON-backed store holding the configured network locations.

The whole document is rewritten on every mutation: the new content goes to a
temporary file in the same directory which then replaces the original, so a
reader only ever sees a complete document. There is no locking; concurrent
writers from separate processes race and the last one wins.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterable

from netlocations.core.errors import ConfigCorruptError, ConfigNotFoundError, LocationValidationError
from netlocations.core.models import Location

logger = logging.getLogger(__name__)

Transform = Callable[[list[Location]], Iterable[Location]]


def write_json_atomic(path: Path, data: Any, mode: int = 0o644) -> Path:
    """Write ``data`` as JSON to ``path`` via a temporary file and rename."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return path


class ConfigStore:
    """Durable ordered collection of :class:`Location` records."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def init(self) -> None:
        """Create the containing directory and an empty store if none exists."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            logger.debug("location store present path=%s", self.path)
            return
        write_json_atomic(self.path, {"locations": []})
        logger.info("location store initialized path=%s", self.path)

    def read(self) -> list[Location]:
        """Load and validate every stored location."""

        if not self.path.exists():
            raise ConfigNotFoundError(
                f"Network configuration file not found: {self.path}. Configure network locations first."
            )

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                raw_data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigCorruptError(
                f"Network configuration file is corrupted: {self.path} ({exc.msg} at line {exc.lineno})."
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigCorruptError(f"Unable to read network configuration file {self.path}: {exc}") from exc

        return self._parse(raw_data)

    def replace(self, transform: Transform) -> list[Location]:
        """Apply ``transform`` to the current locations and atomically persist the result."""

        current = self.read()
        updated = list(transform(list(current)))
        write_json_atomic(self.path, {"locations": [location.to_dict() for location in updated]})
        logger.debug("location store written path=%s before=%d after=%d", self.path, len(current), len(updated))
        return updated

    def verify(self) -> None:
        """Raise the matching error if the store is missing or unreadable."""

        self.read()

    def _parse(self, raw_data: Any) -> list[Location]:
        if not isinstance(raw_data, dict):
            raise ConfigCorruptError(f"{self.path}: top-level structure must be a mapping.")

        raw_locations = raw_data.get("locations")
        if not isinstance(raw_locations, list):
            raise ConfigCorruptError(f"{self.path}: the 'locations' field must be a list.")

        locations: list[Location] = []
        for index, raw_location in enumerate(raw_locations, start=1):
            context = f"location #{index}"
            if not isinstance(raw_location, dict):
                raise ConfigCorruptError(f"{self.path}: {context} must be a mapping.")
            try:
                locations.append(Location.from_dict(raw_location, context))
            except LocationValidationError as exc:
                raise ConfigCorruptError(f"{self.path}: {exc}") from exc
        return locations
