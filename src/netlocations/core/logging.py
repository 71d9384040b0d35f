"""Logging setup for the location registry.

Every line carries ``location=<type>`` (``-`` when a message is not about a
single location) and has credentials masked before it reaches a handler.
Settings come from the ``logging`` section of ``config/local.yml``::

    logging:
      directory: /var/log/netlocations
      filename: netlocations.log
      level: INFO

When the directory cannot be written (read-only system partition, missing
permissions) the log file goes to ``./logs`` instead.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[3]
LOGGER_NAME = "netlocations"

LOG_FORMAT = "%(asctime)s | %(levelname)s | location=%(location)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True)
class LogSettings:
    directory: Path = Path("/var/log/netlocations")
    filename: str = "netlocations.log"
    level: int = logging.INFO

    @classmethod
    def from_mapping(cls, section: Mapping[str, Any]) -> "LogSettings":
        settings = cls()
        if section.get("directory"):
            settings.directory = Path(str(section["directory"])).expanduser()
        if section.get("filename"):
            settings.filename = str(section["filename"])
        settings.level = parse_level(section.get("level"), settings.level)
        return settings


def parse_level(value: Any, default: int = logging.INFO) -> int:
    """Accept ``DEBUG``/``info``-style names or numeric levels."""

    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        resolved = logging.getLevelName(value.strip().upper())
        if isinstance(resolved, int):
            return resolved
    return default


class LocationContextFilter(logging.Filter):
    """Fill in ``location`` for records logged without one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "location", None):
            record.location = "-"
        return True


class SecretScrubberFilter(logging.Filter):
    """Mask ``password=``/``passwd=``/``secret=``/``token=`` values and ``-U user%pass`` pairs."""

    KEY_VALUE = re.compile(r"\b(password|passwd|secret|token)=(\S+)", re.IGNORECASE)
    SMB_USER_PASS = re.compile(r"(-U\s+[^%\s]+)%\S+")

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            rendered = record.getMessage()
        except (TypeError, ValueError):
            return True

        masked = self.SMB_USER_PASS.sub(r"\1%***", self.KEY_VALUE.sub(r"\1=***", rendered))
        if masked != rendered:
            record.msg, record.args = masked, ()
        return True


def read_log_settings(config_file: Path) -> LogSettings | None:
    """Return the ``logging`` section of ``config_file``, or None when the file is absent."""

    if not config_file.exists():
        return None
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        return LogSettings()
    section = data.get("logging") if isinstance(data, Mapping) else None
    return LogSettings.from_mapping(section if isinstance(section, Mapping) else {})


def _open_log_file(candidates: list[Path], filename: str) -> tuple[logging.FileHandler, Path]:
    errors: list[str] = []
    for directory in candidates:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(directory / filename, encoding="utf-8"), directory
        except OSError as exc:
            errors.append(f"{directory}: {exc.strerror or exc}")
    raise OSError(f"No writable log directory ({'; '.join(errors)})")


def setup_logging(config_path: str | Path | None = "config/local.yml", cli_level: int | None = None) -> logging.Logger:
    """Attach file and stdout handlers to the ``netlocations`` logger and return it.

    ``config_path`` is resolved against the project root when relative.
    ``cli_level`` (``--debug``) takes precedence over ``logging.level``.
    """

    config_file = Path(config_path or "config/local.yml")
    if not config_file.is_absolute():
        config_file = PROJECT_ROOT / config_file

    loaded = read_log_settings(config_file)
    settings = loaded or LogSettings()
    level = settings.level if cli_level is None else cli_level

    file_handler, directory = _open_log_file([settings.directory, Path("logs")], settings.filename)
    stream_handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in (file_handler, stream_handler):
        handler.setFormatter(formatter)
        handler.addFilter(LocationContextFilter())
        handler.addFilter(SecretScrubberFilter())

    logger = logging.getLogger(LOGGER_NAME)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.setLevel(level)
    logger.propagate = False

    if loaded is None:
        logger.info("No settings at %s; logging to %s at %s", config_file, directory, logging.getLevelName(level))
    if directory != settings.directory:
        logger.warning("Log directory %s is not writable; using %s", settings.directory, directory)
    logger.debug("Log file %s", directory / settings.filename)
    return logger
