"""
Secure Logging Module
=====================

Logging setup for the storage engine and the host that embeds it.

Library code only calls ``logging.getLogger("vaultstore.<area>")``.
Handlers are attached by the host:

    get_secure_logger("vaultstore", log_dir)   one subtree
    configure_root_logger(log_dir)             whole process
    configure_audit_log(log_dir)               integrity events, JSON lines

Every handler installed here carries a ``SecureLogFilter`` that scrubs
key material and full digests before a record is formatted. File ids,
sizes and security level names pass through untouched.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Final, Iterable, Optional, Pattern

from vaultstore.core.config import LoggingConfig

CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"

AUDIT_LOGGER_NAME: Final[str] = "vaultstore.audit"
AUDIT_LOG_FILE: Final[str] = "audit.log"

# Record attributes copied into JSON output when present
_AUDIT_FIELDS: Final[tuple[str, ...]] = ("file_id", "reason")

_REDACTED_TEXT: Final[str] = "[REDACTED]"

# (label, pattern) pairs; order matters, assignments are matched before bare runs
_SENSITIVE_PATTERNS: Final[tuple[tuple[str, Pattern[str]], ...]] = (
    ("key", re.compile(r'(?i)\b(master[_-]?key|sub[_-]?key|level[_-]?key|key[_-]?material|iv)\s*[=:]\s*["\']?[^\s"\',)]+')),
    ("secret", re.compile(r'(?i)\b(password|passphrase|secret|token)\s*[=:]\s*["\']?[^\s"\',)]+')),
    ("plaintext", re.compile(r'(?i)\b(plaintext|content)\s*[=:]\s*b?["\'][^"\']*["\']')),
    # Digests and raw keys rendered as hex; dashed file ids never match
    ("hex", re.compile(r'(?i)\b(?:0x)?[0-9a-f]{32,}\b')),
    ("base64", re.compile(r'[A-Za-z0-9+/]{40,}={0,2}')),
)


class SecureLogFilter(logging.Filter):
    """
    Scrub key material, plaintext assignments and long hex/base64 runs.

    Both the format string and its arguments are rewritten, so a digest
    passed as ``%s`` is caught as well as one baked into the message.
    Records are never dropped.
    """

    def __init__(self, name: str = "", extra_patterns: Iterable[Pattern[str]] = ()) -> None:
        super().__init__(name)
        self._extra_patterns = tuple(extra_patterns)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.scrub(record.msg)

        if isinstance(record.args, dict):
            record.args = {k: self._scrub_arg(v) for k, v in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self._scrub_arg(arg) for arg in record.args)

        return True

    def scrub(self, text: str) -> str:
        """Return ``text`` with every sensitive match replaced."""
        for label, pattern in _SENSITIVE_PATTERNS:
            text = pattern.sub(f"{label}={_REDACTED_TEXT}", text)
        for pattern in self._extra_patterns:
            text = pattern.sub(_REDACTED_TEXT, text)
        return text

    def _scrub_arg(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.scrub(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            # Raw bytes in a log call are always a mistake
            return f"<{len(value)} bytes>"
        return value


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per line, including audit fields when attached."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for name in _AUDIT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _rotating_handler(log_file: Path, config: LoggingConfig, structured: bool) -> RotatingFileHandler:
    log_path = Path(log_file).resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=config.max_file_size_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    if structured:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _attach_handlers(
    logger: logging.Logger,
    log_file: Optional[Path],
    config: LoggingConfig,
) -> None:
    secure_filter = SecureLogFilter()
    handlers: list[logging.Handler] = []

    if config.enable_console:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        handlers.append(console)

    if config.enable_file and log_file is not None:
        handlers.append(_rotating_handler(log_file, config, structured=config.enable_json))

    for handler in handlers:
        handler.addFilter(secure_filter)
        logger.addHandler(handler)


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Return ``name``'s logger with filtered console/file handlers attached.

    Handlers are attached once; later calls return the configured logger
    unchanged. The logger stops propagating so records are not emitted
    twice when the root logger is also configured.

    Args:
        name: Logger name ("vaultstore" covers the whole package)
        log_dir: Directory for ``<name>.log`` (file output needs enable_file)
        config: Logging settings (defaults if not provided)
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(config.level.upper())
    log_file = Path(log_dir) / f"{name.replace('.', '_')}.log" if log_dir else None
    _attach_handlers(logger, log_file, config)
    logger.propagate = False
    return logger


def configure_root_logger(
    log_dir: Optional[Path] = None,
    config: Optional[LoggingConfig] = None,
) -> None:
    """Replace the root logger's handlers with filtered ones. Call once at startup."""
    config = config or LoggingConfig()
    root = logging.getLogger()
    root.setLevel(config.level.upper())
    root.handlers.clear()
    _attach_handlers(root, Path(log_dir) / "vaultstore.log" if log_dir else None, config)


def configure_audit_log(
    log_dir: Path,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Route ``vaultstore.audit`` to its own JSON-lines file.

    Integrity failures carry ``file_id`` and ``reason`` attributes which
    appear as top-level keys in each line. Records still propagate, so
    they also reach whatever the host attached to the root logger.
    """
    config = config or LoggingConfig()
    audit = logging.getLogger(AUDIT_LOGGER_NAME)
    target = (Path(log_dir) / AUDIT_LOG_FILE).resolve()

    for handler in audit.handlers:
        if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename).resolve() == target:
            return audit

    handler = _rotating_handler(target, config, structured=True)
    handler.addFilter(SecureLogFilter())
    audit.addHandler(handler)
    audit.setLevel(logging.INFO)
    return audit
