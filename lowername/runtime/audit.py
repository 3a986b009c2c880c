"""Append-only audit log for rename operations.

One ``AuditLog`` instance is created per run and injected into the engine.
It writes timestamped lines through a private ``logging.Logger`` so handler
locks serialize concurrent writers. A pre-existing log file is archived under
a timestamped name before the new one is opened.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TextIO

from ..errors import FatalStartupError, RenamerError
from ..fs.listing import format_mode

DEFAULT_LOG_FILE = "renamer.log"
LOG_FORMAT = "%(asctime)s %(message)s"
LOG_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"
ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class RenameOutcome:
    """Result of one rename attempt, consumed immediately by ``AuditLog.record``."""

    source: Path
    target: Path
    is_dir: bool
    success: bool
    error: str | None = None
    conflict: bool = False
    mode_before: int | None = None
    mode_after: int | None = None
    uid: int | None = None
    gid: int | None = None
    dry_run: bool = False

    @property
    def kind(self) -> str:
        return "folder" if self.is_dir else "file"


def archive_existing_log(log_file: Path, now: datetime | None = None) -> Path | None:
    """Move an existing ``log_file`` to ``<log_file>_<YYYYMMDDHHMMSS>``.

    Returns the archive path, or ``None`` when there was nothing to archive.
    An archive name that is already taken gets a ``_1``, ``_2``... suffix.
    ``OSError`` from the rename propagates.
    """
    if not os.path.lexists(log_file):
        return None
    stamp = (now or datetime.now()).strftime(ARCHIVE_TIMESTAMP_FORMAT)
    base = f"{log_file}_{stamp}"
    archived = Path(base)
    suffix = 1
    while os.path.lexists(archived):
        archived = Path(f"{base}_{suffix}")
        suffix += 1
    os.rename(log_file, archived)
    return archived


class _BestEffortFileHandler(logging.FileHandler):
    """File handler that reports its first write failure on stderr, then stays quiet."""

    def __init__(self, filename: Path, encoding: str = "utf-8") -> None:
        super().__init__(filename, mode="a", encoding=encoding)
        self._reported_failure = False

    def handleError(self, record: logging.LogRecord) -> None:
        if self._reported_failure:
            return
        self._reported_failure = True
        exc = sys.exc_info()[1]
        sys.stderr.write(f"lowername: cannot write log file {self.baseFilename}: {exc}\n")


class AuditLog:
    """Timestamped, thread-safe rename log with substitutable handlers."""

    def __init__(self, handlers: Iterable[logging.Handler]) -> None:
        self._logger = logging.Logger("lowername.audit", logging.INFO)
        self._logger.propagate = False
        self._handlers = list(handlers)
        formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
        for handler in self._handlers:
            if handler.formatter is None:
                handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    @classmethod
    def open(
        cls,
        log_file: Path,
        *,
        verbose: bool = False,
        stream: TextIO | None = None,
    ) -> AuditLog:
        """Archive any previous log at ``log_file`` and open a fresh one.

        With ``verbose`` every line is also written to ``stream`` (stdout by
        default). Raises ``FatalStartupError`` when the log cannot be set up.
        """
        log_file = Path(log_file)
        try:
            archived = archive_existing_log(log_file)
        except OSError as exc:
            raise FatalStartupError(
                f"cannot archive existing log file {log_file}: {exc.strerror or exc}",
                log_file,
            ) from exc

        try:
            file_handler = _BestEffortFileHandler(log_file)
        except OSError as exc:
            raise FatalStartupError(f"cannot open log file {log_file}: {exc.strerror or exc}", log_file) from exc

        handlers: list[logging.Handler] = [file_handler]
        if verbose:
            handlers.append(logging.StreamHandler(stream if stream is not None else sys.stdout))

        audit = cls(handlers)
        if archived is not None:
            audit.info("Archived existing log file: %s -> %s", log_file, archived)
        return audit

    def info(self, message: str, *args: object) -> None:
        self._logger.info(message, *args)

    def error(self, message: str, *args: object) -> None:
        self._logger.error(message, *args)

    def failure(self, exc: RenamerError, prefix: str = "Failed") -> None:
        """Log one line naming the failing path and reason."""
        if exc.path is not None:
            self._logger.error("%s: %s: %s", prefix, exc.path, exc)
        else:
            self._logger.error("%s: %s", prefix, exc)

    def record(self, outcome: RenameOutcome) -> None:
        """Write the lines describing one rename attempt.

        Failures produce exactly one line. Successes produce the rename notice
        followed by permission and, when known, ownership detail.
        """
        if not outcome.success:
            if outcome.conflict:
                self.error("Conflict: cannot rename %s %s: %s", outcome.kind, outcome.source, outcome.error)
            else:
                self.error("Failed to rename %s: %s: %s", outcome.kind, outcome.source, outcome.error)
            return

        if outcome.dry_run:
            self.info("Would rename %s: %s to %s", outcome.kind, outcome.source, outcome.target)
            return

        label = "Folder" if outcome.is_dir else "File"
        self.info("Renamed %s: %s to %s", outcome.kind, outcome.source, outcome.target)
        self.info(
            "%s: %s - Permissions - Before: %s, After: %s",
            label,
            outcome.target,
            format_mode(outcome.mode_before),
            format_mode(outcome.mode_after),
        )
        if outcome.uid is not None and outcome.gid is not None:
            self.info("%s: %s - Ownership - UID: %d, GID: %d", label, outcome.target, outcome.uid, outcome.gid)

    def close(self) -> None:
        """Detach and close every handler."""
        for handler in self._handlers:
            self._logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def __enter__(self) -> AuditLog:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = [
    "DEFAULT_LOG_FILE",
    "LOG_FORMAT",
    "LOG_DATE_FORMAT",
    "RenameOutcome",
    "AuditLog",
    "archive_existing_log",
]
