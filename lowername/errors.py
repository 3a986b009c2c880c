"""Error taxonomy for the lowercase renamer.

Errors are grouped by how far they reach: startup errors end the process,
node errors end one subtree, entry errors end one rename attempt.
"""

from __future__ import annotations

from pathlib import Path


class RenamerError(Exception):
    """Base class for renamer failures that carry an optional path."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class FatalStartupError(RenamerError):
    """Bad flags, unusable log file, or unreadable root. Aborts the process."""


class ReadError(RenamerError):
    """A directory could not be opened or listed."""


class StatError(RenamerError):
    """One entry vanished or could not be stat-ed after listing."""


class UnsupportedError(RenamerError):
    """Ownership or permission metadata is not available on this platform."""


class NodeFatalError(RenamerError):
    """A directory could not be renamed or re-listed; its subtree is skipped."""


class EntryError(RenamerError):
    """A single rename, permission restore, or ownership change failed."""


class ConflictError(EntryError):
    """The lowercase target is already taken by a different entry."""


__all__ = [
    "RenamerError",
    "FatalStartupError",
    "ReadError",
    "StatError",
    "UnsupportedError",
    "NodeFatalError",
    "EntryError",
    "ConflictError",
]
