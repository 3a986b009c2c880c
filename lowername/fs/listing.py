"""Directory enumeration with per-entry stat metadata."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path

from ..errors import ReadError, StatError


@dataclass(frozen=True)
class Entry:
    """One immediate child of a listed directory.

    ``mode``/``uid``/``gid`` come from an ``lstat`` of the child. When that
    stat fails the fields are ``None`` and ``error`` carries the reason.
    """

    name: str
    path: Path
    is_dir: bool
    is_symlink: bool = False
    mode: int | None = None
    uid: int | None = None
    gid: int | None = None
    error: StatError | None = None

    @property
    def mode_text(self) -> str:
        """``ls``-style permission string, or ``"?"`` when unknown."""
        return format_mode(self.mode)


def format_mode(mode: int | None) -> str:
    """Render ``st_mode`` like ``-rw-r--r--``."""
    if mode is None:
        return "?"
    return stat.filemode(mode)


def list_entries(directory: Path) -> list[Entry]:
    """List immediate children of ``directory`` sorted by name.

    Raises ``ReadError`` when the directory itself cannot be scanned. A child
    that cannot be stat-ed is still returned, with ``error`` set.
    """
    entries: list[Entry] = []
    try:
        with os.scandir(directory) as children:
            for child in children:
                child_path = Path(child.path)
                try:
                    child_stat = child.stat(follow_symlinks=False)
                except OSError as exc:
                    entries.append(
                        Entry(
                            name=child.name,
                            path=child_path,
                            is_dir=False,
                            error=StatError(f"cannot stat entry: {exc.strerror or exc}", child_path),
                        )
                    )
                    continue

                entries.append(
                    Entry(
                        name=child.name,
                        path=child_path,
                        is_dir=stat.S_ISDIR(child_stat.st_mode),
                        is_symlink=stat.S_ISLNK(child_stat.st_mode),
                        mode=child_stat.st_mode,
                        uid=getattr(child_stat, "st_uid", None),
                        gid=getattr(child_stat, "st_gid", None),
                    )
                )
    except OSError as exc:
        raise ReadError(f"cannot list directory: {exc.strerror or exc}", directory) from exc

    entries.sort(key=lambda item: item.name)
    return entries


__all__ = [
    "Entry",
    "format_mode",
    "list_entries",
]
