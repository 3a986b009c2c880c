"""Single-entry rename that never overwrites an existing entry."""

from __future__ import annotations

import contextlib
import errno
import os
import stat
import uuid
from pathlib import Path

from ..errors import ConflictError, EntryError


def _is_case_alias(source: Path, target: Path) -> bool:
    """Return whether ``target`` is ``source`` spelled differently.

    True on case-insensitive filesystems, where both names resolve to one
    directory entry. Hard links share an inode too but show up as separate
    names in the listing, so they do not count.
    """
    try:
        source_stat = os.lstat(source)
        target_stat = os.lstat(target)
    except OSError:
        return False
    if (source_stat.st_dev, source_stat.st_ino) != (target_stat.st_dev, target_stat.st_ino):
        return False
    try:
        return target.name not in os.listdir(target.parent)
    except OSError:
        return False


# errnos meaning "this filesystem cannot hard-link here"; fall back to rename
_NO_HARD_LINKS = frozenset({errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS, errno.EMLINK})


def _rename_no_replace(source: Path, target: Path) -> None:
    """Move a non-directory entry without ever replacing ``target``.

    Links ``target`` first, which fails atomically if the name is taken, then
    drops ``source``. Directories and filesystems without hard links use a
    plain rename.
    """
    try:
        is_dir = stat.S_ISDIR(os.lstat(source).st_mode)
    except OSError as exc:
        raise EntryError(f"rename failed: {exc.strerror or exc}", source) from exc
    if is_dir:
        _plain_rename(source, target)
        return

    try:
        os.link(source, target, follow_symlinks=False)
    except FileExistsError as exc:
        raise ConflictError(f"target already exists: {target}", source) from exc
    except OSError as exc:
        if exc.errno not in _NO_HARD_LINKS:
            raise EntryError(f"rename failed: {exc.strerror or exc}", source) from exc
        _plain_rename(source, target)
        return

    try:
        os.unlink(source)
    except OSError as exc:
        with contextlib.suppress(OSError):
            os.unlink(target)
        raise EntryError(f"rename failed: {exc.strerror or exc}", source) from exc


def _plain_rename(source: Path, target: Path) -> None:
    try:
        os.rename(source, target)
    except OSError as exc:
        raise EntryError(f"rename failed: {exc.strerror or exc}", source) from exc


def would_conflict(source: Path, target: Path) -> bool:
    """Return whether renaming ``source`` to ``target`` would clobber another entry."""
    if source == target:
        return False
    return os.path.lexists(target) and not _is_case_alias(source, target)


def rename_path(source: Path, target: Path) -> None:
    """Rename ``source`` to ``target`` in the same directory.

    Raises ``ConflictError`` when ``target`` names a different existing entry,
    and ``EntryError`` when the rename syscall fails. On case-insensitive
    filesystems, where ``target`` is ``source`` under another spelling, the
    rename goes through a temporary sibling name.

    Files and symlinks are moved with link-then-unlink, so a ``target``
    created by another process after the existence check is still never
    replaced. Directories, and filesystems that cannot hard-link, use
    ``os.rename``, which only rules out collisions this process knows about.
    """
    if source == target:
        return
    if os.path.lexists(target):
        if not _is_case_alias(source, target):
            raise ConflictError(f"target already exists: {target}", source)
        temporary = source.with_name(f"{source.name}.{uuid.uuid4().hex}.tmpcase")
        try:
            os.rename(source, temporary)
        except OSError as exc:
            raise EntryError(f"rename failed: {exc.strerror or exc}", source) from exc
        try:
            os.rename(temporary, target)
        except OSError as exc:
            raise EntryError(
                f"rename failed, entry left at {temporary.name}: {exc.strerror or exc}",
                source,
            ) from exc
        return

    _rename_no_replace(source, target)


__all__ = [
    "rename_path",
    "would_conflict",
]
