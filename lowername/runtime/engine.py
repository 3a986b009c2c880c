"""Recursive, bounded-concurrency lowercase renamer.

Each directory runs through Enter -> RenameSelf -> ListChildren ->
DispatchChildren -> AwaitChildren. Directories and file renames run in worker
threads admitted by one shared ``ConcurrencyLimiter``. A directory releases
its slot once it has renamed itself and listed its children, so a parent
waiting on descendants never holds a slot they need.
"""

from __future__ import annotations

import stat
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import (
    ConflictError,
    EntryError,
    FatalStartupError,
    NodeFatalError,
    ReadError,
    StatError,
    UnsupportedError,
)
from ..fs import (
    Entry,
    MetadataAccessor,
    format_mode,
    is_lowercase,
    list_entries,
    lowercase_name,
    lowercase_path,
    metadata_accessor,
    rename_path,
    would_conflict,
)
from .audit import AuditLog, RenameOutcome
from .limiter import ConcurrencyLimiter


@dataclass
class RenameSummary:
    """Thread-safe per-run counters."""

    renamed_files: int = 0
    renamed_dirs: int = 0
    unchanged: int = 0
    conflicts: int = 0
    failures: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + amount)

    def describe(self) -> str:
        with self._lock:
            return (
                f"Renamed {self.renamed_files} files and {self.renamed_dirs} folders; "
                f"{self.unchanged} already lowercase; {self.conflicts} conflicts; {self.failures} failures"
            )


def plan_sibling_renames(entries: list[Entry]) -> dict[str, Entry]:
    """Pick which sibling owns each lowercase name.

    An entry already spelled in lowercase wins its name; otherwise the first
    entry in sorted-name order does. Entries with stat errors take no part.
    """
    owners: dict[str, Entry] = {}
    for entry in sorted(entries, key=lambda item: item.name):
        if entry.error is not None:
            continue
        key = lowercase_name(entry.name)
        current = owners.get(key)
        if current is None or (entry.name == key and current.name != key):
            owners[key] = entry
    return owners


class LowercaseRenamer:
    """Walk a directory tree and lowercase every entry name below the root."""

    def __init__(
        self,
        audit: AuditLog,
        *,
        limiter: ConcurrencyLimiter | None = None,
        metadata: MetadataAccessor | None = None,
        preserve_ownership: bool = True,
        dry_run: bool = False,
    ) -> None:
        self.audit = audit
        self.limiter = limiter if limiter is not None else ConcurrencyLimiter()
        self.metadata = metadata if metadata is not None else metadata_accessor()
        self.preserve_ownership = preserve_ownership
        self.dry_run = dry_run
        self.summary = RenameSummary()
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Stop entering new directories and dispatching new entries."""
        self._cancel_event.set()

    def run(self, root: Path) -> RenameSummary:
        """Lowercase everything below ``root`` and return the run counters.

        Raises ``FatalStartupError`` when ``root`` is not a readable directory.
        Every other failure is logged and counted.
        """
        root = Path(root)
        if not root.is_dir():
            raise FatalStartupError(f"not a directory: {root}", root)
        try:
            entries = list_entries(root)
        except ReadError as exc:
            raise FatalStartupError(f"cannot read folder {root}: {exc}", root) from exc

        if self.preserve_ownership and not self.metadata.supports_ownership:
            self.audit.error("Ownership preservation is not supported on this platform; skipping it")

        self._dispatch_children(root, root, entries)

        self.audit.info("%s", self.summary.describe())
        if not self.cancelled:
            self.audit.info("All files renamed to lowercase.")
        return self.summary

    def _dispatch_children(self, root: Path, directory: Path, entries: list[Entry]) -> None:
        """Start one admitted worker per entry that needs work, then join them."""
        owners = plan_sibling_renames(entries)
        workers: list[threading.Thread] = []
        try:
            for entry in entries:
                if self.cancelled:
                    break
                if entry.error is not None:
                    self.summary.add("failures")
                    self.audit.failure(entry.error, "Failed to stat entry")
                    continue

                lower_name = lowercase_name(entry.name)
                owner = owners[lower_name]
                if owner is not entry:
                    self.summary.add("conflicts")
                    conflict = ConflictError(
                        f"sibling {owner.name!r} also lowercases to {lower_name!r}; skipped",
                        entry.path,
                    )
                    self.audit.failure(conflict, "Conflict")
                    continue

                if not entry.is_dir and is_lowercase(entry.name):
                    self.summary.add("unchanged")
                    continue

                unit = self._visit_directory if entry.is_dir else self._rename_file
                self.limiter.acquire()
                worker = threading.Thread(
                    target=self._run_unit,
                    args=(unit, root, entry),
                    name="lowername-dir" if entry.is_dir else "lowername-file",
                )
                try:
                    worker.start()
                except BaseException:
                    self.limiter.release()
                    raise
                workers.append(worker)

            for worker in workers:
                worker.join()
        except BaseException as exc:
            # Started workers always finish before this frame unwinds.
            if isinstance(exc, KeyboardInterrupt):
                self.cancel()
            for worker in workers:
                worker.join()
            raise

    def _run_unit(self, unit: Callable[[Path, Entry], None], root: Path, entry: Entry) -> None:
        """Run one worker body, turning unexpected errors into a log line."""
        try:
            unit(root, entry)
        except Exception as exc:
            self.summary.add("failures")
            self.audit.error("Unexpected failure for %s: %s", entry.path, exc)

    def _visit_directory(self, root: Path, entry: Entry) -> None:
        """Worker body for a subdirectory; owns one limiter slot on entry."""
        try:
            listed = self._enter_directory(root, entry)
        finally:
            self.limiter.release()
        if listed is None:
            return
        directory, entries = listed
        self._dispatch_children(root, directory, entries)

    def _enter_directory(self, root: Path, entry: Entry) -> tuple[Path, list[Entry]] | None:
        """Rename the directory itself, then list it under its new path."""
        if self.cancelled:
            return None

        directory = entry.path
        target = directory.with_name(lowercase_name(directory.name))
        if target == directory:
            self.summary.add("unchanged")
        else:
            outcome = self._rename_entry(root, entry, target)
            if not outcome.success:
                return None
            if not self.dry_run:
                directory = target

        try:
            entries = list_entries(directory)
        except ReadError as exc:
            self.summary.add("failures")
            self.audit.failure(NodeFatalError(f"{exc}; skipping its contents", directory), "Failed to list folder")
            return None
        return directory, entries

    def _rename_file(self, root: Path, entry: Entry) -> None:
        """Worker body for a file; owns one limiter slot on entry."""
        try:
            if self.cancelled:
                return
            target = entry.path.with_name(lowercase_name(entry.name))
            self._rename_entry(root, entry, target)
        finally:
            self.limiter.release()

    def _rename_entry(self, root: Path, entry: Entry, target: Path) -> RenameOutcome:
        """Rename one entry, log the outcome, and restore its metadata."""
        if self.dry_run:
            if would_conflict(entry.path, target):
                outcome = RenameOutcome(
                    source=entry.path,
                    target=target,
                    is_dir=entry.is_dir,
                    success=False,
                    error=f"target already exists: {target}",
                    conflict=True,
                )
                self.summary.add("conflicts")
            else:
                outcome = RenameOutcome(
                    source=entry.path,
                    target=lowercase_path(root, entry.path),
                    is_dir=entry.is_dir,
                    success=True,
                    mode_before=entry.mode,
                    dry_run=True,
                )
                self.summary.add("renamed_dirs" if entry.is_dir else "renamed_files")
            self.audit.record(outcome)
            return outcome

        try:
            rename_path(entry.path, target)
        except EntryError as exc:
            conflict = isinstance(exc, ConflictError)
            self.summary.add("conflicts" if conflict else "failures")
            outcome = RenameOutcome(
                source=entry.path,
                target=target,
                is_dir=entry.is_dir,
                success=False,
                error=str(exc),
                conflict=conflict,
            )
            self.audit.record(outcome)
            return outcome

        self.summary.add("renamed_dirs" if entry.is_dir else "renamed_files")
        try:
            mode_after: int | None = self.metadata.get_mode(target)
        except StatError as exc:
            mode_after = None
            self.summary.add("failures")
            self.audit.failure(exc, "Failed to retrieve updated permissions")

        outcome = RenameOutcome(
            source=entry.path,
            target=target,
            is_dir=entry.is_dir,
            success=True,
            mode_before=entry.mode,
            mode_after=mode_after,
            uid=entry.uid if self.preserve_ownership else None,
            gid=entry.gid if self.preserve_ownership else None,
        )
        self.audit.record(outcome)
        if mode_after is not None:
            self._restore_metadata(entry, target, mode_after)
        return outcome

    def _restore_metadata(self, entry: Entry, target: Path, mode_after: int) -> None:
        """Put back permission bits and ownership that changed during rename."""
        kind = "folder" if entry.is_dir else "file"
        if (
            entry.mode is not None
            and not entry.is_symlink
            and stat.S_IMODE(mode_after) != stat.S_IMODE(entry.mode)
        ):
            error = self.metadata.set_permissions(target, entry.mode)
            if error is not None:
                self.summary.add("failures")
                self.audit.error("Failed to restore permissions for %s: %s: %s", kind, target, error)
            else:
                self.audit.info("Restored permissions for %s: %s to %s", kind, target, format_mode(entry.mode))

        if not self.preserve_ownership or not self.metadata.supports_ownership:
            return
        if entry.uid is None or entry.gid is None:
            return
        try:
            current = self.metadata.get_ownership(target)
        except UnsupportedError as exc:
            self.summary.add("failures")
            self.audit.failure(exc, "Failed to retrieve ownership")
            return
        if current == (entry.uid, entry.gid):
            return
        error = self.metadata.set_ownership(target, entry.uid, entry.gid)
        if error is not None:
            self.summary.add("failures")
            self.audit.error("Failed to set ownership for %s: %s: %s", kind, target, error)


__all__ = [
    "LowercaseRenamer",
    "RenameSummary",
    "plan_sibling_renames",
]
