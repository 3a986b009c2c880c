"""Command-line front door for lowername.

Parses CLI options, opens the audit log, and runs the recursive renamer.
Fatal startup problems exit non-zero; per-entry failures only reach the log.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from .config import RenamerDefaults, load_defaults, save_defaults
from .errors import FatalStartupError
from .runtime import AuditLog, ConcurrencyLimiter, LowercaseRenamer

INTERRUPTED_EXIT_STATUS = 130


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser(defaults: RenamerDefaults) -> argparse.ArgumentParser:
    """Build the argument parser with persisted defaults filled in."""
    parser = argparse.ArgumentParser(
        description="Recursively rename every file and folder below a directory to lowercase."
    )
    parser.add_argument("--folder", required=True, help="Path to the folder containing the files.")
    parser.add_argument(
        "--max-goroutines",
        "--max-workers",
        dest="max_workers",
        type=_positive_int,
        default=defaults.max_workers,
        help=f"Maximum number of simultaneous rename operations (default: {defaults.max_workers}).",
    )
    parser.add_argument(
        "--log-file",
        default=defaults.log_file,
        help=f"Path to the log file (default: {defaults.log_file}).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Also write log lines to the console.")
    parser.add_argument("--dry-run", action="store_true", help="Log what would be renamed without renaming.")
    parser.add_argument(
        "--no-ownership",
        dest="preserve_ownership",
        action="store_false",
        default=defaults.preserve_ownership,
        help="Do not restore owner UID/GID after renaming.",
    )
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Remember --max-goroutines, --log-file and --no-ownership for later runs.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Parse CLI arguments and lowercase the tree below ``--folder``.

    The root folder is checked before the log is touched, so a mistyped path
    never archives the previous log. ``argv`` defaults to ``sys.argv[1:]``.
    """
    parser = build_parser(load_defaults())
    args = parser.parse_args(argv)

    if not args.folder:
        parser.error("Please provide the path to the folder using the '--folder' flag")
    folder = Path(args.folder)
    if not folder.is_dir():
        raise SystemExit(f"Folder not found: {folder}")

    if args.save_defaults:
        save_defaults(
            RenamerDefaults(
                max_workers=args.max_workers,
                log_file=args.log_file,
                preserve_ownership=args.preserve_ownership,
            )
        )

    try:
        audit = AuditLog.open(Path(args.log_file), verbose=args.verbose)
    except FatalStartupError as exc:
        raise SystemExit(str(exc)) from exc

    renamer = LowercaseRenamer(
        audit,
        limiter=ConcurrencyLimiter(args.max_workers),
        preserve_ownership=args.preserve_ownership,
        dry_run=args.dry_run,
    )
    try:
        renamer.run(folder)
    except FatalStartupError as exc:
        audit.failure(exc, "Fatal")
        raise SystemExit(str(exc)) from exc
    except KeyboardInterrupt:
        audit.error("Interrupted; %s", renamer.summary.describe())
        raise SystemExit(INTERRUPTED_EXIT_STATUS) from None
    finally:
        audit.close()


if __name__ == "__main__":
    main()
