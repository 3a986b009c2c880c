"""Tests for the collision-aware single-entry rename."""

from __future__ import annotations

import errno
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lowername.errors import ConflictError, EntryError
from lowername.fs import rename_path, would_conflict


class RenamePathTests(unittest.TestCase):
    def test_renames_to_free_target(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "Report.PDF"
            source.write_text("pdf\n", encoding="utf-8")
            target = Path(tmp) / "report.pdf"

            rename_path(source, target)

            self.assertEqual(os.listdir(tmp), ["report.pdf"])
            self.assertEqual(target.read_text(encoding="utf-8"), "pdf\n")

    def test_refuses_to_overwrite_different_entry(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "A.txt"
            target = Path(tmp) / "a.txt"
            source.write_text("upper\n", encoding="utf-8")
            target.write_text("lower\n", encoding="utf-8")

            self.assertTrue(would_conflict(source, target))
            with self.assertRaises(ConflictError) as exc_info:
                rename_path(source, target)

            self.assertEqual(exc_info.exception.path, source)
            self.assertEqual(source.read_text(encoding="utf-8"), "upper\n")
            self.assertEqual(target.read_text(encoding="utf-8"), "lower\n")

    def test_hard_link_under_lowercase_name_is_a_conflict(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "Notes.TXT"
            source.write_text("notes\n", encoding="utf-8")
            target = Path(tmp) / "notes.txt"
            os.link(source, target)

            self.assertTrue(would_conflict(source, target))
            with self.assertRaises(ConflictError):
                rename_path(source, target)
            self.assertEqual(sorted(os.listdir(tmp)), ["Notes.TXT", "notes.txt"])

    def test_case_alias_goes_through_temporary_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "Notes.TXT"
            source.write_text("notes\n", encoding="utf-8")
            target = Path(tmp) / "notes.txt"
            renames: list[tuple[str, str]] = []
            real_rename = os.rename

            def recording_rename(src, dst) -> None:
                renames.append((Path(src).name, Path(dst).name))
                real_rename(src, dst)

            with (
                mock.patch("lowername.fs.rename.os.path.lexists", return_value=True),
                mock.patch("lowername.fs.rename._is_case_alias", return_value=True),
                mock.patch("lowername.fs.rename.os.rename", side_effect=recording_rename),
            ):
                self.assertFalse(would_conflict(source, target))
                rename_path(source, target)

            self.assertEqual(len(renames), 2)
            self.assertTrue(renames[0][1].endswith(".tmpcase"))
            self.assertEqual(renames[1], (renames[0][1], "notes.txt"))
            self.assertEqual(os.listdir(tmp), ["notes.txt"])
            self.assertEqual(target.read_text(encoding="utf-8"), "notes\n")

    def test_target_created_after_existence_check_is_not_replaced(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "Late.TXT"
            target = Path(tmp) / "late.txt"
            source.write_text("ours\n", encoding="utf-8")
            target.write_text("theirs\n", encoding="utf-8")

            with mock.patch("lowername.fs.rename.os.path.lexists", return_value=False):
                with self.assertRaises(ConflictError):
                    rename_path(source, target)

            self.assertEqual(source.read_text(encoding="utf-8"), "ours\n")
            self.assertEqual(target.read_text(encoding="utf-8"), "theirs\n")

    def test_symlink_is_moved_as_a_link(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "Link"
            source.symlink_to("missing-target")
            target = Path(tmp) / "link"

            rename_path(source, target)

            self.assertEqual(os.listdir(tmp), ["link"])
            self.assertEqual(os.readlink(target), "missing-target")

    def test_directory_is_renamed_in_place(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "Docs"
            source.mkdir()
            (source / "Inner.TXT").write_text("x\n", encoding="utf-8")
            target = Path(tmp) / "docs"

            rename_path(source, target)

            self.assertEqual(os.listdir(tmp), ["docs"])
            self.assertEqual(os.listdir(target), ["Inner.TXT"])

    def test_filesystem_without_hard_links_falls_back_to_rename(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "Plain.TXT"
            source.write_text("x\n", encoding="utf-8")
            target = Path(tmp) / "plain.txt"

            with mock.patch(
                "lowername.fs.rename.os.link",
                side_effect=PermissionError(errno.EPERM, "Operation not permitted"),
            ):
                rename_path(source, target)

            self.assertEqual(os.listdir(tmp), ["plain.txt"])

    def test_identical_paths_are_a_no_op(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "same.txt"
            source.write_text("x\n", encoding="utf-8")
            rename_path(source, source)
            self.assertTrue(source.exists())
            self.assertFalse(would_conflict(source, source))

    def test_missing_source_raises_entry_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(EntryError) as exc_info:
                rename_path(Path(tmp) / "Gone.txt", Path(tmp) / "gone.txt")
            self.assertNotIsInstance(exc_info.exception, ConflictError)


if __name__ == "__main__":
    unittest.main()
