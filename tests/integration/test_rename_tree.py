"""End-to-end runs of the CLI against real temporary trees."""

from __future__ import annotations

import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lowername import cli
from lowername.errors import EntryError
from lowername.fs.rename import rename_path as real_rename_path


def _tree(root: Path) -> list[str]:
    return sorted(str(path.relative_to(root)) for path in root.rglob("*"))


class RenameTreeIntegrationTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name)
        config_patch = mock.patch("lowername.config.CONFIG_PATH", self.tmp / "config.json")
        config_patch.start()
        self.addCleanup(config_patch.stop)
        self.folder = self.tmp / "Tree"
        self.folder.mkdir()
        self.log_file = self.tmp / "renamer.log"

    def _run(self, *extra: str) -> None:
        argv = ["lowername", "--folder", str(self.folder), "--log-file", str(self.log_file), *extra]
        with mock.patch.object(sys, "argv", argv):
            cli.main()

    def _log_lines(self) -> list[str]:
        return self.log_file.read_text(encoding="utf-8").splitlines()

    def test_mixed_tree_is_fully_lowercased_and_second_run_is_a_no_op(self) -> None:
        (self.folder / "Music" / "Jazz").mkdir(parents=True)
        (self.folder / "Music" / "Jazz" / "Take FIVE.mp3").write_bytes(b"\x01")
        (self.folder / "Music" / "README.md").write_text("m\n", encoding="utf-8")
        (self.folder / ".Hidden").write_text("h\n", encoding="utf-8")
        (self.folder / "already").mkdir()
        (self.folder / "already" / "fine.txt").write_text("f\n", encoding="utf-8")
        os.chmod(self.folder / "Music" / "README.md", 0o640)

        self._run()

        expected = [
            ".hidden",
            "already",
            "already/fine.txt",
            "music",
            "music/jazz",
            "music/jazz/take five.mp3",
            "music/readme.md",
        ]
        self.assertEqual(_tree(self.folder), expected)
        self.assertEqual(oct(os.lstat(self.folder / "music" / "readme.md").st_mode & 0o777), oct(0o640))
        self.assertTrue(self.folder.exists())
        first_run_lines = self._log_lines()
        self.assertEqual(len([line for line in first_run_lines if " Renamed file: " in line]), 3)
        self.assertEqual(len([line for line in first_run_lines if " Renamed folder: " in line]), 2)

        self._run()

        self.assertEqual(_tree(self.folder), expected)
        second_run_lines = self._log_lines()
        self.assertEqual([line for line in second_run_lines if " Renamed file: " in line or " Renamed folder: " in line], [])
        self.assertTrue(second_run_lines[-1].endswith("All files renamed to lowercase."))

    def test_previous_log_is_archived_byte_for_byte(self) -> None:
        previous = b"2024/01/01 00:00:00 Renamed file: A to a\n\xff\xfe tail"
        self.log_file.write_bytes(previous)
        (self.folder / "New.TXT").write_text("n\n", encoding="utf-8")

        self._run()

        archives = [path for path in self.tmp.iterdir() if path.name.startswith("renamer.log_")]
        self.assertEqual(len(archives), 1)
        self.assertRegex(archives[0].name, r"^renamer\.log_\d{14}$")
        self.assertEqual(archives[0].read_bytes(), previous)
        lines = self._log_lines()
        self.assertIn("Archived existing log file:", lines[0])
        self.assertTrue(any(" Renamed file: " in line for line in lines))

    def test_single_failure_still_exits_cleanly(self) -> None:
        for idx in range(10):
            (self.folder / f"Track{idx:02d}.WAV").write_bytes(b"\x00")
        blocked = self.folder / "Track07.WAV"

        def flaky_rename(source: Path, target: Path) -> None:
            if source == blocked:
                raise EntryError("rename failed: Permission denied", source)
            real_rename_path(source, target)

        with mock.patch("lowername.runtime.engine.rename_path", side_effect=flaky_rename):
            self._run()

        names = sorted(os.listdir(self.folder))
        self.assertEqual(len(names), 10)
        self.assertIn("Track07.WAV", names)
        self.assertEqual(len([name for name in names if name == name.lower()]), 9)
        failure_lines = [line for line in self._log_lines() if "Failed to rename file" in line]
        self.assertEqual(len(failure_lines), 1)
        self.assertIn(str(blocked), failure_lines[0])

    def test_dry_run_leaves_tree_untouched(self) -> None:
        (self.folder / "Docs").mkdir()
        (self.folder / "Docs" / "Guide.PDF").write_bytes(b"%PDF")

        self._run("--dry-run")

        self.assertEqual(_tree(self.folder), ["Docs", "Docs/Guide.PDF"])
        self.assertTrue(any("Would rename file:" in line for line in self._log_lines()))


if __name__ == "__main__":
    unittest.main()
