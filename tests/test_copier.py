from __future__ import annotations

from pathlib import Path
import os
import tempfile
import unittest

from svngrab.config import ConflictPolicy, SymlinkPolicy
from svngrab.copier import CopyOptions, copy_tree, ignore_predicate
from svngrab.errors import CopyFailed, InvalidIgnorePattern


class CopyTreeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.src = self.root / "src"
        (self.src / ".svn").mkdir(parents=True)
        (self.src / ".svn" / "entries").write_text("meta")
        (self.src / "lib").mkdir()
        (self.src / "lib" / "a.txt").write_text("a")
        (self.src / "README").write_text("readme")
        self.dst = self.root / "dst"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_ignore_pattern_skips_subtree(self) -> None:
        copy_tree(self.src, self.dst, CopyOptions(skip=ignore_predicate([r"\.svn$"])))
        self.assertFalse((self.dst / ".svn").exists())
        self.assertEqual((self.dst / "lib" / "a.txt").read_text(), "a")
        self.assertEqual((self.dst / "README").read_text(), "readme")

    def test_ignore_pattern_is_searched_in_full_path(self) -> None:
        copy_tree(self.src, self.dst, CopyOptions(skip=ignore_predicate([r"/lib$"])))
        self.assertFalse((self.dst / "lib").exists())
        self.assertTrue((self.dst / "README").exists())

    def test_invalid_pattern(self) -> None:
        with self.assertRaises(InvalidIgnorePattern) as ctx:
            ignore_predicate(["ok", "(unclosed"])
        self.assertEqual(ctx.exception.subject, "(unclosed")
        self.assertEqual(ctx.exception.exit_code, 100)

    def _existing_destination(self) -> None:
        (self.dst / "lib").mkdir(parents=True)
        (self.dst / "lib" / "a.txt").write_text("old")
        (self.dst / "stale.txt").write_text("stale")

    def test_merge_overwrites_files_and_keeps_extras(self) -> None:
        self._existing_destination()
        copy_tree(self.src, self.dst, CopyOptions(on_dir_conflict=ConflictPolicy.MERGE))
        self.assertEqual((self.dst / "lib" / "a.txt").read_text(), "a")
        self.assertTrue((self.dst / "stale.txt").exists())

    def test_replace_removes_previous_content(self) -> None:
        self._existing_destination()
        copy_tree(self.src, self.dst, CopyOptions(on_dir_conflict=ConflictPolicy.REPLACE))
        self.assertEqual((self.dst / "lib" / "a.txt").read_text(), "a")
        self.assertFalse((self.dst / "stale.txt").exists())

    def test_untouchable_leaves_destination_alone(self) -> None:
        self._existing_destination()
        copy_tree(self.src, self.dst, CopyOptions(on_dir_conflict=ConflictPolicy.UNTOUCHABLE))
        self.assertEqual((self.dst / "lib" / "a.txt").read_text(), "old")
        self.assertFalse((self.dst / "README").exists())

    def test_symlink_policies(self) -> None:
        os.symlink("README", self.src / "link")
        os.symlink("lib", self.src / "dirlink")

        copy_tree(self.src, self.root / "skip", CopyOptions(on_symlink=SymlinkPolicy.SKIP))
        self.assertFalse(os.path.lexists(self.root / "skip" / "link"))

        copy_tree(self.src, self.root / "shallow", CopyOptions(on_symlink=SymlinkPolicy.SHALLOW))
        self.assertTrue((self.root / "shallow" / "link").is_symlink())
        self.assertEqual(os.readlink(self.root / "shallow" / "link"), "README")

        copy_tree(self.src, self.root / "deep", CopyOptions(on_symlink=SymlinkPolicy.DEEP))
        self.assertFalse((self.root / "deep" / "link").is_symlink())
        self.assertEqual((self.root / "deep" / "link").read_text(), "readme")
        self.assertEqual((self.root / "deep" / "dirlink" / "a.txt").read_text(), "a")

    def test_deep_symlink_loop_fails(self) -> None:
        os.symlink("..", self.src / "lib" / "up")
        with self.assertRaises(CopyFailed):
            copy_tree(self.src, self.dst, CopyOptions(on_symlink=SymlinkPolicy.DEEP))

    def test_missing_source(self) -> None:
        with self.assertRaises(CopyFailed) as ctx:
            copy_tree(self.root / "missing", self.dst)
        self.assertEqual(ctx.exception.exit_code, 102)

    def test_single_file(self) -> None:
        copy_tree(self.src / "README", self.root / "out" / "README.txt")
        self.assertEqual((self.root / "out" / "README.txt").read_text(), "readme")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
