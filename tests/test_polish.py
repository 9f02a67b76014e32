from __future__ import annotations

import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from polish_rs import polish
from polish_rs.rust import fix_declaration_order, review_declaration_order

UNGROUPED = "use b;\npub use a;\n\nfn main() {}\n"
GROUPED = "pub use a;\n\nuse b;\n\nfn main() {}\n"


class CrateCase(unittest.TestCase):
    """A temporary single-crate repository."""

    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name).resolve()
        self.manifest = self.write("Cargo.toml", '[package]\nname = "demo"\n\n[dependencies]\nb = "1"\na = "1"\n')
        self.lib_rs = self.write("src/lib.rs", UNGROUPED)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


class TestPolishDriver(CrateCase):
    def setUp(self) -> None:
        super().setUp()
        patches = {
            "is_git_repo": mock.patch.object(polish, "is_git_repo", return_value=True),
            "get_git_root": mock.patch.object(polish, "get_git_root", return_value=self.root),
            "get_changed_files": mock.patch.object(polish, "get_changed_files"),
            "run_cargo_fmt": mock.patch.object(polish, "run_cargo_fmt"),
            "run_cargo_clippy": mock.patch.object(polish, "run_cargo_clippy"),
        }
        self.mocks = {}
        for name, patcher in patches.items():
            self.mocks[name] = patcher.start()
            self.addCleanup(patcher.stop)

    def run_main(self, argv) -> int:
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
            return polish.main(argv)

    def test_changed_files_grouped_then_checked(self) -> None:
        self.mocks["get_changed_files"].return_value = [self.lib_rs, self.manifest]
        self.assertEqual(self.run_main([]), 0)
        self.assertEqual(self.lib_rs.read_text(encoding="utf-8"), GROUPED)
        self.assertIn('a = "1"\nb = "1"', self.manifest.read_text(encoding="utf-8"))
        self.mocks["run_cargo_fmt"].assert_called_once_with(self.root, {"demo"})
        self.mocks["run_cargo_clippy"].assert_called_once_with(self.root, {"demo"})

    def test_explicit_files(self) -> None:
        self.assertEqual(self.run_main(["--files", str(self.lib_rs)]), 0)
        self.mocks["get_changed_files"].assert_not_called()
        self.assertEqual(self.lib_rs.read_text(encoding="utf-8"), GROUPED)

    def test_nothing_changed(self) -> None:
        self.mocks["get_changed_files"].return_value = []
        self.assertEqual(self.run_main([]), 0)
        self.mocks["run_cargo_fmt"].assert_not_called()

    def test_only_manifest_changed_skips_cargo(self) -> None:
        self.mocks["get_changed_files"].return_value = [self.manifest]
        self.assertEqual(self.run_main([]), 0)
        self.mocks["run_cargo_fmt"].assert_not_called()
        self.mocks["run_cargo_clippy"].assert_not_called()

    def test_no_grouping_and_skip_flags(self) -> None:
        self.mocks["get_changed_files"].return_value = [self.lib_rs]
        self.assertEqual(self.run_main(["--no-grouping", "--no-fmt", "--no-clippy"]), 0)
        self.assertEqual(self.lib_rs.read_text(encoding="utf-8"), UNGROUPED)
        self.mocks["run_cargo_fmt"].assert_not_called()
        self.mocks["run_cargo_clippy"].assert_not_called()

    def test_dry_run_writes_nothing(self) -> None:
        self.mocks["get_changed_files"].return_value = [self.lib_rs]
        self.assertEqual(self.run_main(["--dry-run"]), 0)
        self.assertEqual(self.lib_rs.read_text(encoding="utf-8"), UNGROUPED)
        self.mocks["run_cargo_fmt"].assert_not_called()

    def test_cargo_failure_exits_nonzero(self) -> None:
        self.mocks["get_changed_files"].return_value = [self.lib_rs]
        self.mocks["run_cargo_fmt"].side_effect = RuntimeError("cargo fmt failed")
        self.assertEqual(self.run_main([]), 1)
        self.mocks["run_cargo_clippy"].assert_not_called()

    def test_not_a_git_repo(self) -> None:
        self.mocks["is_git_repo"].return_value = False
        self.assertEqual(self.run_main([]), 1)


class TestFixAndReview(CrateCase):
    def setUp(self) -> None:
        super().setUp()
        self.old_cwd = os.getcwd()
        os.chdir(self.root)

    def tearDown(self) -> None:
        os.chdir(self.old_cwd)
        super().tearDown()

    def test_review_then_fix(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(review_declaration_order.main([]), 1)
        self.assertIn("src/lib.rs:1: declarations not grouped", out.getvalue())

        with redirect_stdout(io.StringIO()):
            self.assertEqual(fix_declaration_order.main(["--file", "src/lib.rs"]), 0)
        self.assertEqual(self.lib_rs.read_text(encoding="utf-8"), GROUPED)

        with redirect_stdout(io.StringIO()):
            self.assertEqual(review_declaration_order.main([]), 0)

    def test_fix_dry_run(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(fix_declaration_order.main(["--dry-run"]), 0)
        self.assertIn("Would fix 1 files", out.getvalue())
        self.assertEqual(self.lib_rs.read_text(encoding="utf-8"), UNGROUPED)

    def test_first_difference(self) -> None:
        self.assertEqual(review_declaration_order.first_difference("a\nb\n", "a\nc\n"), 2)
        self.assertEqual(review_declaration_order.first_difference("a\n", "a\nb\n"), 2)


if __name__ == "__main__":
    unittest.main()
