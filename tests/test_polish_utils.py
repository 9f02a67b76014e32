from __future__ import annotations

import os
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from polish_rs.cargo_runner import build_cargo_command, run_cargo, run_cargo_clippy
from polish_rs.lib.polish_utils import (
    CARGO_TOML,
    RUST,
    classify_files,
    find_affected_projects,
    find_project_for_file,
    get_changed_files,
    get_git_root,
    get_repo_root,
    is_git_repo,
    read_package_name,
    rewrite_file,
    write_file_atomically,
)


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TempTreeCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name).resolve()

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def write(self, relative: str, content: str = "") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


class TestClassifyFiles(unittest.TestCase):
    def test_keeps_rust_and_manifests(self) -> None:
        paths = [Path("crates/a/Cargo.toml"), Path("src/lib.rs"), Path("README.md"), Path("Cargo.lock")]
        self.assertEqual(
            classify_files(paths),
            [(Path("crates/a/Cargo.toml"), CARGO_TOML), (Path("src/lib.rs"), RUST)],
        )


class TestWorkspaceLookup(TempTreeCase):
    def test_package_name_from_manifest(self) -> None:
        self.write("Cargo.toml", '[workspace]\nmembers = ["crates/foo"]\n')
        self.write("crates/foo/Cargo.toml", '[package]\nname = "foo-pkg"\nversion = "0.1.0"\n')
        source = self.write("crates/foo/src/lib.rs")
        self.assertEqual(find_project_for_file(self.root, source), "foo-pkg")
        self.assertEqual(find_project_for_file(self.root, Path("crates/foo/src/lib.rs")), "foo-pkg")

    def test_directory_name_without_package(self) -> None:
        self.write("bar/Cargo.toml", "[workspace]\n")
        source = self.write("bar/src/main.rs")
        self.assertEqual(find_project_for_file(self.root, source), "bar")

    def test_no_manifest_raises(self) -> None:
        source = self.write("loose/src/lib.rs")
        with self.assertRaises(RuntimeError):
            find_project_for_file(self.root, source)

    def test_read_package_name_only_from_package_table(self) -> None:
        manifest = self.write(
            "Cargo.toml",
            '[dependencies]\nname = "not-this"\n\n[package]\nname = "real"\n',
        )
        self.assertEqual(read_package_name(manifest), "real")
        virtual = self.write("ws/Cargo.toml", '[workspace]\nmembers = []\n')
        self.assertIsNone(read_package_name(virtual))

    def test_affected_projects_ignores_manifests(self) -> None:
        self.write("a/Cargo.toml", '[package]\nname = "a"\n')
        self.write("b/Cargo.toml", '[package]\nname = "b"\n')
        changed = [
            self.write("a/src/lib.rs"),
            self.write("a/src/other.rs"),
            self.write("b/Cargo.toml", '[package]\nname = "b"\n'),
        ]
        self.assertEqual(find_affected_projects(self.root, changed), {"a"})

    def test_get_repo_root_walks_up(self) -> None:
        self.write("Cargo.toml", "[workspace]\n")
        nested = self.root / "src" / "deep"
        nested.mkdir(parents=True)
        self.assertEqual(get_repo_root(nested), self.root)


class TestFileWrites(TempTreeCase):
    def test_atomic_write_replaces_content(self) -> None:
        target = self.write("src/lib.rs", "old\n")
        write_file_atomically(target, "new\n")
        self.assertEqual(target.read_text(encoding="utf-8"), "new\n")
        self.assertEqual(os.listdir(target.parent), ["lib.rs"])

    def test_rewrite_file_dry_run(self) -> None:
        target = self.write("src/lib.rs", "old\n")
        self.assertTrue(rewrite_file(target, str.upper, dry_run=True))
        self.assertEqual(target.read_text(encoding="utf-8"), "old\n")
        self.assertTrue(rewrite_file(target, str.upper))
        self.assertEqual(target.read_text(encoding="utf-8"), "OLD\n")
        self.assertFalse(rewrite_file(target, str.upper))


class TestGit(unittest.TestCase):
    @mock.patch("polish_rs.lib.polish_utils.subprocess.run")
    def test_changed_files_are_rooted(self, run) -> None:
        run.return_value = completed(stdout="src/lib.rs\n\nCargo.toml\n")
        root = Path("/repo")
        self.assertEqual(get_changed_files(root), [root / "src/lib.rs", root / "Cargo.toml"])
        cmd = run.call_args[0][0]
        self.assertEqual(cmd, ["git", "diff", "--diff-filter=d", "--name-only", "HEAD~1"])
        self.assertEqual(run.call_args[1]["cwd"], root)

    @mock.patch("polish_rs.lib.polish_utils.subprocess.run")
    def test_changed_files_failure(self, run) -> None:
        run.return_value = completed(returncode=128, stderr="fatal: bad revision 'HEAD~1'")
        with self.assertRaises(RuntimeError):
            get_changed_files(Path("/repo"))

    @mock.patch("polish_rs.lib.polish_utils.subprocess.run")
    def test_git_root_and_repo_check(self, run) -> None:
        run.return_value = completed(stdout="/repo\n")
        self.assertTrue(is_git_repo())
        self.assertEqual(get_git_root(), Path("/repo"))
        run.return_value = completed(returncode=128)
        self.assertFalse(is_git_repo())
        with self.assertRaises(RuntimeError):
            get_git_root()


class TestCargoRunner(unittest.TestCase):
    def test_members_sorted(self) -> None:
        self.assertEqual(
            build_cargo_command("clippy", {"b", "a"}, ["--all-targets", "--", "-D", "warnings"]),
            ["cargo", "clippy", "-p", "a", "-p", "b", "--all-targets", "--", "-D", "warnings"],
        )
        self.assertEqual(build_cargo_command("fmt", ["x"]), ["cargo", "fmt", "-p", "x"])

    @mock.patch("polish_rs.cargo_runner.subprocess.run")
    def test_failure_raises(self, run) -> None:
        run.return_value = completed(returncode=101)
        with self.assertRaises(RuntimeError):
            run_cargo(["cargo", "fmt"], Path("/repo"), "cargo fmt failed")

    @mock.patch("polish_rs.cargo_runner.subprocess.run")
    def test_clippy_runs_in_git_root(self, run) -> None:
        run.return_value = completed()
        run_cargo_clippy(Path("/repo"), {"core"})
        run.assert_called_once_with(
            ["cargo", "clippy", "-p", "core", "--all-targets", "--", "-D", "warnings"],
            cwd=Path("/repo"),
        )


if __name__ == "__main__":
    unittest.main()
