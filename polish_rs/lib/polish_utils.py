"""
Common utilities for the polish scripts.

Provides repository discovery, git change detection, file classification,
workspace member lookup, safe file writes, and standardized argument
parsing and reporting.
"""

import argparse
import os
import re
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

DEFAULT_SEARCH_DIRS = ("src", "tests", "benches")

RUST = 'rust'
CARGO_TOML = 'cargo_toml'

PACKAGE_NAME_RE = re.compile(r'^\s*name\s*=\s*"([^"]+)"')


def get_repo_root(start: Optional[Path] = None) -> Path:
    """Find the repository root (where Cargo.toml is) from `start` or the cwd."""
    current = Path(start or Path.cwd()).resolve()
    while True:
        if (current / "Cargo.toml").exists():
            return current
        if current == current.parent:
            break
        current = current.parent
    raise RuntimeError("Could not find repository root (Cargo.toml)")


def create_parser(description: str) -> argparse.ArgumentParser:
    """
    Create standardized argument parser for fix and review scripts.

    Args:
        description: Description of what the script does

    Returns:
        ArgumentParser with --file and --dry-run options
    """
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        '--file',
        type=str,
        help='Specific file to process (instead of searching directories)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be changed without writing files'
    )
    return parser


def find_rust_files(
    directories: List[Path],
    single_file: Optional[str] = None,
    repo_root: Optional[Path] = None
) -> List[Path]:
    """
    Find Rust files to process.

    Args:
        directories: List of directories to search recursively
        single_file: If provided, process only this file
        repo_root: Repository root (for resolving relative paths)

    Returns:
        Sorted list of Rust files
    """
    if repo_root is None:
        repo_root = get_repo_root()

    if single_file:
        file_path = Path(single_file)
        if not file_path.is_absolute():
            file_path = repo_root / file_path
        if not file_path.exists():
            print(f"Error: File not found: {file_path}", file=sys.stderr)
            sys.exit(1)
        if file_path.suffix != '.rs':
            print(f"Error: Not a Rust file: {file_path}", file=sys.stderr)
            sys.exit(1)
        return [file_path]

    rust_files = []
    for directory in directories:
        if not directory.exists():
            continue
        rust_files.extend(directory.rglob("*.rs"))

    return sorted(rust_files)


class PolishContext:
    """Context object for fix and review runs."""

    def __init__(self, args: argparse.Namespace, repo_root: Optional[Path] = None):
        self.args = args
        self.repo_root = repo_root or get_repo_root()
        self.dry_run = args.dry_run
        self.single_file = args.file

    def search_dirs(self) -> List[Path]:
        return [self.repo_root / name for name in DEFAULT_SEARCH_DIRS]

    def find_files(self, directories: Optional[List[Path]] = None) -> List[Path]:
        """Find files to process based on context."""
        return find_rust_files(
            directories if directories is not None else self.search_dirs(),
            single_file=self.single_file,
            repo_root=self.repo_root
        )

    def relative_path(self, file_path: Path) -> Path:
        """Get relative path from repo root."""
        try:
            return file_path.relative_to(self.repo_root)
        except ValueError:
            return file_path


def report_simple(
    passed: bool,
    rule_name: str,
    violation_count: int = 0,
    rule_reference: str = ""
) -> int:
    """
    Simple pass/fail report.

    Returns:
        Exit code (0 for pass, 1 for fail)
    """
    if passed:
        print(f"✓ {rule_name}: PASS")
        return 0
    ref = f" ({rule_reference})" if rule_reference else ""
    print(f"✗ {rule_name}: {violation_count} violation(s){ref}")
    return 1


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------

def read_source(file_path: Path) -> str:
    with open(file_path, 'r', encoding='utf-8') as f:
        return f.read()


def write_file_atomically(file_path: Path, content: str):
    """Write content next to the target and rename it into place."""
    file_path = Path(file_path)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(file_path.parent), prefix=f".{file_path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
            f.write(content)
        if file_path.exists():
            os.chmod(tmp_name, file_path.stat().st_mode & 0o7777)
        os.replace(tmp_name, file_path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def rewrite_file(file_path: Path, transform, dry_run: bool = False) -> bool:
    """
    Apply a text transform to a file.

    Returns:
        True if the file changed (or would change in dry-run mode)
    """
    content = read_source(file_path)
    new_content = transform(content)
    if new_content == content:
        return False
    if not dry_run:
        write_file_atomically(file_path, new_content)
    return True


# ---------------------------------------------------------------------------
# Git and workspace discovery
# ---------------------------------------------------------------------------

def run_git(args: List[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        ['git'] + args,
        cwd=cwd,
        capture_output=True,
        text=True
    )


def is_git_repo(cwd: Optional[Path] = None) -> bool:
    return run_git(['rev-parse', '--git-dir'], cwd=cwd).returncode == 0


def get_git_root(cwd: Optional[Path] = None) -> Path:
    result = run_git(['rev-parse', '--show-toplevel'], cwd=cwd)
    if result.returncode != 0:
        raise RuntimeError("Failed to get git root")
    return Path(result.stdout.strip())


def get_changed_files(git_root: Path) -> List[Path]:
    """Files changed since the previous commit, deleted files excluded."""
    # For renames --name-only reports the new name
    result = run_git(['diff', '--diff-filter=d', '--name-only', 'HEAD~1'], cwd=git_root)
    if result.returncode != 0:
        raise RuntimeError(f"Failed to get changed files: {result.stderr.strip()}")
    return [git_root / line.strip() for line in result.stdout.splitlines() if line.strip()]


def classify_files(paths: Iterable[Path]) -> List[Tuple[Path, str]]:
    """Pair each path with its file type; anything but Rust sources and manifests is ignored."""
    classified = []
    for path in paths:
        path = Path(path)
        if path.name == "Cargo.toml":
            classified.append((path, CARGO_TOML))
        elif path.suffix == '.rs':
            classified.append((path, RUST))
    return classified


def read_package_name(cargo_toml: Path) -> Optional[str]:
    """The `[package] name` of a manifest, or None (e.g. for a virtual workspace)."""
    in_package = False
    for line in read_source(cargo_toml).splitlines():
        stripped = line.strip()
        if stripped.startswith('['):
            in_package = stripped == '[package]'
            continue
        if in_package:
            match = PACKAGE_NAME_RE.match(stripped)
            if match:
                return match.group(1)
    return None


def find_project_for_file(git_root: Path, file_path: Path) -> str:
    """Workspace member owning a file: the nearest Cargo.toml walking up from it."""
    git_root = Path(git_root).resolve()
    full_path = (git_root / file_path).resolve()
    current = full_path.parent if full_path.is_file() else full_path

    while True:
        cargo_toml = current / "Cargo.toml"
        if cargo_toml.exists():
            return read_package_name(cargo_toml) or current.name
        if current == git_root or current == current.parent:
            break
        current = current.parent

    raise RuntimeError(f"No Cargo.toml between {file_path} and the git root {git_root}")


def find_affected_projects(git_root: Path, changed_files: Iterable[Path]) -> Set[str]:
    affected = set()
    for changed_file in changed_files:
        if Path(changed_file).suffix != '.rs':
            continue
        affected.add(find_project_for_file(git_root, changed_file))
    return affected
