#!/usr/bin/env python3
"""
Format and lint the Rust code changed in a git repository.

Steps:
1. Regroup declarations in changed .rs files and sort dependencies in
   changed Cargo.toml files
2. cargo fmt on the affected workspace members
3. cargo clippy (all targets, warnings denied) on the same members

Changed files come from `git diff HEAD~1` unless --files is given.
"""

import argparse
import sys
from pathlib import Path

from polish_rs.cargo.fix_dependency_order import organize_dependencies
from polish_rs.cargo_runner import run_cargo_clippy, run_cargo_fmt
from polish_rs.lib.polish_utils import (
    CARGO_TOML,
    RUST,
    classify_files,
    find_affected_projects,
    get_changed_files,
    get_git_root,
    is_git_repo,
)
from polish_rs.rust.fix_declaration_order import group_file_declarations


def create_polish_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='polish-rs',
        description='Format and lint Rust code in git repository'
    )
    parser.add_argument('--no-grouping', action='store_true',
                        help='Skip grouping declarations')
    parser.add_argument('--no-fmt', action='store_true',
                        help='Skip running cargo fmt')
    parser.add_argument('--no-clippy', action='store_true',
                        help='Skip running cargo clippy')
    parser.add_argument('--files', nargs='+', type=Path, default=[],
                        help='Process specific files instead of using git to detect changes')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show which files grouping would change; write nothing, skip cargo')
    return parser


def group_files(files_to_process, dry_run: bool = False):
    """Regroup Rust files and sort manifests."""
    for file_path, file_type in files_to_process:
        if file_type == RUST:
            changed = group_file_declarations(file_path, dry_run)
        elif file_type == CARGO_TOML:
            changed = organize_dependencies(file_path, dry_run)
        else:
            continue

        if changed:
            print(f"✓ {'Would group' if dry_run else 'Grouped'}: {file_path}")
        else:
            print(f"○ Already grouped: {file_path}")


def polish(args) -> int:
    if not is_git_repo():
        raise RuntimeError("Not in a git repository")

    git_root = get_git_root()
    print(f"Git root: {git_root}")

    if args.files:
        print(f"Processing specified files: {[str(f) for f in args.files]}")
        files_to_process = classify_files(f.resolve() for f in args.files)
    else:
        changed = get_changed_files(git_root)
        if not changed:
            print("No files changed in current commit")
            return 0
        print(f"Changed files: {[str(f) for f in changed]}")
        files_to_process = classify_files(changed)

    if not args.no_grouping:
        group_files(files_to_process, args.dry_run)

    if args.dry_run:
        return 0

    rust_files = [path for path, file_type in files_to_process if file_type == RUST]
    if not rust_files:
        print("No Rust files to format/lint")
        return 0

    members = find_affected_projects(git_root, rust_files)
    if not members:
        print("No Rust workspace members affected")
        return 0

    print(f"Affected workspace members: {sorted(members)}")

    if not args.no_fmt:
        run_cargo_fmt(git_root, members)

    if not args.no_clippy:
        run_cargo_clippy(git_root, members)

    print("✓ All checks passed!")
    return 0


def main(argv=None):
    parser = create_polish_parser()
    args = parser.parse_args(argv)

    try:
        return polish(args)
    except (RuntimeError, OSError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
