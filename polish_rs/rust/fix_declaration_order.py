#!/usr/bin/env python3
"""
Fix: Declaration order and blank lines.

Regroups the header of every scope (the file and each `mod name { ... }`
body) into:
1. crate-level attributes (#![feature], #![expect], #![warn], #![recursion_limit])
2. [blank line]
3. extern crate
4. [blank line]
5. mod / use declarations, by visibility: pub, pub(crate), pub(super),
   pub(in path), private; mod before use for each visibility

Declarations with comments or attributes attached stay with them and come
first in their group. Code after the header is never moved.
"""

import sys
from pathlib import Path

from polish_rs.lib.polish_utils import PolishContext, create_parser, rewrite_file
from polish_rs.rust.group_declarations import group_declarations


def group_file_declarations(file_path: Path, dry_run: bool = False) -> bool:
    """Regroup declarations in a single file. Returns True if it changed (or would)."""
    return rewrite_file(file_path, group_declarations, dry_run)


def main(argv=None):
    parser = create_parser(__doc__)
    args = parser.parse_args(argv)
    context = PolishContext(args)

    files = context.find_files()
    if context.single_file:
        rel_path = context.relative_path(files[0])
        print(f"{'Testing' if context.dry_run else 'Fixing'}: {rel_path}")

    fixed = []
    already_correct = []
    for rust_file in files:
        if group_file_declarations(rust_file, context.dry_run):
            fixed.append(rust_file)
        else:
            already_correct.append(rust_file)

    if fixed:
        print(f"{'Would fix' if context.dry_run else 'Fixed'} {len(fixed)} files:")
        for f in fixed[:10]:
            print(f"  {context.relative_path(f)}")
        if len(fixed) > 10:
            print(f"  ... and {len(fixed) - 10} more")

    if already_correct:
        print(f"\n○ {len(already_correct)} files already correct")

    return 0


if __name__ == "__main__":
    sys.exit(main())
