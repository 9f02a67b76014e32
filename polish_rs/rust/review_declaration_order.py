#!/usr/bin/env python3
"""
Review: Declaration order.

Checks that every scope header is already in the layout produced by
fix_declaration_order.py: crate-level attributes, extern crate, then
mod/use grouped by visibility with blank lines between groups.
"""

import sys
from pathlib import Path
from typing import List

from polish_rs.lib.polish_utils import PolishContext, create_parser, read_source, report_simple
from polish_rs.rust.group_declarations import group_declarations, split_lines


def first_difference(before: str, after: str) -> int:
    """1-based line number of the first line that regrouping would change."""
    old_lines = split_lines(before)
    new_lines = split_lines(after)
    for idx, (old, new) in enumerate(zip(old_lines, new_lines), start=1):
        if old != new:
            return idx
    return min(len(old_lines), len(new_lines)) + 1


def check_file(file_path: Path, context: PolishContext) -> List[str]:
    """Check a single file; returns one violation message or none."""
    content = read_source(file_path)
    grouped = group_declarations(content)
    if grouped == content:
        return []
    line_num = first_difference(content, grouped)
    rel_path = context.relative_path(file_path)
    return [f"  {rel_path}:{line_num}: declarations not grouped"]


def main(argv=None):
    parser = create_parser(__doc__)
    args = parser.parse_args(argv)
    context = PolishContext(args)

    files = context.find_files()

    if context.dry_run:
        print(f"Would check {len(files)} file(s) for declaration order")
        return 0

    all_violations = []
    for rust_file in files:
        all_violations.extend(check_file(rust_file, context))

    status = report_simple(not all_violations, "Declaration order", len(all_violations))
    if all_violations:
        print()
        for violation in all_violations:
            print(violation)
        print("\nFix: run fix_declaration_order.py")
    return status


if __name__ == "__main__":
    sys.exit(main())
