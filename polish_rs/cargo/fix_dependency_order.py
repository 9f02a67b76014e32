#!/usr/bin/env python3
"""
Fix: Dependency order in Cargo.toml.

Inside every dependency section ([dependencies], [dev-dependencies],
[build-dependencies], and their [workspace.*] / [target.<cfg>.*] forms):
1. local dependencies (declared with `path =`)
2. [blank line]
3. all other dependencies

Each group is sorted case-insensitively by dependency name. Comment lines
directly above an entry move with it. Everything outside these sections is
left alone.
"""

import re
import sys
from pathlib import Path
from typing import List, Tuple

from polish_rs.lib.polish_utils import PolishContext, create_parser, rewrite_file

DEPENDENCY_SECTION_RE = re.compile(
    r'^\[(?:workspace\.|target\..+\.)?(?:dev-|build-)?dependencies\]$'
)


def is_section_header(trimmed: str) -> bool:
    return trimmed.startswith('[') and trimmed.endswith(']')


def is_dependency_section(trimmed: str) -> bool:
    return DEPENDENCY_SECTION_RE.match(trimmed) is not None


def is_local_dependency(dep: str) -> bool:
    return 'path =' in dep or 'path=' in dep


def extract_dep_name(dep: str) -> str:
    """Name of a dependency entry: the key left of the first `=`."""
    for line in dep.split('\n'):
        trimmed = line.strip()
        if trimmed.startswith('#'):
            continue
        if '=' in trimmed:
            return trimmed.split('=', 1)[0].strip()
    return ''


def collect_dependencies(lines: List[str], start: int) -> Tuple[List[str], int]:
    """
    Collect the body of a dependency section.

    Stops at the next section header; blank lines directly in front of that
    header are left outside the body.
    """
    deps = []
    i = start

    while i < len(lines):
        trimmed = lines[i].strip()

        if is_section_header(trimmed):
            break

        if i > start and not trimmed:
            lookahead = i + 1
            while lookahead < len(lines) and not lines[lookahead].strip():
                lookahead += 1
            if lookahead < len(lines) and is_section_header(lines[lookahead].strip()):
                break

        deps.append(lines[i])
        i += 1

    return deps, i


def organize_dependency_group(deps: List[str]) -> List[str]:
    """Split entries into local and external groups and sort each by name."""
    local_deps = []
    external_deps = []
    current_dep = []
    pending_comments = []
    is_multiline = False

    def finish_current():
        if not current_dep:
            return
        dep_text = '\n'.join(current_dep)
        if is_local_dependency(dep_text):
            local_deps.append(dep_text)
        else:
            external_deps.append(dep_text)
        current_dep.clear()

    for line in deps:
        trimmed = line.strip()

        if not trimmed:
            continue

        if trimmed.startswith('#'):
            pending_comments.append(line)
            continue

        if not is_multiline and '=' in trimmed:
            finish_current()
            current_dep.extend(pending_comments)
            pending_comments.clear()
            current_dep.append(line)
            # Inline table continued on the next lines
            is_multiline = '{' in trimmed and '}' not in trimmed
        else:
            current_dep.append(line)
            if is_multiline and '}' in trimmed:
                is_multiline = False

    finish_current()

    local_deps.sort(key=lambda d: extract_dep_name(d).lower())
    external_deps.sort(key=lambda d: extract_dep_name(d).lower())

    result = list(local_deps)
    if local_deps and external_deps:
        result.append('')
    result.extend(external_deps)
    # Trailing comments with no entry below them stay at the end
    result.extend(pending_comments)
    return result


def organize_toml(content: str) -> str:
    """Sort the dependency sections of a Cargo.toml; other lines are kept as-is."""
    lines = content.splitlines()
    result = []
    i = 0

    while i < len(lines):
        line = lines[i]
        if is_dependency_section(line.strip()):
            result.append(line)
            deps, i = collect_dependencies(lines, i + 1)
            result.extend(organize_dependency_group(deps))
        else:
            result.append(line)
            i += 1

    return '\n'.join(result) + '\n'


def organize_dependencies(file_path: Path, dry_run: bool = False) -> bool:
    """Sort dependencies in one Cargo.toml. Returns True if it changed (or would)."""
    return rewrite_file(file_path, organize_toml, dry_run)


def find_manifests(repo_root: Path) -> List[Path]:
    """All Cargo.toml files below the repository root, build output excluded."""
    return sorted(
        path for path in repo_root.rglob("Cargo.toml")
        if 'target' not in path.relative_to(repo_root).parts
    )


def main(argv=None):
    parser = create_parser(__doc__)
    args = parser.parse_args(argv)
    context = PolishContext(args)

    if context.single_file:
        file_path = Path(context.single_file)
        if not file_path.is_absolute():
            file_path = context.repo_root / file_path
        if not file_path.exists():
            print(f"Error: File not found: {file_path}", file=sys.stderr)
            return 1
        manifests = [file_path]
    else:
        manifests = find_manifests(context.repo_root)

    fixed = []
    for manifest in manifests:
        if organize_dependencies(manifest, context.dry_run):
            fixed.append(manifest)

    if not fixed:
        print(f"✓ Dependency order correct in {len(manifests)} manifest(s)")
        return 0

    print(f"{'Would fix' if context.dry_run else 'Fixed'} {len(fixed)} manifest(s):")
    for manifest in fixed:
        print(f"  {context.relative_path(manifest)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
