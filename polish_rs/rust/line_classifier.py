"""
Classify single trimmed lines of Rust source for declaration grouping.

Classification is prefix based and total: anything that is not recognized
comes back as OTHER_CODE. `use`/`mod` keywords inside macros or string
literals are not detected and get classified like real declarations.
"""

import re
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional, Tuple

from polish_rs.rust.code_scanner import strip_code

BLANK = 'blank'
COMMENT = 'comment'
ITEM_ATTRIBUTE = 'item_attribute'
GLOBAL_ATTRIBUTE = 'global_attribute'
EXTERN_CRATE = 'extern_crate'
DECLARATION = 'declaration'
OTHER_CODE = 'other_code'

# Lines that wait for the next statement and attach to it
PENDING_TAGS = (BLANK, COMMENT, ITEM_ATTRIBUTE)

MOD = 'mod'
USE = 'use'
# Emission order of declaration kinds within one visibility
DECLARATION_KINDS = (MOD, USE)

FEATURE = 'feature'
EXPECT = 'expect'
WARN = 'warn'
RECURSION_LIMIT = 'recursion_limit'
GLOBAL_ATTRIBUTE_KINDS = (FEATURE, EXPECT, WARN, RECURSION_LIMIT)

GLOBAL_ATTRIBUTE_RE = re.compile(
    r'^#!\[\s*(' + '|'.join(GLOBAL_ATTRIBUTE_KINDS) + r')\b'
)
VISIBILITY_RE = re.compile(r'^pub\s*\(\s*(crate|super|self|in\s+[^)]*?)\s*\)\s*')
PUB_RE = re.compile(r'^pub\s+')
EXTERN_CRATE_RE = re.compile(r'^extern\s+crate\s')
DECLARATION_RE = re.compile(r'^(use|mod)\s')


class VisibilityLevel(IntEnum):
    PUB = 0
    PUB_CRATE = 1
    PUB_SUPER = 2
    PUB_IN = 3
    PRIVATE = 4


@dataclass(frozen=True, order=True)
class Visibility:
    """Visibility of a declaration; sorts most exposed first, `pub(in ..)` by path."""

    level: VisibilityLevel
    path: str = ''


PUB = Visibility(VisibilityLevel.PUB)
PUB_CRATE = Visibility(VisibilityLevel.PUB_CRATE)
PUB_SUPER = Visibility(VisibilityLevel.PUB_SUPER)
PRIVATE = Visibility(VisibilityLevel.PRIVATE)


@dataclass(frozen=True)
class Category:
    """
    Category of one line.

    `kind` is the declaration kind (MOD/USE) for DECLARATION and the
    attribute kind for GLOBAL_ATTRIBUTE. `visibility` is set for
    DECLARATION only. `attributed` marks a declaration or extern crate
    written after an attribute on the same line (`#[cfg(test)] mod tests;`).
    """

    tag: str
    kind: Optional[str] = None
    visibility: Optional[Visibility] = None
    attributed: bool = False

    @property
    def is_pending(self) -> bool:
        return self.tag in PENDING_TAGS

    def is_mod(self) -> bool:
        return self.tag == DECLARATION and self.kind == MOD


def parse_visibility(trimmed: str) -> Tuple[Visibility, str]:
    """
    Split a leading visibility qualifier off a trimmed line.

    Returns:
        (visibility, rest of the line). Lines without a qualifier, and
        `pub(self)`, are PRIVATE.
    """
    match = VISIBILITY_RE.match(trimmed)
    if match:
        qualifier = match.group(1)
        rest = trimmed[match.end():]
        if qualifier == 'crate':
            return PUB_CRATE, rest
        if qualifier == 'super':
            return PUB_SUPER, rest
        if qualifier == 'self':
            return PRIVATE, rest
        return Visibility(VisibilityLevel.PUB_IN, qualifier[2:].strip()), rest

    match = PUB_RE.match(trimmed)
    if match:
        return PUB, trimmed[match.end():]

    return PRIVATE, trimmed


def attribute_tail(trimmed: str) -> Optional[str]:
    """
    Code following an `#[attr]` on the same line.

    Returns None when the line holds only the attribute, or when the
    attribute continues on the next line.
    """
    code = strip_code(trimmed).rstrip()
    if code.endswith(']'):
        return None

    depth = 0
    for idx, ch in enumerate(code):
        if ch == '[':
            depth += 1
        elif ch == ']':
            depth -= 1
            if depth == 0:
                return code[idx + 1:].strip() or None
    return None


def classify_line(trimmed: str) -> Category:
    """Classify a trimmed line. First matching rule wins; never fails."""
    if not trimmed:
        return Category(BLANK)

    if trimmed.startswith('//') or trimmed.startswith('/*') or trimmed.startswith('*'):
        return Category(COMMENT)

    if trimmed.startswith('#['):
        tail = attribute_tail(trimmed)
        if tail is None:
            return Category(ITEM_ATTRIBUTE)
        category = classify_line(tail)
        if category.tag in (DECLARATION, EXTERN_CRATE):
            return replace(category, attributed=True)
        return Category(OTHER_CODE)

    if trimmed.startswith('#!['):
        match = GLOBAL_ATTRIBUTE_RE.match(trimmed)
        if match is None:
            return Category(OTHER_CODE)
        return Category(GLOBAL_ATTRIBUTE, kind=match.group(1))

    if EXTERN_CRATE_RE.match(trimmed):
        return Category(EXTERN_CRATE)

    visibility, rest = parse_visibility(trimmed)
    match = DECLARATION_RE.match(rest)
    if match:
        kind = USE if match.group(1) == 'use' else MOD
        return Category(DECLARATION, kind=kind, visibility=visibility)

    return Category(OTHER_CODE)
