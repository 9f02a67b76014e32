"""
Regroup the declaration header of Rust source.

A scope (the file, or the body of a `mod name { ... }` block) starts with a
header: `mod`/`use`/`extern crate` declarations and crate-level attributes
with their comments. The header ends at the first line of ordinary code.
It is rewritten into a canonical layout; everything after it is passed
through verbatim, except that nested `mod name { ... }` bodies get the
same treatment recursively.

Header layout, paragraphs separated by one blank line:
  1. leading crate-level attribute block, as written
  2. crate-level attributes found further down the header
  3. preamble notes (comments detached from the declarations)
  4. `extern crate` items
  5. `mod`/`use` buckets ordered by visibility
     (pub, pub(crate), pub(super), pub(in path), private),
     `mod` before `use` within one visibility

Within a bucket every decorated item (one with attached comments or
attributes) is its own paragraph, ahead of a single paragraph holding the
undecorated items. Relative order is kept everywhere.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from polish_rs.rust.code_scanner import ScanState, brace_delta, code_text, strip_code
from polish_rs.rust.line_classifier import (
    BLANK,
    COMMENT,
    DECLARATION_KINDS,
    EXTERN_CRATE,
    GLOBAL_ATTRIBUTE,
    ITEM_ATTRIBUTE,
    OTHER_CODE,
    Category,
    Visibility,
    classify_line,
)


@dataclass
class Item:
    """One statement with the comment/attribute lines attached above it."""

    lines: List[str]
    category: Category
    leading: int = 0

    @property
    def decorated(self) -> bool:
        return self.leading > 0 or self.category.attributed


@dataclass
class ScopeState:
    """Accumulator for the header of one scope."""

    leading_block: List[str] = field(default_factory=list)
    preamble_notes: List[str] = field(default_factory=list)
    features: List[Item] = field(default_factory=list)
    extern_crates: List[Item] = field(default_factory=list)
    buckets: Dict[Tuple[Visibility, str], List[Item]] = field(default_factory=dict)
    # Blank lines, comments and attributes waiting for the next statement,
    # one chunk per blank line or per collected comment/attribute
    pending: List[List[str]] = field(default_factory=list)
    in_header: bool = True

    def add(self, item: Item):
        tag = item.category.tag
        if tag == GLOBAL_ATTRIBUTE:
            self.features.append(item)
        elif tag == EXTERN_CRATE:
            self.extern_crates.append(item)
        else:
            key = (item.category.visibility, item.category.kind)
            self.buckets.setdefault(key, []).append(item)

    def take_pending(self) -> List[str]:
        lines = [line for chunk in self.pending for line in chunk]
        self.pending = []
        return lines

    def take_decoration(self) -> List[str]:
        """Pending comments/attributes for the next item; blank separators are dropped."""
        decoration = [
            line for chunk in self.pending if not is_blank_chunk(chunk) for line in chunk
        ]
        self.pending = []
        return decoration


def is_blank_chunk(chunk: List[str]) -> bool:
    return len(chunk) == 1 and not chunk[0].strip()


def split_lines(content: str) -> List[str]:
    lines = content.split('\n')
    if lines and lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


def trim_blank_lines(lines: List[str]) -> List[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


# ---------------------------------------------------------------------------
# Item collection
# ---------------------------------------------------------------------------

def collect_comment(lines: List[str], start: int) -> Tuple[List[str], int]:
    """Consume a comment line, or a whole block comment spanning several lines."""
    state = ScanState()
    index = start
    while index < len(lines):
        strip_code(lines[index], state)
        index += 1
        if state.block_comment_depth == 0:
            break
    return lines[start:index], index


def collect_item(lines: List[str], start: int, category: Category) -> Tuple[List[str], int]:
    """
    Consume one statement starting at `start`.

    Terminators depend on the category: attributes end with `]`, `mod`
    ends with `;` (no body), `{` (body follows) or `}` (body on the same
    line), everything else ends with `;`. An unterminated statement runs
    to the end of the input.

    Returns:
        (lines of the statement, index of the first line after it)
    """
    if category.tag == COMMENT:
        return collect_comment(lines, start)

    terminators = item_terminators(category)
    index = start
    while index < len(lines):
        index += 1
        if code_text(lines[index - 1]).endswith(terminators):
            break
    return lines[start:index], index


def item_terminators(category: Category) -> Tuple[str, ...]:
    if category.tag in (GLOBAL_ATTRIBUTE, ITEM_ATTRIBUTE):
        return (']',)
    if category.is_mod():
        return (';', '{', '}')
    return (';',)


def is_terminated(item_lines: List[str], category: Category) -> bool:
    """False when a statement ran to the end of the input without its terminator."""
    return code_text(item_lines[-1]).endswith(item_terminators(category))


def has_mod_body(item_lines: List[str]) -> bool:
    """True when a collected `mod` statement is `mod name {...}` rather than `mod name;`."""
    return not code_text(item_lines[-1]).endswith(';')


def opens_mod_block(item_lines: List[str]) -> bool:
    return code_text(item_lines[-1]).endswith('{')


# ---------------------------------------------------------------------------
# Emission
# ---------------------------------------------------------------------------

def bucket_paragraphs(items: List[Item]) -> List[List[str]]:
    """Decorated items one paragraph each, then all undecorated items together."""
    paragraphs = [list(item.lines) for item in items if item.decorated]
    undecorated = [line for item in items if not item.decorated for line in item.lines]
    if undecorated:
        paragraphs.append(undecorated)
    return paragraphs


def bucket_order(key: Tuple[Visibility, str]):
    visibility, kind = key
    return visibility, DECLARATION_KINDS.index(kind)


def render_header(state: ScopeState) -> List[str]:
    """Render a scope's accumulated header in canonical order."""
    paragraphs = []
    if state.leading_block:
        paragraphs.append(state.leading_block)
    if state.features:
        # Never split into decorated/undecorated
        paragraphs.append([line for item in state.features for line in item.lines])
    if state.preamble_notes:
        paragraphs.append(state.preamble_notes)
    paragraphs.extend(bucket_paragraphs(state.extern_crates))
    for key in sorted(state.buckets, key=bucket_order):
        paragraphs.extend(bucket_paragraphs(state.buckets[key]))

    rendered = []
    for paragraph in paragraphs:
        if rendered:
            rendered.append('')
        rendered.extend(paragraph)
    return rendered


def leave_header(state: ScopeState, output: List[str], at_scope_end: bool = False):
    """Flush the header, then the pending lines that were waiting for a statement."""
    header = render_header(state)
    output.extend(header)
    starts_with_blank = bool(state.pending) and is_blank_chunk(state.pending[0])
    if header and not starts_with_blank and (state.pending or not at_scope_end):
        output.append('')
    output.extend(state.take_pending())
    state.in_header = False


# ---------------------------------------------------------------------------
# Scope processing
# ---------------------------------------------------------------------------

def ends_scope(lines: List[str], index: int, depth: int) -> bool:
    if index >= len(lines):
        return True
    return depth > 0 and code_text(lines[index]).startswith('}')


def collect_leading_run(lines: List[str], index: int, state: ScopeState, depth: int = 0) -> int:
    """
    Capture the crate-level attribute block and preamble notes at scope start.

    The run starts when the first non-blank line of the scope is a known
    crate-level attribute or a comment, and continues over attributes,
    comments and blank lines. Comments after the last attribute that are
    separated from the next statement by a blank line become preamble
    notes; comments directly above the next statement stay with it. When
    the run reaches the end of the scope, everything after the last
    attribute is preamble notes.

    Returns:
        Index to continue scanning from
    """
    start = index
    while start < len(lines) and not lines[start].strip():
        start += 1
    if start >= len(lines):
        return index

    first = classify_line(lines[start].strip())
    if first.tag not in (GLOBAL_ATTRIBUTE, COMMENT):
        return index

    run = []
    attribute_end = 0
    last_blank = -1
    cursor = start
    while cursor < len(lines):
        category = classify_line(lines[cursor].strip())
        if category.tag == BLANK:
            last_blank = len(run)
            run.append(lines[cursor])
            cursor += 1
        elif category.tag in (COMMENT, GLOBAL_ATTRIBUTE):
            item_lines, cursor = collect_item(lines, cursor, category)
            run.extend(item_lines)
            if category.tag == GLOBAL_ATTRIBUTE:
                attribute_end = len(run)
        else:
            break

    leading_block = run[:attribute_end]
    if ends_scope(lines, cursor, depth):
        preamble_notes = trim_blank_lines(run[attribute_end:])
        resume = cursor
    elif last_blank > attribute_end:
        preamble_notes = trim_blank_lines(run[attribute_end:last_blank])
        resume = start + last_blank + 1
    else:
        preamble_notes = []
        # Comments right above the next statement are left for it to pick up
        resume = start + max(attribute_end, last_blank + 1)
    if not leading_block and not preamble_notes:
        return index

    state.leading_block = leading_block
    state.preamble_notes = preamble_notes
    return resume


def process_scope(lines: List[str], index: int, depth: int) -> Tuple[List[str], int]:
    """
    Process one scope starting at `index`.

    Args:
        lines: All lines of the file
        index: First line of the scope (just after `mod name {` when nested)
        depth: Nesting level; 0 for the file itself

    Returns:
        (rendered lines of the scope, index of its closing `}` line, or
        len(lines) when the input ends first)
    """
    state = ScopeState()
    output = []
    index = collect_leading_run(lines, index, state, depth)

    scanner = ScanState()
    brace_depth = 0

    while index < len(lines):
        line = lines[index]

        if state.in_header:
            if depth > 0 and code_text(line).startswith('}'):
                break

            category = classify_line(line.strip())

            if category.tag == OTHER_CODE:
                leave_header(state, output)
                continue

            if category.tag == BLANK:
                state.pending.append([line])
                index += 1
                continue

            item_lines, next_index = collect_item(lines, index, category)

            if category.is_pending:
                state.pending.append(item_lines)
                index = next_index
                continue

            if not is_terminated(item_lines, category):
                # Runs to the end of the input; left in place as code
                leave_header(state, output)
                continue

            if category.is_mod() and has_mod_body(item_lines):
                # The body pass below re-reads the mod line and recurses into it
                leave_header(state, output)
                continue

            decoration = state.take_decoration()
            state.add(Item(decoration + item_lines, category, len(decoration)))
            index = next_index
            continue

        if scanner.in_literal():
            strip_code(line, scanner)
            output.append(line)
            index += 1
            continue

        if brace_depth == 0:
            if depth > 0 and code_text(line).startswith('}'):
                break

            category = classify_line(line.strip())
            if category.is_mod():
                item_lines, next_index = collect_item(lines, index, category)
                if opens_mod_block(item_lines):
                    output.extend(item_lines)
                    nested, index = process_scope(lines, next_index, depth + 1)
                    output.extend(nested)
                    if index < len(lines):
                        output.append(lines[index])
                        index += 1
                    continue

        brace_depth = max(brace_depth + brace_delta(strip_code(line, scanner)), 0)
        output.append(line)
        index += 1

    if state.in_header:
        leave_header(state, output, at_scope_end=True)

    return output, index


def group_declarations(content: str) -> str:
    """
    Regroup the declaration headers of a Rust source file.

    Deterministic and idempotent; never fails on unparseable input. The
    result ends with exactly one newline.
    """
    lines = split_lines(content)
    output, _ = process_scope(lines, 0, 0)
    return '\n'.join(output).rstrip('\n') + '\n'
