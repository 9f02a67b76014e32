"""
Best-effort lexical scanning of Rust source lines.

Blanks out string and char literal contents and drops comments so callers
can look at statement terminators and count braces without a parser.
Strings, raw strings and block comments that span several lines are
tracked through a ScanState passed from one line to the next.
"""

import re

RAW_STRING_RE = re.compile(r'b?r(#*)"')
CHAR_LITERAL_RE = re.compile(
    r"b?'(?:\\(?:x[0-9a-fA-F]{2}|u\{[0-9a-fA-F]{1,6}\}|.)|[^'\\])'"
)


class ScanState:
    """Lexical state carried from the end of one line to the next."""

    def __init__(self):
        self.in_str = False
        self.raw_hashes = None
        self.block_comment_depth = 0

    def in_literal(self):
        """True while a string or block comment opened on an earlier line is still open."""
        return (
            self.in_str
            or self.raw_hashes is not None
            or self.block_comment_depth > 0
        )


def is_ident_char(ch):
    return ch.isalnum() or ch == '_'


def strip_code(line, state=None):
    """
    Return the code part of a line.

    String and char literal contents are replaced by spaces (quotes are
    kept), line comments are cut off and block comments removed.

    Args:
        line: One raw source line, without its newline
        state: ScanState to continue from and update; a fresh one if None

    Returns:
        The line with only code characters left
    """
    if state is None:
        state = ScanState()

    out = []
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        nxt = line[i + 1] if i + 1 < n else ''

        if state.block_comment_depth > 0:
            if ch == '/' and nxt == '*':
                state.block_comment_depth += 1
                i += 2
            elif ch == '*' and nxt == '/':
                state.block_comment_depth -= 1
                i += 2
                if state.block_comment_depth == 0:
                    out.append(' ')
            else:
                i += 1
            continue

        if state.raw_hashes is not None:
            closing = '"' + '#' * state.raw_hashes
            if line.startswith(closing, i):
                state.raw_hashes = None
                out.append('"')
                i += len(closing)
            else:
                out.append(' ')
                i += 1
            continue

        if state.in_str:
            if ch == '\\':
                out.append('  ' if nxt else ' ')
                i += 2
            elif ch == '"':
                state.in_str = False
                out.append('"')
                i += 1
            else:
                out.append(' ')
                i += 1
            continue

        if ch == '/' and nxt == '/':
            break

        if ch == '/' and nxt == '*':
            state.block_comment_depth = 1
            i += 2
            continue

        if ch == '"':
            state.in_str = True
            out.append('"')
            i += 1
            continue

        if ch in 'br' and (i == 0 or not is_ident_char(line[i - 1])):
            match = RAW_STRING_RE.match(line, i)
            if match:
                state.raw_hashes = len(match.group(1))
                out.append('"')
                i = match.end()
                continue

        if ch in "b'" and (i == 0 or not is_ident_char(line[i - 1])):
            match = CHAR_LITERAL_RE.match(line, i)
            if match:
                # Lifetimes ('a) do not match and fall through as code
                out.append("'" + ' ' * (match.end() - i - 2) + "'")
                i = match.end()
                continue

        out.append(ch)
        i += 1

    return ''.join(out)


def code_text(line):
    """Trimmed code part of a single line, scanned on its own."""
    return strip_code(line).strip()


def brace_delta(code):
    """Net number of braces opened by already stripped code."""
    return code.count('{') - code.count('}')
