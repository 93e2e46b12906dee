"""
Brace-depth block boundary resolution.

Braces are counted on every character of every line, with no awareness of
strings, template literals or comments. Braces inside those may shift the
detected end of a block.
"""

from __future__ import annotations

from typing import Sequence


def find_block_end(lines: Sequence[str], start: int) -> int | None:
    """
    Find the line where the block opened on or after ``start`` closes.

    Depth starts counting at the first ``{``; closing braces seen before
    it are ignored. The opening brace may sit on a later line than
    ``start``.

    Args:
        lines: File lines (without newline characters).
        start: 0-based index of the line to start scanning from.

    Returns:
        0-based index of the line where depth returns to zero, or None if
        the input ends first.
    """
    depth = 0
    opened = False

    for index in range(start, len(lines)):
        for char in lines[index]:
            if char == "{":
                opened = True
                depth += 1
            elif char == "}" and opened:
                depth -= 1

            if opened and depth == 0:
                return index

    return None


def resolve_block_end(lines: Sequence[str], start: int) -> int:
    """
    Resolve the closing line of a block, falling back to ``start``.

    A block whose closing brace is never found resolves to its own start
    line (a degenerate, zero-length span).
    """
    end = find_block_end(lines, start)
    return start if end is None else end


def block_content(lines: Sequence[str], start: int, end: int) -> str:
    """Join lines ``start``..``end`` (inclusive, 0-based) with newlines."""
    return "\n".join(lines[start:end + 1])
