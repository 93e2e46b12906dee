"""
Structural detection over a whole file.

Runs a line-local detector over every line and turns its matches into
code blocks, resolving brace-delimited constructs to their closing line.
Functions and routes also produce FunctionLocation and RouteDefinition
records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from code_token_index.models import CodeBlock, FunctionLocation, RouteDefinition
from code_token_index.parsers.base import BaseDetector, PatternMatch
from code_token_index.parsers.blocks import block_content, find_block_end

logger = logging.getLogger(__name__)

# Routes do not resolve the callback identifier
ROUTE_HANDLER_NAME = "handler"


@dataclass
class Structures:
    """Detection output for one file."""
    function_locations: list[FunctionLocation] = field(default_factory=list)
    route_definitions: list[RouteDefinition] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)


def detect_structures(
    lines: Sequence[str],
    detector: BaseDetector,
    file_path: str,
) -> Structures:
    """
    Detect functions, routes, imports, classes, interfaces and middleware.

    Args:
        lines: The file's lines, shared with the tokenizer so line indices agree.
        detector: Line-local pattern detector.
        file_path: Path recorded on every block.

    Returns:
        Records in line order, then in the detector's per-line order.
    """
    structures = Structures()

    for index, line in enumerate(lines):
        for match in detector.detect(line):
            _add_match(structures, match, lines, index, file_path)

    return structures


def _add_match(
    structures: Structures,
    match: PatternMatch,
    lines: Sequence[str],
    index: int,
    file_path: str,
) -> None:
    """Turn one match into a block (and a function/route record)."""
    start_line = index + 1

    if match.braced:
        end_index = find_block_end(lines, index)
        if end_index is None:
            logger.debug(
                "No closing brace for %s %r at %s:%d", match.kind, match.name, file_path, start_line
            )
            end_index = index
        content = block_content(lines, index, end_index)
    else:
        end_index = index
        content = lines[index]

    end_line = end_index + 1

    if match.kind == "function":
        structures.function_locations.append(FunctionLocation(
            name=match.name,
            start_line=start_line,
            end_line=end_line,
            signature=match.signature,
        ))
    elif match.kind == "route":
        structures.route_definitions.append(RouteDefinition(
            path=match.path or "",
            method=match.method or "",
            handler_name=ROUTE_HANDLER_NAME,
            line_number=start_line,
        ))

    structures.code_blocks.append(CodeBlock(
        type=match.kind,
        name=match.name,
        start_line=start_line,
        end_line=end_line,
        content=content,
        file=file_path,
        path=match.path,
        method=match.method,
    ))
