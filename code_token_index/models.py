"""
Data models for the codebase index.

All records are created during a single scan and never mutated afterwards.
Each model serializes to plain dicts (``to_dict``) and back (``from_dict``)
so the whole index can round-trip through JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import groupby
from typing import Any, Optional

from code_token_index.config import BLOCK_TYPES
from code_token_index.parsers.blocks import find_block_end

# Block types whose extent is resolved by brace matching
BRACED_BLOCK_TYPES = frozenset({"function", "route", "class", "interface"})


@dataclass(frozen=True)
class Token:
    """A positioned lexical unit from one line of a file.

    Attributes:
        value: Token text (a word, one punctuation char, a whitespace run or "\\n")
        file: Path of the file the token came from
        line_number: 1-based line number
        column_start: 0-based offset of the first character
        column_end: 0-based offset one past the last character
        context: The token's source line with surrounding whitespace trimmed
    """
    value: str
    file: str
    line_number: int
    column_start: int
    column_end: int
    context: str

    @property
    def is_newline(self) -> bool:
        return self.value == "\n"

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "file": self.file,
            "line_number": self.line_number,
            "column_start": self.column_start,
            "column_end": self.column_end,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Token":
        return cls(
            value=d["value"],
            file=d["file"],
            line_number=d["line_number"],
            column_start=d["column_start"],
            column_end=d["column_end"],
            context=d.get("context", ""),
        )


@dataclass(frozen=True)
class FunctionLocation:
    """A detected function and its line range."""
    name: str
    start_line: int
    end_line: int
    signature: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "FunctionLocation":
        return cls(
            name=d["name"],
            start_line=d["start_line"],
            end_line=d["end_line"],
            signature=d.get("signature") or "",
        )


@dataclass(frozen=True)
class RouteDefinition:
    """A route registration such as ``app.get('/users', ...)``.

    ``handler_name`` is always the literal "handler"; the callback
    identifier is not resolved.
    """
    path: str
    method: str
    handler_name: str
    line_number: int

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "method": self.method,
            "handler_name": self.handler_name,
            "line_number": self.line_number,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RouteDefinition":
        return cls(
            path=d["path"],
            method=d["method"],
            handler_name=d["handler_name"],
            line_number=d["line_number"],
        )


@dataclass(frozen=True)
class CodeBlock:
    """A named, typed, line-ranged span of source text.

    Attributes:
        type: One of BLOCK_TYPES
        name: Function/class/interface name, imported module, middleware
            arguments, or "<method> <path>" for routes
        start_line: 1-based first line
        end_line: 1-based last line (inclusive)
        content: Source lines start_line..end_line joined with newlines
        file: Path of the containing file
        path: Route path (routes only)
        method: HTTP method (routes only)
    """
    type: str
    name: str
    start_line: int
    end_line: int
    content: str
    file: str
    path: Optional[str] = None
    method: Optional[str] = None

    @property
    def is_degenerate(self) -> bool:
        """True when a brace-delimited construct never found its closing brace."""
        if self.type not in BRACED_BLOCK_TYPES or self.start_line != self.end_line:
            return False
        return find_block_end(self.content.split("\n"), 0) is None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "content": self.content,
            "file": self.file,
        }
        if self.path is not None:
            d["path"] = self.path
        if self.method is not None:
            d["method"] = self.method
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "CodeBlock":
        return cls(
            type=d["type"],
            name=d["name"],
            start_line=d["start_line"],
            end_line=d["end_line"],
            content=d["content"],
            file=d["file"],
            path=d.get("path"),
            method=d.get("method"),
        )


@dataclass
class TokenizedFile:
    """Everything extracted from one scanned file."""
    file_path: str
    tokens: list[Token] = field(default_factory=list)
    line_count: int = 0
    function_locations: list[FunctionLocation] = field(default_factory=list)
    route_definitions: list[RouteDefinition] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)

    def lines(self) -> list[str]:
        """Rebuild the file's lines from its token stream."""
        return [
            "".join(t.value for t in line_tokens if not t.is_newline)
            for _, line_tokens in groupby(self.tokens, key=lambda t: t.line_number)
        ]

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "tokens": [t.to_dict() for t in self.tokens],
            "line_count": self.line_count,
            "function_locations": [f.to_dict() for f in self.function_locations],
            "route_definitions": [r.to_dict() for r in self.route_definitions],
            "code_blocks": [b.to_dict() for b in self.code_blocks],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TokenizedFile":
        return cls(
            file_path=d["file_path"],
            tokens=[Token.from_dict(t) for t in d.get("tokens", [])],
            line_count=d["line_count"],
            function_locations=[
                FunctionLocation.from_dict(f) for f in d.get("function_locations", [])
            ],
            route_definitions=[
                RouteDefinition.from_dict(r) for r in d.get("route_definitions", [])
            ],
            code_blocks=[CodeBlock.from_dict(b) for b in d.get("code_blocks", [])],
        )


@dataclass(frozen=True)
class RouteSummary:
    """Route map entry: the last registration seen for a path."""
    method: str
    path: str
    handler: str
    file: str
    line: int

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "path": self.path,
            "handler": self.handler,
            "file": self.file,
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RouteSummary":
        return cls(
            method=d["method"],
            path=d["path"],
            handler=d["handler"],
            file=d["file"],
            line=d["line"],
        )


def empty_blocks_by_type() -> dict[str, list[CodeBlock]]:
    """One empty bucket per fixed block type."""
    return {block_type: [] for block_type in BLOCK_TYPES}


@dataclass
class CodebaseIndex:
    """Whole-repository merge of all per-file results.

    Attributes:
        files: Tokenized files in scan order
        component_map: Component file basename (no extension) -> file path
        route_map: Route path -> last registered route for that path
        blocks_by_type: Block type -> blocks of that type in scan order
    """
    files: list[TokenizedFile] = field(default_factory=list)
    component_map: dict[str, str] = field(default_factory=dict)
    route_map: dict[str, RouteSummary] = field(default_factory=dict)
    blocks_by_type: dict[str, list[CodeBlock]] = field(default_factory=empty_blocks_by_type)

    def get_file(self, file_path: str) -> TokenizedFile | None:
        """Find a tokenized file by its recorded path."""
        for tokenized in self.files:
            if tokenized.file_path == file_path:
                return tokenized
        return None

    def to_dict(self) -> dict:
        return {
            "files": [f.to_dict() for f in self.files],
            "component_map": dict(self.component_map),
            "route_map": {path: r.to_dict() for path, r in self.route_map.items()},
            "blocks_by_type": {
                block_type: [b.to_dict() for b in blocks]
                for block_type, blocks in self.blocks_by_type.items()
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CodebaseIndex":
        blocks_by_type = empty_blocks_by_type()
        for block_type, blocks in d.get("blocks_by_type", {}).items():
            blocks_by_type[block_type] = [CodeBlock.from_dict(b) for b in blocks]

        return cls(
            files=[TokenizedFile.from_dict(f) for f in d.get("files", [])],
            component_map=dict(d.get("component_map", {})),
            route_map={
                path: RouteSummary.from_dict(r)
                for path, r in d.get("route_map", {}).items()
            },
            blocks_by_type=blocks_by_type,
        )
