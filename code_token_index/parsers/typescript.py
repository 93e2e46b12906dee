"""
TypeScript/JavaScript regex-based structural detector.

Detects function declarations, Express-style route and middleware
registrations, imports, classes and interfaces, one line at a time.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from code_token_index.config import HTTP_METHODS
from code_token_index.parsers.base import BaseDetector, DetectorRegistry, PatternMatch

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

# function name(params) | const name = (params) => | const name = async (params) =>
FUNCTION_PATTERN = re.compile(
    r"\bfunction\s+(\w+)\s*\(([^)]*)\)"
    r"|\bconst\s+(\w+)\s*=\s*(?:async\s*)?\(([^)]*)\)\s*=>"
)
IMPORT_PATTERN = re.compile(r"\bimport\s+.+?\s+from\s+['\"]([^'\"]+)['\"]")
CLASS_PATTERN = re.compile(r"\bclass\s+(\w+)")
INTERFACE_PATTERN = re.compile(r"\binterface\s+(\w+)")


def _route_pattern(receivers: list[str]) -> re.Pattern[str]:
    """Build the <receiver>.<method>('<path>' pattern."""
    names = "|".join(re.escape(r) for r in receivers)
    methods = "|".join(HTTP_METHODS)
    return re.compile(rf"\b(?:{names})\.({methods})\s*\(\s*['\"]([^'\"]+)['\"]")


def _middleware_pattern(receivers: list[str]) -> re.Pattern[str]:
    """Build the <receiver>.use(<args>) pattern."""
    names = "|".join(re.escape(r) for r in receivers)
    return re.compile(rf"\b(?:{names})\.use\(([^)]+)\)")


@DetectorRegistry.register("typescript", [".ts", ".tsx", ".js", ".jsx"])
class TypeScriptDetector(BaseDetector):
    """
    TypeScript/JavaScript detector using regex patterns.

    Matching is line-local and has no string, comment or parenthesis
    awareness. Each pattern reports every non-overlapping match on the
    line, so one line can hold several functions, or an import and a
    function at once.
    """

    def __init__(self) -> None:
        super().__init__()
        self.receivers: list[str] = ["app"]
        self._compile()

    def configure(self, config: dict[str, Any]) -> None:
        """
        Configure the detector.

        Args:
            config: Configuration dictionary.
        """
        super().configure(config)

        receivers = (config.get("routes") or {}).get("receivers")
        if receivers:
            self.receivers = list(receivers)
        self._compile()

        logger.debug("TypeScriptDetector configured: receivers = %s", self.receivers)

    def _compile(self) -> None:
        self.route_pattern = _route_pattern(self.receivers)
        self.middleware_pattern = _middleware_pattern(self.receivers)

    def detect(self, line: str) -> list[PatternMatch]:
        """
        Find every structural match on one line.

        Args:
            line: One source line without its newline.

        Returns:
            Functions, routes, imports, classes, interfaces, then
            middleware, each group in left-to-right order.
        """
        matches: list[PatternMatch] = []
        matches.extend(self._functions(line))
        matches.extend(self._routes(line))
        matches.extend(self._imports(line))
        matches.extend(self._named(line, CLASS_PATTERN, "class"))
        matches.extend(self._named(line, INTERFACE_PATTERN, "interface"))
        matches.extend(self._middleware(line))
        return matches

    def _functions(self, line: str) -> list[PatternMatch]:
        found = []
        for match in FUNCTION_PATTERN.finditer(line):
            if match.group(1):
                name, signature = match.group(1), match.group(2)
            else:
                name, signature = match.group(3), match.group(4)
            found.append(PatternMatch(
                kind="function",
                name=name,
                braced=True,
                signature=signature or "",
            ))
        return found

    def _routes(self, line: str) -> list[PatternMatch]:
        found = []
        for match in self.route_pattern.finditer(line):
            method, path = match.group(1), match.group(2)
            found.append(PatternMatch(
                kind="route",
                name=f"{method} {path}",
                braced=True,
                method=method,
                path=path,
            ))
        return found

    def _imports(self, line: str) -> list[PatternMatch]:
        return [
            PatternMatch(kind="import", name=match.group(1), braced=False)
            for match in IMPORT_PATTERN.finditer(line)
        ]

    def _named(self, line: str, pattern: re.Pattern[str], kind: str) -> list[PatternMatch]:
        return [
            PatternMatch(kind=kind, name=match.group(1), braced=True)
            for match in pattern.finditer(line)
        ]

    def _middleware(self, line: str) -> list[PatternMatch]:
        return [
            PatternMatch(
                kind="middleware",
                name=match.group(1).strip(),
                braced=False,
            )
            for match in self.middleware_pattern.finditer(line)
        ]
