"""
Main scanner orchestrator for code_token_index.

Walks the tree, indexes every source file and merges the results into one
CodebaseIndex. Each scan builds a fresh index; nothing is updated in place.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from code_token_index.config import DEFAULT_CONFIG
from code_token_index.indexer import FileIndexer
from code_token_index.models import CodebaseIndex, RouteSummary, TokenizedFile
from code_token_index.walker import walk

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class CodebaseScanner:
    """Scans a directory tree into a CodebaseIndex."""

    def __init__(
        self,
        root: Path | str,
        config: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the codebase scanner.

        Args:
            root: Root directory to scan.
            config: Configuration dictionary (defaults when omitted).
        """
        self.root = Path(root).absolute()
        self.config = config or DEFAULT_CONFIG

        scan_config = self.config.get("scan") or {}
        self.include = scan_config.get("include", DEFAULT_CONFIG["scan"]["include"])
        self.exclude = scan_config.get("exclude", DEFAULT_CONFIG["scan"]["exclude"])
        self.component_extensions = tuple(
            ext.lower()
            for ext in (self.config.get("components") or {}).get(
                "extensions", DEFAULT_CONFIG["components"]["extensions"]
            )
        )

        self.indexer = FileIndexer(self.config)

    def scan(self) -> CodebaseIndex:
        """
        Scan the entire codebase.

        Returns:
            A new index covering every included file.

        Raises:
            IndexIOError: If the root, a directory or a file can't be read.
        """
        logger.info("Scanning %s", self.root)
        files = walk(self.root, self.include, self.exclude)
        index = self.aggregate(files)
        logger.info(
            "Indexed %d files, %d routes, %d components",
            len(index.files), len(index.route_map), len(index.component_map),
        )
        return index

    def aggregate(self, file_paths: Iterable[Path | str]) -> CodebaseIndex:
        """
        Index each file in order and merge the results.

        Later files overwrite earlier ones in the component and route maps.

        Args:
            file_paths: Files in walk order.

        Returns:
            The merged index.
        """
        index = CodebaseIndex()

        for filepath in file_paths:
            tokenized = self.indexer.index_file(filepath)
            self._merge(index, tokenized)

        return index

    def _merge(self, index: CodebaseIndex, tokenized: TokenizedFile) -> None:
        """Fold one file's records into the index."""
        index.files.append(tokenized)

        path = Path(tokenized.file_path)
        if path.suffix.lower() in self.component_extensions:
            index.component_map[path.stem] = tokenized.file_path

        for route in tokenized.route_definitions:
            previous = index.route_map.get(route.path)
            if previous is not None:
                logger.debug(
                    "Route %s at %s:%d replaces %s:%d",
                    route.path, tokenized.file_path, route.line_number, previous.file, previous.line,
                )
            index.route_map[route.path] = RouteSummary(
                method=route.method,
                path=route.path,
                handler=route.handler_name,
                file=tokenized.file_path,
                line=route.line_number,
            )

        for block in tokenized.code_blocks:
            index.blocks_by_type.setdefault(block.type, []).append(block)


def aggregate(
    file_paths: Iterable[Path | str],
    config: dict[str, Any] | None = None,
) -> CodebaseIndex:
    """Index and merge the given files, in order."""
    return CodebaseScanner(Path.cwd(), config).aggregate(file_paths)


def build_index(root: Path | str, config: dict[str, Any] | None = None) -> CodebaseIndex:
    """
    Build a codebase index for a directory tree.

    Args:
        root: Directory to scan.
        config: Optional configuration override.

    Returns:
        A fresh CodebaseIndex.
    """
    return CodebaseScanner(root, config).scan()
