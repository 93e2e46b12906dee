"""
Per-file indexing: read once, tokenize, detect structures.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from code_token_index.detector import detect_structures
from code_token_index.errors import IndexIOError
from code_token_index.models import TokenizedFile
from code_token_index.parsers import BaseDetector, DetectorRegistry
from code_token_index.tokenizer import tokenize_lines

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


def read_source(filepath: Path) -> str:
    """
    Read a source file as UTF-8 text, keeping its line endings.

    Raises:
        IndexIOError: If the file can't be read or decoded.
    """
    try:
        with open(filepath, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise IndexIOError(filepath, f"not valid UTF-8 text ({e.reason})") from e
    except OSError as e:
        raise IndexIOError(filepath, e.strerror or str(e)) from e


class FileIndexer:
    """Builds a TokenizedFile for one source file."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        """
        Initialize the indexer.

        Args:
            config: Configuration dictionary passed on to detectors.
        """
        self.config = config
        self._detectors: dict[str, BaseDetector] = {}

    def detector_for(self, filepath: Path) -> BaseDetector:
        """
        Detector for a file, created on first use per language.

        Files picked up by a custom include pattern with an unregistered
        extension get the TypeScript patterns.
        """
        language = DetectorRegistry.language_for(filepath) or "typescript"
        detector = self._detectors.get(language)
        if detector is None:
            detector = DetectorRegistry.create_detector(language, self.config)
            assert detector is not None
            self._detectors[language] = detector
        return detector

    def index_file(self, filepath: Path | str) -> TokenizedFile:
        """
        Index one file.

        The tokenizer and detector share the same line array so block line
        numbers and token line numbers agree.

        Args:
            filepath: Path to the source file.

        Returns:
            The file's tokens, line count, functions, routes and blocks.

        Raises:
            IndexIOError: If the file can't be read as text.
        """
        filepath = Path(filepath)
        file_path = str(filepath)
        lines = read_source(filepath).split("\n")

        structures = detect_structures(lines, self.detector_for(filepath), file_path)
        tokens = tokenize_lines(lines, file_path)

        logger.debug(
            "Indexed %s: %d lines, %d tokens, %d blocks",
            file_path, len(lines), len(tokens), len(structures.code_blocks),
        )

        return TokenizedFile(
            file_path=file_path,
            tokens=tokens,
            line_count=len(lines),
            function_locations=structures.function_locations,
            route_definitions=structures.route_definitions,
            code_blocks=structures.code_blocks,
        )


def index_file(filepath: Path | str, config: dict[str, Any] | None = None) -> TokenizedFile:
    """Index one file with the given (or default) configuration."""
    return FileIndexer(config).index_file(filepath)
