"""
Exceptions raised by code_token_index.
"""

from __future__ import annotations

from pathlib import Path


class IndexIOError(OSError):
    """A root, directory or source file could not be read. Fatal to the scan."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class SerializationError(ValueError):
    """The index could not be serialized or restored."""
