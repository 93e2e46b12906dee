"""
Base detector class and registry for structural pattern detectors.

A detector looks at one line at a time and reports candidate matches.
It knows nothing about block extents or the surrounding file; callers
resolve brace-delimited matches to full blocks.

To add support for a new language:
1. Create a new detector class inheriting from BaseDetector
2. Implement the `detect` method
3. Register using the @DetectorRegistry.register decorator

Example:
    @DetectorRegistry.register("go", [".go"])
    class GoDetector(BaseDetector):
        def detect(self, line: str) -> list[PatternMatch]:
            ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Optional

if TYPE_CHECKING:
    from typing import Any, Callable, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternMatch:
    """
    One structural match on a single line.

    Attributes:
        kind: Block type tag ("function", "route", ...)
        name: Display name of the construct
        braced: Whether the construct's extent is found by brace matching
        signature: Raw parameter text (functions only)
        method: HTTP method (routes only)
        path: Route path (routes only)
    """
    kind: str
    name: str
    braced: bool
    signature: str = ""
    method: Optional[str] = None
    path: Optional[str] = None


class DetectorRegistry:
    """
    Registry for structural detectors.

    Manages detector classes and their file extension mappings. The
    registry holds no detector instances; callers own the ones they create.
    """

    _detector_classes: ClassVar[dict[str, Type["BaseDetector"]]] = {}
    _extension_map: ClassVar[dict[str, str]] = {}  # .ext -> language name

    @classmethod
    def register(
        cls,
        language: str,
        extensions: list[str],
    ) -> Callable[[Type["BaseDetector"]], Type["BaseDetector"]]:
        """
        Decorator to register a detector class.

        Args:
            language: Language name (e.g., "typescript").
            extensions: List of file extensions (e.g., [".ts", ".tsx"]).

        Returns:
            Decorator function.
        """
        def decorator(detector_class: Type["BaseDetector"]) -> Type["BaseDetector"]:
            cls.register_detector(language, extensions, detector_class)
            return detector_class
        return decorator

    @classmethod
    def register_detector(
        cls,
        language: str,
        extensions: list[str],
        detector_class: Type["BaseDetector"],
    ) -> None:
        """
        Register a detector class for a language.

        Args:
            language: Language name.
            extensions: List of file extensions.
            detector_class: Detector class (instantiated on demand with config).
        """
        cls._detector_classes[language] = detector_class

        for ext in extensions:
            ext_lower = ext.lower()
            if not ext_lower.startswith("."):
                ext_lower = "." + ext_lower
            cls._extension_map[ext_lower] = language

        logger.debug("Registered detector for %s: %s", language, extensions)

    @classmethod
    def language_for(cls, filepath: Path) -> str | None:
        """Language registered for a file's extension, if any."""
        return cls._extension_map.get(filepath.suffix.lower())

    @classmethod
    def create_detector(
        cls,
        language: str,
        config: dict[str, Any] | None = None,
    ) -> "BaseDetector" | None:
        """
        Create a detector for a language, configured with the given config.

        Args:
            language: Registered language name.
            config: Configuration dictionary to pass to the detector.

        Returns:
            A new detector instance, or None if the language is unknown.
        """
        detector_class = cls._detector_classes.get(language)
        if not detector_class:
            return None

        detector = detector_class()
        if config:
            detector.configure(config)
        return detector

    @classmethod
    def list_languages(cls) -> list[str]:
        """Get list of registered languages."""
        return list(cls._detector_classes.keys())

    @classmethod
    def list_extensions(cls) -> dict[str, str]:
        """Get mapping of extensions to languages."""
        return dict(cls._extension_map)


class BaseDetector(ABC):
    """
    Abstract base class for line-local structural detectors.

    ``detect`` must be a pure function of the line: calling it twice on
    the same text returns equal results, and no match state is carried
    between calls.
    """

    def __init__(self) -> None:
        self.config: dict[str, Any] = {}

    def configure(self, config: dict[str, Any]) -> None:
        """
        Configure the detector with the given config.

        Subclasses can override to extract specific config values.
        """
        self.config = config

    @abstractmethod
    def detect(self, line: str) -> list[PatternMatch]:
        """
        Find every structural match on one line.

        Args:
            line: One source line without its newline.

        Returns:
            Matches grouped by kind in a fixed kind order, each group in
            left-to-right order. Matches of different kinds may overlap.
        """
        ...
