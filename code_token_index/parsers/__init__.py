"""
Structural detectors for code_token_index.

Each detector reports line-local pattern matches for one language family.
Custom detectors can be added by inheriting from BaseDetector.
"""

from code_token_index.parsers.base import BaseDetector, DetectorRegistry, PatternMatch
from code_token_index.parsers.blocks import block_content, find_block_end, resolve_block_end
from code_token_index.parsers.typescript import TypeScriptDetector

__all__ = [
    "BaseDetector",
    "DetectorRegistry",
    "PatternMatch",
    "TypeScriptDetector",
    "block_content",
    "find_block_end",
    "resolve_block_end",
]
