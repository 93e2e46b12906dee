"""
Report rendering and serialization for a CodebaseIndex.

Rendering is pure: file contents are rebuilt from each file's tokens, not
re-read from disk. Writing artifacts is left to the caller.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import TemplateError

from code_token_index.config import FENCE_LANGUAGES, REPORT_BLOCK_TYPES
from code_token_index.errors import SerializationError
from code_token_index.models import CodebaseIndex, CodeBlock
from code_token_index.templates import TemplateRenderer
from code_token_index.utils import relative_path

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

SECTION_TITLES = {
    "function": "Functions",
    "route": "Routes",
    "import": "Imports",
    "class": "Classes",
    "interface": "Interfaces",
    "middleware": "Middlewares",
}


class ReportRenderer:
    """Renders an index as a markdown report for developers and LLM prompts."""

    def __init__(
        self,
        base: Path | None = None,
        template_dir: Path | str | None = None,
    ) -> None:
        """
        Initialize the renderer.

        Args:
            base: Directory that report paths are shown relative to
                (defaults to the current working directory).
            template_dir: Optional directory with custom templates.
        """
        self.base = base
        self.templates = TemplateRenderer(Path(template_dir) if template_dir else None)

    def render(self, index: CodebaseIndex) -> str:
        """
        Render the full report.

        Sections, in order: files, routes, functions, components (when
        any), per-type block listings, file contents, code block contents.

        Raises:
            SerializationError: If the report template fails to render.
        """
        try:
            return self.templates.render("report.md.j2", **self.build_context(index))
        except TemplateError as e:
            raise SerializationError(f"Could not render report: {e}") from e

    def build_context(self, index: CodebaseIndex) -> dict[str, Any]:
        """Flatten the index into plain values for the templates."""
        files = [
            {
                "path": self._rel(f.file_path),
                "line_count": f.line_count,
                "lines": f.lines(),
            }
            for f in index.files
        ]

        routes = [
            {"method": r.method, "path": path, "file": self._rel(r.file), "line": r.line}
            for path, r in index.route_map.items()
        ]

        functions = [
            {
                "name": func.name,
                "file": self._rel(f.file_path),
                "start_line": func.start_line,
                "end_line": func.end_line,
            }
            for f in index.files
            for func in f.function_locations
        ]

        components = [
            {"name": name, "file": self._rel(file_path)}
            for name, file_path in index.component_map.items()
        ]

        block_groups = [
            {
                "title": SECTION_TITLES[block_type],
                "blocks": [self._block(b) for b in index.blocks_by_type[block_type]],
            }
            for block_type in REPORT_BLOCK_TYPES
            if index.blocks_by_type.get(block_type)
        ]

        code_blocks = [self._block(b) for f in index.files for b in f.code_blocks]

        return {
            "files": files,
            "routes": routes,
            "functions": functions,
            "components": components,
            "block_groups": block_groups,
            "code_blocks": code_blocks,
        }

    def _block(self, block: CodeBlock) -> dict[str, Any]:
        return {
            "type": block.type,
            "name": block.name,
            "file": self._rel(block.file),
            "start_line": block.start_line,
            "end_line": block.end_line,
            "content": block.content,
            "method": block.method,
            "path": block.path,
            "language": FENCE_LANGUAGES.get(Path(block.file).suffix.lower(), ""),
        }

    def _rel(self, file_path: str) -> str:
        return relative_path(file_path, self.base)


def render(
    index: CodebaseIndex,
    base: Path | None = None,
    template_dir: Path | str | None = None,
) -> str:
    """Render the markdown report for an index."""
    return ReportRenderer(base, template_dir).render(index)


def serialize(index: CodebaseIndex, indent: int | None = 2) -> str:
    """
    Serialize an index to JSON.

    Raises:
        SerializationError: If the index holds values JSON can't represent.
    """
    try:
        return json.dumps(index.to_dict(), indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Could not serialize index: {e}") from e


def deserialize(payload: str | bytes) -> CodebaseIndex:
    """
    Restore an index from its JSON form.

    Raises:
        SerializationError: If the payload is not a serialized index.
    """
    try:
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise TypeError("top-level value must be an object")
        return CodebaseIndex.from_dict(data)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise SerializationError(f"Could not restore index: {e}") from e


def write_artifacts(
    index: CodebaseIndex,
    output_dir: Path,
    markdown_name: str = "codebase-index.md",
    json_name: str = "codebase-index.json",
    base: Path | None = None,
    template_dir: Path | str | None = None,
) -> tuple[Path, Path]:
    """
    Write the markdown report and the JSON index into a directory.

    The directory is created if needed. Both documents are rendered before
    either file is written.

    Returns:
        Paths of the markdown and JSON files.
    """
    markdown = render(index, base, template_dir)
    payload = serialize(index)

    output_dir.mkdir(parents=True, exist_ok=True)
    markdown_path = output_dir / markdown_name
    json_path = output_dir / json_name

    with open(markdown_path, "w", encoding="utf-8") as f:
        f.write(markdown)
    logger.info("Codebase index written to %s", markdown_path)

    with open(json_path, "w", encoding="utf-8") as f:
        f.write(payload)
    logger.info("Raw index written to %s", json_path)

    return markdown_path, json_path
