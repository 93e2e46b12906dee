"""
Template system for the human-readable report.

Provides Jinja2-based templating with default templates and support for
custom user templates. A custom template directory only needs to contain
the templates it overrides.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


DEFAULT_TEMPLATES = {
    "report.md.j2": """# Codebase Structure

{% include "sections/files.md.j2" %}
{% include "sections/routes.md.j2" %}
{% include "sections/functions.md.j2" %}
{% include "sections/components.md.j2" %}
{% include "sections/blocks.md.j2" %}
{% include "sections/contents.md.j2" %}
{% include "sections/code_blocks.md.j2" %}
""",

    "sections/files.md.j2": """## Files

{% for file in files %}
- {{ file.path }} ({{ file.line_count }} lines)
{% endfor %}

""",

    "sections/routes.md.j2": """## Routes

{% for route in routes %}
- {{ route.method | upper }} {{ route.path }} - Defined in {{ route.file }}:{{ route.line }}
{% endfor %}

""",

    "sections/functions.md.j2": """## Functions

{% for func in functions %}
- {{ func.name }} - {{ func.file }}:{{ func.start_line }}-{{ func.end_line }}
{% endfor %}

""",

    "sections/components.md.j2": """{% if components %}
## Components

{% for component in components %}
- {{ component.name }} - {{ component.file }}
{% endfor %}

{% endif %}
""",

    "sections/blocks.md.j2": """{% for group in block_groups %}
## {{ group.title }}

{% for block in group.blocks %}
- {{ block.name }} - {{ block.file }}:{{ block.start_line }}-{{ block.end_line }}
{% if block.method and block.path %}
  - Method: {{ block.method | upper }}, Path: {{ block.path }}
{% endif %}
{% endfor %}

{% endfor %}
""",

    "sections/contents.md.j2": """## File Contents

{% for file in files %}
### {{ file.path }}

```
{% for line in file.lines %}
{{ loop.index }}: {{ line }}
{% endfor %}
```

{% endfor %}
""",

    "sections/code_blocks.md.j2": """## Code Blocks

{% for block in code_blocks %}
### {{ block.type }}: {{ block.name }} ({{ block.file }}:{{ block.start_line }}-{{ block.end_line }})

```{{ block.language }}
{{ block.content }}
```

{% endfor %}
""",
}


class TemplateRenderer:
    """
    Render report templates.

    Supports both default templates and custom user templates.
    """

    def __init__(self, custom_template_dir: Path | None = None) -> None:
        """
        Initialize the template renderer.

        Args:
            custom_template_dir: Optional directory with custom templates.
        """
        self.custom_dir = custom_template_dir

        loaders = []
        if custom_template_dir and custom_template_dir.exists():
            loaders.append(FileSystemLoader(str(custom_template_dir)))
        loaders.append(DictLoader(DEFAULT_TEMPLATES))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, template_name: str, **context: Any) -> str:
        """
        Render a template with context.

        Args:
            template_name: Name of the template (e.g., "report.md.j2")
            **context: Template context variables.

        Returns:
            Rendered template string.
        """
        template = self.env.get_template(template_name)
        return template.render(**context)


def create_template_dir(output_dir: Path) -> None:
    """
    Create a template directory with default templates.

    Useful for users who want to customize the report layout.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    for template_name, content in DEFAULT_TEMPLATES.items():
        template_path = output_dir / template_name
        template_path.parent.mkdir(parents=True, exist_ok=True)
        with open(template_path, "w", encoding="utf-8") as f:
            f.write(content)
    logger.info("Wrote %d templates to %s", len(DEFAULT_TEMPLATES), output_dir)
