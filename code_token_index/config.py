"""
Configuration constants and loading utilities for code_token_index.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml


# Regex searched against file names (not paths)
DEFAULT_INCLUDE = r"\.(js|ts|jsx|tsx)$"

# Regex searched against full paths; matching directories are never entered
DEFAULT_EXCLUDE = r"node_modules|\.git"

# Files with these extensions are treated as UI components
COMPONENT_EXTENSIONS = (".tsx", ".jsx")

# Fixed set of block type tags, in detection order
BLOCK_TYPES = ("function", "route", "import", "class", "interface", "middleware")

# Block types listed individually in the report, in report order
REPORT_BLOCK_TYPES = ("route", "function", "class", "interface", "middleware")

HTTP_METHODS = ("get", "post", "put", "delete", "patch")

# Fence languages for code block contents in the report
FENCE_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "jsx",
}


DEFAULT_CONFIG: dict[str, Any] = {
    # Directory walk
    "scan": {
        "include": DEFAULT_INCLUDE,
        "exclude": DEFAULT_EXCLUDE,
    },

    # Component detection (file extension heuristic)
    "components": {
        "extensions": list(COMPONENT_EXTENSIONS),
    },

    # Route and middleware registration receivers: <receiver>.get(...), <receiver>.use(...)
    "routes": {
        "receivers": ["app"],
    },

    # Report artifacts
    "report": {
        "output_dir": "src",
        "markdown_name": "codebase-index.md",
        "json_name": "codebase-index.json",
        "prompt_chars": 12000,
        # Directory with Jinja2 templates overriding the default report layout
        "template_dir": None,
    },

    # Text-completion service used for free-text queries
    "llm": {
        "base_url": "https://api.openai.com/v1",
        "model": "gpt-4o-mini",
        "temperature": 1.0,
        "api_key_env": "OPENAI_API_KEY",
        "timeout": 60.0,
    },

    # Vector store similarity search (--search)
    "semantic": {
        "model": "all-MiniLM-L6-v2",
        # Record kind to embed and search: "block", "token", or None for both
        "kind": "block",
        "top_k": 10,
    },
}


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(user_config: dict[str, Any]) -> dict[str, Any]:
    """
    Merge a user configuration over the defaults.

    Top-level sections that are dicts on both sides are merged key by key.
    A section left empty in YAML (loaded as None) keeps its defaults;
    anything else replaces the default value.

    Args:
        user_config: Partial configuration dictionary.

    Returns:
        Complete configuration dictionary.
    """
    config = get_default_config()
    for key, value in user_config.items():
        if value is None and isinstance(config.get(key), dict):
            continue
        if isinstance(value, dict) and key in config and isinstance(config[key], dict):
            config[key] = {**config[key], **value}
        else:
            config[key] = value
    return config


def load_config(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from YAML file, merged with defaults.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration dictionary with user values merged over defaults.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If the file does not contain a YAML mapping.
    """
    with open(config_path, "r", encoding="utf-8") as f:
        user_config = yaml.safe_load(f) or {}

    if not isinstance(user_config, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    return merge_config(user_config)


def get_config_template() -> str:
    """Generate a commented YAML config template."""
    return '''# =============================================================================
# Code Token Index Configuration
# =============================================================================
# Usage:
#   code-token-index . --config this_file.yaml -v
#
# The scan is a best-effort lexical pass. Braces inside strings, template
# literals and comments are counted like any other brace and may shift the
# detected end of a block.
# =============================================================================

# Which files to index. Both values are regular expressions.
#   include: searched against the file name
#   exclude: searched against the full path; excluded directories are skipped
scan:
  include: "\\\\.(js|ts|jsx|tsx)$"
  exclude: "node_modules|\\\\.git"

# Files with these extensions are listed in the component table
components:
  extensions:
    - .tsx
    - .jsx

# Identifiers accepted as the receiver of route and middleware registrations,
# e.g. app.get('/users', ...) or app.use(cors())
routes:
  receivers:
    - app
    # - router

# Output artifacts, written relative to the scanned root
report:
  output_dir: src
  markdown_name: codebase-index.md
  json_name: codebase-index.json
  # Characters of the report sent along with a free-text question
  prompt_chars: 12000
  # Templates overriding the report layout (see --init-templates)
  # template_dir: templates

# OpenAI-compatible completion endpoint used by --ask
llm:
  base_url: "https://api.openai.com/v1"
  model: gpt-4o-mini
  temperature: 1.0
  api_key_env: OPENAI_API_KEY
  timeout: 60.0

# Similarity search over tokens and blocks (--search), needs the semantic extra
semantic:
  model: all-MiniLM-L6-v2
  # "block", "token", or null for both
  kind: block
  top_k: 10
'''
