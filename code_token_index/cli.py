"""
CLI interface for code_token_index.

Scans a directory, writes the markdown report and JSON index, and answers
status and free-text queries against the index.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from code_token_index import __version__
from code_token_index.config import (
    DEFAULT_CONFIG,
    get_config_template,
    get_default_config,
    load_config,
)
from code_token_index.errors import IndexIOError, SerializationError
from code_token_index.query import CompletionClient, IndexService, ServiceError
from code_token_index.records import SentenceTransformerEmbedder, VectorStore
from code_token_index.report import serialize, write_artifacts
from code_token_index.templates import create_template_dir
from code_token_index.utils import relative_path

if TYPE_CHECKING:
    from typing import Any

    from code_token_index.models import CodebaseIndex
    from code_token_index.records import SearchHit

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="code-token-index",
        description="Tokenize a JS/TS codebase into an LLM-friendly index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  code-token-index .                        # Write src/codebase-index.{md,json}
  code-token-index ./app -o build/index     # Choose the output directory
  code-token-index . --stdout               # Print the markdown report
  code-token-index . --json                 # Print the JSON index
  code-token-index . --status src/index.ts  # Stats for one file
  code-token-index . --ask "Where is login handled?"
  code-token-index . --search "user login" --top-k 5
  code-token-index . --watch                # Rebuild on every change
  code-token-index --init-templates tpl     # Copy the report templates for editing
  code-token-index . --template-dir tpl     # Render with edited templates

Disclaimer:
  Detection is a line-by-line lexical scan. Braces inside strings,
  template literals and comments are counted like code braces.
        """,
    )

    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Directory to scan (default: current directory)",
    )
    parser.add_argument(
        "-o", "--output-dir",
        help="Directory for the report and JSON index (default: <path>/src)",
    )

    output_group = parser.add_argument_group("Output")
    output_group.add_argument(
        "--stdout",
        action="store_true",
        help="Print the markdown report instead of writing files",
    )
    output_group.add_argument(
        "--json",
        action="store_true",
        help="Print the JSON index instead of writing files",
    )

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--config",
        metavar="FILE",
        help="YAML config file",
    )
    config_group.add_argument(
        "--init-config",
        action="store_true",
        help="Print a config template and exit",
    )
    config_group.add_argument(
        "--include",
        metavar="REGEX",
        help="Regex for file names to index (default: \\.(js|ts|jsx|tsx)$)",
    )
    config_group.add_argument(
        "--exclude",
        metavar="REGEX",
        help="Regex for paths to skip (default: node_modules|\\.git)",
    )
    config_group.add_argument(
        "--template-dir",
        metavar="DIR",
        help="Directory with Jinja2 templates overriding the report layout",
    )
    config_group.add_argument(
        "--init-templates",
        metavar="DIR",
        help="Write the default report templates to DIR and exit",
    )

    query_group = parser.add_argument_group("Queries")
    query_group.add_argument(
        "--status",
        metavar="FILE",
        help="Print summary stats for one file (relative to path)",
    )
    query_group.add_argument(
        "--ask",
        metavar="QUESTION",
        help="Answer a question using the report as context (needs an API key)",
    )
    query_group.add_argument(
        "--search",
        metavar="QUERY",
        help="Find the most similar code blocks (needs the semantic extra)",
    )
    query_group.add_argument(
        "--top-k",
        type=int,
        metavar="N",
        help="Number of --search results (default: 10)",
    )

    parser.add_argument(
        "--watch",
        action="store_true",
        help="Rewrite the artifacts whenever source files change",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"code_token_index {__version__}",
    )

    return parser


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def build_config(args: argparse.Namespace) -> dict[str, Any]:
    """Load the config file (if any) and apply CLI overrides."""
    config = load_config(Path(args.config)) if args.config else get_default_config()

    if args.template_dir:
        config["report"] = {**(config.get("report") or {}), "template_dir": args.template_dir}

    if args.include or args.exclude:
        scan = dict(config.get("scan") or {})
        if args.include:
            scan["include"] = args.include
        if args.exclude:
            scan["exclude"] = args.exclude
        config["scan"] = scan

    return config


def output_paths(args: argparse.Namespace, root: Path, config: dict[str, Any]) -> tuple[Path, str, str]:
    """Resolve the output directory and artifact names."""
    report_config = config.get("report") or {}
    if args.output_dir:
        output_dir = Path(args.output_dir)
    else:
        output_dir = root / report_config.get("output_dir", "src")
    return (
        output_dir,
        report_config.get("markdown_name", "codebase-index.md"),
        report_config.get("json_name", "codebase-index.json"),
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.init_config:
        print(get_config_template())
        return

    if args.init_templates:
        create_template_dir(Path(args.init_templates))
        print(f"Templates written to {args.init_templates}")
        return

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        print(f"Error: Could not load config: {e}", file=sys.stderr)
        sys.exit(1)

    root = Path(args.path).absolute()
    if not root.is_dir():
        print(f"Error: Path '{root}' does not exist or is not a directory", file=sys.stderr)
        sys.exit(1)

    service = IndexService(root, config)

    try:
        if args.status:
            print(json.dumps(service.status(args.status), indent=2))
            return

        if args.ask:
            handle_ask(service, args.ask, config)
            return

        if args.search:
            handle_search(service, args.search, config, args.top_k)
            return

        index = service.index
        if args.verbose:
            print(f"Indexed {len(index.files)} files under {root}", file=sys.stderr)

        if args.json:
            print(serialize(index))
            return
        if args.stdout:
            print(service.report(), end="")
            return

        output_dir, markdown_name, json_name = output_paths(args, root, config)
        template_dir = (config.get("report") or {}).get("template_dir")
        write_index(index, output_dir, markdown_name, json_name, root, template_dir)

        if args.watch:
            from code_token_index.watcher import watch_and_rebuild

            watch_and_rebuild(
                root,
                lambda new_index: write_index(
                    new_index, output_dir, markdown_name, json_name, root, template_dir
                ),
                config=config,
            )

    except ServiceError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        if e.__cause__ is not None and args.verbose:
            print(f"  Caused by: {e.__cause__}", file=sys.stderr)
        sys.exit(1)
    except (IndexIOError, SerializationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def write_index(
    index: CodebaseIndex,
    output_dir: Path,
    markdown_name: str,
    json_name: str,
    root: Path,
    template_dir: str | None = None,
) -> None:
    """Write both artifacts and report where they went."""
    markdown_path, json_path = write_artifacts(
        index,
        output_dir,
        markdown_name=markdown_name,
        json_name=json_name,
        base=root,
        template_dir=template_dir,
    )
    print(f"Codebase index written to {markdown_path}")
    print(f"Raw index written to {json_path}")


def handle_ask(service: IndexService, question: str, config: dict[str, Any]) -> None:
    """Answer a question with the configured completion endpoint."""
    try:
        client = CompletionClient.from_config(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    with client:
        print(service.ask(question, client))


def handle_search(
    service: IndexService,
    query: str,
    config: dict[str, Any],
    top_k: int | None = None,
) -> None:
    """Embed the index into a vector store and print the closest records."""
    semantic = {**DEFAULT_CONFIG["semantic"], **(config.get("semantic") or {})}
    embedder = SentenceTransformerEmbedder(semantic["model"])

    with VectorStore(embedder) as store:
        hits = service.search(query, store, top_k=top_k)

    if not hits:
        print("No matches.")
    for hit in hits:
        print(format_hit(hit, service.root))


def format_hit(hit: SearchHit, root: Path) -> str:
    """One search result line: score, location and what matched."""
    record = hit.record
    location = relative_path(record.file_path, root)
    if record.kind == "block":
        line = record.metadata["start_line"]
        label = f"{record.metadata['type']}: {record.metadata['name']}"
    else:
        line = record.metadata["line_number"]
        label = record.text
    return f"{hit.score:.3f}  {location}:{line}  {label}"


if __name__ == "__main__":
    main()
