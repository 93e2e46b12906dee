"""
Directory walker for code_token_index.

Depth-first, name-sorted traversal driven by an explicit stack of
directory iterators, so deep trees never hit the recursion limit.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterator

from code_token_index.config import DEFAULT_EXCLUDE, DEFAULT_INCLUDE
from code_token_index.errors import IndexIOError
from code_token_index.utils import compile_pattern, should_exclude

logger = logging.getLogger(__name__)


def _list_dir(directory: Path) -> Iterator[os.DirEntry[str]]:
    """
    List a directory's entries sorted by name.

    Raises:
        IndexIOError: If the directory can't be read.
    """
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        raise IndexIOError(directory, e.strerror or str(e)) from e
    return iter(entries)


def walk(
    root: Path | str,
    include: str | re.Pattern[str] = DEFAULT_INCLUDE,
    exclude: str | re.Pattern[str] = DEFAULT_EXCLUDE,
) -> list[Path]:
    """
    Enumerate source files under a root directory.

    Excluded paths are tested before descending, so an excluded directory's
    contents are never listed. A file is kept when its name matches
    ``include`` and its path does not match ``exclude``.

    Args:
        root: Directory to walk.
        include: Regex searched against each file name.
        exclude: Regex searched against each full path.

    Returns:
        Absolute file paths in depth-first, name-sorted order.

    Raises:
        IndexIOError: If the root or any directory below it can't be read.
    """
    root = Path(root).absolute()
    include_re = compile_pattern(include)
    exclude_re = compile_pattern(exclude)

    if not root.exists():
        raise IndexIOError(root, "no such directory")
    if not root.is_dir():
        raise IndexIOError(root, "not a directory")

    results: list[Path] = []
    stack = [_list_dir(root)]

    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
            continue

        path = Path(entry.path)
        if should_exclude(path, exclude_re):
            logger.debug("Excluded: %s", path)
            continue

        if entry.is_dir(follow_symlinks=False):
            stack.append(_list_dir(path))
        elif include_re.search(entry.name):
            results.append(path)

    logger.debug("Found %d files under %s", len(results), root)
    return results
