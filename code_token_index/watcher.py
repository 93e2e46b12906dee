"""
File watcher that rebuilds the index when source files change.

Each change triggers a full re-scan; the new index replaces the old one
wholesale.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from code_token_index.config import DEFAULT_CONFIG
from code_token_index.scanner import build_index
from code_token_index.utils import compile_pattern, should_exclude

if TYPE_CHECKING:
    from typing import Any

    from code_token_index.models import CodebaseIndex

logger = logging.getLogger(__name__)


class IndexRebuildHandler(FileSystemEventHandler):
    """Handler for file system events that triggers index rebuilds."""

    def __init__(
        self,
        callback: Callable[[], None],
        include: str = DEFAULT_CONFIG["scan"]["include"],
        exclude: str = DEFAULT_CONFIG["scan"]["exclude"],
        debounce_seconds: float = 2.0,
    ) -> None:
        """
        Initialize the handler.

        Args:
            callback: Function to call when relevant files change.
            include: Regex searched against changed file names.
            exclude: Regex searched against changed paths.
            debounce_seconds: Minimum time between rebuilds.
        """
        super().__init__()
        self.callback = callback
        self.include = compile_pattern(include)
        self.exclude = compile_pattern(exclude)
        self.debounce_seconds = debounce_seconds
        self._last_trigger = float("-inf")
        self._pending = False
        self._running = False
        self._lock = threading.Lock()

    def is_relevant(self, path: str | bytes) -> bool:
        """Whether a changed path belongs to the scanned source set."""
        if isinstance(path, bytes):
            path = path.decode(errors="replace")
        if should_exclude(path, self.exclude):
            return False
        return self.include.search(Path(path).name) is not None

    def on_any_event(self, event: Any) -> None:
        """Handle created, modified, deleted and moved files."""
        if event.is_directory or event.event_type in ("opened", "closed", "closed_no_write"):
            return

        paths = [event.src_path]
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            paths.append(dest_path)

        if not any(self.is_relevant(p) for p in paths):
            return

        with self._lock:
            if self._running or time.monotonic() - self._last_trigger < self.debounce_seconds:
                self._pending = True
                return
            self._claim()

        self._rebuild(event.src_path)

    def flush_pending(self) -> None:
        """Run a deferred rebuild once the debounce window has passed."""
        with self._lock:
            ready = (
                self._pending
                and not self._running
                and time.monotonic() - self._last_trigger >= self.debounce_seconds
            )
            if not ready:
                return
            self._claim()

        self._rebuild("multiple files")

    def trigger(self, path: str | bytes) -> None:
        """Run the rebuild callback now, or defer it if a rebuild is running."""
        with self._lock:
            if self._running:
                self._pending = True
                return
            self._claim()

        self._rebuild(path)

    def _claim(self) -> None:
        # Caller holds self._lock; only one rebuild runs at a time
        self._running = True
        self._last_trigger = time.monotonic()
        self._pending = False

    def _rebuild(self, path: str | bytes) -> None:
        logger.info("File changed: %s", path)
        print(f"\n[watch] File changed: {path}", flush=True)
        print("[watch] Rebuilding index...", flush=True)

        try:
            self.callback()
            print("[watch] Done. Waiting for changes...", flush=True)
        except Exception as e:
            logger.exception("Rebuild failed")
            print(f"[watch] Error: {e}", flush=True)
        finally:
            with self._lock:
                self._running = False


def watch_and_rebuild(
    root: Path,
    on_rebuild: Callable[[CodebaseIndex], None],
    config: dict[str, Any] | None = None,
    debounce_seconds: float = 2.0,
    stop: threading.Event | None = None,
) -> None:
    """
    Watch a directory and rebuild the index on changes.

    Blocks until Ctrl+C or until ``stop`` is set.

    Args:
        root: Directory to watch and re-scan.
        on_rebuild: Receives each freshly built index.
        config: Configuration dictionary.
        debounce_seconds: Minimum time between rebuilds.
        stop: Optional event that ends the watch loop.
    """
    config = config or DEFAULT_CONFIG
    scan_config = config.get("scan") or {}

    def rebuild() -> None:
        on_rebuild(build_index(root, config))

    handler = IndexRebuildHandler(
        callback=rebuild,
        include=scan_config.get("include", DEFAULT_CONFIG["scan"]["include"]),
        exclude=scan_config.get("exclude", DEFAULT_CONFIG["scan"]["exclude"]),
        debounce_seconds=debounce_seconds,
    )

    observer = Observer()
    observer.schedule(handler, str(root), recursive=True)
    observer.start()

    print(f"[watch] Watching {root} for changes...", flush=True)
    print("[watch] Press Ctrl+C to stop", flush=True)

    stop = stop or threading.Event()
    try:
        while not stop.wait(1.0):
            handler.flush_pending()
    except KeyboardInterrupt:
        print("\n[watch] Stopping...", flush=True)
    finally:
        observer.stop()
        observer.join()
