"""Watch source manager using watchdog.

Watchdog delivers events on its observer thread. Handlers here only filter
(ignore rules are immutable) and then hand the event to the sink on the
asyncio loop with ``call_soon_threadsafe``, so classification, debouncing
and build submission all happen on the loop thread.
"""

import asyncio
import logging
import os
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from sectionwatch.errors import WatchSubscriptionError
from sectionwatch.watchers import SectionEventSink, SiteWatch, WatchRoot

logger = logging.getLogger(__name__)

# Access notifications, not changes
_ACCESS_EVENTS = frozenset({"opened", "closed", "closed_no_write"})


def _event_path(path: str | bytes) -> Path:
    return Path(os.fsdecode(path))


def relative_to_root(path: Path, root: Path) -> str | None:
    """Return path relative to root with "/" separators, or None if outside."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return None


class _SectionRootHandler(FileSystemEventHandler):
    """Forward changes under one section root to the sink."""

    def __init__(self, root: WatchRoot, sink: SectionEventSink, loop: asyncio.AbstractEventLoop):
        """Initialize handler.

        Args:
            root: Root being watched
            sink: Receiver of accepted events (the dispatcher)
            loop: Event loop the sink runs on
        """
        self.root = root
        self.sink = sink
        self.loop = loop

    def relative_paths(self, event: FileSystemEvent) -> list[str]:
        """Paths inside the root that an event touches.

        A move touches both its source and its destination: the source
        section lost an entry and the destination section gained one.
        """
        paths = [_event_path(event.src_path)]
        if event.event_type == "moved":
            paths.append(_event_path(event.dest_path))

        touched = []
        for path in paths:
            rel = relative_to_root(path, self.root.dir)
            if rel and rel != "." and rel not in touched:
                touched.append(rel)
        return touched

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _ACCESS_EVENTS:
            return
        # Directory mtime updates accompany every child change
        if event.is_directory and event.event_type == "modified":
            return

        for rel in self.relative_paths(event):
            if self.root.ignore.matches(rel):
                logger.debug(f"ignored root={self.root.name} event={event.event_type} path={rel}")
                continue
            self.loop.call_soon_threadsafe(self.sink.handle_event, self.root.name, event.event_type, rel)


class _SiteHandler(FileSystemEventHandler):
    """Forward content modifications of the fixed site files to the sink."""

    def __init__(self, site: SiteWatch, sink: SectionEventSink, loop: asyncio.AbstractEventLoop):
        self.site = site
        self.sink = sink
        self.loop = loop
        self.files = {f.resolve() for f in site.files}

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = _event_path(event.src_path).resolve()
        if path in self.files:
            self.loop.call_soon_threadsafe(self.sink.handle_site_event, "modified", str(path))

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic saves replace the file via rename
        if event.is_directory:
            return
        path = _event_path(event.dest_path).resolve()
        if path in self.files:
            self.loop.call_soon_threadsafe(self.sink.handle_site_event, "modified", str(path))


class WatchSourceManager:
    """Own the watchdog observer and its subscriptions."""

    def __init__(self, sink: SectionEventSink, loop: asyncio.AbstractEventLoop):
        """Initialize watch source manager.

        Args:
            sink: Receiver of accepted events
            loop: Event loop for scheduling
        """
        self.sink = sink
        self.loop = loop
        self.observer = Observer()
        self.handlers: list[FileSystemEventHandler] = []
        self._started = False

    def add_root(self, root: WatchRoot) -> None:
        """Watch a section root recursively.

        Raises:
            WatchSubscriptionError: If the directory is missing or cannot be watched
        """
        if not root.dir.is_dir():
            raise WatchSubscriptionError(root.name, f"directory does not exist: {root.dir}")

        handler = _SectionRootHandler(root, self.sink, self.loop)
        self._schedule(root.name, handler, root.dir, recursive=True)
        logger.info(f"Watching {root.dir} as '{root.name}' (ignoring: {', '.join(root.ignore.patterns) or 'none'})")

    def add_site(self, site: SiteWatch) -> None:
        """Watch the site files (non-recursive watch on each parent directory)."""
        handler = _SiteHandler(site, self.sink, self.loop)
        parents = sorted({f.parent for f in handler.files})
        for parent in parents:
            if not parent.is_dir():
                raise WatchSubscriptionError(site.section, f"directory does not exist: {parent}")
            self._schedule(site.section, handler, parent, recursive=False)

        for f in sorted(handler.files):
            if not f.exists():
                logger.warning(f"Site file does not exist yet: {f}")
        logger.info(f"Watching {', '.join(f.name for f in sorted(handler.files))} for '{site.section}'")

    def start(self) -> None:
        """Start the observer thread.

        Raises:
            WatchSubscriptionError: If the OS refuses a watch (e.g. inotify limits)
        """
        if not self.handlers:
            logger.debug("No watch subscriptions configured")
            return
        try:
            self.observer.start()
        except OSError as e:
            raise WatchSubscriptionError("observer", str(e)) from e
        self._started = True
        logger.info(f"Started {len(self.handlers)} watch subscription(s)")

    def stop(self) -> None:
        """Stop the observer thread."""
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=2.0)
            logger.info("Stopped watch subscriptions")
        self._started = False

    def is_healthy(self) -> bool:
        """True while the observer thread is running (or was never started)."""
        if not self._started:
            return True
        return self.observer.is_alive()

    def _schedule(self, name: str, handler: FileSystemEventHandler, path: Path, recursive: bool) -> None:
        try:
            self.observer.schedule(handler, str(path), recursive=recursive)
        except OSError as e:
            raise WatchSubscriptionError(name, str(e)) from e
        if handler not in self.handlers:
            self.handlers.append(handler)
