"""Change-to-build dispatcher. Primary embed point."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from sectionwatch.classifier import PathClassifier
from sectionwatch.config import DispatcherConfig
from sectionwatch.debounce import DebouncedTrigger
from sectionwatch.errors import WatchSubscriptionError
from sectionwatch.file_watcher import WatchSourceManager
from sectionwatch.models import BuildOutcome
from sectionwatch.notifier import BuildNotifier, LoggingNotifier
from sectionwatch.registry import SectionRegistry
from sectionwatch.runner import BuildRunner

logger = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL = 1.0


class BuildSubmitter(Protocol):
    """What the dispatcher needs from a build runner."""

    def submit(self, section: str) -> Any:
        """Start a build for a section without waiting for it."""
        ...

    async def wait_all(self) -> list[BuildOutcome]:
        """Wait for in-flight builds."""
        ...

    async def shutdown(self) -> None:
        """Stop in-flight builds."""
        ...


class Dispatcher:
    """Route filesystem changes to per-section debounced builds.

    Owns the section registry, one DebouncedTrigger per section, the build
    runner and (once attached) the watch source manager. Every callback runs
    on the event loop thread, so the trigger table needs no locking.

    Usage:
        dispatcher = Dispatcher(load_config("sectionwatch.toml"))
        await dispatcher.serve()   # runs until cancelled
    """

    def __init__(
        self,
        config: DispatcherConfig,
        runner: BuildSubmitter | None = None,
        notifier: BuildNotifier | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize dispatcher.

        Args:
            config: Resolved configuration
            runner: Build runner (defaults to a cmdorc-backed BuildRunner)
            notifier: Trigger and outcome reporting (defaults to logging)
            clock: Time source for debouncing

        Raises:
            ConfigurationError: If a watch root is missing or the sections
                cannot be enumerated
        """
        self.config = config
        self.notifier = notifier or LoggingNotifier()
        self.registry = SectionRegistry.discover(config.roots, config.site, config.build_command)
        self.roots = {root.name: root for root in config.roots}
        self.classifier = PathClassifier(
            config.root_file_policy,
            resolvers={root.name: root.section_resolver for root in config.roots},
            known_sections=self.registry.names(),
        )
        self.runner = runner or BuildRunner(
            self.registry.list_sections(),
            on_outcome=self.notifier.finished,
            single_flight=config.single_flight,
            cwd=config.project_root,
        )
        self.triggers: dict[str, DebouncedTrigger] = {
            section.name: DebouncedTrigger(section.name, self._fire, config.quiet_window, clock)
            for section in self.registry
        }

        self._loop: asyncio.AbstractEventLoop | None = None
        self._watch_manager: WatchSourceManager | None = None

    @property
    def is_attached(self) -> bool:
        return self._loop is not None

    # ========================================================================
    # Event handling (event loop thread)
    # ========================================================================

    def handle_event(self, root_name: str, event_kind: str, relative_path: str) -> None:
        """Classify a change under a section root and feed its trigger."""
        if root_name not in self.roots:
            logger.warning(f"event from unknown root root={root_name} event={event_kind} path={relative_path}")
            return

        section = self.classifier.classify(root_name, relative_path)
        if section is None:
            return

        trigger = self.triggers.get(section)
        if trigger is None or section == self._site_section:
            self.notifier.dropped(section, event_kind, relative_path, "unknown-section")
            return

        trigger.notify(event_kind, relative_path)

    def handle_site_event(self, event_kind: str, path: str) -> None:
        """Feed a site file change to the site trigger. Only modifications count."""
        if self._site_section is None or event_kind != "modified":
            return
        self.triggers[self._site_section].notify(event_kind, path)

    @property
    def _site_section(self) -> str | None:
        return self.config.site.section if self.config.site is not None else None

    def _fire(self, section: str, event_kind: str, path: str) -> None:
        self.notifier.triggered(section, event_kind, path)
        self.runner.submit(section)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def attach(self, loop: asyncio.AbstractEventLoop, enable_watchers: bool = True) -> None:
        """Attach to a running event loop and start the watch subscriptions.

        Args:
            loop: Event loop to attach to
            enable_watchers: If False, only the triggers are attached; events
                must be fed through handle_event()/handle_site_event()

        Raises:
            RuntimeError: If the loop is not running
            WatchSubscriptionError: If a subscription cannot be established
        """
        if self._loop is not None:
            logger.warning("Dispatcher already attached to event loop")
            return
        if not loop.is_running():
            raise RuntimeError("Event loop must be running to attach")

        self._loop = loop
        for trigger in self.triggers.values():
            trigger.attach(loop)

        if enable_watchers:
            manager = WatchSourceManager(self, loop)
            try:
                for root in self.config.roots:
                    manager.add_root(root)
                if self.config.site is not None:
                    manager.add_site(self.config.site)
                manager.start()
            except WatchSubscriptionError:
                manager.stop()
                self.detach()
                raise
            self._watch_manager = manager

        logger.info(f"Dispatching {len(self.registry)} section(s): {', '.join(self.registry.names())}")

    def detach(self) -> None:
        """Stop watching and drop pending debounce timers."""
        if self._watch_manager is not None:
            try:
                self._watch_manager.stop()
            except Exception as e:
                logger.error(f"Failed to stop watch subscriptions: {e}")
            self._watch_manager = None

        for trigger in self.triggers.values():
            trigger.detach()
        self._loop = None
        logger.debug("Dispatcher detached from event loop")

    async def serve(self, health_check_interval: float = HEALTH_CHECK_INTERVAL) -> None:
        """Watch and dispatch until cancelled.

        Raises:
            WatchSubscriptionError: If a subscription fails at startup or the
                observer stops while serving
        """
        self.attach(asyncio.get_running_loop())
        try:
            while True:
                await asyncio.sleep(health_check_interval)
                if self._watch_manager is not None and not self._watch_manager.is_healthy():
                    raise WatchSubscriptionError("observer", "observer thread stopped unexpectedly")
        finally:
            self.detach()
            await self.runner.shutdown()

    async def wait_for_builds(self) -> list[BuildOutcome]:
        """Wait for every build currently in flight."""
        return await self.runner.wait_all()
