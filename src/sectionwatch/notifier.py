"""Pluggable build reporting for sectionwatch.

The dispatcher reports every trigger and every build outcome through a
notifier. The default writes structured log lines; hosts embedding the
dispatcher can pass their own implementation.
"""

import logging
from typing import Protocol

from sectionwatch.models import BuildOutcome

logger = logging.getLogger("sectionwatch.builds")


class BuildNotifier(Protocol):
    """Protocol for build notifications - host can provide custom implementation."""

    def triggered(self, section: str, event_kind: str, path: str) -> None:
        """A build was started for a section."""
        ...

    def finished(self, outcome: BuildOutcome) -> None:
        """A build finished."""
        ...

    def dropped(self, name: str, event_kind: str, path: str, reason: str) -> None:
        """An event did not map to any registered section."""
        ...


class LoggingNotifier:
    """Implementation using stdlib logging."""

    def triggered(self, section: str, event_kind: str, path: str) -> None:
        logger.info(f"build triggered section={section} event={event_kind} path={path}")

    def finished(self, outcome: BuildOutcome) -> None:
        if outcome.success:
            logger.info(f"build succeeded section={outcome.section}")
        else:
            logger.error(f"build failed section={outcome.section} error={outcome.error_detail}")

    def dropped(self, name: str, event_kind: str, path: str, reason: str) -> None:
        logger.warning(f"event dropped section={name} event={event_kind} path={path} reason={reason}")
