"""Leading-edge debounce, one trigger per section.

Each trigger is a two-phase state machine::

    IDLE     --event-->   fire, COOLDOWN(now + window)
    COOLDOWN --event-->   COOLDOWN (absorbed)
    COOLDOWN --timeout--> IDLE

The first event of a burst fires immediately. Later events inside the quiet
window are absorbed; they neither fire nor extend the window.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from sectionwatch.models import DebounceState, TriggerPhase

logger = logging.getLogger(__name__)

DEFAULT_QUIET_WINDOW = 0.5


class DebouncedTrigger:
    """Coalesce bursts of change events for one section into single builds."""

    def __init__(
        self,
        section: str,
        fire: Callable[[str, str, str], None],
        quiet_window: float = DEFAULT_QUIET_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize trigger.

        Args:
            section: Section name this trigger belongs to
            fire: Called as fire(section, event_kind, path) on the leading edge
            quiet_window: Seconds after firing during which events are absorbed
            clock: Monotonic time source (seconds)
        """
        if quiet_window <= 0:
            raise ValueError(f"quiet_window must be positive, got {quiet_window}")
        self.section = section
        self.quiet_window = quiet_window
        self.state = DebounceState()
        self._fire = fire
        self._clock = clock
        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer: asyncio.TimerHandle | None = None

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        """Schedule cooldown expiry on this loop from now on."""
        self._loop = loop

    def detach(self) -> None:
        """Drop the pending expiry timer and return to idle."""
        self._cancel_timer()
        self._expire()
        self._loop = None

    @property
    def has_timer(self) -> bool:
        return self._timer is not None

    def notify(self, event_kind: str = "modified", path: str = "") -> bool:
        """Feed one change event.

        Args:
            event_kind: Kind of filesystem event, for logging
            path: Changed path, for logging

        Returns:
            True if the event fired a build, False if it was absorbed
        """
        now = self._clock()
        if self._in_cooldown(now):
            self.state.absorbed_count += 1
            logger.debug(f"event absorbed section={self.section} event={event_kind} path={path}")
            return False

        self._enter_cooldown(now)
        try:
            self._fire(self.section, event_kind, path)
        except Exception as e:
            logger.exception(f"trigger failed section={self.section} error={e}")
        return True

    def _in_cooldown(self, now: float) -> bool:
        state = self.state
        if state.phase is not TriggerPhase.COOLDOWN:
            return False
        if state.cooldown_until is not None and now >= state.cooldown_until:
            # Window elapsed but the expiry timer has not run yet (or there is no loop)
            self._cancel_timer()
            self._expire()
            return False
        return True

    def _enter_cooldown(self, now: float) -> None:
        self._cancel_timer()
        self.state.phase = TriggerPhase.COOLDOWN
        self.state.cooldown_until = now + self.quiet_window
        self.state.last_fired = now
        self.state.fired_count += 1
        if self._loop is not None and not self._loop.is_closed():
            self._timer = self._loop.call_later(self.quiet_window, self._on_timeout)

    def _on_timeout(self) -> None:
        self._timer = None
        self._expire()

    def _expire(self) -> None:
        self.state.phase = TriggerPhase.IDLE
        self.state.cooldown_until = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
