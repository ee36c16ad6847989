"""Shared data models for sectionwatch."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Section:
    """A named unit of buildable content."""

    name: str
    """Section identifier (a top-level directory name, or the site section)."""

    build_command: str
    """Shell-invocable command that rebuilds this section."""

    root: str | None = None
    """Name of the watch root the section was discovered under (None for the site)."""


def section_number(name: str) -> str:
    """Return the portion of a section name before its first "-".

    Names without a dash are returned whole. A name that starts with a dash
    falls back to the full name so the build command never gets an empty key.
    """
    head = name.split("-", 1)[0]
    return head or name


class TriggerPhase(Enum):
    """Debounce state machine phases."""

    IDLE = "idle"
    COOLDOWN = "cooldown"


@dataclass
class DebounceState:
    """Per-section debounce bookkeeping, owned by one DebouncedTrigger."""

    phase: TriggerPhase = TriggerPhase.IDLE
    """Current phase of the state machine."""

    cooldown_until: float | None = None
    """Clock reading at which the current quiet window ends."""

    last_fired: float | None = None
    """Clock reading of the most recent build invocation."""

    fired_count: int = 0
    """Number of build invocations issued for this section."""

    absorbed_count: int = 0
    """Number of events absorbed inside a quiet window."""

    @property
    def pending(self) -> bool:
        """True while a quiet window is open."""
        return self.phase is TriggerPhase.COOLDOWN


@dataclass(frozen=True)
class BuildOutcome:
    """Result of one build invocation. Logged, then discarded."""

    section: str
    success: bool
    error_detail: str | None = None

