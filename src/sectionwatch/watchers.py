"""Watch root definitions and per-root ignore rules."""

from collections.abc import Callable
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Protocol

from sectionwatch.classifier import first_segment


@dataclass(frozen=True)
class IgnoreRules:
    """Exclusion rules for one watch root.

    Each root carries its own rules, tailored to the artifacts that root's
    builds write back into the tree. Sharing one list across roots would
    either rebuild on generated output or hide real inputs.
    """

    patterns: tuple[str, ...] = ()
    """Glob patterns matched against the relative path and against the file name."""

    ignore_dotfiles: bool = True
    """Ignore any path with a component starting with "."."""

    def matches(self, relative_path: str) -> bool:
        """Return True if the relative path should not trigger a build.

        Args:
            relative_path: Path relative to the watch root ("/" separated)
        """
        path = PurePosixPath(relative_path)
        if self.ignore_dotfiles and any(part.startswith(".") for part in path.parts):
            return True

        name = path.name
        for pattern in self.patterns:
            if fnmatchcase(relative_path, pattern) or fnmatchcase(name, pattern):
                return True
        return False


@dataclass
class WatchRoot:
    """A directory subtree whose immediate children are sections."""

    name: str
    """Identifier used in logs and events ("manual", "builder")."""

    dir: Path
    """Directory to watch recursively."""

    ignore: IgnoreRules = field(default_factory=IgnoreRules)
    """Paths under this root that never trigger a build."""

    section_resolver: Callable[[str], str | None] = first_segment
    """Maps a relative path to a section name (None means no section)."""


@dataclass
class SiteWatch:
    """The fixed set of top-level files that make up the site section."""

    section: str = "website"
    """Name of the single section these files rebuild."""

    files: list[Path] = field(default_factory=list)
    """Files watched for content modification."""

    build_command: str = "npm run build:website"
    """Command that rebuilds the site."""


class SectionEventSink(Protocol):
    """Receiver of classified watch events (implemented by the Dispatcher)."""

    def handle_event(self, root_name: str, event_kind: str, relative_path: str) -> None:
        """A change under a section root."""
        ...

    def handle_site_event(self, event_kind: str, path: str) -> None:
        """A change to one of the site files."""
        ...
