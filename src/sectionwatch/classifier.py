"""Map changed paths to the section they belong to."""

import logging
from collections.abc import Callable, Iterable
from enum import Enum

logger = logging.getLogger(__name__)


class RootFilePolicy(str, Enum):
    """What to do with a change directly inside a watch root (no section segment)."""

    SELF = "self"
    """Attribute the change to a section named after the file itself."""

    SKIP = "skip"
    """Drop the change."""


def normalize(relative_path: str) -> str:
    """Return the path with "/" separators and no leading "./" or "/"."""
    path = relative_path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def first_segment(relative_path: str) -> str | None:
    """Return the part of the path before the first separator.

    A path with no separator is returned whole. An empty path (the root
    itself) has no segment.
    """
    path = normalize(relative_path)
    if not path or path == ".":
        return None
    return path.split("/", 1)[0]


def is_root_level(relative_path: str) -> bool:
    """True if the path names an entry directly inside the root."""
    path = normalize(relative_path)
    return bool(path) and "/" not in path


class PathClassifier:
    """Resolve (root, relative path) pairs to section names."""

    def __init__(
        self,
        root_file_policy: RootFilePolicy | str = RootFilePolicy.SELF,
        resolvers: dict[str, Callable[[str], str | None]] | None = None,
        known_sections: Iterable[str] = (),
    ):
        """Initialize classifier.

        Args:
            root_file_policy: Handling of entries directly inside a root
            resolvers: Per-root section resolvers (default: first path segment)
            known_sections: Section names; a root-level entry with one of these
                names is the section directory itself, not an ambiguous file
        """
        self.root_file_policy = RootFilePolicy(root_file_policy)
        self.resolvers = resolvers or {}
        self.known_sections = frozenset(known_sections)

    def classify(self, root_id: str, relative_path: str) -> str | None:
        """Return the section name for a change, or None if it has none.

        Args:
            root_id: Name of the watch root the path is relative to
            relative_path: Changed path relative to that root

        Returns:
            The first path segment, verbatim. For a root-level entry that is
            not a known section the result depends on the root file policy.
        """
        resolver = self.resolvers.get(root_id, first_segment)
        segment = resolver(relative_path)
        if segment is None:
            return None

        if is_root_level(relative_path) and segment in self.known_sections:
            logger.debug(f"section entry changed root={root_id} path={relative_path} section={segment}")
        elif is_root_level(relative_path):
            if self.root_file_policy is RootFilePolicy.SKIP:
                logger.warning(f"root-level change skipped root={root_id} path={relative_path}")
                return None
            logger.warning(
                f"root-level change attributed to its own name root={root_id} path={relative_path} section={segment}"
            )

        return segment
