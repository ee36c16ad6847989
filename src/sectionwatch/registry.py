"""Section registry: the fixed set of buildable sections."""

import logging
from collections.abc import Iterable, Iterator

from sectionwatch.errors import ConfigurationError
from sectionwatch.models import Section, section_number
from sectionwatch.watchers import SiteWatch, WatchRoot

logger = logging.getLogger(__name__)


def render_build_command(template: str, name: str) -> str:
    """Fill a build command template for a section.

    Supported placeholders are ``{section}`` (the full name) and ``{number}``
    (the name up to its first dash).

    Raises:
        ConfigurationError: If the template uses an unknown placeholder
    """
    try:
        return template.format(section=name, number=section_number(name))
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigurationError(f"Invalid build command template {template!r}: {e}") from e


class SectionRegistry:
    """Sections enumerated once at startup. Never changes afterwards."""

    def __init__(self, sections: Iterable[Section]):
        self._sections: dict[str, Section] = {}
        for section in sections:
            self._sections[section.name] = section

    @classmethod
    def discover(cls, roots: list[WatchRoot], site: SiteWatch | None, build_command: str) -> "SectionRegistry":
        """List the immediate children of every root and add the site section.

        Args:
            roots: Directory roots whose children are sections
            site: Site definition, or None for no site section
            build_command: Template used for directory sections

        Raises:
            ConfigurationError: If a root directory is missing or unreadable,
                or the site section name collides with a directory section
        """
        sections: dict[str, Section] = {}
        for root in roots:
            if not root.dir.is_dir():
                raise ConfigurationError(f"Watch root '{root.name}' not found: {root.dir}")
            try:
                entries = sorted(root.dir.iterdir())
            except OSError as e:
                raise ConfigurationError(f"Cannot list watch root '{root.name}' ({root.dir}): {e}") from e

            for entry in entries:
                if root.ignore.matches(entry.name):
                    continue
                if entry.name in sections:
                    logger.warning(
                        f"section '{entry.name}' found in both '{sections[entry.name].root}' and '{root.name}'; "
                        f"using '{root.name}'"
                    )
                sections[entry.name] = Section(
                    name=entry.name,
                    build_command=render_build_command(build_command, entry.name),
                    root=root.name,
                )

        if site is not None:
            if site.section in sections:
                raise ConfigurationError(
                    f"Site section '{site.section}' collides with a directory under '{sections[site.section].root}'"
                )
            sections[site.section] = Section(name=site.section, build_command=site.build_command)

        logger.debug(f"Registered {len(sections)} section(s): {', '.join(sorted(sections))}")
        return cls(sections.values())

    def list_sections(self) -> set[Section]:
        """Return every registered section."""
        return set(self._sections.values())

    def get(self, name: str) -> Section | None:
        return self._sections.get(name)

    def names(self) -> list[str]:
        """Section names in sorted order."""
        return sorted(self._sections)

    def __contains__(self, name: object) -> bool:
        return name in self._sections

    def __iter__(self) -> Iterator[Section]:
        return iter(self._sections[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._sections)
