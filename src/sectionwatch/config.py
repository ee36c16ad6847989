"""Configuration parsing for sectionwatch."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from sectionwatch.classifier import RootFilePolicy
from sectionwatch.debounce import DEFAULT_QUIET_WINDOW
from sectionwatch.errors import ConfigurationError
from sectionwatch.watchers import IgnoreRules, SiteWatch, WatchRoot

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "sectionwatch.toml"
DEFAULT_BUILD_COMMAND = "npm run build:{number}"

# Default config template mirroring the built-in defaults
DEFAULT_CONFIG_TEMPLATE = """\
# sectionwatch configuration

quiet_window_ms = 500
root_file_policy = "self"   # "self" or "skip"
single_flight = false       # true: skip a build while the same section is still building

[build]
command = "npm run build:{number}"

# Manually authored sections: scripts are not build inputs
[[root]]
name = "manual"
dir = "manual"
ignore = ["*.js"]
ignore_dotfiles = true

# Tool-built sections: ignore the bundles the build writes back
[[root]]
name = "builder"
dir = "builder"
ignore = ["build.js", "*.build.js"]
ignore_dotfiles = true

[site]
section = "website"
files = ["README.md", "build.js"]
command = "npm run build:website"
"""


@dataclass
class DispatcherConfig:
    """Everything the dispatcher needs, with paths resolved."""

    project_root: Path
    """Directory that relative paths are resolved against."""

    roots: list[WatchRoot] = field(default_factory=list)
    """Directory roots whose children are sections."""

    site: SiteWatch | None = None
    """Site section definition (None disables it)."""

    build_command: str = DEFAULT_BUILD_COMMAND
    """Template for directory section build commands."""

    quiet_window: float = DEFAULT_QUIET_WINDOW
    """Debounce quiet window in seconds."""

    root_file_policy: RootFilePolicy = RootFilePolicy.SELF
    """How changes directly inside a root are classified."""

    single_flight: bool = False
    """Skip a build while the same section's previous build is still running."""


def default_config(project_root: str | Path = ".") -> DispatcherConfig:
    """Built-in configuration: manual/ and builder/ roots plus the README site."""
    return config_from_dict(tomllib.loads(DEFAULT_CONFIG_TEMPLATE), project_root)


def load_config(path: str | Path, project_root: str | Path | None = None) -> DispatcherConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to TOML config file
        project_root: Base for relative paths (defaults to the file's directory)

    Returns:
        Parsed DispatcherConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}\nRun 'sectionwatch --init' to create one.")

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Failed to parse config file {path}: {e}") from e

    return config_from_dict(raw, project_root if project_root is not None else path.parent)


def config_from_dict(raw: dict[str, Any], project_root: str | Path) -> DispatcherConfig:
    """Build a DispatcherConfig from parsed TOML data.

    Missing ``[[root]]`` or ``[site]`` tables fall back to the built-in
    defaults; ``[site] enabled = false`` turns the site section off.
    """
    base = Path(project_root).resolve()
    defaults = tomllib.loads(DEFAULT_CONFIG_TEMPLATE)

    window_ms = raw.get("quiet_window_ms", 500)
    if not isinstance(window_ms, (int, float)) or isinstance(window_ms, bool) or window_ms <= 0:
        raise ConfigurationError(f"quiet_window_ms must be a positive number, got {window_ms!r}")

    try:
        policy = RootFilePolicy(raw.get("root_file_policy", RootFilePolicy.SELF.value))
    except ValueError as e:
        choices = ", ".join(p.value for p in RootFilePolicy)
        raise ConfigurationError(f"root_file_policy must be one of: {choices}") from e

    build_command = raw.get("build", {}).get("command", DEFAULT_BUILD_COMMAND)
    if not isinstance(build_command, str) or not build_command.strip():
        raise ConfigurationError("[build] command must be a non-empty string")

    roots = [_parse_root(r, base) for r in raw.get("root", defaults["root"])]
    names = [r.name for r in roots]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate root name(s): {', '.join(duplicates)}")

    site_raw = raw.get("site", defaults["site"])
    site = _parse_site(site_raw, base) if site_raw.get("enabled", True) else None

    return DispatcherConfig(
        project_root=base,
        roots=roots,
        site=site,
        build_command=build_command,
        quiet_window=window_ms / 1000.0,
        root_file_policy=policy,
        single_flight=bool(raw.get("single_flight", False)),
    )


def _parse_root(raw: dict[str, Any], base: Path) -> WatchRoot:
    try:
        name = raw["name"]
        directory = raw.get("dir", name)
    except KeyError as e:
        raise ConfigurationError(f"[[root]] entry is missing {e}") from e

    ignore = raw.get("ignore", [])
    if isinstance(ignore, str):
        ignore = [ignore]

    return WatchRoot(
        name=name,
        dir=(base / directory).resolve(),
        ignore=IgnoreRules(patterns=tuple(ignore), ignore_dotfiles=raw.get("ignore_dotfiles", True)),
    )


def _parse_site(raw: dict[str, Any], base: Path) -> SiteWatch:
    files = raw.get("files", ["README.md", "build.js"])
    command = raw.get("command", "npm run build:website")
    if not files:
        raise ConfigurationError("[site] files must list at least one file")
    return SiteWatch(
        section=raw.get("section", "website"),
        files=[(base / f).resolve() for f in files],
        build_command=command,
    )
