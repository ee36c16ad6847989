"""CLI entry point for sectionwatch: watch section roots and rebuild on change."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sectionwatch import __version__
from sectionwatch.config import (
    DEFAULT_CONFIG_NAME,
    DEFAULT_CONFIG_TEMPLATE,
    DispatcherConfig,
    default_config,
    load_config,
)
from sectionwatch.dispatcher import Dispatcher
from sectionwatch.errors import SectionwatchError
from sectionwatch.registry import SectionRegistry

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def create_default_config(config_path: Path) -> bool:
    """
    Create a default config file if it doesn't exist.

    Args:
        config_path: Path where config should be created

    Returns:
        True if config was created, False if it already exists

    Raises:
        PermissionError: If unable to write to the directory
        OSError: If other file system errors occur
    """
    if config_path.exists():
        return False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    return True


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="sectionwatch",
        description="Watch section directories and rebuild each section when its files change.",
        epilog="Examples:\n"
        "  sectionwatch                        # Watch with sectionwatch.toml or built-in defaults\n"
        "  sectionwatch --root ../tutorial     # Watch another project\n"
        "  sectionwatch --init                 # Write a default sectionwatch.toml\n"
        "  sectionwatch --list                 # Show sections and their build commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-r",
        "--root",
        default=".",
        help="Project root containing the watched directories (default: .)",
    )

    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help=f"Path to config file (default: <root>/{DEFAULT_CONFIG_NAME} if present)",
    )

    parser.add_argument(
        "--init",
        action="store_true",
        help="Write a default config file and exit",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List sections and their build commands, then exit",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log absorbed and ignored events",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def resolve_config(root: Path, config_arg: str | None) -> DispatcherConfig:
    """Load the config named on the command line, the project's file, or the defaults."""
    if config_arg is not None:
        return load_config(Path(config_arg).resolve(), project_root=root)

    candidate = root / DEFAULT_CONFIG_NAME
    if candidate.exists():
        return load_config(candidate, project_root=root)
    return default_config(root)


def list_sections(config: DispatcherConfig) -> list[str]:
    """Format the registered sections for display."""
    registry = SectionRegistry.discover(config.roots, config.site, config.build_command)
    width = max((len(name) for name in registry.names()), default=0)
    return [f"{section.name:<{width}}  {section.build_command}" for section in registry]


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for sectionwatch CLI.

    Handles:
    - Argument parsing
    - Config creation and loading
    - Running the dispatcher until interrupted
    - Error handling and exit codes
    """
    args = parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    # watchdog's own debug output is not useful here
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    root = Path(args.root).resolve()

    try:
        if args.init:
            config_path = Path(args.config).resolve() if args.config else root / DEFAULT_CONFIG_NAME
            if create_default_config(config_path):
                print(f"Created default config at: {config_path}")
            else:
                print(f"Config already exists: {config_path}")
            return

        if not root.is_dir():
            print(f"Error: Project root not found: {root}", file=sys.stderr)
            sys.exit(1)

        config = resolve_config(root, args.config)

        if args.list:
            for line in list_sections(config):
                print(line)
            return

        dispatcher = Dispatcher(config)
        asyncio.run(dispatcher.serve())

    except KeyboardInterrupt:
        sys.exit(130)
    except SectionwatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (PermissionError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
