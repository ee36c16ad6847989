#!/usr/bin/env python3
"""
Example: Embedding the dispatcher
Shows how to run sectionwatch inside another asyncio application.

This example demonstrates:
- Building a config in code instead of TOML
- A custom notifier that collects outcomes
- Feeding synthetic events without filesystem watchers
"""

import asyncio
import sys
from pathlib import Path

try:
    from sectionwatch import BuildOutcome, Dispatcher, default_config
except ImportError:
    print("Error: Install sectionwatch first: pip install -e .")
    sys.exit(1)


class CollectingNotifier:
    """Keep outcomes in memory and print a one-line summary for each."""

    def __init__(self):
        self.outcomes: list[BuildOutcome] = []

    def triggered(self, section: str, event_kind: str, path: str) -> None:
        print(f"→ {section} ({event_kind} {path})")

    def finished(self, outcome: BuildOutcome) -> None:
        self.outcomes.append(outcome)
        status = "ok" if outcome.success else f"failed: {outcome.error_detail}"
        print(f"  {outcome.section}: {status}")

    def dropped(self, name: str, event_kind: str, path: str, reason: str) -> None:
        print(f"  dropped {path} ({reason})")


async def main(project_root: Path) -> int:
    config = default_config(project_root)
    # Echo instead of running npm so the example works anywhere
    config.build_command = "echo building {section}"
    if config.site is not None:
        config.site.build_command = "echo building website"

    notifier = CollectingNotifier()
    dispatcher = Dispatcher(config, notifier=notifier)
    dispatcher.attach(asyncio.get_running_loop(), enable_watchers=False)

    try:
        for section in dispatcher.registry.names():
            if section == "website":
                dispatcher.handle_site_event("modified", "README.md")
            else:
                root = dispatcher.registry.get(section).root
                dispatcher.handle_event(root, "modified", f"{section}/index.html")
                # Second save inside the quiet window is absorbed
                dispatcher.handle_event(root, "modified", f"{section}/index.html")
        await dispatcher.wait_for_builds()
    finally:
        dispatcher.detach()

    failed = [o for o in notifier.outcomes if not o.success]
    print(f"\n{len(notifier.outcomes)} build(s), {len(failed)} failed")
    return 1 if failed else 0


if __name__ == "__main__":
    root = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(".")
    sys.exit(asyncio.run(main(root)))
