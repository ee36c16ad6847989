"""
Build command runner backed by cmdorc.

Each section's build command is registered as one cmdorc command. Runs are
submitted as asyncio tasks so the watch loop never waits for a build; the
task resolves to a BuildOutcome whose only consumer is reporting.

Failures (non-zero exit, spawn errors, orchestrator errors) are contained
to the run that produced them.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from cmdorc import CommandConfig, CommandOrchestrator, RunnerConfig, RunState

from sectionwatch.models import BuildOutcome, Section

logger = logging.getLogger(__name__)


def build_runner_config(sections: Iterable[Section], cwd: str | Path | None = None) -> RunnerConfig:
    """Create a cmdorc RunnerConfig with one command per section.

    Commands have no triggers (the dispatcher decides when to run) and no
    concurrency limit. They run in ``cwd`` (the project root) when given.
    """
    commands = [
        CommandConfig(
            name=section.name,
            command=section.build_command,
            triggers=[],
            max_concurrent=0,
            cwd=str(cwd) if cwd is not None else None,
        )
        for section in sorted(sections, key=lambda s: s.name)
    ]
    return RunnerConfig(commands=commands)


class BuildRunner:
    """Run section builds asynchronously and report their outcomes.

    Usage:
        runner = BuildRunner(registry.list_sections())
        task = runner.submit("3-testing")   # returns immediately
        outcome = await task
    """

    def __init__(
        self,
        sections: Iterable[Section],
        on_outcome: Callable[[BuildOutcome], None] | None = None,
        single_flight: bool = False,
        cwd: str | Path | None = None,
    ):
        """Initialize runner.

        Args:
            sections: Sections whose build commands can be run
            on_outcome: Called with every BuildOutcome once a run finishes
            single_flight: If True, a section whose build is still running is
                not started again; the request is logged and dropped
            cwd: Working directory for build commands (default: the process cwd)
        """
        self.sections = {s.name: s for s in sections}
        self.on_outcome = on_outcome
        self.single_flight = single_flight
        self.cwd = Path(cwd) if cwd is not None else None
        self.orchestrator = CommandOrchestrator(build_runner_config(self.sections.values(), self.cwd))
        self._tasks: set[asyncio.Task] = set()
        self._in_flight: dict[str, int] = {}

    @property
    def in_flight(self) -> dict[str, int]:
        """Number of running builds per section."""
        return {name: count for name, count in self._in_flight.items() if count}

    async def run(self, section: str) -> BuildOutcome:
        """Run one build for a section and wait for it to finish.

        Never raises for build failures; they are returned as outcomes.
        """
        if section not in self.sections:
            return self._finish(BuildOutcome(section, False, f"unknown section '{section}'"))

        self._in_flight[section] = self._in_flight.get(section, 0) + 1
        try:
            handle = await self.orchestrator.run_command(section)
            await handle.wait()
            outcome = self._outcome_from_handle(section, handle)
        except asyncio.CancelledError:
            outcome = BuildOutcome(section, False, "cancelled")
            self._finish(outcome)
            raise
        except Exception as e:
            outcome = BuildOutcome(section, False, f"{type(e).__name__}: {e}")
        finally:
            self._in_flight[section] -= 1

        return self._finish(outcome)

    def submit(self, section: str) -> asyncio.Task | None:
        """Start a build without waiting for it.

        Must be called from the event loop thread.

        Returns:
            The task running the build, or None if single-flight mode
            dropped the request
        """
        if self.single_flight and self._in_flight.get(section):
            logger.info(f"build skipped section={section} reason=already-running")
            return None

        task = asyncio.get_running_loop().create_task(self.run(section), name=f"build:{section}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_all(self) -> list[BuildOutcome]:
        """Wait for every build currently in flight."""
        if not self._tasks:
            return []
        results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return [r for r in results if isinstance(r, BuildOutcome)]

    async def shutdown(self) -> None:
        """Cancel running builds and wait for their tasks to settle."""
        for name in list(self.in_flight):
            try:
                await self.orchestrator.cancel_command(name)
            except Exception as e:
                logger.error(f"Failed to cancel build for '{name}': {e}")
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _outcome_from_handle(self, section: str, handle) -> BuildOutcome:
        state = handle.state
        if state == RunState.SUCCESS:
            return BuildOutcome(section, True)

        error = getattr(handle, "error", None)
        if error:
            detail = str(error)
        else:
            detail = f"run ended in state {getattr(state, 'name', state)}"
        return BuildOutcome(section, False, detail)

    def _finish(self, outcome: BuildOutcome) -> BuildOutcome:
        if self.on_outcome is not None:
            try:
                self.on_outcome(outcome)
            except Exception as e:
                logger.exception(f"Error in outcome callback for '{outcome.section}': {e}")
        return outcome
