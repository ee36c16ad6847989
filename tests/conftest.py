"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from sectionwatch.config import DispatcherConfig, default_config  # noqa: E402
from sectionwatch.models import BuildOutcome  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class RecordingNotifier:
    """Notifier that keeps everything it is told."""

    def __init__(self):
        self.triggered_events: list[tuple[str, str, str]] = []
        self.outcomes: list[BuildOutcome] = []
        self.dropped_events: list[tuple[str, str, str, str]] = []

    def triggered(self, section, event_kind, path):
        self.triggered_events.append((section, event_kind, path))

    def finished(self, outcome):
        self.outcomes.append(outcome)

    def dropped(self, name, event_kind, path, reason):
        self.dropped_events.append((name, event_kind, path, reason))


class RecordingRunner:
    """Build runner that records submissions instead of spawning commands."""

    def __init__(self, clock=None, notifier=None, failing=()):
        self.clock = clock
        self.notifier = notifier
        self.failing = set(failing)
        self.calls: list[tuple[str, float | None]] = []

    def submit(self, section):
        self.calls.append((section, self.clock() if self.clock else None))
        if self.notifier is not None:
            if section in self.failing:
                self.notifier.finished(BuildOutcome(section, False, "exit status 1"))
            else:
                self.notifier.finished(BuildOutcome(section, True))
        return None

    @property
    def sections(self):
        return [section for section, _ in self.calls]

    async def wait_all(self):
        return []

    async def shutdown(self):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def project(tmp_path) -> Path:
    """A project laid out like the tutorial the defaults are written for."""
    (tmp_path / "manual" / "1-intro").mkdir(parents=True)
    (tmp_path / "manual" / "1-intro" / "index.html").write_text("<h1>intro</h1>")
    (tmp_path / "manual" / "2-reactivity").mkdir()
    (tmp_path / "manual" / "2-reactivity" / "App.html").write_text("<p>{count}</p>")
    (tmp_path / "manual" / ".DS_Store").write_text("")
    (tmp_path / "builder" / "3-testing").mkdir(parents=True)
    (tmp_path / "builder" / "3-testing" / "FormAddAnimal.html").write_text("<form></form>")
    (tmp_path / "builder" / "4-stores").mkdir()
    (tmp_path / "README.md").write_text("# Tutorial\n")
    (tmp_path / "build.js").write_text("// site builder\n")
    return tmp_path


@pytest.fixture
def project_config(project) -> DispatcherConfig:
    return default_config(project)
