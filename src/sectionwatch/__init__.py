"""sectionwatch: rebuild sections of a project when their files change."""

__version__ = "0.1.0"

# Public API
from sectionwatch.classifier import PathClassifier, RootFilePolicy
from sectionwatch.config import DispatcherConfig, default_config, load_config
from sectionwatch.debounce import DebouncedTrigger
from sectionwatch.dispatcher import Dispatcher
from sectionwatch.errors import ConfigurationError, SectionwatchError, WatchSubscriptionError
from sectionwatch.models import BuildOutcome, Section
from sectionwatch.registry import SectionRegistry
from sectionwatch.runner import BuildRunner

__all__ = [
    "__version__",
    # Primary components
    "Dispatcher",
    "BuildRunner",
    "DebouncedTrigger",
    "PathClassifier",
    "SectionRegistry",
    # Models
    "Section",
    "BuildOutcome",
    "RootFilePolicy",
    # Config
    "DispatcherConfig",
    "default_config",
    "load_config",
    # Errors
    "SectionwatchError",
    "ConfigurationError",
    "WatchSubscriptionError",
]
