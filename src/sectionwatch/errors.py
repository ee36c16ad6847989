"""Exception hierarchy for sectionwatch."""


class SectionwatchError(Exception):
    """Base class for all sectionwatch errors."""


class ConfigurationError(SectionwatchError):
    """Invalid configuration or missing watch root. Fatal at startup."""


class WatchSubscriptionError(SectionwatchError):
    """A watch subscription could not be established or was lost.

    Fatal for the affected root: losing a subscription silently would mean
    losing rebuilds for a whole group of sections.
    """

    def __init__(self, root: str, message: str):
        super().__init__(f"watch on '{root}' failed: {message}")
        self.root = root
