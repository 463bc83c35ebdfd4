class DepthViewerError(Exception):
    """Base class for depth viewer errors."""


class MalformedUpdate(DepthViewerError):
    """A raw depth update could not be turned into a Snapshot."""


class ConfigError(DepthViewerError):
    """Invalid configuration value."""
