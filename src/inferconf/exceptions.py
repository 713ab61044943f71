"""Exception hierarchy for inferconf."""


class InferConfError(Exception):
    """Base exception for inferconf."""


class ConfigError(InferConfError):
    """Invalid, missing or unreadable configuration file."""


class ProbeError(InferConfError):
    """Capability probe could not be constructed or queried."""
