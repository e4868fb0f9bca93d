"""Agent error types."""


class InvalidArgumentError(TypeError):
    """Raised when a setup-time API receives an argument it cannot use."""


class UnsupportedEntryTypeError(ValueError):
    """Raised by a timeline when asked to observe an entry kind it lacks."""
