"""Exception hierarchy for Layerforge."""


class LayerforgeError(Exception):
    """Base class for all Layerforge errors."""

    pass


class ConfigurationError(LayerforgeError):
    """Raised when a generation config fails validation.

    Carries the itemized error messages so callers can surface every
    problem at once instead of the first one.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        summary = "; ".join(self.errors) if self.errors else "invalid configuration"
        super().__init__(f"Invalid configuration: {summary}")


class ExtractionError(LayerforgeError):
    """Raised when an uploaded archive or directory cannot be read as layers."""

    pass


class CombinationError(LayerforgeError):
    """Raised when combinations cannot be drawn for the requested layers."""

    pass


class CompositingError(LayerforgeError):
    """Raised when a trait image cannot be decoded or composited."""

    pass


class StorageError(LayerforgeError):
    """Raised when a storage backend fails to persist an object."""

    pass


class SessionNotFoundError(LayerforgeError):
    """Raised when a session id is unknown to the session manager."""

    pass


class SessionStateError(LayerforgeError):
    """Raised when an operation is not allowed in the session's current state."""

    pass
