"""Exceptions raised or emitted by the rotator."""


class RotationError(Exception):
    """Base class for every rotator error."""


class ValidationError(RotationError):
    """Raised at construction when an option is not recognized or malformed."""


class AccessError(RotationError):
    """Raised from start() when the live file or archive dir is unusable."""

    def __init__(self, message: str, path: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class RuntimeRotationError(RotationError):
    """Emitted when a rotation cycle has to be skipped."""

    def __init__(self, message: str, path: str):
        super().__init__(f"{message}: {path}")
        self.path = path


class PersistenceError(RotationError):
    """An archive could not be deleted or inspected."""

    def __init__(self, message: str, path: str):
        super().__init__(f"{message}: {path}")
        self.path = path
