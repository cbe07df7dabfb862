class FileVersioningError(Exception):
    """Base class for errors raised by the versioning engine."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(FileVersioningError):
    def __init__(self, kind: str, object_id: str):
        super().__init__(f"{kind} with ID {object_id} not found")
        self.kind = kind
        self.object_id = object_id


class InvalidOperation(FileVersioningError):
    """A rejected precondition. Retrying the same call will fail again."""


class Conflict(FileVersioningError):
    """Another writer changed the same File first (or held it too long)."""


class TransientStoreFailure(FileVersioningError):
    """The underlying store failed; the prior committed state is intact."""
