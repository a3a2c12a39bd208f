"""
Error taxonomy shared by every Repository backend.

Front-ends map each kind to a distinct outward signal (see `exit_code`).
"""


class FlashmasterError(Exception):
    """Base class for all errors raised by flashmaster."""

    kind = "error"
    exit_code = 1

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class NotFoundError(FlashmasterError):
    """A referenced deck or card does not exist."""

    kind = "not found"
    exit_code = 3


class ConflictError(FlashmasterError):
    """A deck with the same name (case-insensitive) already exists."""

    kind = "conflict"
    exit_code = 4


class InvalidError(FlashmasterError):
    """Malformed input reached the store layer (bad id, grade, timestamp, ...)."""

    kind = "invalid input"
    exit_code = 5


class StorageError(FlashmasterError):
    """I/O or serialization failure underneath the Repository contract."""

    kind = "storage error"
    exit_code = 6
