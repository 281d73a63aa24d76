"""Error kinds raised by the whiteshelf core."""

from typing import Optional


class ShelfError(Exception):
    """Base class for every error the core raises."""


class InvalidInput(ShelfError, ValueError):
    """A required field is missing or empty, or a payload is malformed."""


class NotFound(ShelfError, LookupError):
    """A document or a roadmap node does not exist."""


class AlreadyExists(ShelfError):
    """An add targets a document name or node id that is already taken."""


class ParseError(ShelfError, ValueError):
    """Frontmatter outside the supported subset.

    ``line`` is the 1-based header line the problem was found on, when known.
    """

    def __init__(self, message: str, line: Optional[int] = None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class Conflict(ShelfError):
    """The document changed on disk between load and save."""


class StorageError(ShelfError):
    """The underlying filesystem operation failed."""
