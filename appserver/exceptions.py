"""Custom exception classes for the file server."""


class AppServerException(Exception):
    """
    Base exception class for all file server errors.
    """
    pass


class EntryNotFoundError(AppServerException):
    """
    Raised when a requested file entry does not exist.
    """
    pass


class EntryFinalizedError(AppServerException):
    """
    Raised when an append targets an entry that has already been finalized.
    """
    pass


class OffsetMismatchError(AppServerException):
    """
    Raised when the offset claimed by an append differs from the committed size.
    """

    def __init__(self, entry_id: str, offset: int, size: int):
        super().__init__(f"Offset {offset} does not match size {size} of entry {entry_id}")
        self.entry_id = entry_id
        self.offset = offset
        self.size = size


class MissingBodyError(AppServerException):
    """
    Raised when a non-empty append request carries no body.
    """
    pass


class IncompleteBodyError(AppServerException):
    """
    Raised when the body stream ends before the declared Content-Length.
    """
    pass


class InvalidRangeError(AppServerException):
    """
    Raised when a Range header is not a bytes range.
    """
    pass


class RangeNotSatisfiableError(AppServerException):
    """
    Raised when a Range header names several ranges or a span outside the content.
    """

    def __init__(self, message: str, size: int):
        super().__init__(message)
        self.size = size


class ClassifierError(AppServerException):
    """
    Raised when the content-type classifier cannot produce a result.
    """
    pass


class InvalidHeaderError(AppServerException):
    """
    Raised when a request header cannot be parsed.
    """
    pass
