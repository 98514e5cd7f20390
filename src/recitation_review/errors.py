"""Exceptions raised by the review pipeline.

Each carries an HTTP-style ``status_code`` so a transport layer can map it
without knowing the pipeline internals.
"""


class ReviewError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ReviewError):
    status_code = 404


class ForbiddenError(ReviewError):
    status_code = 403


class InvalidStateError(ReviewError):
    status_code = 409


class ValidationError(ReviewError):
    status_code = 400


class ConcurrentModificationError(ReviewError):
    """Raised when a ledger was saved by someone else since it was loaded."""
    status_code = 409
