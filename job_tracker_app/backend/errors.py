"""
Error taxonomy for the tracker.

Every failure is terminal for the one operation that raised it; nothing here is
retried. The app registers handlers (see ``main.py``) that turn these into JSON
``{"detail": ...}`` responses.
"""
from fastapi import status


class TrackerError(Exception):
    """Base class for errors surfaced to the user."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(TrackerError):
    """Sign-in, sign-up, or token failure. Shown inline next to the form."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str, status_code: int = status.HTTP_401_UNAUTHORIZED):
        super().__init__(message)
        self.status_code = status_code


class StoreWriteError(TrackerError):
    """A create, update, or delete against the document store failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str, missing: bool = False):
        super().__init__(message)
        self.missing = missing
        if missing:
            self.status_code = status.HTTP_404_NOT_FOUND


class NotFoundError(TrackerError):
    """A detail view was requested for a record that no longer exists."""

    status_code = status.HTTP_404_NOT_FOUND
