from __future__ import annotations


class ClubFormsError(Exception):
    """Base error; ``message`` is safe to show to clients."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ClubFormsError):
    status_code = 400


class NotFound(ClubFormsError):
    status_code = 404


class StoreError(ClubFormsError):
    status_code = 500
