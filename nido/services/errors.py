from typing import Any


class LifecycleError(Exception):
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or {}


class MalformedEventError(LifecycleError):
    status_code = 400


class InvalidSignatureError(LifecycleError):
    status_code = 401


class DraftNotFoundError(LifecycleError):
    status_code = 404


class ListingNotFoundError(LifecycleError):
    status_code = 404


class VerificationNotFoundError(LifecycleError):
    status_code = 404


class ListingStateError(LifecycleError):
    status_code = 409
