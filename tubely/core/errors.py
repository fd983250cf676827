"""Error taxonomy shared by the API and the upload pipeline.

Each error carries the HTTP status it maps to and a short machine readable
code. The application registers one handler (``tubely.main``) that renders
them as ``{"error": code, "detail": message}``; internal causes are logged
but never returned to the client.
"""

from __future__ import annotations

from fastapi import status


class TubelyError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, code: str | None = None, message: str | None = None) -> None:
        self.code = code or self.code
        self.message = message or self.message
        super().__init__(self.code)


class BadRequest(TubelyError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"
    message = "The request could not be processed."


class Unauthorized(TubelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    message = "Valid credentials are required."


class Forbidden(TubelyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "You are not allowed to modify this resource."


class NotFound(TubelyError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Resource not found."


class PayloadTooLarge(TubelyError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "upload_too_large"
    message = "The uploaded file exceeds the allowed size."


class Internal(TubelyError):
    pass


__all__ = [
    "TubelyError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "PayloadTooLarge",
    "Internal",
]
