"""Error taxonomy shared by the routers, the gateways and the exception handlers.

Every error carries the message that is safe to show a client; internal detail
travels on the exception chain (``raise ... from exc``) and is only logged.
"""

from __future__ import annotations


class ServiceError(Exception):
    status_code: int = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class SignatureError(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class UpstreamError(ServiceError):
    status_code = 500


class DatabaseError(ServiceError):
    status_code = 500
