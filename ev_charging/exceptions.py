"""
Domain failures raised by the reservation engine.

Services raise these; routers translate them into HTTP responses using
``status_code``. None of them are retried automatically.
"""

import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class ChargingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(ChargingError):
    """Malformed or policy-violating input"""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ChargingError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ChargingError):
    """Business rejection: overlap, no capacity, lockout window, terminal record"""
    status_code = status.HTTP_409_CONFLICT


class Forbidden(ChargingError):
    status_code = status.HTTP_403_FORBIDDEN


class ConsistencyFailure(ChargingError):
    """A post-write invariant was violated; indicates a bug or a race"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(error: ChargingError) -> HTTPException:
    if isinstance(error, ConsistencyFailure):
        logger.error("Consistency failure: %s", error.message)
    return HTTPException(status_code=error.status_code, detail=error.message)
