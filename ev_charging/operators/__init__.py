"""
Station Operators Module

Operator profiles are the assignable, station-scoped side of a staff
account. Each booking is matched to one free operator at its station
within working hours (09:00-18:00 local, lunch 12:00-13:00 excluded).
Operators then complete the sessions assigned to them.
"""

from .availability import is_within_working_hours, find_available_operator
from .schemas import (
    OperatorCreate, OperatorUpdate, OperatorResponse,
    AvailableOperatorResult, CompleteSessionRequest
)

__all__ = [
    "is_within_working_hours",
    "find_available_operator",
    "OperatorCreate",
    "OperatorUpdate",
    "OperatorResponse",
    "AvailableOperatorResult",
    "CompleteSessionRequest"
]
