"""
Account directory

Read-only lookups of staff accounts and EV owner accounts. Account
registration and maintenance belong to a separate service.
"""

from .service import AccountDirectory

__all__ = ["AccountDirectory"]
