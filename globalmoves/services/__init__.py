"""
Services layer for data access and domain rules.

This layer handles:
- Database queries and transactions
- Room access policy and ownership checks
- Invitation state transitions
- Data transformations for responses
"""

from . import auth_service
from . import room_service
from . import membership_service
from . import message_service
from . import opportunity_service

__all__ = [
    "auth_service",
    "room_service",
    "membership_service",
    "message_service",
    "opportunity_service",
]
