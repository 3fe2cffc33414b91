"""
Domain Events

룸 이벤트 기본 클래스 및 이벤트 정의
"""

from .base import RoomEvent, EVENT_REGISTRY, event_from_dict
from .room_events import (
    PresenceSync,
    PresenceJoined,
    PresenceLeft,
    MessageInserted,
    OpportunityShared,
    MemberJoined,
    MemberLeft,
    MemberRemoved,
    RoomDeleted,
    Pong,
    ErrorEvent,
)

__all__ = [
    'RoomEvent',
    'EVENT_REGISTRY',
    'event_from_dict',
    'PresenceSync',
    'PresenceJoined',
    'PresenceLeft',
    'MessageInserted',
    'OpportunityShared',
    'MemberJoined',
    'MemberLeft',
    'MemberRemoved',
    'RoomDeleted',
    'Pong',
    'ErrorEvent',
]
