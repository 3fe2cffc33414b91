"""
Breakout Room Domain Events
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional
from .base import RoomEvent


@dataclass(kw_only=True)
class PresenceSync(RoomEvent):
    """구독 직후 전달되는 전체 접속자 스냅샷"""
    online_users: List[Dict[str, Any]] = field(default_factory=list)

    event_type: ClassVar[str] = "presence_sync"
    relayable: ClassVar[bool] = False


@dataclass(kw_only=True)
class PresenceJoined(RoomEvent):
    """사용자의 첫 연결"""
    user_id: int
    display_name: str

    event_type: ClassVar[str] = "presence_joined"
    relayable: ClassVar[bool] = False


@dataclass(kw_only=True)
class PresenceLeft(RoomEvent):
    """사용자의 마지막 연결 종료"""
    user_id: int

    event_type: ClassVar[str] = "presence_left"
    relayable: ClassVar[bool] = False


@dataclass(kw_only=True)
class MessageInserted(RoomEvent):
    """새 채팅 메시지"""
    message: Dict[str, Any]

    event_type: ClassVar[str] = "message_inserted"


@dataclass(kw_only=True)
class OpportunityShared(RoomEvent):
    """룸에 기회 공유"""
    shared: Dict[str, Any]

    event_type: ClassVar[str] = "opportunity_shared"


@dataclass(kw_only=True)
class MemberJoined(RoomEvent):
    """초대 수락으로 멤버 추가"""
    user_id: int
    display_name: str

    event_type: ClassVar[str] = "member_joined"


@dataclass(kw_only=True)
class MemberLeft(RoomEvent):
    user_id: int

    event_type: ClassVar[str] = "member_left"


@dataclass(kw_only=True)
class MemberRemoved(RoomEvent):
    """owner 가 멤버를 내보냄. 대상의 구독은 종료된다"""
    user_id: int
    removed_by: int

    event_type: ClassVar[str] = "member_removed"


@dataclass(kw_only=True)
class RoomDeleted(RoomEvent):
    """룸 삭제. 모든 구독이 종료된다"""
    deleted_by: Optional[int] = None

    event_type: ClassVar[str] = "room_deleted"


@dataclass(kw_only=True)
class Pong(RoomEvent):
    event_type: ClassVar[str] = "pong"
    relayable: ClassVar[bool] = False


@dataclass(kw_only=True)
class ErrorEvent(RoomEvent):
    """해당 연결에만 전달되는 에러"""
    error: str
    message: str

    event_type: ClassVar[str] = "error"
    relayable: ClassVar[bool] = False
