"""
Room Event Base Class
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Type
import json


# type 문자열 -> 이벤트 클래스
EVENT_REGISTRY: Dict[str, Type["RoomEvent"]] = {}


@dataclass(kw_only=True)
class RoomEvent:
    """룸 이벤트 기본 클래스 (WebSocket 으로 전달되는 단위)"""
    room_id: int
    timestamp: datetime = field(default_factory=datetime.utcnow)

    event_type: ClassVar[str] = "event"
    # 다른 워커로 중계할지 여부 (presence 는 프로세스 로컬)
    relayable: ClassVar[bool] = True

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        EVENT_REGISTRY[cls.event_type] = cls

    def to_dict(self) -> Dict[str, Any]:
        """Event를 dict로 변환 (클라이언트 전송 형식)"""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        data['type'] = self.event_type
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoomEvent":
        """dict에서 Event 복원"""
        data = dict(data)
        data.pop('type', None)
        if 'timestamp' in data and isinstance(data['timestamp'], str):
            data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return cls(**data)


def event_from_dict(data: Dict[str, Any]) -> RoomEvent:
    """type 필드로 이벤트 클래스를 찾아 복원"""
    event_class = EVENT_REGISTRY.get(data.get('type'))
    if event_class is None:
        raise ValueError(f"Unknown room event type: {data.get('type')}")
    return event_class.from_dict(data)
