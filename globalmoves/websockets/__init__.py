"""
WebSocket 실시간 룸 모듈

주요 구성 요소:
- connection_manager: 룸 구독 허브 (구독별 큐, 룸별 순서 보장)
- presence: 연결 단위 접속 현황
- auth: WebSocket 인증 처리
- handlers: 클라이언트 메시지 처리 핸들러
- relay: Redis Pub/Sub 워커 간 이벤트 중계
"""

from .connection_manager import manager, ConnectionManager, Subscription
from .presence import PresenceTracker
from .auth import authenticate_websocket
from .handlers import message_handler, WebSocketMessageHandler
from .relay import RedisEventRelay

__all__ = [
    "manager",
    "ConnectionManager",
    "Subscription",
    "PresenceTracker",
    "authenticate_websocket",
    "message_handler",
    "WebSocketMessageHandler",
    "RedisEventRelay",
]
