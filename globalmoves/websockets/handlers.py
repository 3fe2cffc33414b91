from typing import Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.models.users import User
from globalmoves.core.errors import BaseCustomException
from globalmoves.core.logging import get_logger
from globalmoves.domain.events import MessageInserted, Pong, ErrorEvent
from globalmoves.schemas.message import MessageResponse
from globalmoves.services import message_service
from globalmoves.websockets.connection_manager import manager, Subscription

logger = get_logger(__name__)


async def post_and_broadcast(db: AsyncSession, user: User, room_id: int, content: Any) -> MessageResponse:
    """메시지 저장 후 message_inserted 발행. 룸 단위로 직렬화되어 저장 순서 = 전달 순서"""
    async with manager.sequenced(room_id):
        message = await message_service.post_message(db, user, room_id, content)
        await manager.publish(MessageInserted(room_id=room_id, message=message.model_dump(mode="json")))
    return message


class WebSocketMessageHandler:
    """클라이언트 -> 서버 WebSocket 메시지 처리 핸들러"""

    @staticmethod
    async def handle_message(db: AsyncSession, user: User, subscription: Subscription, data: Any):
        """
        WebSocket으로 받은 메시지를 처리합니다.

        Args:
            db: 데이터베이스 세션
            user: 인증된 사용자
            subscription: 메시지를 보낸 연결의 구독
            data: 클라이언트에서 전송한 메시지 데이터
        """
        # 어떤 메시지든 수신 자체가 heartbeat
        manager.touch(subscription)

        if not isinstance(data, dict):
            WebSocketMessageHandler.send_error(subscription, "invalid_message", "Message must be a JSON object")
            return

        message_type = data.get("type")

        if message_type == "message":
            await WebSocketMessageHandler._handle_chat_message(db, user, subscription, data)
        elif message_type == "ping":
            subscription.send(Pong(room_id=subscription.room_id))
        else:
            logger.warning(f"Unknown message type: {message_type} from user {user.id}")
            WebSocketMessageHandler.send_error(
                subscription, "unknown_type", f"Unsupported message type: {message_type}"
            )

    @staticmethod
    async def _handle_chat_message(db: AsyncSession, user: User, subscription: Subscription, data: Dict[str, Any]):
        """채팅 메시지 저장 후 룸에 브로드캐스트 (REST 와 같은 서비스 사용)"""
        try:
            await post_and_broadcast(db, user, subscription.room_id, data.get("content"))
        except BaseCustomException as e:
            WebSocketMessageHandler.send_error(subscription, e.error, e.message)

    @staticmethod
    def send_error(subscription: Subscription, error: str, message: str):
        subscription.send(ErrorEvent(room_id=subscription.room_id, error=error, message=message))


# 메시지 핸들러 인스턴스
message_handler = WebSocketMessageHandler()
