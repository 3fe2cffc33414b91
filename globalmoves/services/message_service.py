"""
Room chat message service.

Append-only message log per room. Reads and writes follow the same
room access policy (public: any authenticated user, private: members).
"""

from datetime import datetime
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from globalmoves.models.users import User
from globalmoves.models.room_messages import RoomMessage
from globalmoves.schemas.message import MessageResponse
from globalmoves.core.validators import Validator
from globalmoves.core.logging import get_logger
from globalmoves.services import auth_service, room_service

logger = get_logger(__name__)


def to_response(message: RoomMessage, author: User = None) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        room_id=message.room_id,
        user_id=message.user_id,
        content=message.content,
        created_at=message.created_at,
        author=auth_service.summarize_user(author, message.user_id)
    )


async def post_message(db: AsyncSession, author: User, room_id: int, content: str) -> MessageResponse:
    """메시지 작성 (공백 제거 후 저장, 서버에서 id/created_at 부여)"""
    room = await room_service.get_accessible_room(db, room_id, author)
    content = Validator.validate_message_content(content)

    message = RoomMessage(
        room_id=room.id,
        user_id=author.id,
        content=content,
        created_at=datetime.utcnow()
    )
    db.add(message)
    await db.commit()
    await db.refresh(message)

    logger.info(
        f"Message {message.id} posted to room {room.id}",
        extra={"event_type": "message", "room_id": room.id, "user_id": author.id, "message_id": message.id}
    )
    return to_response(message, author)


async def list_messages(db: AsyncSession, user: User, room_id: int) -> List[MessageResponse]:
    """룸 전체 메시지 (저장 순서 = id 순)"""
    room = await room_service.get_accessible_room(db, room_id, user)

    result = await db.execute(
        select(RoomMessage, User)
        .outerjoin(User, User.id == RoomMessage.user_id)
        .where(RoomMessage.room_id == room.id)
        .order_by(RoomMessage.id.asc())
    )
    return [to_response(message, author) for message, author in result.all()]
