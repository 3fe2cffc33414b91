from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.database.mysql import get_async_session
from globalmoves.models.users import User
from globalmoves.schemas.message import MessageCreate, MessageResponse
from globalmoves.api.auth import get_current_user
from globalmoves.services import message_service
from globalmoves.websockets.handlers import post_and_broadcast

router = APIRouter(prefix="/rooms", tags=["Messages"])


@router.get("/{room_id}/messages", response_model=List[MessageResponse])
async def get_messages(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[MessageResponse]:
    """
    룸 메시지 전체 조회 (오래된 순)
    """
    return await message_service.list_messages(db, current_user, room_id)


@router.post("/{room_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    room_id: int,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> MessageResponse:
    """
    메시지 전송

    - **content**: 메시지 내용 (공백 제거 후 1~4000자)

    저장 후 룸 구독자에게 message_inserted 이벤트로 전달됩니다.
    """
    return await post_and_broadcast(db, current_user, room_id, message_data.content)
