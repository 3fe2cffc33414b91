import asyncio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.database.mysql import get_async_session
from globalmoves.models.users import User
from globalmoves.core.errors import BaseCustomException
from globalmoves.core.logging import get_logger, log_websocket_event
from globalmoves.services import room_service
from globalmoves.websockets.auth import authenticate_websocket
from globalmoves.websockets.connection_manager import manager, Subscription
from globalmoves.websockets.handlers import message_handler

logger = get_logger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])

# 룸 접근 불가 시 close code
CLOSE_FORBIDDEN = 4403
CLOSE_NOT_FOUND = 4404


async def _receive_loop(websocket: WebSocket, db: AsyncSession, user: User, subscription: Subscription):
    """클라이언트 메시지 수신 -> 핸들러"""
    while True:
        try:
            data = await websocket.receive_json()
        except ValueError:
            message_handler.send_error(subscription, "invalid_json", "Message must be valid JSON")
            continue
        except (KeyError, TypeError):
            # 바이너리 프레임 (receive_json 은 text 프레임만 읽음)
            message_handler.send_error(subscription, "invalid_message", "Binary frames are not supported")
            continue
        await message_handler.handle_message(db, user, subscription, data)


async def _send_loop(websocket: WebSocket, subscription: Subscription):
    """구독 큐 -> 클라이언트 (연결당 유일한 writer)"""
    while True:
        data = await subscription.next_event()
        if data is None:
            await websocket.close(code=subscription.close_code)
            return
        await websocket.send_json(data)


@router.websocket("/rooms/{room_id}")
async def room_websocket(
    websocket: WebSocket,
    room_id: int,
    db: AsyncSession = Depends(get_async_session)
):
    """
    룸 이벤트 스트림 WebSocket 엔드포인트

    인증: Authorization: Bearer <token> 헤더 또는 ?token=<token>

    서버 -> 클라이언트: presence_sync 를 먼저 받고, 이후 룸 이벤트를 발행 순서대로 받습니다.
    클라이언트 -> 서버: {"type": "message", "content": ...}, {"type": "ping"}
    """
    # 1. WebSocket 인증
    user = await authenticate_websocket(websocket, db)
    if not user:
        return

    # 2. 룸 접근 권한 확인
    try:
        room = await room_service.get_accessible_room(db, room_id, user)
    except BaseCustomException as e:
        logger.warning(f"User {user.id} denied access to room {room_id}: {e.message}")
        await websocket.close(code=CLOSE_NOT_FOUND if e.status_code == 404 else CLOSE_FORBIDDEN)
        return

    await websocket.accept()
    log_websocket_event(logger, "connected", user.id, room.id)

    # 3. 구독 후 수신/송신 태스크 실행. 어느 한쪽이 끝나면 연결 종료
    async with manager.subscribe(room.id, user.id, user.public_name) as subscription:
        receiver = asyncio.create_task(_receive_loop(websocket, db, user, subscription))
        sender = asyncio.create_task(_send_loop(websocket, subscription))
        try:
            done, pending = await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            for task in pending:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.error(f"WebSocket error for user {user.id} in room {room.id}: {exc}")
        finally:
            for task in (receiver, sender):
                task.cancel()

    log_websocket_event(logger, "disconnected", user.id, room.id)
