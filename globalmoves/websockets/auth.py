from typing import Optional
from fastapi import WebSocket
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.models.users import User
from globalmoves.services import auth_service
from globalmoves.utils.auth import decode_access_token
from globalmoves.core.logging import get_logger, log_security_event

logger = get_logger(__name__)

# 인증 실패 시 close code (accept 전 종료)
CLOSE_UNAUTHORIZED = 4401


def extract_token(websocket: WebSocket) -> Optional[str]:
    """
    Authorization 헤더(Bearer) 또는 token 쿼리 파라미터에서 토큰을 꺼냅니다.

    브라우저 WebSocket API 는 헤더를 설정할 수 없으므로 쿼리 파라미터도 허용합니다.
    """
    header = websocket.headers.get("authorization")
    if header:
        if not header.startswith("Bearer "):
            return None
        return header[len("Bearer "):].strip() or None
    return websocket.query_params.get("token") or None


async def authenticate_websocket(websocket: WebSocket, db: AsyncSession) -> Optional[User]:
    """
    WebSocket 연결의 JWT 토큰을 검증하고 사용자를 반환합니다.

    Returns:
        User: 인증된 사용자, 실패 시 None (연결은 이미 닫힘)
    """
    token = extract_token(websocket)
    if not token:
        logger.warning("No access token provided for WebSocket connection")
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return None

    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        log_security_event(logger, "websocket_invalid_token", severity="low")
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return None

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        log_security_event(logger, "websocket_invalid_token", severity="low")
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return None

    user = await auth_service.find_user_by_id(db, user_id)
    if not user:
        logger.warning(f"WebSocket token refers to unknown user {user_id}")
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return None

    return user
