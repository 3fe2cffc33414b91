from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.database.mysql import get_async_session
from globalmoves.models.users import User
from globalmoves.schemas.invitation import InvitationCreate, InvitationResponse
from globalmoves.api.auth import get_current_user
from globalmoves.domain.events import MemberJoined
from globalmoves.services import membership_service
from globalmoves.websockets.connection_manager import manager

router = APIRouter(tags=["Invitations"])


@router.post(
    "/rooms/{room_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED
)
async def invite_member(
    room_id: int,
    invitation_data: InvitationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> InvitationResponse:
    """
    비공개 룸에 사용자 초대 (owner 전용)

    - **email**: 초대할 사용자 이메일
    - **message**: 초대 메시지 (선택)
    """
    invitation = await membership_service.invite(
        db, current_user, room_id, invitation_data.email, invitation_data.message
    )
    return await membership_service.to_response(db, invitation)


@router.get("/rooms/{room_id}/invitations", response_model=List[InvitationResponse])
async def list_room_invitations(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[InvitationResponse]:
    """
    룸의 모든 초대 조회 (owner 전용)
    """
    return await membership_service.list_room_invitations(db, current_user, room_id)


@router.get("/invitations", response_model=List[InvitationResponse])
async def list_my_invitations(
    status_filter: str = Query("pending", alias="status", description="pending, accepted, declined, all"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[InvitationResponse]:
    """
    내가 받은 초대 목록 (최신순)
    """
    return await membership_service.list_my_invitations(
        db, current_user, None if status_filter == "all" else status_filter
    )


@router.post("/invitations/{invitation_id}/accept", response_model=InvitationResponse)
async def accept_invitation(
    invitation_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> InvitationResponse:
    """
    초대 수락 (pending 상태에서만, 정원 재확인)
    """
    invitation = await membership_service.respond(
        db, current_user, invitation_id, membership_service.DECISION_ACCEPT
    )
    await manager.publish(MemberJoined(
        room_id=invitation.room_id,
        user_id=current_user.id,
        display_name=current_user.public_name
    ))
    return await membership_service.to_response(db, invitation)


@router.post("/invitations/{invitation_id}/decline", response_model=InvitationResponse)
async def decline_invitation(
    invitation_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> InvitationResponse:
    """
    초대 거절 (거절 후 같은 룸으로 재초대 불가)
    """
    invitation = await membership_service.respond(
        db, current_user, invitation_id, membership_service.DECISION_DECLINE
    )
    return await membership_service.to_response(db, invitation)
