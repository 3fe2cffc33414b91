from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.database.mysql import get_async_session
from globalmoves.models.users import User
from globalmoves.schemas.room import (
    PrivateRoomCreate,
    PublicRoomCreate,
    RoomResponse,
    RoomListItem,
    RoomMemberResponse,
    RoomPresenceResponse,
)
from globalmoves.api.auth import get_current_user
from globalmoves.domain.events import MemberLeft, MemberRemoved, RoomDeleted
from globalmoves.services import room_service, membership_service
from globalmoves.websockets.connection_manager import manager

router = APIRouter(prefix="/rooms", tags=["Breakout Rooms"])


@router.get("", response_model=List[RoomListItem])
async def list_rooms(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[RoomListItem]:
    """
    룸 목록 조회

    공개 룸 전체와 내가 멤버인 비공개 룸을 반환합니다. 공개 룸이 먼저, 이후 이름순.
    """
    return await room_service.list_rooms(db, current_user)


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_private_room(
    room_data: PrivateRoomCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> RoomResponse:
    """
    비공개 룸 생성

    - **name**: 룸 이름 (필수)
    - **field**: 분야 태그 (필수)
    - **description**: 설명
    - **max_members**: 최대 멤버 수 (2~50, 기본 10)

    생성자는 owner 로 자동 참여합니다.
    """
    return await room_service.create_private_room(
        db,
        current_user,
        room_data.name,
        room_data.field,
        room_data.description,
        room_data.max_members
    )


@router.post("/public", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_public_room(
    room_data: PublicRoomCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> RoomResponse:
    """
    공개 룸 생성 (관리자 전용)
    """
    return await room_service.create_public_room(
        db, current_user, room_data.name, room_data.field, room_data.description
    )


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> RoomResponse:
    """
    룸 상세 조회 (비공개 룸은 멤버만)
    """
    return await room_service.get_accessible_room(db, room_id, current_user)


@router.delete("/{room_id}")
async def delete_room(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> dict:
    """
    룸 삭제 (owner 전용)

    멤버십, 초대, 메시지, 공유 기록이 함께 삭제되고 연결된 구독은 종료됩니다.
    """
    room = await room_service.delete_room(db, current_user, room_id)
    await manager.publish(RoomDeleted(room_id=room.id, deleted_by=current_user.id))

    return {"message": "Room deleted", "room_id": room.id}


@router.get("/{room_id}/members", response_model=List[RoomMemberResponse])
async def list_members(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[RoomMemberResponse]:
    """
    룸 멤버 목록 (owner 먼저, 이후 참여순)
    """
    return await room_service.list_members(db, current_user, room_id)


@router.delete("/{room_id}/members/me")
async def leave_room(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> dict:
    """
    룸 나가기 (owner 는 나갈 수 없음)
    """
    await membership_service.leave(db, current_user, room_id)
    await manager.publish(MemberLeft(room_id=room_id, user_id=current_user.id))

    return {"message": "Left the room", "room_id": room_id}


@router.delete("/{room_id}/members/{user_id}")
async def remove_member(
    room_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> dict:
    """
    멤버 내보내기 (owner 전용)

    대상 사용자의 실시간 연결은 member_removed 이벤트 전달 후 종료됩니다.
    """
    await membership_service.remove_member(db, current_user, room_id, user_id)
    await manager.publish(MemberRemoved(room_id=room_id, user_id=user_id, removed_by=current_user.id))

    return {"message": "Member removed", "room_id": room_id, "user_id": user_id}


@router.get("/{room_id}/presence", response_model=RoomPresenceResponse)
async def get_room_presence(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> RoomPresenceResponse:
    """
    룸의 현재 접속자 (이 서버 프로세스 기준)
    """
    room = await room_service.get_accessible_room(db, room_id, current_user)
    online_users = manager.get_presence(room.id)

    return RoomPresenceResponse(
        room_id=room.id,
        online_users=online_users,
        online_count=len(online_users)
    )
