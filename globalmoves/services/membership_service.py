"""
Membership & invitation workflow.

State machine per (room, user):

    no-relation --invite(owner)--> pending
    pending --accept(invited user)--> member
    pending --decline(invited user)--> declined (terminal)
    member --leave(self) / remove(owner)--> no-relation

The owner membership has no transitions. Any invitation for a (room, user)
pair blocks a new invite, whatever its status.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError

from globalmoves.models.users import User
from globalmoves.models.breakout_rooms import BreakoutRoom
from globalmoves.models.room_members import RoomMember, ROLE_MEMBER
from globalmoves.models.room_invitations import (
    RoomInvitation,
    STATUS_PENDING,
    STATUS_ACCEPTED,
    STATUS_DECLINED,
)
from globalmoves.schemas.invitation import InvitationResponse
from globalmoves.core.errors import (
    AuthorizationException,
    ConflictException,
    ResourceNotFoundException,
    StateException,
    ValidationException,
    ValidationError,
    user_not_found_error,
    room_full_error,
)
from globalmoves.core.validators import Validator
from globalmoves.core.logging import get_logger, log_room_event
from globalmoves.services import auth_service, room_service

logger = get_logger(__name__)

DECISION_ACCEPT = "accept"
DECISION_DECLINE = "decline"


# =============================================================================
# Lookups
# =============================================================================

async def find_invitation_by_id(db: AsyncSession, invitation_id: int) -> Optional[RoomInvitation]:
    result = await db.execute(select(RoomInvitation).where(RoomInvitation.id == invitation_id))
    return result.scalar_one_or_none()


async def find_invitation(db: AsyncSession, room_id: int, user_id: int) -> Optional[RoomInvitation]:
    """(룸, 초대 대상) 초대 조회 - 상태 무관"""
    result = await db.execute(
        select(RoomInvitation).where(
            RoomInvitation.room_id == room_id,
            RoomInvitation.invited_user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def ensure_capacity(db: AsyncSession, room: BreakoutRoom) -> None:
    """정원이 찼으면 ConflictException"""
    if room.max_members is None:
        return
    if await room_service.count_members(db, room.id) >= room.max_members:
        raise room_full_error(room.max_members)


async def _locked_member_count(db: AsyncSession, room_id: int) -> int:
    result = await db.execute(
        select(func.count(RoomMember.id)).where(RoomMember.room_id == room_id).with_for_update()
    )
    return result.scalar_one()


# =============================================================================
# Invitation Workflow
# =============================================================================

async def invite(
    db: AsyncSession,
    actor: User,
    room_id: int,
    invited_email: str,
    message: Optional[str] = None
) -> RoomInvitation:
    """
    이메일로 사용자를 비공개 룸에 초대 (owner 전용)

    실패 시 어떤 행도 남기지 않습니다.
    """
    room = await room_service.get_room_or_404(db, room_id)
    if not room.is_private:
        raise StateException("Public rooms do not use invitations")
    await room_service.ensure_owner(db, room, actor, "invite members")

    email = Validator.validate_email_format(invited_email)
    message = Validator.validate_optional_text(message, "message", max_length=500)

    invited_user = await auth_service.find_user_by_email(db, email)
    if not invited_user:
        raise user_not_found_error(email)

    if invited_user.id == actor.id:
        raise ValidationException(
            "You cannot invite yourself",
            validation_errors=[ValidationError(field="email", message="Cannot invite yourself", value=email)]
        )

    if await room_service.find_membership(db, room.id, invited_user.id):
        raise ConflictException("User is already a member of this room")

    await ensure_capacity(db, room)

    existing = await find_invitation(db, room.id, invited_user.id)
    if existing:
        raise ConflictException(
            "User has already been invited to this room",
            details={"status": existing.status}
        )

    invitation = RoomInvitation(
        room_id=room.id,
        invited_by=actor.id,
        invited_user_id=invited_user.id,
        status=STATUS_PENDING,
        message=message,
        created_at=datetime.utcnow()
    )
    db.add(invitation)
    try:
        await db.commit()
    except IntegrityError:
        # 동시에 들어온 초대와 경합
        await db.rollback()
        raise ConflictException("User has already been invited to this room")
    await db.refresh(invitation)

    log_room_event(logger, "invitation_sent", room.id, user_id=actor.id,
                   invited_user_id=invited_user.id, invitation_id=invitation.id)
    return invitation


async def respond(
    db: AsyncSession,
    invited_user: User,
    invitation_id: int,
    decision: str
) -> RoomInvitation:
    """초대 수락/거절 (초대 받은 사용자 전용, pending 상태에서만)"""
    decision = Validator.validate_enum(decision, [DECISION_ACCEPT, DECISION_DECLINE], "decision")

    invitation = await find_invitation_by_id(db, invitation_id)
    if not invitation:
        raise ResourceNotFoundException("Invitation")

    if invitation.invited_user_id != invited_user.id:
        raise AuthorizationException("Only the invited user can respond to this invitation")

    if invitation.status != STATUS_PENDING:
        raise StateException(
            f"Invitation has already been {invitation.status}",
            details={"status": invitation.status}
        )

    if decision == DECISION_ACCEPT:
        room = await room_service.get_room_or_404(db, invitation.room_id)
        await ensure_capacity(db, room)

    now = datetime.utcnow()
    new_status = STATUS_ACCEPTED if decision == DECISION_ACCEPT else STATUS_DECLINED

    try:
        if decision == DECISION_ACCEPT:
            # 같은 룸의 동시 수락 직렬화 (SQLite 는 FOR UPDATE 를 무시하고 쓰기 락으로 직렬화)
            await db.execute(
                select(BreakoutRoom.id).where(BreakoutRoom.id == invitation.room_id).with_for_update()
            )

        # pending 일 때만 전이 (동시 응답 방지)
        result = await db.execute(
            update(RoomInvitation)
            .where(RoomInvitation.id == invitation.id, RoomInvitation.status == STATUS_PENDING)
            .values(status=new_status, responded_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            raise StateException("Invitation is no longer pending")

        if decision == DECISION_ACCEPT:
            db.add(RoomMember(
                room_id=invitation.room_id,
                user_id=invited_user.id,
                role=ROLE_MEMBER,
                joined_at=now
            ))
            await db.flush()
            # 사전 검사 이후 다른 수락이 커밋됐을 수 있으므로 커밋 직전에 다시 셈.
            # 잠금 읽기라 MySQL 에서도 트랜잭션 스냅샷이 아닌 최신 커밋을 봄
            if room.max_members is not None and \
                    await _locked_member_count(db, room.id) > room.max_members:
                await db.rollback()
                raise room_full_error(room.max_members)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException("User is already a member of this room")

    await db.refresh(invitation)
    log_room_event(logger, f"invitation_{new_status}", invitation.room_id,
                   user_id=invited_user.id, invitation_id=invitation.id)
    return invitation


# =============================================================================
# Membership Changes
# =============================================================================

async def leave(db: AsyncSession, user: User, room_id: int) -> RoomMember:
    """룸 나가기 (owner 는 불가)"""
    room = await room_service.get_room_or_404(db, room_id)
    membership = await room_service.find_membership(db, room.id, user.id)
    if not membership:
        raise ResourceNotFoundException("Membership", message="You are not a member of this room")
    if membership.is_owner:
        raise AuthorizationException("The room owner cannot leave the room")

    await db.execute(delete(RoomMember).where(RoomMember.id == membership.id))
    await db.commit()

    log_room_event(logger, "member_left", room.id, user_id=user.id)
    return membership


async def remove_member(db: AsyncSession, actor: User, room_id: int, target_user_id: int) -> RoomMember:
    """멤버 내보내기 (owner 전용, owner 는 대상 불가)"""
    room = await room_service.get_room_or_404(db, room_id)
    await room_service.ensure_owner(db, room, actor, "remove members")

    membership = await room_service.find_membership(db, room.id, target_user_id)
    if not membership:
        raise ResourceNotFoundException("Membership", message="User is not a member of this room")
    if membership.is_owner:
        raise AuthorizationException("The room owner cannot be removed")

    await db.execute(delete(RoomMember).where(RoomMember.id == membership.id))
    await db.commit()

    log_room_event(logger, "member_removed", room.id, user_id=actor.id, target_user_id=target_user_id)
    return membership


# =============================================================================
# Listings
# =============================================================================

async def _to_responses(db: AsyncSession, invitations: List[RoomInvitation]) -> List[InvitationResponse]:
    user_ids = {inv.invited_by for inv in invitations} | {inv.invited_user_id for inv in invitations}
    users = await auth_service.find_users_by_ids(db, user_ids)

    room_ids = {inv.room_id for inv in invitations}
    rooms = {}
    if room_ids:
        result = await db.execute(select(BreakoutRoom).where(BreakoutRoom.id.in_(room_ids)))
        rooms = {room.id: room for room in result.scalars().all()}

    return [
        InvitationResponse(
            id=inv.id,
            room_id=inv.room_id,
            room_name=rooms[inv.room_id].name if inv.room_id in rooms else None,
            invited_by=auth_service.summarize_user(users.get(inv.invited_by), inv.invited_by),
            invited_user=auth_service.summarize_user(users.get(inv.invited_user_id), inv.invited_user_id),
            status=inv.status,
            message=inv.message,
            created_at=inv.created_at,
            responded_at=inv.responded_at
        )
        for inv in invitations
    ]


async def to_response(db: AsyncSession, invitation: RoomInvitation) -> InvitationResponse:
    return (await _to_responses(db, [invitation]))[0]


async def list_my_invitations(
    db: AsyncSession,
    user: User,
    status: Optional[str] = STATUS_PENDING
) -> List[InvitationResponse]:
    """내가 받은 초대 목록 (최신순). status=None 이면 전체"""
    query = select(RoomInvitation).where(RoomInvitation.invited_user_id == user.id)
    if status is not None:
        Validator.validate_enum(status, [STATUS_PENDING, STATUS_ACCEPTED, STATUS_DECLINED], "status")
        query = query.where(RoomInvitation.status == status)
    query = query.order_by(RoomInvitation.created_at.desc(), RoomInvitation.id.desc())

    result = await db.execute(query)
    return await _to_responses(db, list(result.scalars().all()))


async def list_room_invitations(db: AsyncSession, actor: User, room_id: int) -> List[InvitationResponse]:
    """룸의 전체 초대 목록 (owner 전용)"""
    room = await room_service.get_room_or_404(db, room_id)
    await room_service.ensure_owner(db, room, actor, "view invitations")

    result = await db.execute(
        select(RoomInvitation)
        .where(RoomInvitation.room_id == room.id)
        .order_by(RoomInvitation.created_at.desc(), RoomInvitation.id.desc())
    )
    return await _to_responses(db, list(result.scalars().all()))
