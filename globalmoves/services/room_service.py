"""
Breakout room service layer.

Room directory (listing, creation, deletion), membership lookups and the
room read-access policy shared by the chat, presence and sharing features.
"""

from datetime import datetime
from typing import Optional, List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func, or_
from sqlalchemy.exc import IntegrityError

from globalmoves.models.users import User
from globalmoves.models.breakout_rooms import BreakoutRoom
from globalmoves.models.room_members import RoomMember, ROLE_OWNER
from globalmoves.models.room_invitations import RoomInvitation
from globalmoves.models.room_messages import RoomMessage
from globalmoves.models.room_shared_opportunities import RoomSharedOpportunity
from globalmoves.schemas.room import RoomListItem, RoomResponse, RoomMemberResponse
from globalmoves.core.errors import (
    AuthorizationException,
    ConflictException,
    room_not_found_error,
    not_room_member_error,
)
from globalmoves.core.validators import Validator, validate_private_room_creation
from globalmoves.core.logging import get_logger, log_room_event, log_security_event
from globalmoves.services.auth_service import summarize_user

logger = get_logger(__name__)

# 분야별 기본 공개 룸
DEFAULT_PUBLIC_ROOMS = [
    ("Technology & IT", "Tech talk, remote roles and visa-sponsored engineering jobs."),
    ("Healthcare & Medicine", "Clinical programs, fellowships and licensing abroad."),
    ("Education & Research", "Scholarships, research grants and academic exchanges."),
    ("Business & Finance", "Accelerators, MBAs and international business programs."),
    ("Arts & Creative", "Residencies, festivals and creative grants."),
    ("Engineering", "Engineering programs and global infrastructure projects."),
    ("Science", "Lab positions, PhD funding and science fellowships."),
    ("Law & Policy", "Policy fellowships and international law programs."),
    ("Non-profit & Social Impact", "Impact fellowships and NGO opportunities."),
    ("Agriculture & Environment", "Climate, sustainability and agriculture programs."),
    ("Media & Communications", "Journalism fellowships and media programs."),
]


# =============================================================================
# Lookups
# =============================================================================

async def find_room_by_id(db: AsyncSession, room_id: int) -> Optional[BreakoutRoom]:
    """룸 ID로 조회"""
    result = await db.execute(select(BreakoutRoom).where(BreakoutRoom.id == room_id))
    return result.scalar_one_or_none()


async def get_room_or_404(db: AsyncSession, room_id: int) -> BreakoutRoom:
    room = await find_room_by_id(db, room_id)
    if not room:
        raise room_not_found_error(room_id)
    return room


async def find_membership(db: AsyncSession, room_id: int, user_id: int) -> Optional[RoomMember]:
    """룸 멤버십 조회"""
    result = await db.execute(
        select(RoomMember).where(
            RoomMember.room_id == room_id,
            RoomMember.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def count_members(db: AsyncSession, room_id: int) -> int:
    """룸 멤버 수 (owner 포함)"""
    result = await db.execute(
        select(func.count(RoomMember.id)).where(RoomMember.room_id == room_id)
    )
    return result.scalar_one()


# =============================================================================
# Access Policy
# =============================================================================

async def can_read_room(db: AsyncSession, room: BreakoutRoom, user_id: int) -> bool:
    """공개 룸은 모든 인증 사용자, 비공개 룸은 멤버만 접근 가능"""
    if not room.is_private:
        return True
    return await find_membership(db, room.id, user_id) is not None


async def ensure_read_access(db: AsyncSession, room: BreakoutRoom, user: User) -> None:
    if not await can_read_room(db, room, user.id):
        log_security_event(
            logger, "room_access_denied", severity="low",
            user_id=user.id, room_id=room.id
        )
        raise not_room_member_error(room.id)


async def get_accessible_room(db: AsyncSession, room_id: int, user: User) -> BreakoutRoom:
    """룸 조회 + 읽기 권한 확인"""
    room = await get_room_or_404(db, room_id)
    await ensure_read_access(db, room, user)
    return room


async def ensure_owner(db: AsyncSession, room: BreakoutRoom, user: User, action: str) -> None:
    """비공개 룸 소유자만 허용"""
    if not room.is_private or not room.is_owned_by(user.id):
        log_security_event(
            logger, "owner_action_denied", severity="low",
            user_id=user.id, room_id=room.id, action=action
        )
        raise AuthorizationException(f"Only the room owner can {action}")


# =============================================================================
# Room Directory
# =============================================================================

async def list_rooms(db: AsyncSession, user: User) -> List[RoomListItem]:
    """
    사용자에게 보이는 룸 목록

    공개 룸 전체 + 사용자가 멤버인 비공개 룸. 공개 룸이 먼저, 이후 이름순.
    """
    my_roles_result = await db.execute(
        select(RoomMember.room_id, RoomMember.role).where(RoomMember.user_id == user.id)
    )
    my_roles: Dict[int, str] = {room_id: role for room_id, role in my_roles_result.all()}

    rooms_result = await db.execute(
        select(BreakoutRoom)
        .where(or_(
            BreakoutRoom.is_private.is_(False),
            BreakoutRoom.id.in_(list(my_roles.keys()))
        ))
        .order_by(BreakoutRoom.is_private.asc(), BreakoutRoom.name.asc(), BreakoutRoom.id.asc())
    )
    rooms = rooms_result.scalars().all()

    counts: Dict[int, int] = {}
    private_ids = [room.id for room in rooms if room.is_private]
    if private_ids:
        counts_result = await db.execute(
            select(RoomMember.room_id, func.count(RoomMember.id))
            .where(RoomMember.room_id.in_(private_ids))
            .group_by(RoomMember.room_id)
        )
        counts = dict(counts_result.all())

    return [
        RoomListItem(
            **RoomResponse.model_validate(room).model_dump(),
            member_count=counts.get(room.id, 0),
            my_role=my_roles.get(room.id),
            matches_my_field=bool(user.field_of_work) and user.field_of_work == room.field
        )
        for room in rooms
    ]


async def create_private_room(
    db: AsyncSession,
    owner: User,
    name: str,
    field: str,
    description: Optional[str] = None,
    max_members: Optional[int] = None
) -> BreakoutRoom:
    """비공개 룸 생성. 룸과 owner 멤버십을 하나의 트랜잭션으로 생성"""
    name, field, description, max_members = validate_private_room_creation(
        name, field, description, max_members
    )

    now = datetime.utcnow()
    room = BreakoutRoom(
        name=name,
        field=field,
        description=description,
        is_private=True,
        created_by=owner.id,
        max_members=max_members,
        created_at=now
    )
    db.add(room)
    try:
        await db.flush()
        db.add(RoomMember(room_id=room.id, user_id=owner.id, role=ROLE_OWNER, joined_at=now))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(room)

    log_room_event(logger, "created", room.id, user_id=owner.id, is_private=True)
    return room


async def create_public_room(
    db: AsyncSession,
    actor: User,
    name: str,
    field: str,
    description: Optional[str] = None
) -> BreakoutRoom:
    """공개 룸 생성 (관리자 전용). 소유자/정원 없음"""
    if not actor.is_admin:
        log_security_event(logger, "admin_action_denied", user_id=actor.id, action="create_public_room")
        raise AuthorizationException("Only administrators can create public rooms")

    name = Validator.validate_room_text(name, "name")
    field = Validator.validate_room_text(field, "field", max_length=100)
    description = Validator.validate_optional_text(description, "description", max_length=1000)

    room = BreakoutRoom(name=name, field=field, description=description, is_private=False)
    db.add(room)
    await db.commit()
    await db.refresh(room)

    log_room_event(logger, "created", room.id, user_id=actor.id, is_private=False)
    return room


async def delete_room(db: AsyncSession, actor: User, room_id: int) -> BreakoutRoom:
    """
    룸 삭제 (비공개 룸 소유자 전용)

    멤버십, 초대, 메시지, 공유 기록을 같은 트랜잭션에서 함께 삭제합니다.
    """
    room = await get_room_or_404(db, room_id)
    await ensure_owner(db, room, actor, "delete this room")

    try:
        for model in (RoomSharedOpportunity, RoomMessage, RoomInvitation, RoomMember):
            await db.execute(delete(model).where(model.room_id == room.id))
        await db.execute(delete(BreakoutRoom).where(BreakoutRoom.id == room.id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    log_room_event(logger, "deleted", room.id, user_id=actor.id)
    return room


async def list_members(db: AsyncSession, user: User, room_id: int) -> List[RoomMemberResponse]:
    """룸 멤버 목록 (owner 먼저, 이후 참여순)"""
    room = await get_accessible_room(db, room_id, user)

    result = await db.execute(
        select(RoomMember, User)
        .outerjoin(User, User.id == RoomMember.user_id)
        .where(RoomMember.room_id == room.id)
        .order_by(RoomMember.joined_at.asc(), RoomMember.id.asc())
    )
    rows = result.all()
    rows.sort(key=lambda row: 0 if row[0].is_owner else 1)

    return [
        RoomMemberResponse(
            user=summarize_user(member_user, member.user_id),
            role=member.role,
            joined_at=member.joined_at
        )
        for member, member_user in rows
    ]


async def seed_public_rooms(db: AsyncSession) -> int:
    """기본 공개 룸 생성 (이미 있는 분야는 건너뜀). 생성된 룸 수 반환"""
    result = await db.execute(
        select(BreakoutRoom.field).where(BreakoutRoom.is_private.is_(False))
    )
    existing_fields = set(result.scalars().all())

    created = 0
    for field, description in DEFAULT_PUBLIC_ROOMS:
        if field in existing_fields:
            continue
        db.add(BreakoutRoom(name=field, field=field, description=description, is_private=False))
        created += 1

    if created:
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictException("Public room seeding conflicted with a concurrent writer")
        logger.info(f"Seeded {created} public breakout rooms")
    return created
