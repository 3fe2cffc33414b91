"""
Opportunity sharing board.

Opportunities come from an external catalog and are read-only here;
rooms keep a feed of shared opportunities, one share per (room, opportunity).
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from globalmoves.models.users import User
from globalmoves.models.opportunities import Opportunity
from globalmoves.models.room_shared_opportunities import RoomSharedOpportunity
from globalmoves.schemas.opportunity import OpportunitySummary, SharedOpportunityResponse
from globalmoves.core.errors import ConflictException, ResourceNotFoundException
from globalmoves.core.validators import Validator
from globalmoves.core.logging import get_logger, log_room_event
from globalmoves.services import auth_service, room_service

logger = get_logger(__name__)

UNKNOWN_OPPORTUNITY = "Unknown opportunity"
DUPLICATE_SHARE_MESSAGE = "This opportunity has already been shared to this room"


async def list_active_opportunities(db: AsyncSession) -> List[Opportunity]:
    """공유 가능한(활성) 기회 목록 (제목순)"""
    result = await db.execute(
        select(Opportunity)
        .where(Opportunity.is_active.is_(True))
        .order_by(Opportunity.title.asc(), Opportunity.id.asc())
    )
    return list(result.scalars().all())


async def find_active_opportunity(db: AsyncSession, opportunity_id: int) -> Optional[Opportunity]:
    result = await db.execute(
        select(Opportunity).where(
            Opportunity.id == opportunity_id,
            Opportunity.is_active.is_(True)
        )
    )
    return result.scalar_one_or_none()


async def find_share(db: AsyncSession, room_id: int, opportunity_id: int) -> Optional[RoomSharedOpportunity]:
    result = await db.execute(
        select(RoomSharedOpportunity).where(
            RoomSharedOpportunity.room_id == room_id,
            RoomSharedOpportunity.opportunity_id == opportunity_id
        )
    )
    return result.scalar_one_or_none()


def summarize_opportunity(opportunity: Optional[Opportunity], opportunity_id: Optional[int] = None) -> OpportunitySummary:
    """피드 표시용 요약. 조회 실패 시 대체 제목"""
    if opportunity is None:
        return OpportunitySummary(id=opportunity_id, title=UNKNOWN_OPPORTUNITY)
    return OpportunitySummary.model_validate(opportunity)


def to_response(
    share: RoomSharedOpportunity,
    opportunity: Optional[Opportunity] = None,
    sharer: Optional[User] = None
) -> SharedOpportunityResponse:
    return SharedOpportunityResponse(
        id=share.id,
        room_id=share.room_id,
        opportunity_id=share.opportunity_id,
        shared_by=share.shared_by,
        message=share.message,
        created_at=share.created_at,
        opportunity=summarize_opportunity(opportunity, share.opportunity_id),
        sharer=auth_service.summarize_user(sharer, share.shared_by)
    )


async def share(
    db: AsyncSession,
    user: User,
    room_id: int,
    opportunity_id: int,
    message: Optional[str] = None
) -> SharedOpportunityResponse:
    """룸에 기회 공유. 같은 기회는 룸당 한 번만"""
    room = await room_service.get_accessible_room(db, room_id, user)
    message = Validator.validate_optional_text(message, "message", max_length=1000)

    opportunity = await find_active_opportunity(db, opportunity_id)
    if not opportunity:
        raise ResourceNotFoundException("Opportunity", details={"opportunity_id": opportunity_id})

    if await find_share(db, room.id, opportunity.id):
        raise ConflictException(DUPLICATE_SHARE_MESSAGE)

    shared = RoomSharedOpportunity(
        room_id=room.id,
        opportunity_id=opportunity.id,
        shared_by=user.id,
        message=message,
        created_at=datetime.utcnow()
    )
    db.add(shared)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException(DUPLICATE_SHARE_MESSAGE)
    await db.refresh(shared)

    log_room_event(logger, "opportunity_shared", room.id, user_id=user.id, opportunity_id=opportunity.id)
    return to_response(shared, opportunity, user)


async def list_shared(db: AsyncSession, user: User, room_id: int) -> List[SharedOpportunityResponse]:
    """룸 공유 피드 (최신순)"""
    room = await room_service.get_accessible_room(db, room_id, user)

    result = await db.execute(
        select(RoomSharedOpportunity, Opportunity, User)
        .outerjoin(Opportunity, Opportunity.id == RoomSharedOpportunity.opportunity_id)
        .outerjoin(User, User.id == RoomSharedOpportunity.shared_by)
        .where(RoomSharedOpportunity.room_id == room.id)
        .order_by(RoomSharedOpportunity.created_at.desc(), RoomSharedOpportunity.id.desc())
    )
    return [to_response(shared, opportunity, sharer) for shared, opportunity, sharer in result.all()]
