from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.database.mysql import get_async_session
from globalmoves.models.users import User
from globalmoves.schemas.opportunity import (
    OpportunityResponse,
    ShareOpportunityRequest,
    SharedOpportunityResponse,
)
from globalmoves.api.auth import get_current_user
from globalmoves.domain.events import OpportunityShared
from globalmoves.services import opportunity_service
from globalmoves.websockets.connection_manager import manager

router = APIRouter(tags=["Opportunities"])


@router.get("/opportunities", response_model=List[OpportunityResponse])
async def list_opportunities(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[OpportunityResponse]:
    """
    공유 가능한 기회 목록 (활성, 제목순)
    """
    opportunities = await opportunity_service.list_active_opportunities(db)
    return [OpportunityResponse.model_validate(opportunity) for opportunity in opportunities]


@router.get("/rooms/{room_id}/shared-opportunities", response_model=List[SharedOpportunityResponse])
async def list_shared_opportunities(
    room_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> List[SharedOpportunityResponse]:
    """
    룸 공유 피드 (최신순)
    """
    return await opportunity_service.list_shared(db, current_user, room_id)


@router.post(
    "/rooms/{room_id}/shared-opportunities",
    response_model=SharedOpportunityResponse,
    status_code=status.HTTP_201_CREATED
)
async def share_opportunity(
    room_id: int,
    share_data: ShareOpportunityRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session)
) -> SharedOpportunityResponse:
    """
    룸에 기회 공유

    - **opportunity_id**: 활성 상태의 기회 ID
    - **message**: 코멘트 (선택)

    같은 기회는 룸당 한 번만 공유할 수 있습니다.
    """
    shared = await opportunity_service.share(
        db, current_user, room_id, share_data.opportunity_id, share_data.message
    )
    await manager.publish(OpportunityShared(room_id=room_id, shared=shared.model_dump(mode="json")))

    return shared
