from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from .user import UserSummary


class OpportunitySummary(BaseModel):
    """공유 피드/선택 목록에 표시되는 기회 요약"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = Field(None, description="기회 ID")
    title: str = Field(..., description="제목")
    category: Optional[str] = Field(None, description="카테고리")
    deadline: Optional[date] = Field(None, description="마감일")


class ShareOpportunityRequest(BaseModel):
    """룸에 기회 공유 요청"""
    opportunity_id: int = Field(..., description="공유할 기회 ID")
    message: Optional[str] = Field(None, max_length=1000, description="코멘트")


class SharedOpportunityResponse(BaseModel):
    """룸 공유 피드 항목"""
    id: int = Field(..., description="공유 ID")
    room_id: int = Field(..., description="룸 ID")
    opportunity_id: int = Field(..., description="기회 ID")
    shared_by: int = Field(..., description="공유한 사용자 ID")
    message: Optional[str] = Field(None, description="코멘트")
    created_at: datetime = Field(..., description="공유일시")
    opportunity: OpportunitySummary = Field(..., description="기회 정보")
    sharer: UserSummary = Field(..., description="공유한 사용자 정보")


class OpportunityResponse(OpportunitySummary):
    """공유 선택 목록용 기회 상세"""
    about: str = Field(default="", description="설명")
    location: Optional[str] = Field(None, description="지역")
    link: Optional[str] = Field(None, description="외부 링크")
