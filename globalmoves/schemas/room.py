from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from .user import UserSummary


class PrivateRoomCreate(BaseModel):
    """비공개 룸 생성 스키마 (세부 검증은 서비스 계층에서 수행)"""
    name: str = Field(..., description="룸 이름")
    field: str = Field(..., description="분야 태그")
    description: Optional[str] = Field(None, description="룸 설명")
    max_members: Optional[int] = Field(None, description="최대 멤버 수 (2~50, 기본 10)")


class PublicRoomCreate(BaseModel):
    """공개 룸 생성 스키마 (관리자 전용)"""
    name: str = Field(..., description="룸 이름")
    field: str = Field(..., description="분야 태그")
    description: Optional[str] = Field(None, description="룸 설명")


class RoomResponse(BaseModel):
    """룸 응답 스키마"""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="룸 ID")
    name: str = Field(..., description="룸 이름")
    field: str = Field(..., description="분야 태그")
    description: Optional[str] = Field(None, description="룸 설명")
    is_private: bool = Field(..., description="비공개 여부")
    created_by: Optional[int] = Field(None, description="소유자 ID (공개 룸은 없음)")
    max_members: Optional[int] = Field(None, description="최대 멤버 수")
    created_at: datetime = Field(..., description="생성일시")


class RoomListItem(RoomResponse):
    """룸 목록 항목 (사용자 기준 부가 정보 포함)"""
    member_count: int = Field(default=0, description="현재 멤버 수 (공개 룸은 0)")
    my_role: Optional[str] = Field(None, description="내 역할 (owner, member)")
    matches_my_field: bool = Field(default=False, description="내 활동 분야와 일치 여부")


class RoomMemberResponse(BaseModel):
    """룸 멤버 응답 스키마"""
    user: UserSummary = Field(..., description="멤버 정보")
    role: str = Field(..., description="역할 (owner, member)")
    joined_at: datetime = Field(..., description="참여일시")


class PresenceUser(BaseModel):
    """접속 중인 사용자"""
    user_id: int = Field(..., description="사용자 ID")
    display_name: str = Field(..., description="접속 시점 표시명")
    connected_at: datetime = Field(..., description="최초 접속 시각")


class RoomPresenceResponse(BaseModel):
    """룸 접속 현황"""
    room_id: int = Field(..., description="룸 ID")
    online_users: list[PresenceUser] = Field(default_factory=list, description="접속 중인 사용자")
    online_count: int = Field(..., description="접속 중인 사용자 수")
