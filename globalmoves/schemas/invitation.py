from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .user import UserSummary


class InvitationCreate(BaseModel):
    """룸 초대 스키마"""
    email: str = Field(..., description="초대할 사용자 이메일")
    message: Optional[str] = Field(None, max_length=500, description="초대 메시지")


class InvitationResponse(BaseModel):
    """초대 응답 스키마"""
    id: int = Field(..., description="초대 ID")
    room_id: int = Field(..., description="룸 ID")
    room_name: Optional[str] = Field(None, description="룸 이름")
    invited_by: UserSummary = Field(..., description="초대한 사용자")
    invited_user: UserSummary = Field(..., description="초대 받은 사용자")
    status: str = Field(..., description="상태 (pending, accepted, declined)")
    message: Optional[str] = Field(None, description="초대 메시지")
    created_at: datetime = Field(..., description="생성일시")
    responded_at: Optional[datetime] = Field(None, description="응답일시")
