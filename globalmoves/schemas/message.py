from datetime import datetime
from pydantic import BaseModel, Field

from .user import UserSummary


class MessageCreate(BaseModel):
    """메시지 생성 스키마 (공백 검증은 서비스 계층에서 수행)"""
    content: str = Field(..., description="메시지 내용")


class MessageResponse(BaseModel):
    """메시지 응답 스키마"""
    id: int = Field(..., description="메시지 ID")
    room_id: int = Field(..., description="룸 ID")
    user_id: int = Field(..., description="작성자 ID")
    content: str = Field(..., description="메시지 내용")
    created_at: datetime = Field(..., description="생성일시")
    author: UserSummary = Field(..., description="작성자 정보")
