from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, ConfigDict


class UserBase(BaseModel):
    """사용자 기본 스키마"""
    email: EmailStr = Field(..., description="사용자 이메일")
    display_name: Optional[str] = Field(None, max_length=100, description="표시명")
    field_of_work: Optional[str] = Field(None, max_length=100, description="활동 분야")
    country: Optional[str] = Field(None, max_length=100, description="국가")


class UserCreate(UserBase):
    """사용자 생성 스키마"""
    password: str = Field(..., min_length=8, max_length=72, description="비밀번호 (8자 이상, 영문+숫자)")


class UserLogin(BaseModel):
    """사용자 로그인 스키마"""
    email: EmailStr = Field(..., description="이메일")
    password: str = Field(..., description="비밀번호")


class UserResponse(UserBase):
    """사용자 응답 스키마"""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="사용자 ID")
    is_admin: bool = Field(default=False, description="관리자 여부")
    created_at: datetime = Field(..., description="생성일시")
    updated_at: datetime = Field(..., description="수정일시")


class ProfileUpdateRequest(BaseModel):
    """프로필 수정 요청 스키마"""
    display_name: Optional[str] = Field(None, max_length=100, description="표시명")
    field_of_work: Optional[str] = Field(None, max_length=100, description="활동 분야")
    country: Optional[str] = Field(None, max_length=100, description="국가")


class UserSummary(BaseModel):
    """다른 응답에 포함되는 간략한 사용자 정보"""
    id: Optional[int] = Field(None, description="사용자 ID")
    display_name: str = Field(..., description="표시 이름 (없으면 대체 문자열)")


class Token(BaseModel):
    """토큰 스키마"""
    access_token: str = Field(..., description="액세스 토큰")
    token_type: str = Field(default="bearer", description="토큰 타입")
    expires_in: int = Field(..., description="액세스 토큰 만료 시간(초)")
