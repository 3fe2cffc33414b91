"""
Authentication service layer for database operations.

Handles user lookup, registration and profile updates.
"""

from datetime import datetime
from typing import Optional, Iterable, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from globalmoves.models.users import User
from globalmoves.schemas.user import UserSummary

UNKNOWN_MEMBER = "Unknown member"


# =============================================================================
# User CRUD Operations
# =============================================================================

async def find_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    """사용자 ID로 조회"""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """이메일로 사용자 조회 (대소문자 무시)"""
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def find_users_by_ids(db: AsyncSession, user_ids: Iterable[int]) -> Dict[int, User]:
    """여러 사용자 일괄 조회 -> {user_id: User}"""
    ids = set(user_ids)
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


async def is_email_exists(db: AsyncSession, email: str) -> bool:
    """이메일 중복 확인"""
    return await find_user_by_email(db, email) is not None


async def create_user(
    db: AsyncSession,
    email: str,
    password_hash: str,
    display_name: Optional[str] = None,
    field_of_work: Optional[str] = None,
    country: Optional[str] = None,
    is_admin: bool = False
) -> User:
    """새 사용자 생성"""
    new_user = User(
        email=email.strip().lower(),
        password_hash=password_hash,
        display_name=display_name,
        field_of_work=field_of_work,
        country=country,
        is_admin=is_admin,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    return new_user


async def update_profile(db: AsyncSession, user: User, **changes) -> User:
    """프로필 수정 (None 이 아닌 값만 반영, 빈 문자열은 삭제)"""
    for key, value in changes.items():
        if value is None:
            continue
        setattr(user, key, value.strip() or None)
    user.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(user)
    return user


# =============================================================================
# Helper Functions
# =============================================================================

def summarize_user(user: Optional[User], user_id: Optional[int] = None) -> UserSummary:
    """표시용 사용자 요약. 조회 실패 시 대체 이름을 사용"""
    if user is None:
        return UserSummary(id=user_id, display_name=UNKNOWN_MEMBER)
    return UserSummary(id=user.id, display_name=user.public_name)
