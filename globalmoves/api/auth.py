from datetime import timedelta
from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from globalmoves.core.config import settings
from globalmoves.database.mysql import get_async_session
from globalmoves.models.users import User
from globalmoves.schemas.user import UserCreate, UserLogin, UserResponse, ProfileUpdateRequest, Token
from globalmoves.utils.auth import (
    verify_password_async,
    get_password_hash_async,
    create_access_token,
    decode_access_token
)
from globalmoves.core.errors import (
    invalid_credentials_error,
    email_already_exists_error,
    invalid_token_error,
)
from globalmoves.core.validators import validate_user_registration
from globalmoves.core.logging import get_logger, log_authentication_event, user_id_var
from globalmoves.services import auth_service

logger = get_logger(__name__)

# OAuth2 설정
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
router = APIRouter(prefix="/auth", tags=["Authentication"])


async def get_current_user(
        request: Request,
        token: str = Depends(oauth2_scheme),
        db: AsyncSession = Depends(get_async_session)
) -> User:
    """
    현재 인증된 사용자 조회
    """

    # 토큰 검증
    payload = decode_access_token(token)
    if not payload:
        raise invalid_token_error()

    user_id = payload.get("sub")
    if not user_id:
        raise invalid_token_error()

    try:
        user = await auth_service.find_user_by_id(db, int(user_id))
    except ValueError:
        raise invalid_token_error()

    # 토큰은 유효하지만 사용자가 삭제된 경우
    if not user:
        raise invalid_token_error()

    # 요청 로깅용 (미들웨어에서 참조)
    request.state.user_id = user.id
    user_id_var.set(user.id)
    return user


@router.post("/register",
             response_model=UserResponse,
             status_code=status.HTTP_201_CREATED)
async def register(
        user_data: UserCreate,
        db: AsyncSession = Depends(get_async_session)
) -> UserResponse:
    """
    사용자 회원가입
    """

    # 입력 검증
    validate_user_registration(
        user_data.email,
        user_data.password,
        user_data.display_name
    )

    # 비즈니스 로직: 이메일 중복 확인
    if await auth_service.is_email_exists(db, user_data.email):
        raise email_already_exists_error()

    password_hash = await get_password_hash_async(user_data.password)
    user = await auth_service.create_user(
        db=db,
        email=user_data.email,
        password_hash=password_hash,
        display_name=user_data.display_name,
        field_of_work=user_data.field_of_work,
        country=user_data.country
    )

    log_authentication_event(logger, "register", user_id=user.id, email=user.email)
    return user


@router.post("/login", response_model=Token)
async def login(
        user_data: UserLogin,
        db: AsyncSession = Depends(get_async_session)
) -> Token:
    """
    사용자 로그인 (JSON 형식)

    - email과 password 필드 사용
    - 반환된 토큰은 REST 와 WebSocket 에서 공통으로 사용
    """

    user = await auth_service.find_user_by_email(db, user_data.email)
    if not user or not await verify_password_async(user_data.password, user.password_hash):
        log_authentication_event(logger, "login", email=user_data.email, success=False)
        raise invalid_credentials_error()

    # 액세스 토큰 생성
    access_token_expires = timedelta(hours=settings.access_token_expire_hours)
    access_token = create_access_token(
        data={"sub": str(user.id), "email": user.email},
        expires_delta=access_token_expires
    )

    log_authentication_event(logger, "login", user_id=user.id, email=user.email)
    return Token(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(access_token_expires.total_seconds())
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """
    현재 사용자 정보 조회
    """
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
        profile: ProfileUpdateRequest,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_async_session)
) -> UserResponse:
    """
    프로필 수정 (표시명, 활동 분야, 국가)

    빈 문자열을 보내면 해당 값이 삭제됩니다.
    """
    return await auth_service.update_profile(
        db,
        current_user,
        display_name=profile.display_name,
        field_of_work=profile.field_of_work,
        country=profile.country
    )
