import pytest
import pytest_asyncio
from datetime import date, timedelta
from typing import AsyncGenerator, Dict
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from globalmoves.main import app
from globalmoves.database.mysql import Base, get_async_session
from globalmoves.models.users import User
from globalmoves.models.breakout_rooms import BreakoutRoom
from globalmoves.models.opportunities import Opportunity
from globalmoves.utils.auth import get_password_hash, create_access_token
from globalmoves.services import room_service
from globalmoves.websockets.connection_manager import manager


# 테스트용 인메모리 SQLite 데이터베이스 설정
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "testpass123"
# bcrypt 해싱은 느리므로 한 번만 계산
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest_asyncio.fixture
async def test_engine():
    """테스트용 비동기 데이터베이스 엔진 생성"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )

    # 테이블 생성
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # 정리
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """테스트용 데이터베이스 세션"""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_session) -> AsyncGenerator[AsyncClient, None]:
    """테스트용 비동기 HTTP 클라이언트"""
    def get_test_session():
        return test_session

    app.dependency_overrides[get_async_session] = get_test_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_connection_manager():
    """전역 구독 허브 상태 초기화"""
    manager.reset()
    yield
    manager.reset()


async def _create_user(
    session: AsyncSession,
    email: str,
    display_name: str = None,
    field_of_work: str = None,
    is_admin: bool = False
) -> User:
    user = User(
        email=email,
        password_hash=TEST_PASSWORD_HASH,
        display_name=display_name,
        field_of_work=field_of_work,
        is_admin=is_admin
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def make_user(test_session):
    """임의 사용자 생성 팩토리"""
    async def _make(email: str, **kwargs) -> User:
        return await _create_user(test_session, email, **kwargs)
    return _make


@pytest_asyncio.fixture
async def owner(test_session) -> User:
    """비공개 룸 소유자"""
    return await _create_user(test_session, "alice@example.com", "Alice", field_of_work="Technology & IT")


@pytest_asyncio.fixture
async def member(test_session) -> User:
    """초대 대상 사용자"""
    return await _create_user(test_session, "bob@example.com", "Bob", field_of_work="Science")


@pytest_asyncio.fixture
async def outsider(test_session) -> User:
    """어느 비공개 룸에도 속하지 않은 사용자"""
    return await _create_user(test_session, "carol@example.com", "Carol")


@pytest_asyncio.fixture
async def admin(test_session) -> User:
    """관리자"""
    return await _create_user(test_session, "admin@example.com", "Admin", is_admin=True)


def _auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """사용자의 Bearer 인증 헤더를 만드는 함수"""
    return _auth_headers


@pytest_asyncio.fixture
async def private_room(test_session, owner) -> BreakoutRoom:
    """alice 가 소유한 정원 3명의 비공개 룸"""
    return await room_service.create_private_room(
        test_session, owner, "Tech Circle", "Technology & IT",
        description="Engineers moving abroad", max_members=3
    )


@pytest_asyncio.fixture
async def public_room(test_session) -> BreakoutRoom:
    """공개 룸"""
    room = BreakoutRoom(
        name="Science",
        field="Science",
        description="Lab positions, PhD funding and science fellowships.",
        is_private=False
    )
    test_session.add(room)
    await test_session.commit()
    await test_session.refresh(room)
    return room


@pytest_asyncio.fixture
async def opportunity(test_session) -> Opportunity:
    """활성 기회"""
    item = Opportunity(
        title="Global Tech Fellowship",
        category="Technology & IT",
        about="A year-long engineering fellowship in Berlin.",
        deadline=date.today() + timedelta(days=30),
        location="Berlin",
        link="https://example.com/fellowship",
        is_active=True
    )
    test_session.add(item)
    await test_session.commit()
    await test_session.refresh(item)
    return item


@pytest_asyncio.fixture
async def inactive_opportunity(test_session) -> Opportunity:
    """비활성(만료) 기회"""
    item = Opportunity(
        title="Archived Scholarship",
        category="Education & Research",
        about="No longer accepting applications.",
        is_active=False
    )
    test_session.add(item)
    await test_session.commit()
    await test_session.refresh(item)
    return item
