import pytest
from datetime import timedelta
from httpx import AsyncClient
from fastapi import status

from globalmoves.utils.auth import verify_password, get_password_hash, create_access_token, decode_access_token


class TestAuthUtils:
    """인증 유틸리티 테스트"""

    def test_password_hashing(self):
        """비밀번호 해싱 테스트"""
        password = "testpass123"
        hashed = get_password_hash(password)

        assert hashed != password
        assert verify_password(password, hashed)
        assert not verify_password("wrongpass1", hashed)

    def test_jwt_token_creation_and_decode(self):
        """JWT 토큰 생성 및 디코딩 테스트"""
        token = create_access_token({"sub": "123", "email": "test@example.com"})

        decoded = decode_access_token(token)
        assert decoded is not None
        assert decoded["sub"] == "123"
        assert decoded["email"] == "test@example.com"
        assert decoded["type"] == "access"

    def test_invalid_token_decode(self):
        """잘못된 토큰 디코딩 테스트"""
        assert decode_access_token("invalid.token.here") is None

    def test_expired_token_decode(self):
        """만료된 토큰은 None"""
        token = create_access_token({"sub": "123"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None


class TestAuthAPI:
    """인증 API 테스트"""

    @pytest.mark.asyncio
    async def test_register_success(self, client: AsyncClient):
        """회원가입 성공 테스트"""
        user_data = {
            "email": "NewUser@Example.com",
            "password": "newpass123",
            "display_name": "New User",
            "field_of_work": "Engineering",
            "country": "Kenya"
        }

        response = await client.post("/auth/register", json=user_data)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["display_name"] == "New User"
        assert data["field_of_work"] == "Engineering"
        assert data["is_admin"] is False
        assert "password" not in data
        assert "password_hash" not in data

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, owner):
        """중복 이메일 회원가입 실패 테스트"""
        response = await client.post("/auth/register", json={
            "email": owner.email,
            "password": "newpass123"
        })

        assert response.status_code == status.HTTP_409_CONFLICT
        data = response.json()
        assert data["error"] == "resource_conflict"
        assert "already registered" in data["message"].lower()

    @pytest.mark.asyncio
    async def test_register_weak_password(self, client: AsyncClient):
        """숫자가 없는 비밀번호는 422"""
        response = await client.post("/auth/register", json={
            "email": "weak@example.com",
            "password": "onlyletters"
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        data = response.json()
        assert data["error"] == "validation_error"
        assert any(e["field"] == "password" for e in data["validation_errors"])

    @pytest.mark.asyncio
    async def test_register_invalid_email_uses_standard_error_shape(self, client: AsyncClient):
        """요청 검증 실패도 표준 에러 형식"""
        response = await client.post("/auth/register", json={
            "email": "not-an-email",
            "password": "newpass123"
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        data = response.json()
        assert data["error"] == "validation_error"
        assert data["status_code"] == 422

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, owner):
        """로그인 성공 테스트"""
        response = await client.post("/auth/login", json={
            "email": owner.email,
            "password": "testpass123"
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] > 0
        assert decode_access_token(data["access_token"])["sub"] == str(owner.id)

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, owner):
        """잘못된 비밀번호 로그인 실패 테스트"""
        response = await client.post("/auth/login", json={
            "email": owner.email,
            "password": "wrongpass123"
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post("/auth/login", json={
            "email": "nobody@example.com",
            "password": "testpass123"
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, owner, auth_headers):
        """현재 사용자 조회"""
        response = await client.get("/auth/me", headers=auth_headers(owner))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == owner.id

    @pytest.mark.asyncio
    async def test_me_without_token(self, client: AsyncClient):
        """토큰 없이 접근하면 401"""
        response = await client.get("/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["status_code"] == 401

    @pytest.mark.asyncio
    async def test_me_with_invalid_token(self, client: AsyncClient):
        response = await client.get("/auth/me", headers={"Authorization": "Bearer invalid.token"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, owner, auth_headers):
        """프로필 수정: None 은 유지, 빈 문자열은 삭제"""
        response = await client.patch("/auth/me", headers=auth_headers(owner), json={
            "field_of_work": "Science",
            "country": ""
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["field_of_work"] == "Science"
        assert data["country"] is None
        assert data["display_name"] == "Alice"
