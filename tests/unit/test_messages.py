import pytest
from httpx import AsyncClient
from fastapi import status

from globalmoves.core.config import settings
from globalmoves.core.errors import AuthorizationException, ResourceNotFoundException, ValidationException
from globalmoves.models.users import User, ANONYMOUS
from globalmoves.services import membership_service, message_service
from globalmoves.websockets.connection_manager import manager


def drain(subscription):
    """큐에 쌓인 이벤트를 모두 꺼냄"""
    events = []
    while not subscription.queue.empty():
        events.append(subscription.queue.get_nowait())
    return events


class TestMessageService:
    """룸 채팅 메시지 서비스 테스트"""

    @pytest.mark.asyncio
    async def test_post_message_trims_content(self, test_session, owner, private_room):
        message = await message_service.post_message(test_session, owner, private_room.id, "  hello  ")

        assert message.content == "hello"
        assert message.room_id == private_room.id
        assert message.author.display_name == "Alice"
        assert message.created_at is not None

    @pytest.mark.asyncio
    async def test_author_without_display_name_hides_email(self, test_session, make_user, public_room):
        dana = await make_user("dana.secret@example.com")

        message = await message_service.post_message(test_session, dana, public_room.id, "hi")

        assert message.author.display_name == "dana.secret"
        history = await message_service.list_messages(test_session, dana, public_room.id)
        assert "@" not in history[0].author.display_name

    def test_public_name_falls_back_to_anonymous(self):
        assert User(email="", display_name=None).public_name == ANONYMOUS
        assert User(email="erin@example.com", display_name="Erin").public_name == "Erin"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [123, ["hi"], {"text": "hi"}])
    async def test_post_message_rejects_non_string_content(self, test_session, owner, private_room, content):
        with pytest.raises(ValidationException) as exc_info:
            await message_service.post_message(test_session, owner, private_room.id, content)

        assert exc_info.value.validation_errors[0].field == "content"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   \n\t ", "bad\x00byte"])
    async def test_post_message_rejects_invalid_content(self, test_session, owner, private_room, content):
        with pytest.raises(ValidationException):
            await message_service.post_message(test_session, owner, private_room.id, content)

        assert await message_service.list_messages(test_session, owner, private_room.id) == []

    @pytest.mark.asyncio
    async def test_post_message_length_limit(self, test_session, owner, private_room):
        exact = "a" * settings.message_max_length
        message = await message_service.post_message(test_session, owner, private_room.id, exact)
        assert len(message.content) == settings.message_max_length

        with pytest.raises(ValidationException):
            await message_service.post_message(test_session, owner, private_room.id, exact + "a")

    @pytest.mark.asyncio
    async def test_private_room_requires_membership(self, test_session, owner, outsider, private_room):
        with pytest.raises(AuthorizationException):
            await message_service.post_message(test_session, outsider, private_room.id, "hi")
        with pytest.raises(AuthorizationException):
            await message_service.list_messages(test_session, outsider, private_room.id)

    @pytest.mark.asyncio
    async def test_public_room_open_to_everyone(self, test_session, outsider, public_room):
        await message_service.post_message(test_session, outsider, public_room.id, "Anyone here?")

        messages = await message_service.list_messages(test_session, outsider, public_room.id)
        assert [m.content for m in messages] == ["Anyone here?"]

    @pytest.mark.asyncio
    async def test_unknown_room(self, test_session, owner):
        with pytest.raises(ResourceNotFoundException):
            await message_service.post_message(test_session, owner, 9999, "hi")

    @pytest.mark.asyncio
    async def test_list_messages_in_post_order(self, test_session, owner, member, private_room):
        invitation = await membership_service.invite(test_session, owner, private_room.id, member.email)
        await membership_service.respond(test_session, member, invitation.id, "accept")

        for author, text in ((owner, "first"), (member, "second"), (owner, "third")):
            await message_service.post_message(test_session, author, private_room.id, text)

        messages = await message_service.list_messages(test_session, member, private_room.id)

        assert [m.content for m in messages] == ["first", "second", "third"]
        assert [m.author.display_name for m in messages] == ["Alice", "Bob", "Alice"]
        ids = [m.id for m in messages]
        assert ids == sorted(ids)

    @pytest.mark.asyncio
    async def test_removed_member_keeps_history_but_loses_access(self, test_session, owner, member, private_room):
        """내보낸 멤버의 메시지는 남고, 본인은 더 이상 읽을 수 없음"""
        invitation = await membership_service.invite(test_session, owner, private_room.id, member.email)
        await membership_service.respond(test_session, member, invitation.id, "accept")
        await message_service.post_message(test_session, member, private_room.id, "bye soon")

        await membership_service.remove_member(test_session, owner, private_room.id, member.id)

        messages = await message_service.list_messages(test_session, owner, private_room.id)
        assert [m.user_id for m in messages] == [member.id]
        with pytest.raises(AuthorizationException):
            await message_service.list_messages(test_session, member, private_room.id)


class TestMessageAPI:
    """메시지 API 테스트"""

    @pytest.mark.asyncio
    async def test_send_message_reaches_subscribers(self, client: AsyncClient, owner, private_room, auth_headers):
        """REST 로 보낸 메시지도 실시간 구독자에게 전달됨"""
        async with manager.subscribe(private_room.id, owner.id, "Alice") as subscription:
            drain(subscription)

            response = await client.post(
                f"/rooms/{private_room.id}/messages",
                headers=auth_headers(owner),
                json={"content": " hello "}
            )

            assert response.status_code == status.HTTP_201_CREATED
            data = response.json()
            assert data["content"] == "hello"

            events = drain(subscription)
            assert [event["type"] for event in events] == ["message_inserted"]
            assert events[0]["message"]["id"] == data["id"]
            assert events[0]["room_id"] == private_room.id

    @pytest.mark.asyncio
    async def test_send_empty_message(self, client: AsyncClient, owner, private_room, auth_headers):
        response = await client.post(
            f"/rooms/{private_room.id}/messages",
            headers=auth_headers(owner),
            json={"content": "   "}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["validation_errors"][0]["field"] == "content"

    @pytest.mark.asyncio
    async def test_outsider_cannot_read_private_messages(
        self, client: AsyncClient, outsider, private_room, auth_headers
    ):
        response = await client.get(f"/rooms/{private_room.id}/messages", headers=auth_headers(outsider))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_get_messages(self, client: AsyncClient, test_session, owner, private_room, auth_headers):
        await message_service.post_message(test_session, owner, private_room.id, "one")
        await message_service.post_message(test_session, owner, private_room.id, "two")

        response = await client.get(f"/rooms/{private_room.id}/messages", headers=auth_headers(owner))

        assert response.status_code == status.HTTP_200_OK
        assert [m["content"] for m in response.json()] == ["one", "two"]
