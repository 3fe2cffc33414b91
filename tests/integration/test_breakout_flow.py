import pytest
from httpx import AsyncClient
from fastapi import status

from globalmoves.websockets.connection_manager import manager, CLOSE_MEMBER_REMOVED, CLOSE_ROOM_DELETED


def drain(subscription):
    events = []
    while not subscription.queue.empty():
        events.append(subscription.queue.get_nowait())
    return events


def types_of(events):
    return [event["type"] if event is not None else None for event in events]


async def register_and_login(client: AsyncClient, email: str, display_name: str, field_of_work: str = None):
    response = await client.post("/auth/register", json={
        "email": email,
        "password": "movepass123",
        "display_name": display_name,
        "field_of_work": field_of_work
    })
    assert response.status_code == status.HTTP_201_CREATED
    user = response.json()

    response = await client.post("/auth/login", json={"email": email, "password": "movepass123"})
    assert response.status_code == status.HTTP_200_OK
    return user, {"Authorization": f"Bearer {response.json()['access_token']}"}


async def invite_and_accept(client: AsyncClient, room_id: int, owner_headers, email: str, headers):
    response = await client.post(f"/rooms/{room_id}/invitations", headers=owner_headers, json={"email": email})
    assert response.status_code == status.HTTP_201_CREATED

    response = await client.post(f"/invitations/{response.json()['id']}/accept", headers=headers)
    assert response.status_code == status.HTTP_200_OK


class TestBreakoutRoomFlow:
    """브레이크아웃 룸 전체 플로우 통합 테스트"""

    @pytest.mark.asyncio
    async def test_private_room_lifecycle(self, client: AsyncClient):
        """
        1. Alice 가 정원 3명의 비공개 룸 생성
        2. Bob, Carol 초대 후 수락, Dave 는 정원 초과
        3. 실시간 구독자들이 메시지를 같은 순서로 받음
        4. Carol 을 내보내면 구독이 닫히고 더 이상 글을 쓸 수 없음
        5. 룸 삭제 시 남은 구독 모두 종료
        """
        alice, alice_headers = await register_and_login(client, "alice@example.com", "Alice", "Technology & IT")
        bob, bob_headers = await register_and_login(client, "bob@example.com", "Bob")
        carol, carol_headers = await register_and_login(client, "carol@example.com", "Carol")
        await register_and_login(client, "dave@example.com", "Dave")

        # 1. 룸 생성
        response = await client.post("/rooms", headers=alice_headers, json={
            "name": "Tech Circle",
            "field": "Technology & IT",
            "max_members": 3
        })
        assert response.status_code == status.HTTP_201_CREATED
        room_id = response.json()["id"]

        # 2. 초대
        await invite_and_accept(client, room_id, alice_headers, "bob@example.com", bob_headers)
        await invite_and_accept(client, room_id, alice_headers, "carol@example.com", carol_headers)

        response = await client.post(
            f"/rooms/{room_id}/invitations", headers=alice_headers, json={"email": "dave@example.com"}
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["message"] == "Room is full"

        response = await client.get("/rooms", headers=bob_headers)
        tech_circle = next(room for room in response.json() if room["id"] == room_id)
        assert tech_circle["member_count"] == 3
        assert tech_circle["my_role"] == "member"

        # 3. 실시간 메시지
        async with manager.subscribe(room_id, alice["id"], "Alice") as alice_sub, \
                manager.subscribe(room_id, carol["id"], "Carol") as carol_sub:
            assert types_of(drain(alice_sub)) == ["presence_sync", "presence_joined"]
            presence_sync = drain(carol_sub)[0]
            assert [user["display_name"] for user in presence_sync["online_users"]] == ["Alice", "Carol"]

            for content in ("hello", "anyone applying to Berlin?"):
                response = await client.post(
                    f"/rooms/{room_id}/messages", headers=bob_headers, json={"content": content}
                )
                assert response.status_code == status.HTTP_201_CREATED

            for subscription in (alice_sub, carol_sub):
                contents = [event["message"]["content"] for event in drain(subscription)]
                assert contents == ["hello", "anyone applying to Berlin?"]

            response = await client.get(f"/rooms/{room_id}/presence", headers=bob_headers)
            assert response.status_code == status.HTTP_200_OK
            assert {user["user_id"] for user in response.json()["online_users"]} == {alice["id"], carol["id"]}

            # 4. Carol 내보내기
            response = await client.delete(f"/rooms/{room_id}/members/{carol['id']}", headers=alice_headers)
            assert response.status_code == status.HTTP_200_OK

            assert types_of(drain(carol_sub)) == ["member_removed", None]
            assert carol_sub.close_code == CLOSE_MEMBER_REMOVED
            assert types_of(drain(alice_sub)) == ["member_removed"]

            response = await client.post(
                f"/rooms/{room_id}/messages", headers=carol_headers, json={"content": "still here?"}
            )
            assert response.status_code == status.HTTP_403_FORBIDDEN

        response = await client.get(f"/rooms/{room_id}/messages", headers=alice_headers)
        assert [m["content"] for m in response.json()] == ["hello", "anyone applying to Berlin?"]
        assert response.json()[0]["author"]["display_name"] == "Bob"

        # 5. 룸 삭제
        async with manager.subscribe(room_id, bob["id"], "Bob") as bob_sub:
            drain(bob_sub)

            response = await client.delete(f"/rooms/{room_id}", headers=alice_headers)
            assert response.status_code == status.HTTP_200_OK

            assert types_of(drain(bob_sub)) == ["room_deleted", None]
            assert bob_sub.close_code == CLOSE_ROOM_DELETED

        response = await client.get(f"/rooms/{room_id}", headers=bob_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_public_room_sharing_flow(self, client: AsyncClient, public_room, opportunity):
        """공개 룸은 초대 없이 누구나 읽고 쓰고 공유"""
        _, erin_headers = await register_and_login(client, "erin@example.com", "Erin", "Science")
        _, frank_headers = await register_and_login(client, "frank@example.com", "Frank")

        response = await client.get("/rooms", headers=erin_headers)
        science = next(room for room in response.json() if room["id"] == public_room.id)
        assert science["matches_my_field"] is True
        assert science["member_count"] == 0

        response = await client.post(
            f"/rooms/{public_room.id}/shared-opportunities",
            headers=erin_headers,
            json={"opportunity_id": opportunity.id, "message": "Deadline in a month"}
        )
        assert response.status_code == status.HTTP_201_CREATED

        response = await client.post(
            f"/rooms/{public_room.id}/shared-opportunities",
            headers=frank_headers,
            json={"opportunity_id": opportunity.id}
        )
        assert response.status_code == status.HTTP_409_CONFLICT

        response = await client.get(f"/rooms/{public_room.id}/shared-opportunities", headers=frank_headers)
        feed = response.json()
        assert len(feed) == 1
        assert feed[0]["sharer"]["display_name"] == "Erin"

        response = await client.post(
            f"/rooms/{public_room.id}/invitations", headers=erin_headers, json={"email": "frank@example.com"}
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "invalid_state"
