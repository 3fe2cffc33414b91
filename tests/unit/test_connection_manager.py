import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from globalmoves.domain.events import MessageInserted, MemberRemoved, RoomDeleted, Pong
from globalmoves.websockets.auth import extract_token
from globalmoves.websockets.connection_manager import (
    ConnectionManager,
    CLOSE_MEMBER_REMOVED,
    CLOSE_ROOM_DELETED,
    CLOSE_HEARTBEAT_TIMEOUT,
    manager,
)
from globalmoves.websockets.handlers import message_handler


def drain(subscription):
    events = []
    while not subscription.queue.empty():
        events.append(subscription.queue.get_nowait())
    return events


def types_of(events):
    return [event["type"] if event is not None else None for event in events]


class TestConnectionManager:
    """룸 구독 허브 테스트"""

    @pytest.mark.asyncio
    async def test_presence_sync_is_first_event(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice:
            async with hub.subscribe(1, 20, "Bob") as bob:
                events = drain(bob)

                assert events[0]["type"] == "presence_sync"
                assert [user["user_id"] for user in events[0]["online_users"]] == [10, 20]
                assert types_of(drain(alice)) == ["presence_sync", "presence_joined"]

    @pytest.mark.asyncio
    async def test_second_connection_of_same_user_is_not_announced(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice:
            async with hub.subscribe(1, 20, "Bob"):
                async with hub.subscribe(1, 20, "Bob"):
                    pass
                # 두 번째 탭이 닫혀도 Bob 은 여전히 온라인
                assert hub.presence.is_online(1, 20)

            assert types_of(drain(alice)) == ["presence_sync", "presence_joined", "presence_left"]

    @pytest.mark.asyncio
    async def test_unsubscribe_cleans_up_on_error(self):
        hub = ConnectionManager()

        with pytest.raises(RuntimeError):
            async with hub.subscribe(1, 10, "Alice"):
                raise RuntimeError("socket dropped")

        assert hub.get_subscription_count(1) == 0
        assert hub.get_presence(1) == []

    @pytest.mark.asyncio
    async def test_events_delivered_in_publish_order(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice, hub.subscribe(1, 20, "Bob") as bob:
            drain(alice)
            drain(bob)

            await asyncio.gather(*[
                hub.publish(MessageInserted(room_id=1, message={"id": i})) for i in range(20)
            ])

            for subscription in (alice, bob):
                ids = [event["message"]["id"] for event in drain(subscription)]
                assert ids == list(range(20))

    @pytest.mark.asyncio
    async def test_events_stay_in_their_room(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice, hub.subscribe(2, 20, "Bob") as bob:
            drain(alice)
            drain(bob)

            await hub.publish(MessageInserted(room_id=2, message={"id": 1}))

            assert drain(alice) == []
            assert types_of(drain(bob)) == ["message_inserted"]

    @pytest.mark.asyncio
    async def test_member_removed_closes_target_subscriptions(self):
        """대상도 member_removed 를 받은 뒤 4403 으로 종료"""
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice, hub.subscribe(1, 20, "Bob") as bob:
            drain(alice)
            drain(bob)

            await hub.publish(MemberRemoved(room_id=1, user_id=20, removed_by=10))

            assert types_of(drain(bob)) == ["member_removed", None]
            assert bob.closed and bob.close_code == CLOSE_MEMBER_REMOVED
            assert types_of(drain(alice)) == ["member_removed"]
            assert not alice.closed

            # 종료된 구독에는 더 이상 전달하지 않음
            await hub.publish(MessageInserted(room_id=1, message={"id": 1}))
            assert drain(bob) == []

    @pytest.mark.asyncio
    async def test_room_deleted_closes_everyone(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice, hub.subscribe(1, 20, "Bob") as bob:
            await hub.publish(RoomDeleted(room_id=1, deleted_by=10))

            for subscription in (alice, bob):
                assert types_of(drain(subscription))[-2:] == ["room_deleted", None]
                assert subscription.close_code == CLOSE_ROOM_DELETED

    @pytest.mark.asyncio
    async def test_next_event_returns_none_after_close(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice:
            assert (await alice.next_event())["type"] == "presence_sync"
            await hub.close_user(1, 10)
            assert await alice.next_event() is None

    @pytest.mark.asyncio
    async def test_publish_relays_only_relayable_events(self):
        class RecordingRelay:
            def __init__(self):
                self.events = []

            async def publish(self, event):
                self.events.append(event)

        hub = ConnectionManager()
        relay = RecordingRelay()
        hub.set_relay(relay)

        await hub.publish(MessageInserted(room_id=1, message={"id": 1}))
        await hub.publish(Pong(room_id=1))

        assert [event.event_type for event in relay.events] == ["message_inserted"]

    @pytest.mark.asyncio
    async def test_relay_failure_does_not_break_local_delivery(self):
        class BrokenRelay:
            async def publish(self, event):
                raise ConnectionError("redis down")

        hub = ConnectionManager()
        hub.set_relay(BrokenRelay())

        async with hub.subscribe(1, 10, "Alice") as alice:
            drain(alice)
            await hub.publish(MessageInserted(room_id=1, message={"id": 1}))
            assert types_of(drain(alice)) == ["message_inserted"]

    @pytest.mark.asyncio
    async def test_sweep_stale_evicts_silent_connections(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice") as alice, hub.subscribe(1, 20, "Bob") as bob:
            hub.presence._rooms[1][alice.connection_id].last_seen_at = datetime.utcnow() - timedelta(seconds=300)
            hub.touch(bob)

            evicted = hub.sweep_stale(timeout_seconds=60)

            assert evicted == [alice]
            assert alice.close_code == CLOSE_HEARTBEAT_TIMEOUT
            assert not bob.closed

        assert hub.get_presence(1) == []

    @pytest.mark.asyncio
    async def test_room_locks_are_released_when_idle(self):
        hub = ConnectionManager()

        async with hub.subscribe(1, 10, "Alice"):
            async with hub.sequenced(1):
                await hub.publish(MessageInserted(room_id=1, message={"id": 1}))
            await hub.publish(MessageInserted(room_id=2, message={"id": 2}))

        assert len(hub._locks) == 0
        assert len(hub._sequencers) == 0

    @pytest.mark.asyncio
    async def test_sequenced_sections_do_not_interleave(self):
        hub = ConnectionManager()
        trace = []

        async def section(i):
            async with hub.sequenced(1):
                trace.append(("enter", i))
                await asyncio.sleep(0)
                trace.append(("exit", i))

        await asyncio.gather(*[section(i) for i in range(5)])

        assert trace == [(step, i) for i in range(5) for step in ("enter", "exit")]
        assert len(hub._sequencers) == 0


class TestWebSocketMessageHandler:
    """WebSocket 수신 메시지 처리 테스트"""

    @pytest.mark.asyncio
    async def test_chat_message_is_stored_and_broadcast(self, test_session, owner, member, public_room):
        async with manager.subscribe(public_room.id, owner.id, "Alice") as alice, \
                manager.subscribe(public_room.id, member.id, "Bob") as bob:
            drain(alice)
            drain(bob)

            await message_handler.handle_message(
                test_session, owner, alice, {"type": "message", "content": "  hello  "}
            )

            for subscription in (alice, bob):
                events = drain(subscription)
                assert types_of(events) == ["message_inserted"]
                assert events[0]["message"]["content"] == "hello"
                assert events[0]["message"]["author"]["display_name"] == "Alice"

    @pytest.mark.asyncio
    async def test_invalid_chat_message_errors_only_to_sender(self, test_session, owner, member, public_room):
        async with manager.subscribe(public_room.id, owner.id, "Alice") as alice, \
                manager.subscribe(public_room.id, member.id, "Bob") as bob:
            drain(alice)
            drain(bob)

            await message_handler.handle_message(test_session, owner, alice, {"type": "message", "content": "  "})

            events = drain(alice)
            assert types_of(events) == ["error"]
            assert events[0]["error"] == "validation_error"
            assert drain(bob) == []

    @pytest.mark.asyncio
    async def test_ping_gets_pong(self, test_session, owner, public_room):
        async with manager.subscribe(public_room.id, owner.id, "Alice") as alice:
            drain(alice)

            await message_handler.handle_message(test_session, owner, alice, {"type": "ping"})

            assert types_of(drain(alice)) == ["pong"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data,error", [
        ({"type": "typing"}, "unknown_type"),
        ({"content": "no type"}, "unknown_type"),
        (["not", "an", "object"], "invalid_message"),
        ({"type": "message", "content": 123}, "validation_error"),
        ({"type": "message", "content": ["hi"]}, "validation_error"),
        ({"type": "message"}, "validation_error"),
    ])
    async def test_bad_frames(self, test_session, owner, public_room, data, error):
        async with manager.subscribe(public_room.id, owner.id, "Alice") as alice:
            drain(alice)

            await message_handler.handle_message(test_session, owner, alice, data)

            events = drain(alice)
            assert types_of(events) == ["error"]
            assert events[0]["error"] == error


class TestWebSocketAuth:
    """WebSocket 토큰 추출 테스트"""

    @staticmethod
    def fake_websocket(headers=None, query_params=None):
        return SimpleNamespace(headers=headers or {}, query_params=query_params or {})

    def test_bearer_header(self):
        websocket = self.fake_websocket(headers={"authorization": "Bearer abc.def"})
        assert extract_token(websocket) == "abc.def"

    def test_query_param(self):
        websocket = self.fake_websocket(query_params={"token": "abc.def"})
        assert extract_token(websocket) == "abc.def"

    def test_header_wins_over_query_param(self):
        websocket = self.fake_websocket(
            headers={"authorization": "Bearer from-header"},
            query_params={"token": "from-query"}
        )
        assert extract_token(websocket) == "from-header"

    @pytest.mark.parametrize("header", ["Basic abc", "Bearer ", "abc.def"])
    def test_malformed_header(self, header):
        websocket = self.fake_websocket(headers={"authorization": header})
        assert extract_token(websocket) is None

    def test_missing_token(self):
        assert extract_token(self.fake_websocket()) is None
