"""
룸 구독 허브

각 WebSocket 연결은 Subscription 하나를 가지며, 이벤트는 구독별 큐에 쌓이고
연결당 하나의 writer 가 큐를 비웁니다. 룸별 락으로 브로드캐스트를 직렬화하므로
같은 룸의 모든 구독자는 발행 순서대로 이벤트를 받습니다.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import status

from globalmoves.core.config import settings
from globalmoves.core.logging import get_logger, log_websocket_event
from globalmoves.domain.events import (
    RoomEvent,
    PresenceSync,
    PresenceJoined,
    PresenceLeft,
    MemberRemoved,
    RoomDeleted,
)
from globalmoves.websockets.presence import PresenceTracker

logger = get_logger(__name__)

# 서버가 구독을 종료할 때 사용하는 close code
CLOSE_NORMAL = status.WS_1000_NORMAL_CLOSURE
CLOSE_MEMBER_REMOVED = 4403
CLOSE_ROOM_DELETED = 4404
CLOSE_HEARTBEAT_TIMEOUT = 4408


class Subscription:
    """룸 하나에 대한 연결 하나의 구독"""

    def __init__(self, room_id: int, user_id: int, display_name: str):
        self.connection_id = uuid.uuid4().hex
        self.room_id = room_id
        self.user_id = user_id
        self.display_name = display_name
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.close_code: int = CLOSE_NORMAL

    def send(self, event: RoomEvent) -> None:
        """이 구독에만 이벤트 전달"""
        if not self.closed:
            self.queue.put_nowait(event.to_dict())

    def close(self, code: int = CLOSE_NORMAL) -> None:
        """writer 에게 종료 신호 (None) 전달"""
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        self.queue.put_nowait(None)

    async def next_event(self) -> Optional[Dict[str, Any]]:
        """다음 이벤트. 구독이 종료되면 None"""
        return await self.queue.get()


class RoomLocks:
    """
    룸별 asyncio.Lock 모음

    잡고 있거나 기다리는 코루틴이 없어지면 엔트리를 지웁니다. 단일 이벤트
    루프 안에서만 사용하므로 카운터 갱신에 별도 동기화는 필요 없습니다.
    """

    def __init__(self):
        self._entries: Dict[int, list] = {}

    @asynccontextmanager
    async def hold(self, room_id: int) -> AsyncIterator[None]:
        entry = self._entries.get(room_id)
        if entry is None:
            entry = self._entries[room_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._entries.pop(room_id, None)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class ConnectionManager:
    def __init__(self):
        # 룸별 구독: {room_id: {connection_id: Subscription}}
        self.room_subscriptions: Dict[int, Dict[str, Subscription]] = {}
        self.presence = PresenceTracker()
        # 구독 목록 변경과 fanout 직렬화
        self._locks = RoomLocks()
        # 저장 + 발행 구간 직렬화 (sequenced)
        self._sequencers = RoomLocks()
        self.relay = None
        self._sweeper_task: Optional[asyncio.Task] = None

    def _lock(self, room_id: int):
        return self._locks.hold(room_id)

    def sequenced(self, room_id: int):
        """
        저장과 발행을 한 구간으로 묶습니다.

            async with manager.sequenced(room_id):
                message = await message_service.post_message(...)
                await manager.publish(MessageInserted(...))

        같은 룸에서 이 구간은 한 번에 하나만 실행되므로 저장 순서(id)와
        구독자가 받는 순서가 같습니다.
        """
        return self._sequencers.hold(room_id)

    def set_relay(self, relay) -> None:
        """다른 워커로 이벤트를 중계할 relay 등록 (None 이면 로컬 전용)"""
        self.relay = relay

    # =========================================================================
    # Subscribe / Unsubscribe
    # =========================================================================

    @asynccontextmanager
    async def subscribe(self, room_id: int, user_id: int, display_name: str) -> AsyncIterator[Subscription]:
        """
        룸 구독. 블록을 벗어나면 (정상 종료, 예외, 취소 모두) 구독과
        presence 가 정리됩니다.

        새 구독자는 presence_sync 를 가장 먼저 받습니다.
        """
        subscription = Subscription(room_id, user_id, display_name)

        async with self._lock(room_id):
            self.room_subscriptions.setdefault(room_id, {})[subscription.connection_id] = subscription
            first = self.presence.join(room_id, user_id, display_name, subscription.connection_id)

            subscription.send(PresenceSync(
                room_id=room_id,
                online_users=[user.model_dump(mode="json") for user in self.presence.snapshot(room_id)]
            ))
            if first:
                self._fanout(
                    PresenceJoined(room_id=room_id, user_id=user_id, display_name=display_name),
                    exclude=subscription
                )

        log_websocket_event(logger, "subscribed", user_id, room_id, connection_id=subscription.connection_id)
        try:
            yield subscription
        finally:
            await self._unsubscribe(subscription)

    async def _unsubscribe(self, subscription: Subscription) -> None:
        room_id = subscription.room_id
        async with self._lock(room_id):
            subscriptions = self.room_subscriptions.get(room_id, {})
            subscriptions.pop(subscription.connection_id, None)
            if not subscriptions:
                self.room_subscriptions.pop(room_id, None)

            left = self.presence.leave(room_id, subscription.connection_id)
            if left:
                self._fanout(PresenceLeft(room_id=room_id, user_id=left.user_id))

        subscription.closed = True
        log_websocket_event(logger, "unsubscribed", subscription.user_id, room_id,
                            connection_id=subscription.connection_id)

    # =========================================================================
    # Publish
    # =========================================================================

    async def publish(self, event: RoomEvent) -> None:
        """로컬 구독자에게 전달하고, relay 가 있으면 다른 워커로 중계"""
        await self.deliver_local(event)

        if self.relay is not None and event.relayable:
            try:
                await self.relay.publish(event)
            except Exception as e:
                logger.error(f"Failed to relay {event.event_type} for room {event.room_id}: {e}")

    async def deliver_local(self, event: RoomEvent) -> None:
        """이 프로세스의 구독자에게만 전달"""
        async with self._lock(event.room_id):
            self._fanout(event)

            # 대상 구독 종료는 이벤트 전달 뒤에 (대상도 이벤트를 받은 후 닫힘)
            if isinstance(event, MemberRemoved):
                self._close_matching(event.room_id, CLOSE_MEMBER_REMOVED, user_id=event.user_id)
            elif isinstance(event, RoomDeleted):
                self._close_matching(event.room_id, CLOSE_ROOM_DELETED)

    def _fanout(self, event: RoomEvent, exclude: Optional[Subscription] = None) -> None:
        """호출자는 룸 락을 잡고 있어야 함"""
        data = event.to_dict()
        for subscription in list(self.room_subscriptions.get(event.room_id, {}).values()):
            if subscription is exclude or subscription.closed:
                continue
            subscription.queue.put_nowait(data)

    def _close_matching(self, room_id: int, code: int, user_id: Optional[int] = None) -> int:
        closed = 0
        for subscription in list(self.room_subscriptions.get(room_id, {}).values()):
            if user_id is not None and subscription.user_id != user_id:
                continue
            subscription.close(code)
            closed += 1
        return closed

    async def close_user(self, room_id: int, user_id: int, code: int = CLOSE_MEMBER_REMOVED) -> int:
        """특정 사용자의 룸 구독 종료"""
        async with self._lock(room_id):
            return self._close_matching(room_id, code, user_id=user_id)

    # =========================================================================
    # Presence / Heartbeat
    # =========================================================================

    def touch(self, subscription: Subscription) -> None:
        self.presence.touch(subscription.room_id, subscription.connection_id)

    def get_presence(self, room_id: int):
        return self.presence.snapshot(room_id)

    def get_subscription_count(self, room_id: int) -> int:
        return len(self.room_subscriptions.get(room_id, {}))

    def sweep_stale(self, timeout_seconds: Optional[int] = None) -> List[Subscription]:
        """heartbeat 가 끊긴 구독을 종료. 종료된 구독 목록 반환"""
        timeout = timeout_seconds if timeout_seconds is not None else settings.presence_timeout_seconds
        evicted = []
        for room_id, connection_id in self.presence.stale_connections(timeout):
            subscription = self.room_subscriptions.get(room_id, {}).get(connection_id)
            if subscription is None:
                # 구독 없이 남은 엔트리
                self.presence.leave(room_id, connection_id)
                continue
            subscription.close(CLOSE_HEARTBEAT_TIMEOUT)
            evicted.append(subscription)
            log_websocket_event(logger, "heartbeat_timeout", subscription.user_id, room_id,
                                connection_id=connection_id)
        return evicted

    async def _sweep_loop(self):
        while True:
            await asyncio.sleep(settings.presence_sweep_interval_seconds)
            try:
                self.sweep_stale()
            except Exception as e:
                logger.error(f"Presence sweep failed: {e}")

    async def start_sweeper(self):
        if self._sweeper_task and not self._sweeper_task.done():
            logger.warning("Presence sweeper is already running")
            return
        self._sweeper_task = asyncio.create_task(self._sweep_loop())
        logger.info("Presence sweeper started")

    async def stop_sweeper(self):
        if self._sweeper_task:
            self._sweeper_task.cancel()
            try:
                await self._sweeper_task
            except asyncio.CancelledError:
                pass
            self._sweeper_task = None
        logger.info("Presence sweeper stopped")

    def reset(self) -> None:
        """모든 로컬 상태 초기화 (테스트용)"""
        self.room_subscriptions.clear()
        self.presence.clear()
        self._locks.clear()
        self._sequencers.clear()
        self.relay = None


# 전역 연결 매니저 인스턴스
manager = ConnectionManager()
