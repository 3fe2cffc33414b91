"""
Redis Pub/Sub 룸 이벤트 중계

여러 워커 프로세스로 실행할 때 한 워커에서 발행한 룸 이벤트를 다른 워커의
구독자에게 전달합니다. 각 메시지는 origin id 를 달고 있어 자기 이벤트는
다시 전달하지 않습니다. presence 이벤트는 워커별로 관리되므로 중계하지 않습니다.
"""

import asyncio
import json
import uuid
from typing import Any, Optional

from globalmoves.core.config import settings
from globalmoves.core.logging import get_logger
from globalmoves.domain.events import RoomEvent, event_from_dict

logger = get_logger(__name__)


class RedisEventRelay:
    def __init__(self, redis_client, manager, channel_prefix: Optional[str] = None):
        self.redis = redis_client
        self.manager = manager
        self.channel_prefix = channel_prefix or settings.redis_channel_prefix
        self.origin_id = uuid.uuid4().hex
        self.pubsub = None
        self.task: Optional[asyncio.Task] = None

    def channel(self, room_id: int) -> str:
        return f"{self.channel_prefix}:{room_id}"

    async def publish(self, event: RoomEvent) -> None:
        payload = json.dumps({"origin": self.origin_id, "event": event.to_dict()}, ensure_ascii=False)
        await self.redis.publish(self.channel(event.room_id), payload)

    async def handle_message(self, raw: Any) -> bool:
        """
        수신한 pub/sub 메시지를 로컬 구독자에게 전달

        Returns:
            bool: 로컬로 전달했으면 True
        """
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")

        try:
            payload = json.loads(raw)
            if payload.get("origin") == self.origin_id:
                return False
            event = event_from_dict(payload["event"])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Dropping malformed relay message: {e}")
            return False

        await self.manager.deliver_local(event)
        return True

    async def start(self):
        """룸 채널 패턴 구독 시작"""
        if self.task and not self.task.done():
            logger.warning("Room event relay is already running")
            return

        self.pubsub = self.redis.pubsub()
        await self.pubsub.psubscribe(f"{self.channel_prefix}:*")
        self.task = asyncio.create_task(self._listen())
        logger.info(f"Room event relay started (origin={self.origin_id})")

    async def _listen(self):
        async for message in self.pubsub.listen():
            if message.get("type") != "pmessage":
                continue
            try:
                await self.handle_message(message["data"])
            except Exception as e:
                logger.error(f"Error delivering relayed room event: {e}")

    async def stop(self):
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None

        if self.pubsub is not None:
            await self.pubsub.punsubscribe()
            await self.pubsub.aclose()
            self.pubsub = None
        logger.info("Room event relay stopped")
