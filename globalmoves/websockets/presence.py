"""
룸 접속 현황 (Presence) 추적

연결(connection) 단위로 엔트리를 보관하고, 사용자 단위로 합쳐서 보여줍니다.
같은 사용자가 여러 탭으로 접속해도 마지막 연결이 끊길 때까지 온라인입니다.
상태는 프로세스 메모리에만 있으며 재시작 시 비어 있는 상태로 시작합니다.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

from globalmoves.schemas.room import PresenceUser


@dataclass
class PresenceEntry:
    connection_id: str
    user_id: int
    display_name: str
    connected_at: datetime
    last_seen_at: datetime


class PresenceTracker:
    def __init__(self):
        # {room_id: {connection_id: PresenceEntry}}
        self._rooms: Dict[int, Dict[str, PresenceEntry]] = {}

    def join(self, room_id: int, user_id: int, display_name: str, connection_id: str) -> bool:
        """
        연결 등록 (같은 connection_id 는 한 번만)

        Returns:
            bool: 사용자의 첫 연결이면 True
        """
        connections = self._rooms.setdefault(room_id, {})
        if connection_id in connections:
            return False

        first = not self.is_online(room_id, user_id)
        now = datetime.utcnow()
        connections[connection_id] = PresenceEntry(
            connection_id=connection_id,
            user_id=user_id,
            display_name=display_name,
            connected_at=now,
            last_seen_at=now
        )
        return first

    def leave(self, room_id: int, connection_id: str) -> Optional[PresenceEntry]:
        """
        연결 제거

        Returns:
            사용자의 마지막 연결이 끊긴 경우 제거된 엔트리, 아니면 None
        """
        connections = self._rooms.get(room_id)
        if not connections or connection_id not in connections:
            return None

        entry = connections.pop(connection_id)
        if not connections:
            del self._rooms[room_id]

        if self.is_online(room_id, entry.user_id):
            return None
        return entry

    def touch(self, room_id: int, connection_id: str) -> None:
        """heartbeat 수신 시각 갱신"""
        entry = self._rooms.get(room_id, {}).get(connection_id)
        if entry:
            entry.last_seen_at = datetime.utcnow()

    def is_online(self, room_id: int, user_id: int) -> bool:
        return any(
            entry.user_id == user_id
            for entry in self._rooms.get(room_id, {}).values()
        )

    def online_user_ids(self, room_id: int) -> Set[int]:
        return {entry.user_id for entry in self._rooms.get(room_id, {}).values()}

    def snapshot(self, room_id: int) -> List[PresenceUser]:
        """사용자 단위로 합친 접속자 목록 (먼저 접속한 순)"""
        users: Dict[int, PresenceUser] = {}
        for entry in self._rooms.get(room_id, {}).values():
            current = users.get(entry.user_id)
            if current is None or entry.connected_at < current.connected_at:
                users[entry.user_id] = PresenceUser(
                    user_id=entry.user_id,
                    display_name=entry.display_name,
                    connected_at=entry.connected_at
                )
        return sorted(users.values(), key=lambda user: (user.connected_at, user.user_id))

    def stale_connections(self, timeout_seconds: int, now: Optional[datetime] = None) -> List[Tuple[int, str]]:
        """timeout 동안 heartbeat 가 없던 (room_id, connection_id) 목록"""
        cutoff = (now or datetime.utcnow()) - timedelta(seconds=timeout_seconds)
        return [
            (room_id, entry.connection_id)
            for room_id, connections in self._rooms.items()
            for entry in connections.values()
            if entry.last_seen_at < cutoff
        ]

    def clear(self) -> None:
        self._rooms.clear()
