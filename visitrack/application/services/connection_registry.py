"""Live real-time connection registry.

Maps users to their live connections. The map is split into shards keyed by
user id, each guarded by its own asyncio.Lock, so connects and disconnects
for different users do not contend.

Every connection joins:
    user_<id>      personal room
    role_<role>    role room
    role-implied shared rooms (admin, front_desk)
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

import structlog

from visitrack.domain.models.notification import ServerPush
from visitrack.domain.models.recipient import ROLE_IMPLIED_ROOMS, UserRole

log = structlog.get_logger()

BROADCAST_ROOM = "*"


def rooms_for(user_id: UUID, role: UserRole) -> frozenset[str]:
    """Rooms a connection for this user joins."""
    return frozenset({f"user_{user_id}", f"role_{role.value}"}) | ROLE_IMPLIED_ROOMS[role]


@dataclass(eq=False)
class Connection:
    """One live client connection.

    Attributes:
        connection_id: Transport-assigned identifier.
        user_id: Authenticated user.
        role: User role at connect time.
        rooms: Rooms joined.
        connected_at: When the connection was registered.
        queue: Bounded queue of pushes awaiting the transport.
        dropped: Pushes dropped because the queue was full.
    """

    connection_id: str
    user_id: UUID
    role: UserRole
    rooms: frozenset[str]
    connected_at: datetime
    queue: asyncio.Queue[ServerPush]
    dropped: int = field(default=0)

    def in_room(self, room: str) -> bool:
        return room == BROADCAST_ROOM or room in self.rooms

    def push(self, message: ServerPush) -> bool:
        """Enqueue without waiting. A full queue drops the message."""
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True


@dataclass(frozen=True)
class ConnectionStats:
    total: int
    unique_users: int
    by_role: dict[str, int]

    def to_dict(self) -> dict[str, object]:
        return {
            "total_connections": self.total,
            "unique_users": self.unique_users,
            "by_role": dict(self.by_role),
        }


class _Shard:
    __slots__ = ("lock", "connections", "by_user")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.connections: dict[str, Connection] = {}
        self.by_user: dict[UUID, set[str]] = {}


class ConnectionRegistry:
    """Sharded map of user id to live connections."""

    def __init__(self, shards: int = 16, queue_size: int = 100) -> None:
        if shards < 1:
            raise ValueError(f"shards must be positive, got {shards}")
        self._shards = [_Shard() for _ in range(shards)]
        self._queue_size = queue_size
        # connection id -> owning user, for disconnect by id
        self._owners: dict[str, UUID] = {}

    def _shard_for(self, user_id: UUID) -> _Shard:
        return self._shards[user_id.int % len(self._shards)]

    async def connect(
        self,
        connection_id: str,
        user_id: UUID,
        role: UserRole,
        connected_at: datetime,
    ) -> Connection:
        """Register a connection. Idempotent per connection id."""
        shard = self._shard_for(user_id)
        async with shard.lock:
            existing = shard.connections.get(connection_id)
            if existing is not None:
                return existing
            connection = Connection(
                connection_id=connection_id,
                user_id=user_id,
                role=role,
                rooms=rooms_for(user_id, role),
                connected_at=connected_at,
                queue=asyncio.Queue(maxsize=self._queue_size),
            )
            shard.connections[connection_id] = connection
            shard.by_user.setdefault(user_id, set()).add(connection_id)
            self._owners[connection_id] = user_id

        log.info(
            "realtime_connected",
            connection_id=connection_id,
            user_id=str(user_id),
            role=role.value,
        )
        return connection

    async def disconnect(self, connection_id: str) -> Connection | None:
        """Remove a connection. Unknown ids are ignored."""
        user_id = self._owners.get(connection_id)
        if user_id is None:
            return None
        shard = self._shard_for(user_id)
        async with shard.lock:
            connection = shard.connections.pop(connection_id, None)
            user_connections = shard.by_user.get(user_id)
            if user_connections is not None:
                user_connections.discard(connection_id)
                if not user_connections:
                    del shard.by_user[user_id]
            self._owners.pop(connection_id, None)

        if connection is not None:
            log.info(
                "realtime_disconnected",
                connection_id=connection_id,
                user_id=str(user_id),
                dropped=connection.dropped,
            )
        return connection

    def get(self, connection_id: str) -> Connection | None:
        user_id = self._owners.get(connection_id)
        if user_id is None:
            return None
        return self._shard_for(user_id).connections.get(connection_id)

    def is_online(self, user_id: UUID) -> bool:
        return bool(self._shard_for(user_id).by_user.get(user_id))

    def connections_for_user(self, user_id: UUID) -> list[Connection]:
        shard = self._shard_for(user_id)
        return [shard.connections[c] for c in shard.by_user.get(user_id, ())]

    def connections_in_room(self, room: str) -> list[Connection]:
        if room.startswith("user_"):
            try:
                return self.connections_for_user(UUID(room[len("user_"):]))
            except ValueError:
                return []
        return [c for c in self.all_connections() if c.in_room(room)]

    def all_connections(self) -> list[Connection]:
        return [c for shard in self._shards for c in shard.connections.values()]

    def online_user_ids(self) -> set[UUID]:
        return {user_id for shard in self._shards for user_id in shard.by_user}

    def stats(self) -> ConnectionStats:
        connections = self.all_connections()
        return ConnectionStats(
            total=len(connections),
            unique_users=len({c.user_id for c in connections}),
            by_role=dict(Counter(c.role.value for c in connections)),
        )
