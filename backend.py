import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from constants import DEFAULT_NAME_PREFIX, DEFAULT_ROOM, LIVENESS_CUTOFF_MS
from logging_config import get_logger
from schemas.rooms import ClientRecord, Peer, RoomSnapshot, coerce_group_order

logger = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class InvalidPayload(ValueError):
    """Update request missing its client id or carrying a non-list entries field."""


class NameAllocator:
    """Hands out default display names ("spirit 1", "spirit 2", ...) within a room."""

    def __init__(self, prefix: str = DEFAULT_NAME_PREFIX):
        self.prefix = prefix

    def allocate(self, records: Mapping[str, ClientRecord], provided: Any = None, client_id: Optional[str] = None) -> str:
        """Return `provided` untouched when it has content, otherwise the lowest free default name.

        Names are compared trimmed and case-insensitively against the records
        currently stored for the room. The requesting client's own record is
        not counted, so an anonymous client keeps its number across updates.
        Explicit names are never checked for collisions.
        """
        if isinstance(provided, str) and provided.strip():
            return provided

        used = set()
        for cid, record in records.items():
            if cid == client_id:
                continue
            used.add((record.display_name or "").strip().lower())

        n = 1
        while f"{self.prefix} {n}" in used:
            n += 1
        return f"{self.prefix} {n}"


class RoomRegistry:
    """In-memory peer registry: room -> {client_id -> ClientRecord} plus a group order per room.

    Every public method runs under a single registry-wide lock, so an update
    and the prune that follows it (or a prune and the read that follows it)
    are atomic with respect to other requests.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        liveness_cutoff_ms: int = LIVENESS_CUTOFF_MS,
        name_allocator: Optional[NameAllocator] = None,
    ):
        self.clock = clock or now_ms
        self.liveness_cutoff_ms = liveness_cutoff_ms
        self.name_allocator = name_allocator or NameAllocator()
        self._rooms: Dict[str, Dict[str, ClientRecord]] = {}
        self._group_orders: Dict[str, dict] = {}
        self._lock = threading.Lock()
        logger.info(f"Initializing RoomRegistry with liveness cutoff {liveness_cutoff_ms} ms")

    def _get_room(self, room: str) -> Dict[str, ClientRecord]:
        # rooms are created on first reference and never removed
        if room not in self._rooms:
            logger.debug(f"Creating room {room}")
            self._rooms[room] = {}
        return self._rooms[room]

    def upsert(
        self,
        room: str,
        client_id: Any,
        entries: Any,
        name: Any = None,
        profession_id: Any = 0,
        plugin_version: Any = None,
        subgroup_index: Any = 0,
        group_order: Any = None,
    ) -> str:
        """Store the latest state for `client_id` in `room` and return the name that was stored.

        Raises InvalidPayload, without touching any state, when the client id
        is empty or `entries` is not a list. Every other field is coerced to
        its default when malformed, and a malformed group order is ignored.
        Nothing is stored until the record and the group order are both built.
        """
        if not isinstance(client_id, str) or not client_id:
            raise InvalidPayload("clientId is required")
        if not isinstance(entries, (list, tuple)):
            raise InvalidPayload("entries must be a list")
        room = room or DEFAULT_ROOM
        order = coerce_group_order(group_order)
        if order is None and group_order is not None:
            logger.debug(f"Ignoring empty or malformed group order for room {room}")

        with self._lock:
            now = self.clock()
            records = self._get_room(room)
            assigned_name = self.name_allocator.allocate(records, name, client_id=client_id)
            record = ClientRecord(
                display_name=assigned_name,
                profession_id=profession_id,
                plugin_version=plugin_version,
                subgroup_index=subgroup_index,
                entries=list(entries),
                last_updated_at=now,
            )
            records[client_id] = record
            logger.debug(f"Stored {client_id} in room {room} as '{assigned_name}' ({len(entries)} entries)")

            if order is not None:
                self._group_orders[room] = order
                logger.debug(f"Replaced group order for room {room}: {len(order)} groups")

            self._prune_locked(now)
        return assigned_name

    def snapshot(self, room: str) -> RoomSnapshot:
        room = room or DEFAULT_ROOM
        with self._lock:
            self._prune_locked(self.clock())
            records = self._get_room(room)
            peers = [Peer.from_record(client_id, record) for client_id, record in records.items()]
            group_order = self._group_orders.get(room)
        logger.debug(f"Snapshot of room {room}: {len(peers)} peers")
        return RoomSnapshot(room=room, peers=peers, group_order=group_order)

    def overview(self) -> Tuple[int, List[Tuple[str, List[Tuple[str, ClientRecord]]]]]:
        """Prune, then return (now, [(room, [(client_id, record), ...]), ...]) across every room.

        The default room is always listed, even before any client has used it.
        """
        with self._lock:
            now = self.clock()
            self._prune_locked(now)
            self._get_room(DEFAULT_ROOM)
            rooms = [(room, list(records.items())) for room, records in self._rooms.items()]
        return now, rooms

    def prune(self) -> int:
        with self._lock:
            return self._prune_locked(self.clock())

    def _prune_locked(self, now: int) -> int:
        cutoff = now - self.liveness_cutoff_ms
        removed = 0
        for room, records in self._rooms.items():
            stale = [client_id for client_id, record in records.items() if record.last_updated_at < cutoff]
            for client_id in stale:
                del records[client_id]
                logger.debug(f"Pruned {client_id} from room {room}")
            removed += len(stale)
        if removed:
            logger.info(f"Pruned {removed} stale clients")
        return removed


registry = RoomRegistry()
