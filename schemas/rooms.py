import copy
import math
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import DEFAULT_ROOM, MAX_GROUP_ORDER_DEPTH


# Field coercion: every optional field is type-checked and replaced with its
# default instead of rejecting the payload.

def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number on the wire
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _is_truthy(value: Any) -> bool:
    """Truthiness as the game plugin's JSON producer sees it: empty arrays and objects count as true."""
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, dict):
        return "[object Object]"
    if isinstance(value, list):
        # nested arrays are not flattened
        return ""
    return str(value)


def coerce_label(value: Any) -> str:
    if not _is_truthy(value):
        return ""
    if isinstance(value, list):
        return ",".join(_scalar_text(item) for item in value)
    return _scalar_text(value)


def coerce_room(value: Any) -> str:
    if isinstance(value, str) and value:
        return value
    return DEFAULT_ROOM


def coerce_non_negative_int(value: Any) -> int:
    if _is_number(value) and value >= 0 and (isinstance(value, int) or value.is_integer()):
        return int(value)
    return 0


def coerce_optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _nested_deeper_than(value: Any, limit: int) -> bool:
    stack = [(value, 1)]
    while stack:
        item, depth = stack.pop()
        if not isinstance(item, (dict, list)):
            continue
        if depth > limit:
            return True
        children = item.values() if isinstance(item, dict) else item
        stack.extend((child, depth + 1) for child in children)
    return False


def coerce_group_order(value: Any) -> Optional[dict]:
    """Return a private copy of a non-empty group order mapping, or None.

    Orders nested deeper than MAX_GROUP_ORDER_DEPTH are ignored.
    """
    if not isinstance(value, dict) or not value:
        return None
    if _nested_deeper_than(value, MAX_GROUP_ORDER_DEPTH):
        return None
    return copy.deepcopy(value)


class CooldownEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str = ""
    ready: bool = False
    remaining_seconds: Optional[Union[int, float]] = Field(None, alias="left")
    skill_id: int = Field(0, alias="skillid")

    @field_validator("label", mode="before")
    @classmethod
    def _label(cls, value):
        return coerce_label(value)

    @field_validator("ready", mode="before")
    @classmethod
    def _ready(cls, value):
        return _is_truthy(value)

    @field_validator("remaining_seconds", mode="before")
    @classmethod
    def _remaining_seconds(cls, value):
        return value if _is_number(value) else None

    @field_validator("skill_id", mode="before")
    @classmethod
    def _skill_id(cls, value):
        return int(value) if _is_number(value) else 0

    @classmethod
    def from_raw(cls, raw: Any) -> "CooldownEntry":
        if isinstance(raw, CooldownEntry):
            return raw
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate(raw)


class ClientRecord(BaseModel):
    """Latest state reported by one client. Replaced wholesale on every update."""

    display_name: str
    profession_id: int = 0
    plugin_version: Optional[str] = None
    subgroup_index: int = 0
    entries: list[CooldownEntry] = []
    last_updated_at: int

    @field_validator("profession_id", "subgroup_index", mode="before")
    @classmethod
    def _non_negative_int(cls, value):
        return coerce_non_negative_int(value)

    @field_validator("plugin_version", mode="before")
    @classmethod
    def _plugin_version(cls, value):
        return coerce_optional_str(value)

    @field_validator("entries", mode="before")
    @classmethod
    def _entries(cls, value):
        return [CooldownEntry.from_raw(item) for item in value or []]


class UpdateRequest(BaseModel):
    # Values other than room are passed through untouched; the registry
    # decides what is rejected and what is coerced.
    model_config = ConfigDict(populate_by_name=True)

    room: str = DEFAULT_ROOM
    client_id: Any = Field(None, alias="clientId")
    name: Any = None
    prof: Any = None
    plugin_ver: Any = Field(None, alias="pluginVer")
    subgroup: Any = None
    entries: Any = None
    group_order: Any = Field(None, alias="groupOrder")

    @field_validator("room", mode="before")
    @classmethod
    def _room(cls, value):
        return coerce_room(value)


class UpdateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    assigned_name: str = Field(alias="assignedName")


class ErrorResponse(BaseModel):
    ok: bool = False
    err: str


class Peer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: str = Field(alias="clientId")
    name: str
    prof: int
    plugin_ver: Optional[str] = Field(None, alias="pluginVer")
    subgroup: int
    entries: list[CooldownEntry]

    @classmethod
    def from_record(cls, client_id: str, record: ClientRecord) -> "Peer":
        return cls(
            client_id=client_id,
            name=record.display_name or "unknown",
            prof=record.profession_id,
            plugin_ver=record.plugin_version,
            subgroup=record.subgroup_index,
            entries=record.entries,
        )


class RoomSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room: str
    peers: list[Peer]
    group_order: Optional[dict] = Field(None, alias="groupOrder")

    def to_wire(self) -> dict:
        """JSON body for /aggregate; groupOrder only appears once a room has one."""
        data = self.model_dump(by_alias=True)
        if self.group_order is None:
            data.pop("groupOrder")
        return data


class PeerStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: str = Field(alias="clientId")
    name: str
    prof: int
    plugin_ver: Optional[str] = Field(None, alias="pluginVer")
    subgroup: int
    entries_count: int = Field(alias="entriesCount")
    last_seen_ms_ago: int = Field(alias="lastSeenMsAgo")
    status: str


class RoomStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room: str
    peers: list[PeerStatus]
    relay_status: str = Field(alias="relayStatus")


class StatusOverview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rooms: list[RoomStatus]
    total_rooms: int = Field(alias="totalRooms")
    total_peers: int = Field(alias="totalPeers")
    live_peers: int = Field(alias="livePeers")
    avg_last_seen_ms: Optional[int] = Field(None, alias="avgLastSeenMs")
