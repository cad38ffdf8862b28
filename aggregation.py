from typing import List, Optional, Sequence, Tuple

from constants import LIVENESS_CUTOFF_MS, STALENESS_CUTOFF_MS
from schemas.rooms import ClientRecord, PeerStatus, RoomStatus, StatusOverview

LIVE = "live"
STALE = "stale"
OFFLINE = "offline"


def classify_peer(last_seen_ms_ago: int, live_cutoff_ms: int = LIVENESS_CUTOFF_MS, stale_cutoff_ms: int = STALENESS_CUTOFF_MS) -> str:
    if last_seen_ms_ago <= live_cutoff_ms:
        return LIVE
    if last_seen_ms_ago <= stale_cutoff_ms:
        return STALE
    return OFFLINE


def room_status(peers: Sequence[PeerStatus]) -> str:
    """Summarise a room as Live, Mixed or Offline from its peers' statuses."""
    if not peers:
        return "Offline"
    live = sum(1 for p in peers if p.status == LIVE)
    stale = sum(1 for p in peers if p.status == STALE)
    offline = len(peers) - live - stale

    if live > 0 and offline == 0 and stale <= max(1, len(peers) / 3):
        return "Live"
    if live == 0 and stale == 0:
        return "Offline"
    return "Mixed"


def build_overview(
    rooms: List[Tuple[str, List[Tuple[str, ClientRecord]]]],
    now: int,
    live_cutoff_ms: int = LIVENESS_CUTOFF_MS,
    stale_cutoff_ms: int = STALENESS_CUTOFF_MS,
) -> StatusOverview:
    """Project registry contents into per-room peer statuses plus cross-room totals.

    Pass the registry's own liveness cutoff so labels agree with its pruning.
    Read-only: nothing here touches the registry.
    """
    room_views = []
    total_peers = 0
    live_peers = 0
    last_seen = []

    for room, records in rooms:
        peers = []
        for client_id, record in records:
            ms_ago = now - record.last_updated_at
            peers.append(PeerStatus(
                client_id=client_id,
                name=record.display_name or "unknown",
                prof=record.profession_id,
                plugin_ver=record.plugin_version,
                subgroup=record.subgroup_index,
                entries_count=len(record.entries),
                last_seen_ms_ago=ms_ago,
                status=classify_peer(ms_ago, live_cutoff_ms, max(stale_cutoff_ms, live_cutoff_ms)),
            ))
        room_views.append(RoomStatus(room=room, peers=peers, relay_status=room_status(peers)))

        total_peers += len(peers)
        live_peers += sum(1 for p in peers if p.status == LIVE)
        last_seen.extend(p.last_seen_ms_ago for p in peers)

    avg_last_seen_ms = round(sum(last_seen) / len(last_seen)) if last_seen else None

    return StatusOverview(
        rooms=room_views,
        total_rooms=len(room_views),
        total_peers=total_peers,
        live_peers=live_peers,
        avg_last_seen_ms=avg_last_seen_ms,
    )


def latency_text(avg_last_seen_ms: Optional[int]) -> str:
    if avg_last_seen_ms is None:
        return "Latency: waiting for clients…"
    return f"Latency: ~{avg_last_seen_ms} ms average"


def clients_subtitle(total_peers: int, total_rooms: int) -> str:
    if total_peers == 0:
        return "(no clients connected)"
    clients = "client" if total_peers == 1 else "clients"
    relays = "relay" if total_rooms == 1 else "relays"
    return f"({total_peers} {clients} across {total_rooms} {relays})"
