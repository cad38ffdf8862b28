import pytest

from aggregation import LIVE, OFFLINE, STALE, build_overview, classify_peer, clients_subtitle, latency_text, room_status
from schemas.rooms import ClientRecord, PeerStatus

NOW = 1_000_000


def _record(ms_ago, name="p", entries=()):
    return ClientRecord(display_name=name, entries=list(entries), last_updated_at=NOW - ms_ago)


def _peer(status):
    return PeerStatus(client_id="c", name="n", prof=0, subgroup=0, entries_count=0, last_seen_ms_ago=0, status=status)


@pytest.mark.parametrize("ms_ago, expected", [
    (0, LIVE),
    (10_000, LIVE),
    (15_000, LIVE),
    (15_001, STALE),
    (20_000, STALE),
    (45_000, STALE),
    (45_001, OFFLINE),
])
def test_classify_peer(ms_ago, expected):
    assert classify_peer(ms_ago) == expected


@pytest.mark.parametrize("statuses, expected", [
    ([], "Offline"),
    ([LIVE], "Live"),
    ([LIVE, STALE], "Live"),
    ([LIVE, STALE, STALE], "Mixed"),
    ([LIVE, LIVE, LIVE, LIVE, LIVE, STALE, STALE], "Live"),
    ([LIVE, OFFLINE], "Mixed"),
    ([STALE], "Mixed"),
    ([OFFLINE, OFFLINE], "Offline"),
])
def test_room_status(statuses, expected):
    assert room_status([_peer(s) for s in statuses]) == expected


def test_build_overview_totals():
    rooms = [
        ("bags", [("a", _record(1_000, entries=[{"label": "x"}, {"label": "y"}])), ("b", _record(20_000))]),
        ("empty", []),
    ]
    overview = build_overview(rooms, NOW)

    assert overview.total_rooms == 2
    assert overview.total_peers == 2
    assert overview.live_peers == 1
    assert overview.avg_last_seen_ms == 10_500

    bags, empty = overview.rooms
    assert [p.status for p in bags.peers] == [LIVE, STALE]
    assert bags.peers[0].entries_count == 2
    assert bags.relay_status == "Live"
    assert empty.relay_status == "Offline"


def test_build_overview_without_peers():
    overview = build_overview([("bags", [])], NOW)

    assert overview.total_peers == 0
    assert overview.avg_last_seen_ms is None
    assert latency_text(overview.avg_last_seen_ms) == "Latency: waiting for clients…"


def test_build_overview_does_not_touch_the_registry(registry, clock):
    registry.upsert(room="bags", client_id="c1", entries=[])
    now, rooms = registry.overview()
    build_overview(rooms, now + 100_000)

    assert [p.client_id for p in registry.snapshot("bags").peers] == ["c1"]


def test_peer_10s_old_is_live_and_20s_old_is_stale(registry, clock):
    registry.upsert(room="bags", client_id="old", entries=[])
    clock.advance(10_000)
    registry.upsert(room="bags", client_id="new", entries=[])

    now, rooms = registry.overview()
    statuses = {p.client_id: p.status for p in build_overview(rooms, now).rooms[0].peers}
    assert statuses == {"old": LIVE, "new": LIVE}

    # a 20s-old record is only visible to a view computed before the next sweep
    overview = build_overview(rooms, now + 10_000)
    assert {p.client_id: p.status for p in overview.rooms[0].peers}["old"] == STALE


def test_peer_50s_old_is_pruned_rather_than_offline(registry, clock):
    registry.upsert(room="bags", client_id="c1", entries=[])
    clock.advance(50_000)

    now, rooms = registry.overview()
    assert dict(rooms)["bags"] == []


def test_latency_and_subtitle_text():
    assert latency_text(123) == "Latency: ~123 ms average"
    assert clients_subtitle(0, 1) == "(no clients connected)"
    assert clients_subtitle(1, 1) == "(1 client across 1 relay)"
    assert clients_subtitle(3, 2) == "(3 clients across 2 relays)"


def test_build_overview_uses_given_liveness_cutoff():
    rooms = [("bags", [("a", _record(6_000)), ("b", _record(20_000))])]

    strict = build_overview(rooms, NOW, live_cutoff_ms=5_000)
    relaxed = build_overview(rooms, NOW, live_cutoff_ms=30_000)

    assert [p.status for p in strict.rooms[0].peers] == [STALE, STALE]
    assert [p.status for p in relaxed.rooms[0].peers] == [LIVE, LIVE]
