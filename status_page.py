from html import escape

from aggregation import LIVE, STALE, clients_subtitle, latency_text
from schemas.rooms import RoomStatus, StatusOverview

STYLE = """
:root { --bg: #050816; --card: #0b1020; --border: rgba(148, 163, 184, 0.18);
        --text: #e5e7eb; --soft: #9ca3af; --live: #22c55e; --stale: #facc15; --offline: #fb7185; }
* { box-sizing: border-box; }
body { margin: 0; padding: 24px; background: var(--bg); color: var(--text);
       font-family: system-ui, -apple-system, "Segoe UI", sans-serif; }
.page { max-width: 1120px; margin: 0 auto; }
.hero, .relay-card { background: var(--card); border: 1px solid var(--border); border-radius: 18px;
                     padding: 20px 24px; margin-bottom: 20px; }
.stat-grid { display: flex; gap: 32px; flex-wrap: wrap; }
.stat-label, .meta { color: var(--soft); font-size: 13px; }
.stat-value { font-size: 28px; font-weight: 600; }
.btn { display: inline-block; padding: 8px 16px; border-radius: 999px; background: var(--live);
       color: #022c22; text-decoration: none; font-weight: 600; }
.relay-card-header { display: flex; justify-content: space-between; align-items: center; }
.relay-table { width: 100%; border-collapse: collapse; margin-top: 12px; font-size: 14px; }
.relay-table th, .relay-table td { text-align: left; padding: 6px 8px; border-bottom: 1px solid var(--border); }
.status-live { color: var(--live); }
.status-stale, .status-mixed { color: var(--stale); }
.status-offline { color: var(--offline); }
"""

PEER_COLUMNS = ["#", "ClientId", "Name", "Prof", "Subgroup", "PluginVer", "Entries", "Last seen (ms)", "Status"]


def _e(value) -> str:
    return escape("" if value is None else str(value))


def _render_room(index: int, room: RoomStatus) -> str:
    label = room.room or f"Relay {index + 1}"
    count = len(room.peers)
    header = (
        f'<div class="relay-card-header">'
        f'<div><strong>{_e(label)}</strong> <span class="meta">#{index + 1}</span></div>'
        f'<div><span class="meta">{count} client{"" if count == 1 else "s"}</span> '
        f'<span class="status-{room.relay_status.lower()}">{_e(room.relay_status)}</span></div>'
        f'</div>'
    )
    if not room.peers:
        return f'<article class="relay-card">{header}<p class="meta">No clients connected to this relay.</p></article>'

    rows = []
    for i, p in enumerate(room.peers):
        label = {LIVE: "Live", STALE: "Stale"}.get(p.status, "Offline")
        cells = [i + 1, p.client_id, p.name, p.prof, p.subgroup or "", p.plugin_ver or "", p.entries_count, p.last_seen_ms_ago]
        rows.append(
            "<tr>"
            + "".join(f"<td>{_e(c)}</td>" for c in cells)
            + f'<td class="status-{p.status}">{label}</td></tr>'
        )
    head = "".join(f"<th>{_e(c)}</th>" for c in PEER_COLUMNS)
    return (
        f'<article class="relay-card">{header}'
        f'<table class="relay-table"><thead><tr>{head}</tr></thead><tbody>{"".join(rows)}</tbody></table>'
        f'</article>'
    )


def render_status_page(overview: StatusOverview, server_time: str, download_url: str) -> str:
    """Render the human-readable relay status page. Every dynamic value is HTML-escaped."""
    rooms_html = "".join(_render_room(i, room) for i, room in enumerate(overview.rooms))
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>Relay Status</title>
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <style>{STYLE}</style>
</head>
<body>
  <div class="page">
    <header class="hero">
      <h1>Cooldown relay status</h1>
      <p><a class="btn" href="{_e(download_url)}" download>Download plugin</a></p>
      <p class="meta">Page rendered at {_e(server_time)} (server time)</p>
      <div class="stat-grid">
        <div class="stat"><div class="stat-label">Relays</div><div class="stat-value" id="totalRelays">{overview.total_rooms}</div></div>
        <div class="stat"><div class="stat-label">Connected clients</div><div class="stat-value" id="totalClients">{overview.total_peers}</div></div>
        <div class="stat"><div class="stat-label">Live clients</div><div class="stat-value" id="liveClients">{overview.live_peers}</div></div>
      </div>
      <p class="meta" id="latencySummary">{_e(latency_text(overview.avg_last_seen_ms))}</p>
    </header>
    <section>
      <h2>Clients <span class="meta" id="clientsSubtitle">{_e(clients_subtitle(overview.total_peers, overview.total_rooms))}</span></h2>
      {rooms_html}
    </section>
  </div>
</body>
</html>
"""
