import os

HOST = os.getenv("HOST", "127.0.0.1")  # keep local; reverse proxy terminates TLS
PORT = int(os.getenv("PORT", 3456))

DEFAULT_ROOM = os.getenv("DEFAULT_ROOM", "bags")
DEFAULT_NAME_PREFIX = "spirit"

LIVENESS_CUTOFF_MS = int(os.getenv("LIVENESS_CUTOFF_MS", 15000))
STALENESS_CUTOFF_MS = int(os.getenv("STALENESS_CUTOFF_MS", 45000))
PRUNE_INTERVAL_SECONDS = float(os.getenv("PRUNE_INTERVAL_SECONDS", 30))

MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", 64 * 1024))

DOWNLOAD_DIR = os.getenv("DOWNLOAD_DIR", os.path.dirname(os.path.abspath(__file__)))
PLUGIN_ASSET = os.getenv("PLUGIN_ASSET", "arcdps_cooldowns.dll")

# groupOrder is {key: [clientId, ...]}; anything nested deeper is ignored
MAX_GROUP_ORDER_DEPTH = int(os.getenv("MAX_GROUP_ORDER_DEPTH", 8))
