import json
import os
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import FileResponse, JSONResponse

from backend import InvalidPayload, registry
from constants import DEFAULT_ROOM, DOWNLOAD_DIR, MAX_BODY_BYTES, PLUGIN_ASSET
from logging_config import get_logger
from schemas.rooms import ErrorResponse, UpdateRequest, UpdateResponse

logger = get_logger(__name__)

rooms_router = APIRouter(tags=["relay"])


def _error(status_code: int, err: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(err=err).model_dump())


async def _read_limited_body(request: Request) -> Optional[bytes]:
    """Read the request body, or return None as soon as it grows past MAX_BODY_BYTES."""
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > MAX_BODY_BYTES:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


@rooms_router.post("/update", response_model=UpdateResponse)
async def update(request: Request):
    # { "room": "bags", "clientId": "...", "name": "optional", "prof": 1, "pluginVer": "0.90", "subgroup": 2,
    #   "entries": [{ "label": "...", "ready": true, "left": 12.5, "skillid": 1234 }], "groupOrder": { "1": ["a", "b"] } }
    # Response 200: { "ok": true, "assignedName": "spirit 1" }
    client_host = request.client.host if request.client else "unknown"

    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > MAX_BODY_BYTES:
        logger.warning(f"Update from {client_host} rejected: declared body of {content_length} bytes")
        return _error(413, "payload too large")
    raw = await _read_limited_body(request)
    if raw is None:
        logger.warning(f"Update from {client_host} rejected: body over {MAX_BODY_BYTES} bytes")
        return _error(413, "payload too large")

    try:
        try:
            body = json.loads(raw) if raw else None
        except (ValueError, RecursionError) as e:
            raise InvalidPayload(f"body is not valid JSON: {e}")
        if not isinstance(body, dict):
            raise InvalidPayload("body must be a JSON object")

        payload = UpdateRequest.model_validate(body)
        assigned_name = registry.upsert(
            room=payload.room,
            client_id=payload.client_id,
            entries=payload.entries,
            name=payload.name,
            profession_id=payload.prof,
            plugin_version=payload.plugin_ver,
            subgroup_index=payload.subgroup,
            group_order=payload.group_order,
        )
    except InvalidPayload as e:
        logger.warning(f"Bad update payload from {client_host}: {e}")
        return _error(400, "bad payload")

    logger.debug(f"Update from {client_host} for room {payload.room}: {payload.client_id} -> {assigned_name}")
    return UpdateResponse(assigned_name=assigned_name)


@rooms_router.get("/aggregate")
async def aggregate(room: Optional[str] = Query(None, description="Room name, defaults to the shared room")):
    room = room or DEFAULT_ROOM
    snapshot = registry.snapshot(room)
    return snapshot.to_wire()


@rooms_router.get("/download/{asset}")
async def download(asset: str):
    # Only the plugin binary is served; anything else is reported as missing.
    if asset != PLUGIN_ASSET or os.path.basename(asset) != asset:
        logger.warning(f"Download of unknown asset {asset!r} requested")
        raise HTTPException(status_code=404, detail="Not Found")

    file_path = os.path.join(DOWNLOAD_DIR, asset)
    if not os.path.isfile(file_path):
        logger.error(f"Error sending {asset}: {file_path} does not exist")
        raise HTTPException(status_code=404, detail="Not Found")

    logger.info(f"Sending {asset}")
    return FileResponse(path=file_path, filename=asset, media_type="application/octet-stream")
