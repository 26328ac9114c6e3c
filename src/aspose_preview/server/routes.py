"""REST routes over the session registry."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from urllib.parse import quote

from aiohttp import web

from aspose_preview.server.state import REGISTRY_KEY, STARTED_AT_KEY

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()

_NOT_FOUND = {"error": "Session not found"}
# Same unreserved set as JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@routes.get("/api/sessions")
async def list_sessions(request: web.Request) -> web.Response:
    summaries = request.app[REGISTRY_KEY].list_summaries()
    logger.debug("Returning %d sessions", len(summaries))
    return web.json_response({"sessions": [summary.to_dict() for summary in summaries]})


@routes.get("/api/sessions/{session_id}/snapshot")
async def get_snapshot(request: web.Request) -> web.Response:
    session_id = request.match_info["session_id"]
    registry = request.app[REGISTRY_KEY]

    session = registry.get(session_id)
    if session is None:
        logger.debug("Session not found: %s", session_id)
        return web.json_response(_NOT_FOUND, status=404)

    if not session.data:
        logger.error("Session %s has no data", session_id)
        return web.json_response({"error": "Session has no snapshot data"}, status=500)

    registry.mark_seen(session_id)

    headers = {
        "Content-Type": session.mime_type or "application/octet-stream",
        "X-Document-Type": session.document_type or "unknown",
        "X-Original-Path": quote(session.original_path or "", safe=_URI_COMPONENT_SAFE),
        "X-Output-Format": session.output_format or "unknown",
        "X-Timestamp": session.timestamp or datetime.now(UTC).isoformat(),
        "X-Sequence-Number": str(session.sequence_number or 0),
    }
    logger.debug(
        "Returning snapshot for session %s, %d bytes, mimeType: %s",
        session_id,
        len(session.data),
        session.mime_type,
    )
    return web.Response(body=session.data, headers=headers)


@routes.get("/api/sessions/{session_id}/info")
async def get_session_info(request: web.Request) -> web.Response:
    session = request.app[REGISTRY_KEY].get(request.match_info["session_id"])
    if session is None:
        return web.json_response(_NOT_FOUND, status=404)

    return web.json_response(
        {
            "sessionId": session.session_id,
            "documentType": session.document_type,
            "originalPath": session.original_path,
            "outputFormat": session.output_format,
            "mimeType": session.mime_type,
            "timestamp": session.timestamp,
            "sequenceNumber": session.sequence_number,
            "dataSize": len(session.data),
            "hasUpdate": session.unseen,
        }
    )


@routes.post("/api/sessions/{session_id}/viewed")
async def mark_viewed(request: web.Request) -> web.Response:
    request.app[REGISTRY_KEY].mark_seen(request.match_info["session_id"])
    return web.json_response({"success": True})


@routes.get("/api/health")
async def health(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "status": "ok",
            "sessions": request.app[REGISTRY_KEY].count(),
            "uptime": time.monotonic() - request.app[STARTED_AT_KEY],
        }
    )


__all__ = ["routes"]
