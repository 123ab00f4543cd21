from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse, Response, StreamingResponse

from portaria import mcp
from portaria.config import Settings, get_settings
from portaria.dependencies import get_tool_context
from portaria.routes.system import public_base_url
from portaria.tools import ToolContext, list_tools

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mcp", tags=["mcp"])

PING_INTERVAL_SECONDS = 30

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


async def sse_events(request: Request, endpoint: str):
    yield f"event: endpoint\ndata: {endpoint}\n\n"
    logger.info("[SSE] Client connected from %s", request.client.host if request.client else "?")
    while not await request.is_disconnected():
        await asyncio.sleep(PING_INTERVAL_SECONDS)
        yield ": ping\n\n"
    logger.info("[SSE] Client disconnected")


@router.get("/sse")
def sse(request: Request, settings: Settings = Depends(get_settings)):
    endpoint = f"{public_base_url(request, settings)}/mcp/message"
    return StreamingResponse(
        sse_events(request, endpoint),
        media_type="text/event-stream",
        headers={
            **CORS_HEADERS,
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.options("")
@router.options("/sse")
@router.options("/message")
def preflight():
    return Response(status_code=204, headers=CORS_HEADERS)


@router.post("")
@router.post("/sse")
@router.post("/message")
async def message(request: Request, context: ToolContext = Depends(get_tool_context)):
    raw = await request.body()
    try:
        payload = json.loads(raw)
    except ValueError:
        return JSONResponse(
            mcp.error(None, mcp.PARSE_ERROR, "Parse error"), headers=CORS_HEADERS
        )

    response = await run_in_threadpool(mcp.handle_message, payload, context)
    if response is None:
        return Response(status_code=202, headers=CORS_HEADERS)
    return JSONResponse(response, headers=CORS_HEADERS)


@router.get("/tools")
def tools():
    return {"tools": list_tools()}
