"""
Dashboard page and WebSocket feed.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse

from phonetree_scout.calls.registry import CallRegistry, get_call_registry
from phonetree_scout.config import get_settings
from phonetree_scout.dashboard.observers import WebSocketObserver
from phonetree_scout.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["dashboard"])

STATIC_DIR = Path(__file__).parent / "static"


@router.get("/dashboard", include_in_schema=False)
async def dashboard_page() -> FileResponse:
    return FileResponse(STATIC_DIR / "dashboard.html", media_type="text/html")


@router.websocket("/ws")
async def dashboard_feed(
    websocket: WebSocket,
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
) -> None:
    call_sid = websocket.query_params.get("callSid")
    await websocket.accept()
    logger.info("Dashboard connected", extra={"call_sid": call_sid})

    observer: WebSocketObserver | None = None
    pump_task: asyncio.Task[None] | None = None
    if call_sid:
        observer = WebSocketObserver(
            websocket,
            call_sid,
            max_queue=get_settings().observer_queue_size,
        )
        pump_task = asyncio.create_task(observer.pump())
        await registry.attach_observer(call_sid, observer)

    try:
        # Dashboards never send anything meaningful; keep reading to notice close.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        if observer is not None and call_sid:
            observer.close()
            await registry.detach_observer(call_sid, observer)
        if pump_task is not None:
            pump_task.cancel()
            try:
                await pump_task
            except asyncio.CancelledError:
                pass
        logger.info("Dashboard disconnected", extra={"call_sid": call_sid})
