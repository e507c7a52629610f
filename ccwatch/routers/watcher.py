"""Watcher lifecycle API."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from ccwatch.routers.api import get_session_service

logger = logging.getLogger("ccwatch.api")

watcher_router = APIRouter(prefix="/api/watcher", tags=["watcher"])


@watcher_router.get("")
async def watcher_status(request: Request):
    service = get_session_service(request)
    return {"running": service.is_watching, "scopes": service.notifier.scopes}


@watcher_router.post("/start")
async def start_watcher(request: Request):
    """Start (or restart) the ~/.claude watcher. Safe to call repeatedly."""
    service = get_session_service(request)
    await service.start_watching()
    await service.start_tasks_watcher()
    logger.info("Watchers started via API")
    return {"running": service.is_watching, "scopes": service.notifier.scopes}


@watcher_router.post("/stop")
async def stop_watcher(request: Request):
    service = get_session_service(request)
    await service.stop_watching()
    await service.stop_tasks_watcher()
    logger.info("Watchers stopped via API")
    return {"running": service.is_watching, "scopes": service.notifier.scopes}
