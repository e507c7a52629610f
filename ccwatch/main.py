"""ccwatch FastAPI backend: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ccwatch import config
from ccwatch.routers.api import sessions_router, subagents_router, tasks_router
from ccwatch.routers.projects import projects_router
from ccwatch.routers.watcher import watcher_router
from ccwatch.services.sessions import SessionService

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("ccwatch")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("ccwatch starting up (claude dir: %s)", config.CLAUDE_DIR)

    service = SessionService()
    app.state.session_service = service

    if config.AUTOSTART_WATCHERS:
        await service.start_watching()
        await service.start_tasks_watcher()

    yield

    logger.info("ccwatch shutting down")
    await service.shutdown()


app = FastAPI(
    title="ccwatch API",
    description="Live view of Claude Code sessions, subagents and tasks",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow the UI dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(projects_router)
app.include_router(sessions_router)
app.include_router(subagents_router)
app.include_router(tasks_router)
app.include_router(watcher_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    service = getattr(app.state, "session_service", None)
    return {
        "status": "ok",
        "claudeDir": str(config.CLAUDE_DIR),
        "watcher": "running" if service and service.is_watching else "stopped",
    }


def run() -> None:
    import uvicorn

    uvicorn.run("ccwatch.main:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
