"""API routers for sessions, subagents and tasks."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from ccwatch.models import ClaudeTask, Message, Session, Subagent, Todo
from ccwatch.services.sessions import SessionService

sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])
subagents_router = APIRouter(prefix="/api/subagents", tags=["subagents"])
tasks_router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class SessionPath(BaseModel):
    sessionId: str
    path: str


def get_session_service(request: Request) -> SessionService:
    service = getattr(request.app.state, "session_service", None)
    if not service:
        raise HTTPException(status_code=503, detail="Session service not initialized")
    return service


# ── Sessions ───────────────────────────────────────────────────────

@sessions_router.get("", response_model=list[Session])
async def list_sessions(request: Request, projectId: Optional[str] = Query(default=None)):
    """Indexed plus unindexed sessions, newest activity first."""
    return await get_session_service(request).list_sessions(projectId)


@sessions_router.get("/{session_id}/messages", response_model=list[Message])
async def get_messages(session_id: str, request: Request):
    return await get_session_service(request).get_messages(session_id)


@sessions_router.get("/{session_id}/path", response_model=SessionPath)
async def get_session_path(session_id: str, request: Request):
    path = await get_session_service(request).get_session_file_path(session_id)
    if not path:
        raise HTTPException(status_code=404, detail="Session log not found")
    return SessionPath(sessionId=session_id, path=path)


@sessions_router.get("/{session_id}/todos", response_model=list[Todo])
async def get_todos(session_id: str, request: Request):
    return await get_session_service(request).get_todos(session_id)


@sessions_router.get("/{session_id}/agents/{agent_id}/todos", response_model=list[Todo])
async def get_agent_todos(session_id: str, agent_id: str, request: Request):
    return await get_session_service(request).get_agent_todos(session_id, agent_id)


@sessions_router.get("/{session_id}/tasks", response_model=list[ClaudeTask])
async def get_session_tasks(session_id: str, request: Request):
    return await get_session_service(request).get_session_tasks(session_id)


# ── Subagents ──────────────────────────────────────────────────────

@subagents_router.get("", response_model=list[Subagent])
async def list_active_subagents(request: Request):
    """Running/initializing subagents first, then most recently started."""
    return await get_session_service(request).list_active_subagents()


# ── Tasks ──────────────────────────────────────────────────────────

@tasks_router.get("", response_model=list[ClaudeTask])
async def list_tasks(request: Request):
    return await get_session_service(request).get_all_tasks()
