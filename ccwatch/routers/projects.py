"""API router for project discovery."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from ccwatch.models import Project, Session
from ccwatch.routers.api import get_session_service

projects_router = APIRouter(prefix="/api/projects", tags=["projects"])


@projects_router.get("", response_model=list[Project])
async def list_projects(request: Request):
    """List projects found under ~/.claude/projects, most recently active first."""
    return await get_session_service(request).list_projects()


@projects_router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, request: Request):
    project = await get_session_service(request).projects.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@projects_router.get("/{project_id}/sessions", response_model=list[Session])
async def list_project_sessions(project_id: str, request: Request):
    return await get_session_service(request).list_sessions(project_id)
