"""Pydantic models matching the frontend TypeScript types."""
from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

SubagentStatus = Literal["initializing", "running", "completed", "failed"]
TodoStatus = Literal["pending", "in_progress", "completed"]


# ── Project model ──────────────────────────────────────────────────

class Project(BaseModel):
    id: str  # encoded directory name under ~/.claude/projects
    name: str
    rootPath: str
    rootPathVerified: bool = False  # False when rootPath is the naive fallback decoding
    lastActivity: str = ""


# ── Session-related models ──────────────────────────────────────────

class Session(BaseModel):
    id: str
    projectPath: str = ""
    startedAt: str = ""
    lastMessageAt: str = ""
    preview: str = ""
    messageCount: int = 0
    gitBranch: Optional[str] = None
    source: Literal["index", "log"] = "log"


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseContent(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = None


class ToolResultContent(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: Any = ""


MessageContent = Annotated[
    Union[TextContent, ToolUseContent, ToolResultContent],
    Field(discriminator="type"),
]


class Message(BaseModel):
    messageId: str
    sessionId: str
    type: Literal["message"] = "message"
    role: Literal["user", "assistant"]
    content: list[MessageContent] = Field(default_factory=list)
    timestamp: str = ""


# ── Subagent / todo models ─────────────────────────────────────────

class Todo(BaseModel):
    id: str
    content: str = ""
    status: TodoStatus = "pending"
    activeForm: Optional[str] = None


class Subagent(BaseModel):
    id: str
    sessionId: str
    status: SubagentStatus
    name: str  # first todo's content, stable for the agent's lifetime
    description: str = ""
    startedAt: str = ""
    completedAt: Optional[str] = None
    totalTasks: int = 0
    completedTasks: int = 0
    inProgressTask: Optional[str] = None
    cachedTodos: Optional[list[Todo]] = None
    source: Literal["log", "todos"] = "log"


class ClaudeTask(BaseModel):
    id: str
    subject: str = ""
    description: str = ""
    activeForm: Optional[str] = None
    status: TodoStatus = "pending"
    blocks: list[str] = Field(default_factory=list)
    blockedBy: list[str] = Field(default_factory=list)
    sessionId: str


# ── Change events ──────────────────────────────────────────────────

class SessionsChanged(BaseModel):
    sessions: list[Session] = Field(default_factory=list)


class MessagesChanged(BaseModel):
    sessionId: str


class SubagentsChanged(BaseModel):
    subagents: list[Subagent] = Field(default_factory=list)


class IssuesChanged(BaseModel):
    projectPath: str
    issues: list[Any] = Field(default_factory=list)


class TasksChanged(BaseModel):
    tasks: list[ClaudeTask] = Field(default_factory=list)
