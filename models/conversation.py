"""
Conversation entries shown in the builder chat and stored with each project.
"""
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union
import uuid

from pydantic import BaseModel, Field

from models.generation import Attachment


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserEntry(BaseModel):
    type: Literal["user"] = "user"
    id: str = Field(default_factory=_new_id)
    text: str
    attachment: Optional[Attachment] = None
    timestamp: datetime = Field(default_factory=_now)


class ThoughtEntry(BaseModel):
    """Placeholder for an outstanding request, or the error it ended with."""
    type: Literal["ai-thought"] = "ai-thought"
    id: str = Field(default_factory=_new_id)
    status: Literal["thinking", "error"] = "thinking"
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now)


class ResponseEntry(BaseModel):
    type: Literal["ai-response"] = "ai-response"
    id: str = Field(default_factory=_new_id)
    plan: List[str] = []
    files: List[str] = []
    timestamp: datetime = Field(default_factory=_now)


ConversationEntry = Annotated[
    Union[UserEntry, ThoughtEntry, ResponseEntry],
    Field(discriminator="type"),
]
