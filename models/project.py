"""
Project models for Doveable
"""
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from models.conversation import ConversationEntry
from models.generation import GeneratedCode


class Project(BaseModel):
    """Project summary as listed on the dashboard."""
    id: str
    name: str
    user_id: str
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class ProjectData(Project):
    code: Optional[GeneratedCode] = None
    messages: List[ConversationEntry] = []


class ProjectSave(BaseModel):
    """
    What an autosave writes. ``id`` is absent until the first save assigns one.
    """
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    code: Optional[GeneratedCode] = None
    messages: List[ConversationEntry] = []


class ContactMessage(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    message: str = Field(..., min_length=1)


class SharedProject(BaseModel):
    """Public view of a project opened from a share link; no chat history."""
    id: str
    name: str
    code: Optional[GeneratedCode] = None
