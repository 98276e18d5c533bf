"""
Builder workspace routes: chat with the generator, edit code, autosave
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import logging

from auth.dependencies import get_current_user
from config.settings import Settings, get_settings
from models.generation import Attachment, GeneratedCode
from services.errors import NotFoundError
from services.generation_service import GenerationClient
from services.preview_service import PREVIEW_CSP, build_preview_document
from services.project_service import ProjectService
from services.providers import (
    get_generation_client,
    get_project_service,
    get_user_service,
    get_workspace_registry,
)
from services.user_service import UserService
from services.workspace import BuilderWorkspace, WorkspaceRegistry

router = APIRouter(prefix="/api/workspaces", tags=["Workspaces"])
logger = logging.getLogger(__name__)

class OpenWorkspaceRequest(BaseModel):
    project_id: Optional[str] = Field(default=None, description="Existing project to open")
    name: Optional[str] = Field(default=None, description="Name for a new project")

class MessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ""
    attachment: Optional[Attachment] = None
    personalization_context: str = Field(default="", alias="learningContext")

class RenameRequest(BaseModel):
    name: str = Field(..., min_length=1)

@router.post("", status_code=status.HTTP_201_CREATED)
async def open_workspace(
    request: OpenWorkspaceRequest,
    current_user: dict = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    client: GenerationClient = Depends(get_generation_client),
    user_service: UserService = Depends(get_user_service),
    project_service: ProjectService = Depends(get_project_service),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    """
    Open a new or existing project for editing
    """
    profile = await user_service.load_profile(current_user["id"], current_user["email"])
    project = None
    if request.project_id:
        project = await project_service.get_project(request.project_id, current_user["id"])

    workspace = BuilderWorkspace(
        current_user,
        client,
        user_service,
        project_service,
        project=project,
        name=request.name,
        permanent=profile.storage_linked,
        quiet_interval=settings.autosave_quiet_seconds,
    )
    await registry.add(workspace)
    return workspace.to_dict()

@router.get("/{workspace_id}")
async def get_workspace(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    return registry.get(workspace_id, current_user["id"]).to_dict()

@router.post("/{workspace_id}/messages")
async def send_message(
    workspace_id: str,
    request: MessageRequest,
    current_user: dict = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    """
    Send a prompt. Generation failures come back as an error entry in the
    conversation rather than an error status.
    """
    workspace = registry.get(workspace_id, current_user["id"])
    await workspace.submit(
        request.prompt,
        attachment=request.attachment,
        personalization_context=request.personalization_context,
    )
    return workspace.to_dict()

@router.put("/{workspace_id}/code")
async def update_code(
    workspace_id: str,
    code: GeneratedCode,
    current_user: dict = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    workspace = registry.get(workspace_id, current_user["id"])
    workspace.update_code(code)
    return workspace.to_dict()

@router.patch("/{workspace_id}")
async def rename_workspace(
    workspace_id: str,
    request: RenameRequest,
    current_user: dict = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    workspace = registry.get(workspace_id, current_user["id"])
    workspace.rename(request.name)
    return workspace.to_dict()

@router.post("/{workspace_id}/save")
async def save_workspace(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    """
    Save now instead of waiting for the quiet interval
    """
    workspace = registry.get(workspace_id, current_user["id"])
    await workspace.autosaver.flush()
    return workspace.to_dict()

@router.get("/{workspace_id}/preview", response_class=HTMLResponse)
async def preview_workspace(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    workspace = registry.get(workspace_id, current_user["id"])
    if workspace.code is None:
        raise NotFoundError("Nothing has been generated yet")
    return HTMLResponse(
        build_preview_document(workspace.code),
        headers={"Content-Security-Policy": PREVIEW_CSP},
    )

@router.delete("/{workspace_id}")
async def close_workspace(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    registry: WorkspaceRegistry = Depends(get_workspace_registry),
):
    """
    Save any pending changes and close the workspace
    """
    workspace = await registry.close(workspace_id, current_user["id"])
    return {
        "message": "Workspace closed",
        "project_id": workspace.project_id,
        "save_state": workspace.autosaver.state.value,
    }
