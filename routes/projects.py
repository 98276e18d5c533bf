"""
Project routes for Doveable
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse
from typing import List
import logging

from auth.dependencies import get_current_user, require_admin
from models.project import ContactMessage, Project, ProjectData, SharedProject
from services.errors import NotFoundError
from services.preview_service import PREVIEW_CSP, build_preview_document
from services.project_service import ProjectService
from services.providers import get_project_service

router = APIRouter(prefix="/api", tags=["Projects"])
logger = logging.getLogger(__name__)

@router.get("/projects", response_model=List[Project])
async def list_projects(
    current_user: dict = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service),
):
    """
    Get the current user's projects
    """
    return await project_service.list_projects(current_user["id"])

@router.get("/projects/{project_id}", response_model=ProjectData)
async def get_project(
    project_id: str,
    current_user: dict = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service),
):
    return await project_service.get_project(project_id, current_user["id"])

@router.get("/projects/{project_id}/preview", response_class=HTMLResponse)
async def preview_project(
    project_id: str,
    current_user: dict = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service),
):
    """
    Render a saved project as a standalone, sandboxed document
    """
    project = await project_service.get_project(project_id, current_user["id"])
    if project.code is None:
        raise NotFoundError("Project has no generated code")
    return HTMLResponse(
        build_preview_document(project.code),
        headers={"Content-Security-Policy": PREVIEW_CSP},
    )

@router.delete("/projects/{project_id}")
async def delete_project(
    project_id: str,
    current_user: dict = Depends(get_current_user),
    project_service: ProjectService = Depends(get_project_service),
):
    await project_service.delete_project(project_id, current_user["id"])
    return {"message": "Project deleted successfully"}

@router.post("/projects/cleanup")
async def cleanup_expired_projects(
    admin_user: dict = Depends(require_admin),
    project_service: ProjectService = Depends(get_project_service),
):
    """
    Delete temporary projects past their expiry
    """
    deleted = await project_service.cleanup_expired_projects()
    logger.info(f"Expired project sweep by {admin_user['email']}: {deleted} removed")
    return {"deleted": deleted}

@router.post("/contact", status_code=status.HTTP_201_CREATED)
async def send_contact_message(
    message: ContactMessage,
    project_service: ProjectService = Depends(get_project_service),
):
    await project_service.save_contact_message(message)
    return {"message": "Thanks! Your message has been sent."}

@router.get("/share/{project_id}", response_model=SharedProject)
async def get_shared_project(
    project_id: str,
    project_service: ProjectService = Depends(get_project_service),
):
    """
    Public view of a shared project: name and code, no conversation
    """
    return await project_service.get_shared_project(project_id)

@router.get("/share/{project_id}/preview", response_class=HTMLResponse)
async def preview_shared_project(
    project_id: str,
    project_service: ProjectService = Depends(get_project_service),
):
    project = await project_service.get_shared_project(project_id)
    if project.code is None:
        raise NotFoundError("Project has no generated code")
    return HTMLResponse(
        build_preview_document(project.code),
        headers={"Content-Security-Policy": PREVIEW_CSP},
    )
