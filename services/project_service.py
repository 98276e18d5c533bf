"""
Project service for Doveable database operations
"""
from typing import Optional, List
from datetime import datetime, timedelta, timezone
import logging
import uuid
from supabase import Client

from models.project import ContactMessage, Project, ProjectData, ProjectSave, SharedProject
from services.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

PROJECTS_TABLE = "projects"
CONTACT_TABLE = "contact_messages"
SUMMARY_COLUMNS = "id, name, user_id, created_at, expires_at"


class ProjectService:
    def __init__(self, supabase_client: Client, ttl_hours: int = 48):
        self.supabase = supabase_client
        self.ttl = timedelta(hours=ttl_hours)

    async def list_projects(self, user_id: str) -> List[Project]:
        """
        Get the user's projects, newest first
        """
        try:
            response = self.supabase.table(PROJECTS_TABLE).select(SUMMARY_COLUMNS).eq(
                "user_id", user_id
            ).order("created_at", desc=True).execute()
        except Exception as e:
            logger.error(f"Error fetching projects for user {user_id}: {str(e)}")
            raise PersistenceError("Failed to load projects") from e

        return [Project(**row) for row in response.data or []]

    async def get_project(self, project_id: str, user_id: str) -> ProjectData:
        """
        Get a full project (code and messages) with an ownership check
        """
        try:
            response = self.supabase.table(PROJECTS_TABLE).select("*").eq(
                "id", project_id
            ).eq("user_id", user_id).limit(1).execute()
        except Exception as e:
            logger.error(f"Error fetching project {project_id}: {str(e)}")
            raise PersistenceError("Failed to load project") from e

        if not response.data:
            raise NotFoundError("Project not found")
        return ProjectData(**response.data[0])

    async def get_shared_project(self, project_id: str) -> SharedProject:
        """
        Read a project for its share link. Anyone holding the id may view it.
        """
        try:
            response = self.supabase.table(PROJECTS_TABLE).select("id, name, code").eq(
                "id", project_id
            ).limit(1).execute()
        except Exception as e:
            logger.error(f"Error fetching shared project {project_id}: {str(e)}")
            raise PersistenceError("Failed to load project") from e

        if not response.data:
            raise NotFoundError("Project not found or you do not have permission to view it.")
        return SharedProject(**response.data[0])

    async def make_projects_permanent(self, user_id: str) -> int:
        """
        Clear the expiry on every project the user owns, once they link their own storage
        """
        try:
            response = self.supabase.table(PROJECTS_TABLE).update(
                {"expires_at": None}
            ).eq("user_id", user_id).execute()
        except Exception as e:
            logger.error(f"Error making projects permanent for user {user_id}: {str(e)}")
            raise PersistenceError("Failed to update projects") from e

        updated_count = len(response.data) if response.data else 0
        logger.info(f"Made {updated_count} projects permanent for user {user_id}")
        return updated_count

    async def save_project(
        self,
        user_id: str,
        project: ProjectSave,
        permanent: bool = False,
        now: Optional[datetime] = None,
    ) -> Project:
        """
        Upsert a project. Projects on the shared backend expire after the TTL;
        users who linked their own storage keep them permanently.
        """
        now = now or datetime.now(timezone.utc)
        project_data = {
            "id": project.id or str(uuid.uuid4()),
            "user_id": user_id,
            "name": project.name,
            "code": project.code.model_dump(mode="json", by_alias=True) if project.code else None,
            "messages": [entry.model_dump(mode="json", by_alias=True) for entry in project.messages],
            "expires_at": None if permanent else (now + self.ttl).isoformat(),
        }

        try:
            response = self.supabase.table(PROJECTS_TABLE).upsert(project_data).execute()
        except Exception as e:
            logger.error(f"Error saving project {project_data['id']}: {str(e)}", exc_info=True)
            raise PersistenceError("Failed to save project") from e

        if not response.data:
            raise PersistenceError("Failed to save project")

        row = response.data[0]
        logger.info(f"Saved project {row['id']} for user {user_id}")
        return Project(**{key: row.get(key) for key in ("id", "name", "user_id", "created_at", "expires_at")})

    async def delete_project(self, project_id: str, user_id: str) -> None:
        """
        Delete a project (with user ownership check)
        """
        try:
            response = self.supabase.table(PROJECTS_TABLE).delete().eq(
                "id", project_id
            ).eq("user_id", user_id).execute()
        except Exception as e:
            logger.error(f"Error deleting project {project_id}: {str(e)}")
            raise PersistenceError("Failed to delete project") from e

        if not response.data:
            raise NotFoundError("Project not found")
        logger.info(f"Deleted project {project_id} for user {user_id}")

    async def cleanup_expired_projects(self, now: Optional[datetime] = None) -> int:
        """
        Remove temporary projects past their expiry
        """
        now = now or datetime.now(timezone.utc)
        try:
            response = self.supabase.table(PROJECTS_TABLE).delete().lt("expires_at", now.isoformat()).execute()
        except Exception as e:
            logger.error(f"Error cleaning up expired projects: {str(e)}")
            raise PersistenceError("Failed to clean up expired projects") from e

        deleted_count = len(response.data) if response.data else 0
        logger.info(f"Cleaned up {deleted_count} expired projects")
        return deleted_count

    async def save_contact_message(self, message: ContactMessage) -> None:
        try:
            self.supabase.table(CONTACT_TABLE).insert(message.model_dump(mode="json")).execute()
        except Exception as e:
            logger.error(f"Error saving contact message: {str(e)}")
            raise PersistenceError(f"Failed to send message: {str(e)}") from e
        logger.info(f"Contact message received from {message.name}")
