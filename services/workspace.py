"""
Builder workspace: one open project with its current code, conversation and
autosaver, plus the registry of open workspaces.
"""
import asyncio
from typing import Callable, Dict, List, Optional
import logging
import time
import uuid

from models.conversation import ConversationEntry
from models.generation import Attachment, GeneratedCode
from models.project import ProjectData
from services.autosave import ProjectAutosaver
from services.conversation import ConversationLog, generated_files, plan_steps
from services.errors import (
    ConfigurationError,
    EmptyPromptError,
    GenerationError,
    GenerationInProgressError,
    InsufficientCreditsError,
    NotFoundError,
    PersistenceError,
)
from services.generation_service import GenerationClient, has_usable_input
from services.project_service import ProjectService
from services.user_service import UserService

logger = logging.getLogger(__name__)


class BuilderWorkspace:
    def __init__(
        self,
        user: dict,
        generation_client: GenerationClient,
        user_service: UserService,
        project_service: ProjectService,
        project: Optional[ProjectData] = None,
        name: Optional[str] = None,
        permanent: bool = False,
        quiet_interval: float = 2.0,
    ):
        self.id = str(uuid.uuid4())
        self.user = user
        self.generation_client = generation_client
        self.user_service = user_service
        self.project_service = project_service
        self.permanent = permanent
        self.notifications: List[str] = []
        self._busy = False

        self.code: Optional[GeneratedCode] = project.code if project else None
        self.name = project.name if project else name
        self.log = ConversationLog(project.messages if project else None, on_change=self._touch)
        self.autosaver = ProjectAutosaver(
            save=self._save_project,
            snapshot=lambda: (self.code, self.log.snapshot()),
            name_provider=self._project_name,
            project_id=project.id if project else None,
            name=self.name,
            quiet_interval=quiet_interval,
            on_error=self.notifications.append,
        )

    @property
    def project_id(self) -> Optional[str]:
        return self.autosaver.project_id

    @property
    def is_generating(self) -> bool:
        return self._busy or self.log.pending_id is not None

    def _touch(self) -> None:
        self.autosaver.mark_dirty()

    def _project_name(self) -> Optional[str]:
        if self.name:
            return self.name
        if self.code is not None and self.code.title.strip():
            return self.code.title
        return None

    async def _save_project(self, project):
        return await self.project_service.save_project(self.user["id"], project, permanent=self.permanent)

    async def submit(
        self,
        prompt: str,
        attachment: Optional[Attachment] = None,
        personalization_context: str = "",
    ) -> List[ConversationEntry]:
        """
        Run one generation turn. Gate failures (empty input, missing
        configuration, no credits, request in flight) raise before anything is
        appended; generation failures end as an error entry in the log.
        """
        if not has_usable_input(prompt, attachment):
            raise EmptyPromptError("Enter a prompt or attach an image.")
        # claimed before the first await so overlapping submits are rejected
        if self._busy:
            raise GenerationInProgressError()
        self._busy = True
        try:
            return await self._run_turn(prompt, attachment, personalization_context)
        finally:
            self._busy = False

    async def _run_turn(
        self,
        prompt: str,
        attachment: Optional[Attachment],
        personalization_context: str,
    ) -> List[ConversationEntry]:
        if not self.generation_client.is_configured:
            raise ConfigurationError("GEMINI_API_KEY is not configured on the server.")

        ledger = self.user_service.ledger
        account = await self.user_service.load_account(self.user["id"], self.user["email"])
        if not ledger.check_and_reserve(account):
            raise InsufficientCreditsError(required=ledger.cost, available=account.total)

        self.log.append_user(prompt, attachment)
        pending_id = self.log.append_pending()

        try:
            code = await self.generation_client.generate(
                prompt,
                attachment=attachment,
                existing_code=self.code,
                personalization_context=personalization_context,
            )
            # charged only once the reply is usable
            await self.user_service.charge_generation(self.user["id"], self.user["email"])
        except (GenerationError, InsufficientCreditsError, PersistenceError) as e:
            self.log.resolve_pending_to_error(pending_id, e.message)
            return self.log.entries
        except asyncio.CancelledError:
            self.log.resolve_pending_to_error(pending_id, "The request was cancelled.")
            raise
        except Exception:
            logger.error(f"Unexpected failure in workspace {self.id}", exc_info=True)
            self.log.resolve_pending_to_error(pending_id, "An unknown error occurred during code generation.")
            raise

        self.code = code
        self.log.resolve_pending_to_response(pending_id, plan_steps(code.plan), generated_files(code))
        return self.log.entries

    def update_code(self, code: GeneratedCode) -> None:
        """Manual edit from the code editor."""
        self.code = code
        self._touch()

    def rename(self, name: str) -> None:
        self.name = name
        self.autosaver.name = name
        self._touch()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.autosaver.name or self.name,
            "save_state": self.autosaver.state.value,
            "is_generating": self.is_generating,
            "code": self.code.model_dump(mode="json", by_alias=True) if self.code else None,
            "messages": [entry.model_dump(mode="json", by_alias=True) for entry in self.log.entries],
            "notifications": list(self.notifications),
        }


class WorkspaceRegistry:
    """
    In-memory map of open workspaces, scoped to their owner.

    Workspaces untouched for ``idle_seconds`` are saved and dropped, and each
    owner keeps at most ``max_per_user`` open; opening one more closes the
    least recently used. Workspaces with a request in flight are never evicted.
    """

    def __init__(
        self,
        idle_seconds: float = 1800,
        max_per_user: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.idle_seconds = idle_seconds
        self.max_per_user = max_per_user
        self._clock = clock
        self._workspaces: Dict[str, BuilderWorkspace] = {}
        self._last_used: Dict[str, float] = {}

    async def add(self, workspace: BuilderWorkspace) -> BuilderWorkspace:
        await self.evict_idle()
        owned = self._owned_by(workspace.user["id"])
        while len(owned) >= self.max_per_user:
            idle = [w for w in owned if not w.is_generating]
            if not idle:
                break
            oldest = min(idle, key=lambda w: self._last_used[w.id])
            logger.info(f"Workspace limit reached for user {workspace.user['id']}, closing {oldest.id}")
            await self._close(oldest)
            owned.remove(oldest)

        self._workspaces[workspace.id] = workspace
        self._last_used[workspace.id] = self._clock()
        logger.info(f"Opened workspace {workspace.id} for user {workspace.user['id']}")
        return workspace

    def get(self, workspace_id: str, user_id: str) -> BuilderWorkspace:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None or workspace.user["id"] != user_id:
            raise NotFoundError("Workspace not found")
        self._last_used[workspace_id] = self._clock()
        return workspace

    def _owned_by(self, user_id: str) -> List[BuilderWorkspace]:
        return [w for w in self._workspaces.values() if w.user["id"] == user_id]

    def set_permanent(self, user_id: str, permanent: bool) -> None:
        """Apply a storage link change to the user's open workspaces."""
        for workspace in self._owned_by(user_id):
            workspace.permanent = permanent

    async def _close(self, workspace: BuilderWorkspace) -> None:
        await workspace.autosaver.flush()
        workspace.autosaver.close()
        self._workspaces.pop(workspace.id, None)
        self._last_used.pop(workspace.id, None)

    async def close(self, workspace_id: str, user_id: str) -> BuilderWorkspace:
        workspace = self.get(workspace_id, user_id)
        await self._close(workspace)
        logger.info(f"Closed workspace {workspace_id}")
        return workspace

    async def evict_idle(self) -> int:
        """Save and drop workspaces unused for longer than the idle timeout."""
        cutoff = self._clock() - self.idle_seconds
        stale = [
            w for w in self._workspaces.values()
            if self._last_used[w.id] < cutoff and not w.is_generating
        ]
        for workspace in stale:
            await self._close(workspace)
        if stale:
            logger.info(f"Evicted {len(stale)} idle workspaces")
        return len(stale)

    async def close_all(self) -> None:
        for workspace in list(self._workspaces.values()):
            await self._close(workspace)

    def __len__(self) -> int:
        return len(self._workspaces)
