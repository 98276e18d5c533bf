"""
Debounced autosave for an open project.

Edits mark the project dirty and (re)start a quiet-interval timer. When the
timer fires the latest snapshot is written. A failed write leaves the project
dirty until the next edit restarts the timer.
"""
import asyncio
import inspect
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from models.conversation import ConversationEntry
from models.generation import GeneratedCode
from models.project import Project, ProjectSave
from services.errors import PersistenceError

logger = logging.getLogger(__name__)

Snapshot = Tuple[Optional[GeneratedCode], List[ConversationEntry]]


class SaveState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class ProjectAutosaver:
    def __init__(
        self,
        save: Callable[[ProjectSave], Awaitable[Project]],
        snapshot: Callable[[], Snapshot],
        name_provider: Callable[[], object],
        project_id: Optional[str] = None,
        name: Optional[str] = None,
        quiet_interval: float = 2.0,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self._save = save
        self._snapshot = snapshot
        self._name_provider = name_provider
        self._on_error = on_error
        self.project_id = project_id
        self.name = name
        self.quiet_interval = quiet_interval

        self.state = SaveState.CLEAN
        self.last_error: Optional[str] = None
        self._version = 0
        self._saved_version = 0
        self._timer: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def has_unsaved_changes(self) -> bool:
        return self._version != self._saved_version

    def mark_dirty(self) -> None:
        """Record an edit and restart the quiet-interval timer."""
        self._version += 1
        if self.state != SaveState.SAVING:
            self.state = SaveState.DIRTY
        self._restart_timer()

    def _restart_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._save_after_quiet())

    async def _save_after_quiet(self) -> None:
        await asyncio.sleep(self.quiet_interval)
        # past the quiet period this task is a save, not a cancellable timer
        self._timer = None
        self._running = asyncio.current_task()
        try:
            await self.save_now()
        finally:
            if self._running is asyncio.current_task():
                self._running = None

    async def _resolve_name(self) -> Optional[str]:
        name = self._name_provider()
        if inspect.isawaitable(name):
            name = await name
        if isinstance(name, str) and name.strip():
            return name.strip()
        return None

    async def save_now(self) -> Optional[Project]:
        """
        Write the latest snapshot if there are unsaved changes. Returns the
        saved project, or None when nothing was written.
        """
        async with self._lock:
            if not self.has_unsaved_changes:
                return None

            if self.project_id is None and not self.name:
                name = await self._resolve_name()
                if name is None:
                    logger.info("First save skipped: no project name assigned")
                    self.state = SaveState.DIRTY
                    return None
                self.name = name

            version = self._version
            code, messages = self._snapshot()
            self.state = SaveState.SAVING
            try:
                project = await self._save(
                    ProjectSave(id=self.project_id, name=self.name, code=code, messages=messages)
                )
            except PersistenceError as e:
                logger.warning(f"Autosave failed for project {self.project_id or '<new>'}: {e.message}")
                self._fail(e.message)
                return None
            except Exception:
                # timer tasks have no caller to propagate to
                logger.error(f"Unexpected autosave failure for project {self.project_id or '<new>'}", exc_info=True)
                self._fail("Failed to save project")
                return None

            self.project_id = project.id
            self.last_error = None
            self._saved_version = version
            self.state = SaveState.CLEAN if self._version == version else SaveState.DIRTY
            logger.debug(f"Autosaved project {project.id} at version {version}")
            return project

    def _fail(self, message: str) -> None:
        self.state = SaveState.DIRTY
        self.last_error = message
        if self._on_error is not None:
            self._on_error(message)

    async def flush(self) -> Optional[Project]:
        """Cancel the pending timer and save immediately."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return await self.save_now()

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
