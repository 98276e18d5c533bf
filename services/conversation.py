"""
Conversation log for one builder session: an ordered list of chat entries
where a thinking placeholder is later replaced in place by the reply or the
error it ended with.
"""
from typing import Callable, List, Optional
import logging

from models.conversation import ConversationEntry, ResponseEntry, ThoughtEntry, UserEntry
from models.generation import Attachment, GeneratedCode
from services.errors import GenerationInProgressError

logger = logging.getLogger(__name__)


def plan_steps(plan: str) -> List[str]:
    """Turn a bulleted plan ('* a\\n- b') into its steps."""
    steps = []
    for line in plan.splitlines():
        item = line.strip()
        if item.startswith(("*", "-")):
            item = item[1:].strip()
            if item:
                steps.append(item)
    if not steps and plan.strip():
        steps.append(plan.strip())
    return steps


def generated_files(code: GeneratedCode) -> List[str]:
    files = ["index.html", "style.css"]
    if code.javascript.strip():
        files.append("script.js")
    return files


class ConversationLog:
    def __init__(
        self,
        entries: Optional[List[ConversationEntry]] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self._entries: List[ConversationEntry] = list(entries or [])
        self._on_change = on_change
        self._pending_id: Optional[str] = None

        # A request left thinking in a stored project never finished
        for index, entry in enumerate(self._entries):
            if isinstance(entry, ThoughtEntry) and entry.status == "thinking":
                self._entries[index] = entry.model_copy(
                    update={"status": "error", "error": "This request was interrupted."}
                )

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[ConversationEntry]:
        return list(self._entries)

    @property
    def pending_id(self) -> Optional[str]:
        return self._pending_id

    def snapshot(self) -> List[ConversationEntry]:
        return [entry.model_copy() for entry in self._entries]

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def append_user(self, text: str, attachment: Optional[Attachment] = None) -> UserEntry:
        entry = UserEntry(text=text, attachment=attachment)
        self._entries.append(entry)
        self._changed()
        return entry

    def append_pending(self) -> str:
        if self._pending_id is not None:
            raise GenerationInProgressError()
        entry = ThoughtEntry(status="thinking")
        self._entries.append(entry)
        self._pending_id = entry.id
        self._changed()
        return entry.id

    def _pending_index(self, entry_id: str) -> int:
        if entry_id != self._pending_id:
            raise ValueError(f"Entry {entry_id} is not the outstanding request")
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        raise ValueError(f"Entry {entry_id} is not in the conversation")

    def resolve_pending_to_response(self, entry_id: str, plan: List[str], files: List[str]) -> ResponseEntry:
        index = self._pending_index(entry_id)
        entry = ResponseEntry(id=entry_id, plan=list(plan), files=list(files))
        self._entries[index] = entry
        self._pending_id = None
        self._changed()
        return entry

    def resolve_pending_to_error(self, entry_id: str, message: str) -> ThoughtEntry:
        index = self._pending_index(entry_id)
        entry = self._entries[index].model_copy(update={"status": "error", "error": message})
        self._entries[index] = entry
        self._pending_id = None
        self._changed()
        logger.info(f"Request {entry_id} ended with error: {message}")
        return entry
