"""Persistence collaborator interface and an in-memory implementation."""

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from loglens.utils.logger import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class SystemInfo:
    """User-provided description of the system the logs come from."""

    os: str = ""
    app_name: str = ""
    app_version: str = ""
    environment: str = ""
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SystemInfo":
        """Build from snake_case or camelCase keys; unknown keys are ignored."""
        data = data or {}

        def pick(*keys: str) -> str:
            for key in keys:
                value = data.get(key)
                if value:
                    return str(value)
            return ""

        return cls(
            os=pick("os"),
            app_name=pick("app_name", "appName"),
            app_version=pick("app_version", "appVersion"),
            environment=pick("environment"),
            notes=pick("notes"),
        )


@dataclass
class SessionRecord:
    id: str
    title: str
    system_info: SystemInfo
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    summary: Optional[str] = None
    issue_count: int = 0


@dataclass
class StoredFile:
    """A raw uploaded log file; ``message_id`` is set for files attached to a chat message."""

    id: str
    session_id: str
    filename: str
    content: str
    size: int
    mime_type: str = "text/plain"
    message_id: Optional[str] = None
    uploaded_at: datetime = field(default_factory=_now)


@dataclass
class StoredMessage:
    id: str
    session_id: str
    role: str
    content: str
    created_at: datetime = field(default_factory=_now)


@dataclass
class ConversationSummary:
    """Append-only summary record; only the latest one is consulted."""

    id: str
    session_id: str
    summary: str
    summarized_up_to_id: str
    message_count: int
    created_at: datetime = field(default_factory=_now)


class SessionStore(ABC):
    """Persistence operations the context assembler depends on.

    Lookups of missing sessions or summaries return ``None`` (or empty lists)
    rather than raising.
    """

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        pass

    @abstractmethod
    async def list_files(self, session_id: str) -> List[StoredFile]:
        """Files in upload order."""
        pass

    @abstractmethod
    async def list_messages(self, session_id: str) -> List[StoredMessage]:
        """Messages in creation order."""
        pass

    @abstractmethod
    async def get_latest_summary(self, session_id: str) -> Optional[ConversationSummary]:
        pass

    @abstractmethod
    async def append_summary(
        self,
        session_id: str,
        summary: str,
        summarized_up_to_id: str,
        message_count: int,
    ) -> ConversationSummary:
        pass

    @abstractmethod
    async def create_session(self, title: str, system_info: SystemInfo) -> SessionRecord:
        pass

    @abstractmethod
    async def add_file(
        self,
        session_id: str,
        filename: str,
        content: str,
        size: Optional[int] = None,
        mime_type: str = "text/plain",
        message_id: Optional[str] = None,
    ) -> StoredFile:
        pass

    @abstractmethod
    async def add_message(self, session_id: str, role: str, content: str) -> StoredMessage:
        pass

    @abstractmethod
    async def update_session(
        self,
        session_id: str,
        summary: Optional[str] = None,
        issue_count: Optional[int] = None,
    ) -> None:
        pass


class InMemorySessionStore(SessionStore):
    """Dictionary-backed store used by the CLI and tests."""

    def __init__(self):
        self.sessions: Dict[str, SessionRecord] = {}
        self.files: Dict[str, List[StoredFile]] = {}
        self.messages: Dict[str, List[StoredMessage]] = {}
        self.summaries: Dict[str, List[ConversationSummary]] = {}

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        return self.sessions.get(session_id)

    async def list_files(self, session_id: str) -> List[StoredFile]:
        return list(self.files.get(session_id, []))

    async def list_messages(self, session_id: str) -> List[StoredMessage]:
        return list(self.messages.get(session_id, []))

    async def get_latest_summary(self, session_id: str) -> Optional[ConversationSummary]:
        history = self.summaries.get(session_id)
        return history[-1] if history else None

    async def append_summary(
        self,
        session_id: str,
        summary: str,
        summarized_up_to_id: str,
        message_count: int,
    ) -> ConversationSummary:
        record = ConversationSummary(
            id=_new_id(),
            session_id=session_id,
            summary=summary,
            summarized_up_to_id=summarized_up_to_id,
            message_count=message_count,
        )
        self.summaries.setdefault(session_id, []).append(record)
        return record

    async def create_session(self, title: str, system_info: SystemInfo) -> SessionRecord:
        record = SessionRecord(id=_new_id(), title=title, system_info=system_info)
        self.sessions[record.id] = record
        self.files[record.id] = []
        self.messages[record.id] = []
        return record

    def _require_session(self, session_id: str) -> SessionRecord:
        session = self.sessions.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session: {session_id}")
        return session

    async def add_file(
        self,
        session_id: str,
        filename: str,
        content: str,
        size: Optional[int] = None,
        mime_type: str = "text/plain",
        message_id: Optional[str] = None,
    ) -> StoredFile:
        self._require_session(session_id)
        record = StoredFile(
            id=_new_id(),
            session_id=session_id,
            filename=filename,
            content=content,
            size=size if size is not None else len(content.encode("utf-8")),
            mime_type=mime_type,
            message_id=message_id,
        )
        self.files[session_id].append(record)
        return record

    async def add_message(self, session_id: str, role: str, content: str) -> StoredMessage:
        self._require_session(session_id)
        record = StoredMessage(
            id=_new_id(), session_id=session_id, role=role, content=content
        )
        self.messages[session_id].append(record)
        return record

    async def update_session(
        self,
        session_id: str,
        summary: Optional[str] = None,
        issue_count: Optional[int] = None,
    ) -> None:
        session = self._require_session(session_id)
        if summary is not None:
            session.summary = summary
        if issue_count is not None:
            session.issue_count = issue_count
        session.updated_at = _now()


def _mapping_items(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """Entries under ``key`` in a session export; each one must be a mapping."""
    items = data.get(key) or []
    if not isinstance(items, list):
        raise ValueError(f"'{key}' must be a list, got {type(items).__name__}")
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"Each entry in '{key}' must be a mapping, got {item!r}")
    return items


async def load_session_export(path: str) -> Tuple[InMemorySessionStore, str]:
    """
    Load a YAML or JSON session export into a fresh in-memory store.

    Expected layout::

        title: Jira outage
        system_info: {os: Ubuntu 22.04, app_name: Jira, app_version: "9.4"}
        files:
          - filename: atlassian-jira.log
            path: logs/atlassian-jira.log   # or inline `content:`
        messages:
          - {role: assistant, content: "Initial analysis ..."}
          - {role: user, content: "What about the GC pauses?"}
        summaries:
          - {summary: "...", summarized_up_to: 3}   # index into messages

    Relative file paths resolve against the export's directory.

    Returns:
        Tuple of (store, session_id)
    """
    export_path = Path(path)
    if not export_path.exists():
        raise FileNotFoundError(f"Session export not found: {path}")

    text = export_path.read_text(encoding="utf-8")
    if export_path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"Session export must be a mapping, got {type(data).__name__}")

    store = InMemorySessionStore()
    session = await store.create_session(
        title=str(data.get("title") or export_path.stem),
        system_info=SystemInfo.from_dict(data.get("system_info")),
    )

    for item in _mapping_items(data, "files"):
        if "content" in item:
            content = str(item["content"])
        elif "path" in item:
            file_path = Path(item["path"])
            if not file_path.is_absolute():
                file_path = export_path.parent / file_path
            content = file_path.read_bytes().decode("utf-8", errors="replace")
        else:
            raise ValueError(f"File entry needs 'content' or 'path': {item}")
        await store.add_file(
            session.id,
            filename=str(item.get("filename") or Path(str(item.get("path", "log"))).name),
            content=content,
        )

    messages: List[StoredMessage] = []
    for item in _mapping_items(data, "messages"):
        message = await store.add_message(
            session.id, role=str(item["role"]), content=str(item["content"])
        )
        messages.append(message)

    for item in _mapping_items(data, "summaries"):
        index = int(item["summarized_up_to"])
        if not 0 <= index < len(messages):
            raise ValueError(f"summarized_up_to index {index} is out of range")
        await store.append_summary(
            session.id,
            summary=str(item["summary"]),
            summarized_up_to_id=messages[index].id,
            message_count=int(item.get("message_count", index)),
        )

    logger.info(
        f"Loaded session export {export_path.name}: "
        f"{len(data.get('files') or [])} files, {len(messages)} messages"
    )
    return store, session.id
