"""Assemble per-request chat context from persisted session state."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from loglens.ai_providers.base import ProviderMessage
from loglens.context.config import ContextWindowConfig
from loglens.context.optimizer import ContentOptimizer
from loglens.context.store import SessionStore, StoredFile, SystemInfo
from loglens.utils.logger import get_logger
from loglens.utils.token_utils import TokenCounter

logger = get_logger(__name__)

OMITTED_PLACEHOLDER = "[Omitted due to token limit]"
NO_FILES_TEXT = "No log files uploaded"


@dataclass
class ProcessedFile:
    """Budget-optimized view of one uploaded file; derived, never persisted."""

    filename: str
    content: str
    original_size: int
    truncated: bool
    format_summary: Optional[str] = None
    issue_count: int = 0


@dataclass
class ChatContext:
    system_info: SystemInfo
    files: List[ProcessedFile] = field(default_factory=list)
    messages: List[ProviderMessage] = field(default_factory=list)
    system_prompt_context: str = ""


def build_system_prompt_context(
    system_info: SystemInfo, files: Sequence[ProcessedFile]
) -> str:
    """Describe the session's system and uploaded files for the system prompt."""
    info = [
        ("Operating system", system_info.os),
        ("Application", system_info.app_name),
        ("Version", system_info.app_version),
        ("Environment", system_info.environment),
        ("Notes", system_info.notes),
    ]
    info_text = "\n".join(f"- {label}: {value}" for label, value in info if value)

    file_list = "\n".join(
        f"- {f.filename} ({f.original_size} bytes)"
        + (" [partially shown]" if f.truncated else "")
        for f in files
    )

    return (
        "## Session information\n\n"
        f"### System information\n{info_text or 'No information provided'}\n\n"
        f"### Uploaded files\n{file_list or 'None'}"
    )


def format_files_for_prompt(files: Sequence[ProcessedFile]) -> str:
    """Render processed files as fenced blocks for the system prompt."""
    if not files:
        return NO_FILES_TEXT

    return "\n\n".join(
        f"### {file.filename}{' (partially shown)' if file.truncated else ''}\n"
        f"```\n{file.content}\n```"
        for file in files
    )


def format_new_file_for_message(file: ProcessedFile) -> str:
    """Render a file attached to the current turn, appended to the user message."""
    partial = " (partially shown)" if file.truncated else ""
    return f"\n\n### Newly attached file: {file.filename}{partial}\n```\n{file.content}\n```"


class ContextBuilder:
    """Build :class:`ChatContext` objects under the configured file budgets."""

    def __init__(
        self,
        store: SessionStore,
        config: Optional[ContextWindowConfig] = None,
        optimizer: Optional[ContentOptimizer] = None,
    ):
        self.store = store
        self.config = config or ContextWindowConfig()
        self.optimizer = optimizer or ContentOptimizer(
            sample_lines=self.config.detection_sample_lines
        )

    def process_files(self, files: Sequence[StoredFile]) -> List[ProcessedFile]:
        """Optimize session files in upload order against the shared log budget.

        Each file gets ``min(max_file_tokens, remaining)``; once the session-wide
        budget is spent the rest are replaced by a placeholder. Files attached
        to a chat message are skipped because the history already carries them.
        """
        processed: List[ProcessedFile] = []
        total_tokens = 0

        for stored in files:
            if stored.message_id:
                continue

            remaining = self.config.max_log_tokens - total_tokens
            if remaining <= 0:
                logger.info(f"Log budget exhausted, omitting {stored.filename}")
                processed.append(
                    ProcessedFile(
                        filename=stored.filename,
                        content=OMITTED_PLACEHOLDER,
                        original_size=stored.size,
                        truncated=True,
                    )
                )
                continue

            optimized = self.optimizer.optimize(
                stored.content, min(self.config.max_file_tokens, remaining)
            )
            processed.append(
                ProcessedFile(
                    filename=stored.filename,
                    content=optimized.content,
                    original_size=stored.size,
                    truncated=optimized.truncated,
                    format_summary=optimized.summary,
                    issue_count=optimized.issue_count,
                )
            )
            total_tokens += TokenCounter.estimate(optimized.content)

        return processed

    def process_new_file(
        self, filename: str, content: str, max_tokens: Optional[int] = None
    ) -> ProcessedFile:
        """Optimize a file attached to the current message."""
        budget = max_tokens if max_tokens is not None else self.config.max_file_tokens
        optimized = self.optimizer.optimize(content, budget)
        return ProcessedFile(
            filename=filename,
            content=optimized.content,
            original_size=len(content.encode("utf-8")),
            truncated=optimized.truncated,
            format_summary=optimized.summary,
            issue_count=optimized.issue_count,
        )

    async def build_chat_context(self, session_id: str) -> Optional[ChatContext]:
        """Load the session and build its context, or ``None`` if it does not exist."""
        session = await self.store.get_session(session_id)
        if session is None:
            return None

        files = self.process_files(await self.store.list_files(session_id))
        messages = [
            ProviderMessage(content=msg.content, role=msg.role)
            for msg in await self.store.list_messages(session_id)
        ]

        return ChatContext(
            system_info=session.system_info,
            files=files,
            messages=messages,
            system_prompt_context=build_system_prompt_context(
                session.system_info, files
            ),
        )
