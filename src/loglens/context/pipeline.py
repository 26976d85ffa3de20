"""Session start and chat turns: the glue between store, context assembly and the model."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from loglens.ai_providers.base import BaseProvider, ProviderMessage, ProviderResponse
from loglens.context.builder import (
    ContextBuilder,
    format_files_for_prompt,
    format_new_file_for_message,
)
from loglens.context.config import ContextWindowConfig
from loglens.context.prompts import (
    INITIAL_ANALYSIS_FALLBACK,
    SYSTEM_PROMPT,
    build_follow_up_context,
    build_initial_analysis_prompt,
)
from loglens.context.store import SessionRecord, SessionStore, SystemInfo
from loglens.context.summarizer import SummarizationQueue
from loglens.context.window import ContextWindowManager, WindowResult
from loglens.utils.logger import get_logger

logger = get_logger(__name__)

ATTACHMENT_ONLY_MESSAGE = "(file attached)"
ATTACHMENT_ONLY_REQUEST = "Please analyze the attached files."
SESSION_SUMMARY_CHARS = 500


@dataclass
class Attachment:
    """A file supplied by the user, before it is stored."""

    filename: str
    content: str
    mime_type: str = "text/plain"
    size: Optional[int] = None


@dataclass
class PreparedTurn:
    """Everything needed to send one chat turn to the model."""

    session_id: str
    system_prompt: str
    window: WindowResult
    user_message_id: str
    attached_file_ids: List[str] = field(default_factory=list)

    @property
    def messages(self) -> List[ProviderMessage]:
        return self.window.messages

    def provider_messages(self) -> List[ProviderMessage]:
        return [ProviderMessage(content=self.system_prompt, role="system"), *self.messages]


class ChatPipeline:
    """
    Drive a log analysis session.

    ``start_session`` stores the uploaded files and the initial analysis as the
    first assistant message. ``prepare_turn`` persists a user turn and builds
    the windowed prompt; ``complete_turn`` calls the model, stores the reply and
    schedules background summarization.
    """

    def __init__(
        self,
        store: SessionStore,
        provider: Optional[BaseProvider] = None,
        config: Optional[ContextWindowConfig] = None,
        summarization_queue: Optional[SummarizationQueue] = None,
    ):
        self.store = store
        self.provider = provider
        self.config = config or ContextWindowConfig()
        self.builder = ContextBuilder(store, self.config)
        self.window = ContextWindowManager(self.config)
        self.summarization_queue = summarization_queue

    def _require_provider(self) -> BaseProvider:
        if self.provider is None:
            raise RuntimeError("No AI provider configured for this pipeline")
        return self.provider

    async def start_session(
        self,
        files: Sequence[Attachment],
        system_info: Optional[SystemInfo] = None,
        title: Optional[str] = None,
    ) -> SessionRecord:
        if not files:
            raise ValueError("At least one log file is required to start a session")

        system_info = system_info or SystemInfo()
        session = await self.store.create_session(
            title=title
            or (f"{system_info.app_name} log analysis" if system_info.app_name else "Log analysis"),
            system_info=system_info,
        )
        stored = [
            await self.store.add_file(
                session.id,
                filename=f.filename,
                content=f.content,
                size=f.size,
                mime_type=f.mime_type,
            )
            for f in files
        ]

        processed = self.builder.process_files(stored)
        prompt = build_initial_analysis_prompt(system_info, processed)
        provider = self._require_provider()

        try:
            response = await provider.chat_completion(
                [
                    ProviderMessage(content=SYSTEM_PROMPT, role="system"),
                    ProviderMessage(content=prompt, role="user"),
                ],
                max_tokens=self.config.max_output_tokens,
            )
            analysis = response.content
        except Exception as e:
            logger.error(f"Initial analysis failed for session {session.id}: {e}")
            analysis = INITIAL_ANALYSIS_FALLBACK

        await self.store.add_message(session.id, role="assistant", content=analysis)
        await self.store.update_session(
            session.id,
            summary=analysis[:SESSION_SUMMARY_CHARS],
            issue_count=sum(f.issue_count for f in processed),
        )

        logger.info(
            f"Started session {session.id} with {len(files)} files "
            f"({sum(f.truncated for f in processed)} truncated)"
        )
        return await self.store.get_session(session.id)

    async def prepare_turn(
        self,
        session_id: str,
        message: str = "",
        attachments: Sequence[Attachment] = (),
    ) -> Optional[PreparedTurn]:
        """Persist the user turn and assemble the prompt; ``None`` for unknown sessions."""
        if not message and not attachments:
            raise ValueError("A message or at least one attachment is required")

        context = await self.builder.build_chat_context(session_id)
        if context is None:
            return None

        user_message = await self.store.add_message(
            session_id, role="user", content=message or ATTACHMENT_ONLY_MESSAGE
        )

        attached_ids: List[str] = []
        new_file_context = ""
        for attachment in attachments:
            stored = await self.store.add_file(
                session_id,
                filename=attachment.filename,
                content=attachment.content,
                size=attachment.size,
                mime_type=attachment.mime_type,
                message_id=user_message.id,
            )
            attached_ids.append(stored.id)
            new_file_context += format_new_file_for_message(
                self.builder.process_new_file(attachment.filename, attachment.content)
            )

        current = (
            f"{message or ATTACHMENT_ONLY_REQUEST}{new_file_context}"
            if new_file_context
            else message
        )

        system_prompt = (
            f"{SYSTEM_PROMPT}\n\n{context.system_prompt_context}\n\n"
            f"## Initially uploaded log files\n{format_files_for_prompt(context.files)}\n\n"
            f"{build_follow_up_context(context.system_info, context.files)}"
        )

        history = [*context.messages, ProviderMessage(content=current, role="user")]
        latest_summary = await self.store.get_latest_summary(session_id)
        window = self.window.apply(history, system_prompt, latest_summary)

        return PreparedTurn(
            session_id=session_id,
            system_prompt=system_prompt,
            window=window,
            user_message_id=user_message.id,
            attached_file_ids=attached_ids,
        )

    async def complete_turn(self, prepared: PreparedTurn) -> ProviderResponse:
        provider = self._require_provider()
        response = await provider.chat_completion(
            prepared.provider_messages(), max_tokens=self.config.max_output_tokens
        )

        await self.store.add_message(
            prepared.session_id, role="assistant", content=response.content
        )
        await self.store.update_session(prepared.session_id)

        if self.summarization_queue is not None:
            self.summarization_queue.enqueue(prepared.session_id)
        return response

    async def chat(
        self,
        session_id: str,
        message: str = "",
        attachments: Sequence[Attachment] = (),
    ) -> Optional[ProviderResponse]:
        prepared = await self.prepare_turn(session_id, message, attachments)
        if prepared is None:
            return None
        return await self.complete_turn(prepared)
