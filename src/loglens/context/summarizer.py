"""Conversation summarization: planning, the model call and background scheduling."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from loglens.ai_providers.base import BaseProvider, ProviderMessage
from loglens.context.config import ContextWindowConfig
from loglens.context.prompts import SUMMARIZATION_PROMPT, build_summarization_request
from loglens.context.store import ConversationSummary, SessionStore, StoredMessage
from loglens.utils.logger import get_logger
from loglens.utils.token_utils import TokenCounter

logger = get_logger(__name__)

ROLE_LABELS = {"user": "User", "assistant": "Assistant"}


class SummarizationMode(Enum):
    """How the summarized range relates to the previous summary."""

    FULL = "full"  # no usable previous summary
    INCREMENTAL = "incremental"  # only messages after the previous anchor


@dataclass
class SummarizationPlan:
    """Messages to send to the summarizer and the summary text to merge them into."""

    messages: List[StoredMessage]
    mode: SummarizationMode
    previous_summary: Optional[str] = None
    total_tokens: int = 0
    dropped_messages: int = 0


def _cap_to_newest(
    messages: List[StoredMessage], max_tokens: int
) -> List[StoredMessage]:
    """Keep the newest messages whose combined size fits ``max_tokens`` (at least one)."""
    kept: List[StoredMessage] = []
    used = 0
    for message in reversed(messages):
        cost = TokenCounter.estimate(message.content)
        if kept and used + cost > max_tokens:
            break
        kept.append(message)
        used += cost
    kept.reverse()
    return kept


def plan_summarization(
    messages: Sequence[StoredMessage],
    latest_summary: Optional[ConversationSummary],
    config: ContextWindowConfig,
) -> Optional[SummarizationPlan]:
    """
    Decide whether the middle of a conversation needs (re)summarizing.

    Returns None when history is short or under the trigger threshold, or when
    the previous summary already covers every middle message. A previous
    summary anchored inside the middle range makes the plan incremental; an
    anchor outside it (the zones moved) means the range is summarized again
    from scratch. Either way the input is capped at
    ``max_summarization_input_tokens``, newest messages first.
    """
    recent = config.recent_messages_to_keep
    if len(messages) <= recent + 1:
        return None

    total_tokens = TokenCounter.count_messages(messages)
    if total_tokens < config.summarization_trigger_tokens:
        return None

    candidates = list(messages[1:-recent])
    if not candidates:
        return None

    mode = SummarizationMode.FULL
    previous_summary: Optional[str] = None
    selected = candidates

    if latest_summary is not None:
        anchor = next(
            (
                index
                for index, message in enumerate(candidates)
                if message.id == latest_summary.summarized_up_to_id
            ),
            None,
        )
        if anchor == len(candidates) - 1:
            return None
        if anchor is not None:
            mode = SummarizationMode.INCREMENTAL
            previous_summary = latest_summary.summary
            selected = candidates[anchor + 1 :]

    capped = _cap_to_newest(selected, config.max_summarization_input_tokens)
    dropped = len(selected) - len(capped)
    if dropped and latest_summary is not None and previous_summary is None:
        # Older messages fall out of a capped full pass; the last summary still covers them.
        previous_summary = latest_summary.summary

    return SummarizationPlan(
        messages=capped,
        mode=mode,
        previous_summary=previous_summary,
        total_tokens=TokenCounter.count_messages(capped),
        dropped_messages=dropped,
    )


def render_conversation(messages: Sequence[StoredMessage]) -> str:
    return "\n\n".join(
        f"[{ROLE_LABELS.get(msg.role, msg.role)}]: {msg.content}" for msg in messages
    )


class ConversationSummarizer:
    """Call the model with the summarization prompt and persist the result."""

    def __init__(
        self,
        provider: BaseProvider,
        store: SessionStore,
        config: Optional[ContextWindowConfig] = None,
    ):
        self.provider = provider
        self.store = store
        self.config = config or ContextWindowConfig()

    async def summarize(
        self,
        session_id: str,
        messages: Sequence[StoredMessage],
        previous_summary: Optional[str] = None,
    ) -> ConversationSummary:
        if not messages:
            raise ValueError("Cannot summarize an empty message range")

        request = build_summarization_request(
            render_conversation(messages), previous_summary or ""
        )
        response = await self.provider.chat_completion(
            [
                ProviderMessage(content=SUMMARIZATION_PROMPT, role="system"),
                ProviderMessage(content=request, role="user"),
            ],
            max_tokens=self.config.summary_max_tokens,
        )
        if not response or not response.content:
            raise ValueError("AI provider returned empty summary")

        record = await self.store.append_summary(
            session_id,
            summary=response.content,
            summarized_up_to_id=messages[-1].id,
            message_count=len(messages),
        )
        logger.info(
            f"Stored conversation summary for session {session_id}: "
            f"{len(messages)} messages -> {TokenCounter.estimate(response.content)} tokens"
        )
        return record


class SummarizationTrigger:
    """Check a session's history and summarize its middle when it grows too large."""

    def __init__(
        self,
        store: SessionStore,
        summarizer: ConversationSummarizer,
        config: Optional[ContextWindowConfig] = None,
    ):
        self.store = store
        self.summarizer = summarizer
        self.config = config or ContextWindowConfig()

    async def run(self, session_id: str) -> Optional[ConversationSummary]:
        """Plan and summarize; errors propagate to the caller."""
        messages = await self.store.list_messages(session_id)
        latest = await self.store.get_latest_summary(session_id)
        plan = plan_summarization(messages, latest, self.config)
        if plan is None:
            logger.debug(f"No summarization needed for session {session_id}")
            return None

        if plan.dropped_messages:
            logger.warning(
                f"Summarization input capped at {self.config.max_summarization_input_tokens} "
                f"tokens, {plan.dropped_messages} older messages left out"
            )
        logger.info(
            f"Summarizing {len(plan.messages)} messages ({plan.mode.value}) "
            f"for session {session_id}"
        )
        return await self.summarizer.summarize(
            session_id, plan.messages, plan.previous_summary
        )

    async def check_and_summarize_if_needed(
        self, session_id: str
    ) -> Optional[ConversationSummary]:
        """Like :meth:`run`, but failures are logged and reported as ``None``."""
        try:
            return await self.run(session_id)
        except Exception as e:
            logger.error(f"Conversation summarization failed for {session_id}: {e}")
            return None


class SummarizationQueue:
    """
    Background summarization with at most one task in flight per session.

    Failures are kept per session so callers can inspect them; the next
    enqueue for that session retries.
    """

    def __init__(self, trigger: SummarizationTrigger):
        self.trigger = trigger
        self._tasks: Dict[str, asyncio.Task] = {}
        self.failures: Dict[str, BaseException] = {}

    def enqueue(self, session_id: str) -> asyncio.Task:
        """Schedule a check for ``session_id``; reuses a task already running."""
        task = self._tasks.get(session_id)
        if task is not None and not task.done():
            logger.debug(f"Summarization already pending for session {session_id}")
            return task

        task = asyncio.create_task(self._run(session_id))
        self._tasks[session_id] = task
        task.add_done_callback(lambda done: self._forget(session_id, done))
        return task

    def _forget(self, session_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(session_id) is task:
            del self._tasks[session_id]

    async def _run(self, session_id: str) -> Optional[ConversationSummary]:
        try:
            result = await self.trigger.run(session_id)
        except Exception as e:
            self.failures[session_id] = e
            logger.error(f"Background summarization failed for {session_id}: {e}")
            return None
        self.failures.pop(session_id, None)
        return result

    def last_error(self, session_id: str) -> Optional[BaseException]:
        return self.failures.get(session_id)

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def drain(self) -> None:
        """Wait for every scheduled task to finish."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        if tasks:
            await asyncio.gather(*tasks)
