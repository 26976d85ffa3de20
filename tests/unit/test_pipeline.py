"""Unit tests for the session/chat pipeline."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from loglens.ai_providers.base import (
    BaseProvider,
    ProviderError,
    ProviderMessage,
    ProviderResponse,
)
from loglens.context.config import ContextWindowConfig
from loglens.context.pipeline import (
    ATTACHMENT_ONLY_MESSAGE,
    ATTACHMENT_ONLY_REQUEST,
    Attachment,
    ChatPipeline,
)
from loglens.context.prompts import INITIAL_ANALYSIS_FALLBACK, SYSTEM_PROMPT
from loglens.context.store import InMemorySessionStore, SystemInfo


@pytest.fixture
def mock_provider():
    provider = MagicMock(spec=BaseProvider)
    provider.chat_completion = AsyncMock(
        return_value=ProviderResponse(content="## Summary\nIndex is locked.", model="test-model")
    )
    return provider


class TestStartSession:
    """Test the initial analysis flow."""

    @pytest.mark.asyncio
    async def test_start_session_stores_analysis(self, mock_provider, atlassian_log):
        store = InMemorySessionStore()
        pipeline = ChatPipeline(store, provider=mock_provider)

        session = await pipeline.start_session(
            [Attachment(filename="jira.log", content=atlassian_log)],
            SystemInfo(app_name="Jira", app_version="9.4"),
        )

        assert session.title == "Jira log analysis"
        assert session.summary == "## Summary\nIndex is locked."
        assert session.issue_count == 2

        files = await store.list_files(session.id)
        assert [f.filename for f in files] == ["jira.log"]
        assert files[0].message_id is None

        messages = await store.list_messages(session.id)
        assert [(m.role, m.content) for m in messages] == [
            ("assistant", "## Summary\nIndex is locked.")
        ]

        sent = mock_provider.chat_completion.call_args.args[0]
        assert sent[0] == ProviderMessage(content=SYSTEM_PROMPT, role="system")
        assert sent[1].role == "user"
        assert "- Application: Jira" in sent[1].content
        assert "### jira.log" in sent[1].content
        assert "Indexing failed" in sent[1].content

    @pytest.mark.asyncio
    async def test_provider_failure_uses_fallback(self, mock_provider):
        mock_provider.chat_completion.side_effect = ProviderError("down")
        store = InMemorySessionStore()

        session = await ChatPipeline(store, provider=mock_provider).start_session(
            [Attachment(filename="app.log", content="hello\n")]
        )

        assert session.title == "Log analysis"
        messages = await store.list_messages(session.id)
        assert messages[0].content == INITIAL_ANALYSIS_FALLBACK

    @pytest.mark.asyncio
    async def test_no_files_is_rejected(self, mock_provider):
        pipeline = ChatPipeline(InMemorySessionStore(), provider=mock_provider)
        with pytest.raises(ValueError):
            await pipeline.start_session([])

    @pytest.mark.asyncio
    async def test_missing_provider_is_an_error(self):
        pipeline = ChatPipeline(InMemorySessionStore())
        with pytest.raises(RuntimeError):
            await pipeline.start_session([Attachment(filename="a.log", content="x")])


async def _seeded_session(store):
    session = await store.create_session("Jira", SystemInfo(os="Ubuntu 22.04"))
    await store.add_file(session.id, "jira.log", "2024-01-15 ERROR boom\n")
    await store.add_message(session.id, "assistant", "initial analysis")
    return session.id


class TestPrepareTurn:
    """Test prompt assembly for follow-up turns."""

    @pytest.mark.asyncio
    async def test_unknown_session_returns_none(self):
        pipeline = ChatPipeline(InMemorySessionStore())
        assert await pipeline.prepare_turn("missing", "hello") is None

    @pytest.mark.asyncio
    async def test_empty_turn_is_rejected(self):
        pipeline = ChatPipeline(InMemorySessionStore())
        with pytest.raises(ValueError):
            await pipeline.prepare_turn("any")

    @pytest.mark.asyncio
    async def test_prepares_text_turn(self):
        store = InMemorySessionStore()
        session_id = await _seeded_session(store)

        prepared = await ChatPipeline(store).prepare_turn(session_id, "What is wrong?")

        assert prepared.system_prompt.startswith(SYSTEM_PROMPT)
        assert "- Operating system: Ubuntu 22.04" in prepared.system_prompt
        assert "## Initially uploaded log files\n### jira.log" in prepared.system_prompt
        assert "Files under analysis: jira.log" in prepared.system_prompt
        assert [(m.role, m.content) for m in prepared.messages] == [
            ("assistant", "initial analysis"),
            ("user", "What is wrong?"),
        ]
        assert prepared.window.windowed is False

        stored = await store.list_messages(session_id)
        assert stored[-1].id == prepared.user_message_id
        assert stored[-1].content == "What is wrong?"

        provider_messages = prepared.provider_messages()
        assert provider_messages[0].role == "system"
        assert provider_messages[1:] == prepared.messages

    @pytest.mark.asyncio
    async def test_attachments_are_linked_to_the_message(self):
        store = InMemorySessionStore()
        session_id = await _seeded_session(store)

        prepared = await ChatPipeline(store).prepare_turn(
            session_id, attachments=[Attachment(filename="gc.log", content="GC pause 12s\n")]
        )

        files = await store.list_files(session_id)
        attached = [f for f in files if f.filename == "gc.log"]
        assert len(attached) == 1
        assert attached[0].message_id == prepared.user_message_id
        assert prepared.attached_file_ids == [attached[0].id]

        stored = await store.list_messages(session_id)
        assert stored[-1].content == ATTACHMENT_ONLY_MESSAGE

        current = prepared.messages[-1].content
        assert current.startswith(ATTACHMENT_ONLY_REQUEST)
        assert "### Newly attached file: gc.log\n```\nGC pause 12s\n```" in current

        # Attached files stay out of the system prompt
        assert "gc.log" not in prepared.system_prompt

    @pytest.mark.asyncio
    async def test_long_history_is_windowed(self):
        store = InMemorySessionStore()
        session_id = await _seeded_session(store)
        for i in range(10):
            await store.add_message(session_id, "user", f"question {i} " + "x" * 1000)
            await store.add_message(session_id, "assistant", f"answer {i} " + "y" * 1000)

        config = ContextWindowConfig(
            max_context_tokens=3000,
            max_output_tokens=100,
            safety_margin=100,
            recent_messages_to_keep=4,
        )
        prepared = await ChatPipeline(store, config=config).prepare_turn(
            session_id, "latest question"
        )

        window = prepared.window
        assert window.windowed is True
        assert window.summary_applied is False
        assert prepared.messages[0].content == "initial analysis"
        assert prepared.messages[-1].content == "latest question"
        assert len(prepared.messages) == 5


class TestCompleteTurn:
    """Test the model call after a prepared turn."""

    @pytest.mark.asyncio
    async def test_reply_is_stored_and_summarization_scheduled(self, mock_provider):
        store = InMemorySessionStore()
        session_id = await _seeded_session(store)
        queue = MagicMock()
        pipeline = ChatPipeline(store, provider=mock_provider, summarization_queue=queue)

        response = await pipeline.chat(session_id, "Any fix?")

        assert response.content == "## Summary\nIndex is locked."
        stored = await store.list_messages(session_id)
        assert [(m.role, m.content) for m in stored][-2:] == [
            ("user", "Any fix?"),
            ("assistant", "## Summary\nIndex is locked."),
        ]
        queue.enqueue.assert_called_once_with(session_id)

        sent = mock_provider.chat_completion.call_args.args[0]
        assert sent[0].role == "system"
        assert sent[-1] == ProviderMessage(content="Any fix?", role="user")

    @pytest.mark.asyncio
    async def test_chat_unknown_session(self, mock_provider):
        pipeline = ChatPipeline(InMemorySessionStore(), provider=mock_provider)
        assert await pipeline.chat("missing", "hi") is None
        mock_provider.chat_completion.assert_not_called()
