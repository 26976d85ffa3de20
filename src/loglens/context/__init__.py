"""Token-budgeted context assembly for log analysis conversations."""

from loglens.context.builder import (
    ChatContext,
    ContextBuilder,
    ProcessedFile,
    build_system_prompt_context,
    format_files_for_prompt,
)
from loglens.context.config import ContextWindowConfig
from loglens.context.optimizer import ContentOptimizer, OptimizedContent, optimize_log_content
from loglens.context.pipeline import Attachment, ChatPipeline, PreparedTurn
from loglens.context.store import (
    ConversationSummary,
    InMemorySessionStore,
    SessionRecord,
    SessionStore,
    StoredFile,
    StoredMessage,
    SystemInfo,
    load_session_export,
)
from loglens.context.summarizer import (
    ConversationSummarizer,
    SummarizationPlan,
    SummarizationQueue,
    SummarizationTrigger,
    plan_summarization,
)
from loglens.context.window import ContextWindowManager, WindowResult

__all__ = [
    "Attachment",
    "ChatContext",
    "ChatPipeline",
    "ContentOptimizer",
    "ContextBuilder",
    "ContextWindowConfig",
    "ContextWindowManager",
    "ConversationSummarizer",
    "ConversationSummary",
    "InMemorySessionStore",
    "OptimizedContent",
    "PreparedTurn",
    "ProcessedFile",
    "SessionRecord",
    "SessionStore",
    "StoredFile",
    "StoredMessage",
    "SummarizationPlan",
    "SummarizationQueue",
    "SummarizationTrigger",
    "SystemInfo",
    "WindowResult",
    "build_system_prompt_context",
    "format_files_for_prompt",
    "load_session_export",
    "optimize_log_content",
    "plan_summarization",
]
