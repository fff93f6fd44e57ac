"""Quiz LLM - Completion client, conversation records and search tool."""

from .completion_client import CompletionClient, CompletionProvider, redact_file_data
from .messages import (
    AssistantMessage,
    Conversation,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from .search import SearchToolAdapter

__all__ = [
    "CompletionClient",
    "CompletionProvider",
    "redact_file_data",
    "AssistantMessage",
    "Conversation",
    "SystemMessage",
    "ToolCall",
    "ToolMessage",
    "UserMessage",
    "SearchToolAdapter",
]
