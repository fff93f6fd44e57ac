"""Conversation Messages - Role-tagged records for the chat completion loop."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    """Function call requested by the assistant.

    Attributes:
        id: Provider-assigned call id, echoed back in the ToolMessage
        name: Function name
        arguments: Raw JSON text of the arguments
    """

    id: str
    name: str
    arguments: str = "{}"

    def parsed_arguments(self) -> dict[str, Any]:
        """Decoded arguments; malformed JSON degrades to an empty dict."""
        try:
            parsed = json.loads(self.arguments or "{}")
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Malformed arguments for tool call {self.id}: {self.arguments!r}")
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "ToolCall":
        function = data.get("function") or {}
        arguments = function.get("arguments", "{}")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(id=data.get("id", ""), name=function.get("name", ""), arguments=arguments)


@dataclass(frozen=True)
class SystemMessage:
    content: str
    role: Literal["system"] = field(default="system", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class UserMessage:
    """User turn; ``content`` is plain text or a list of content parts."""

    content: str | list[dict[str, Any]]
    role: Literal["user"] = field(default="user", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class AssistantMessage:
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    role: Literal["assistant"] = field(default="assistant", init=False)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            payload["tool_calls"] = [call.to_payload() for call in self.tool_calls]
        return payload

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "AssistantMessage":
        """Builds the record from ``choices[0].message``."""
        calls = tuple(ToolCall.from_payload(c) for c in data.get("tool_calls") or [])
        return cls(content=data.get("content"), tool_calls=calls)


@dataclass(frozen=True)
class ToolMessage:
    tool_call_id: str
    name: str
    content: str
    role: Literal["tool"] = field(default="tool", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "tool_call_id": self.tool_call_id,
            "name": self.name,
            "content": self.content,
        }


Message = Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage]


class Conversation:
    """Append-only ordered list of messages sent with each request.

    Example:
        >>> convo = Conversation([SystemMessage("You write quizzes.")])
        >>> convo.append(UserMessage("Make one."))
        >>> [m["role"] for m in convo.to_payload()]
        ['system', 'user']
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: list[Message] = list(messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def to_payload(self) -> list[dict[str, Any]]:
        return [message.to_payload() for message in self._messages]

    def __len__(self) -> int:
        return len(self._messages)
