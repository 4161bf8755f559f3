"""Data models for conversation context.

Content items and messages are closed sets of frozen dataclasses. Code that
consumes them matches on the concrete classes and ends with ``assert_never``
so a new variant has to be handled everywhere it matters.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union, overload


class Role(str, Enum):
    """Author of a text message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class TextContent:
    """Plain text fragment of a tool output."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImageContent:
    """Image reference inside a tool output. The URL is opaque."""

    url: str
    mime_type: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "url": self.url, "mime_type": self.mime_type}


ContentItem = Union[TextContent, ImageContent]


def content_item_from_dict(d: dict[str, Any]) -> ContentItem:
    kind = d.get("type")
    if kind == "text":
        return TextContent(text=d["text"])
    if kind == "image":
        return ImageContent(url=d["url"], mime_type=d["mime_type"])
    raise ValueError(f"Unknown content item type: {kind!r}")


@dataclass(frozen=True)
class ToolOutput:
    """Result of a tool invocation, as ordered text/image items."""

    values: tuple[ContentItem, ...] = ()
    is_error: bool = False

    def __post_init__(self) -> None:
        # Accept any iterable but always store a tuple.
        object.__setattr__(self, "values", tuple(self.values))

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> ToolOutput:
        return cls(values=(TextContent(text),), is_error=is_error)

    def images(self) -> list[ImageContent]:
        return [item for item in self.values if isinstance(item, ImageContent)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_error": self.is_error,
            "values": [v.to_dict() for v in self.values],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ToolOutput:
        return cls(
            values=tuple(content_item_from_dict(v) for v in d.get("values", [])),
            is_error=d.get("is_error", False),
        )


@dataclass(frozen=True)
class ToolMessage:
    """Result message for a tool call."""

    name: str
    call_id: str
    output: ToolOutput

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "tool",
            "name": self.name,
            "call_id": self.call_id,
            "output": self.output.to_dict(),
        }


@dataclass(frozen=True)
class TextMessage:
    """A role-tagged text message."""

    role: Role
    content: str
    tool_calls: tuple[dict[str, Any], ...] | None = None
    model: str | None = None
    reasoning_details: tuple[dict[str, Any], ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        # Copy so later changes to the caller's lists do not leak in.
        if self.tool_calls is not None:
            object.__setattr__(self, "tool_calls", tuple(dict(c) for c in self.tool_calls))
        if self.reasoning_details is not None:
            object.__setattr__(
                self, "reasoning_details", tuple(dict(r) for r in self.reasoning_details)
            )

    @classmethod
    def user(cls, content: str) -> TextMessage:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, **kwargs: Any) -> TextMessage:
        return cls(role=Role.ASSISTANT, content=content, **kwargs)

    @classmethod
    def system(cls, content: str) -> TextMessage:
        return cls(role=Role.SYSTEM, content=content)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "type": "text",
            "role": self.role.value,
            "content": self.content,
        }
        if self.tool_calls is not None:
            d["tool_calls"] = [dict(c) for c in self.tool_calls]
        if self.model is not None:
            d["model"] = self.model
        if self.reasoning_details is not None:
            d["reasoning_details"] = [dict(r) for r in self.reasoning_details]
        return d


@dataclass(frozen=True)
class ImageMessage:
    """A standalone image attachment."""

    url: str
    mime_type: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "url": self.url, "mime_type": self.mime_type}


Message = Union[ToolMessage, TextMessage, ImageMessage]


def message_from_dict(d: dict[str, Any]) -> Message:
    kind = d.get("type")
    if kind == "tool":
        return ToolMessage(
            name=d["name"],
            call_id=d["call_id"],
            output=ToolOutput.from_dict(d["output"]),
        )
    if kind == "text":
        return TextMessage(
            role=Role(d["role"]),
            content=d["content"],
            tool_calls=d.get("tool_calls"),
            model=d.get("model"),
            reasoning_details=d.get("reasoning_details"),
        )
    if kind == "image":
        return ImageMessage(url=d["url"], mime_type=d["mime_type"])
    raise ValueError(f"Unknown message type: {kind!r}")


@dataclass(frozen=True)
class Context:
    """Ordered, immutable sequence of messages sent to a model."""

    messages: tuple[Message, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", tuple(self.messages))

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    @overload
    def __getitem__(self, index: int) -> Message: ...

    @overload
    def __getitem__(self, index: slice) -> Context: ...

    def __getitem__(self, index: int | slice) -> Message | Context:
        if isinstance(index, slice):
            return Context(self.messages[index])
        return self.messages[index]

    def append(self, message: Message) -> Context:
        """Return a new context with ``message`` added at the end."""
        return Context(self.messages + (message,))

    def extend(self, messages: Iterable[Message]) -> Context:
        return Context(self.messages + tuple(messages))

    def turn_count(self) -> int:
        """Number of turns, counted as user-authored text messages."""
        return sum(
            1
            for m in self.messages
            if isinstance(m, TextMessage) and m.role == Role.USER
        )

    def to_dict(self) -> dict[str, Any]:
        return {"messages": [m.to_dict() for m in self.messages]}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Context:
        return cls(tuple(message_from_dict(m) for m in d.get("messages", [])))


@dataclass
class Conversation:
    """Persisted conversation state a context is built from."""

    conversation_id: int
    created_at: datetime
    updated_at: datetime
    context: Context = field(default_factory=Context)
    agent_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "context": self.context.to_dict(),
            "agent_id": self.agent_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Conversation:
        return cls(
            conversation_id=d["conversation_id"],
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]),
            context=Context.from_dict(d.get("context", {})),
            agent_id=d.get("agent_id"),
        )
