from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    REFLECTION = "reflection"


@dataclass(frozen=True)
class Message:
    """Single role-tagged entry of a conversation log."""

    role: MessageRole
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", MessageRole(self.role))
        metadata = dict(self.metadata)
        metadata.setdefault("timestamp", time.time())
        object.__setattr__(self, "metadata", metadata)

    @property
    def timestamp(self) -> float:
        return self.metadata["timestamp"]

    def as_chat(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str, **metadata: Any) -> Message:
        return cls(MessageRole.SYSTEM, content, metadata)

    @classmethod
    def user(cls, content: str, **metadata: Any) -> Message:
        return cls(MessageRole.USER, content, metadata)

    @classmethod
    def assistant(cls, content: str, **metadata: Any) -> Message:
        return cls(MessageRole.ASSISTANT, content, metadata)

    @classmethod
    def reflection(cls, content: str, **metadata: Any) -> Message:
        return cls(MessageRole.REFLECTION, content, metadata)
