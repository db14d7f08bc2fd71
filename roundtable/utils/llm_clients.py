from __future__ import annotations

import hashlib
import os
import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Sequence, Union

import numpy as np
import openai
import structlog
from openai import AsyncOpenAI

from roundtable.errors import ConfigError, LLMError

logger = structlog.get_logger(__name__)

ChatMessages = Sequence[Dict[str, str]]
TokenCallback = Callable[[str], None]


class ChatModel(ABC):
    """Lightweight interface so agents can swap between real and stub models."""

    @abstractmethod
    async def call(self, messages: ChatMessages) -> str:
        """Return the assembled completion text for an ordered list of chat messages."""


class EmbeddingModel(ABC):
    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Return a fixed-length vector for ``text``."""


class OpenAIChatModel(ChatModel):
    """Chat completions through the ``openai`` SDK, optionally streamed."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        stream: bool = False,
        on_token: TokenCallback | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ConfigError("Missing OPENAI_API_KEY; set it or pass api_key explicitly.")
        self.model = model
        self.temperature = temperature
        self.stream = stream
        self.on_token = on_token
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def call(self, messages: ChatMessages) -> str:
        payload = [_to_openai_message(m) for m in messages]
        try:
            if not self.stream:
                resp = await self._client.chat.completions.create(
                    model=self.model,
                    temperature=self.temperature,
                    messages=payload,
                )
                return (resp.choices[0].message.content or "").strip()
            return await self._call_streaming(payload)
        except openai.OpenAIError as err:
            logger.error("llm_call_failed", provider="openai", model=self.model, error=str(err))
            raise LLMError(
                "openai",
                str(err),
                status_code=getattr(err, "status_code", None),
                cause=err,
            ) from err

    async def _call_streaming(self, payload: List[Dict[str, str]]) -> str:
        stream = await self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=payload,
            stream=True,
        )
        parts: List[str] = []
        async for chunk in stream:
            if not chunk.choices:
                continue
            token = chunk.choices[0].delta.content
            if token:
                parts.append(token)
                if self.on_token:
                    self.on_token(token)
        return "".join(parts).strip()


def _to_openai_message(message: Dict[str, str]) -> Dict[str, str]:
    # The chat API has no reflection role.
    role = message["role"]
    if role == "reflection":
        role = "system"
    return {"role": role, "content": message["content"]}


class OpenAIEmbeddings(EmbeddingModel):
    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ConfigError("Missing OPENAI_API_KEY; set it or pass api_key explicitly.")
        self.model = model
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def embed(self, text: str) -> List[float]:
        try:
            resp = await self._client.embeddings.create(model=self.model, input=text)
        except openai.OpenAIError as err:
            raise LLMError(
                "openai", str(err), status_code=getattr(err, "status_code", None), cause=err
            ) from err
        return list(resp.data[0].embedding)


ScriptedResponse = Union[str, Exception]


class ScriptedChatModel(ChatModel):
    """Replays canned responses in order; used by tests and offline runs.

    ``responses`` may be a list (the last entry repeats once exhausted) or a
    callable receiving the messages of each call.
    """

    def __init__(
        self,
        responses: Iterable[ScriptedResponse] | Callable[[ChatMessages], ScriptedResponse],
    ) -> None:
        if callable(responses):
            self._responder = responses
            self._responses: List[ScriptedResponse] = []
        else:
            self._responder = None
            self._responses = list(responses)
            if not self._responses:
                raise ValueError("ScriptedChatModel needs at least one response")
        self.calls: List[List[Dict[str, str]]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def call(self, messages: ChatMessages) -> str:
        self.calls.append([dict(m) for m in messages])
        if self._responder is not None:
            response = self._responder(messages)
        else:
            idx = min(len(self.calls), len(self._responses)) - 1
            response = self._responses[idx]
        if isinstance(response, Exception):
            raise response
        return response


class EchoChatModel(ChatModel):
    """Fallback implementation used for local runs without external APIs."""

    async def call(self, messages: ChatMessages) -> str:
        last_user = next(
            (m["content"] for m in reversed(list(messages)) if m["role"] == "user"), ""
        )
        return f"FINAL ANSWER: {last_user.strip()}"


class HashingEmbeddings(EmbeddingModel):
    """Deterministic bag-of-words embeddings for tests and offline runs."""

    def __init__(self, dimensions: int = 64) -> None:
        self.dimensions = dimensions

    async def embed(self, text: str) -> List[float]:
        vector = np.zeros(self.dimensions, dtype=float)
        for token in re.findall(r"\w+", text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "little") % self.dimensions] += 1.0
        return vector.tolist()
