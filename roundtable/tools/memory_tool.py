from __future__ import annotations

import uuid
from typing import Any, Dict, List

import structlog

from roundtable.memory.vector_store import InMemoryVectorStore, VectorStoreItem
from roundtable.tools.base import Tool, ToolParameter
from roundtable.utils.llm_clients import EmbeddingModel

logger = structlog.get_logger(__name__)

STORE_PREFIX = "store:"


class MemoryTool(Tool):
    """Lets an agent save notes and recall them later by semantic similarity.

    Queries prefixed with ``store:`` save the remainder; anything else is a
    lookup against the stored notes.
    """

    name = "Memory"
    parameters = [ToolParameter("input", "string", True, "'store: <note>' or a recall query")]

    def __init__(
        self,
        embeddings: EmbeddingModel,
        description: str | None = None,
        top_k: int = 3,
    ) -> None:
        self.embeddings = embeddings
        self.store = InMemoryVectorStore()
        self.top_k = top_k
        self.description = description or (
            "Store or retrieve information from memory. Prefix with 'store:' to save, "
            "or query directly to retrieve."
        )

    async def run(self, query: str, args: Dict[str, Any] | None = None) -> str:
        text = str((args or {}).get("input", query))
        if text.lower().startswith(STORE_PREFIX):
            return await self._store(text[len(STORE_PREFIX) :].strip())
        return await self._retrieve(text)

    async def _store(self, content: str) -> str:
        if not content:
            return "Error: nothing to store."
        try:
            if await self._already_stored(content):
                return "This information is already stored in memory."
            embedding = await self.embeddings.embed(content)
        except Exception as err:
            logger.warning("memory_tool_store_failed", error=str(err))
            return f"Error storing memory: {err}"
        self.store.add_item(
            VectorStoreItem(
                id=f"mem-{uuid.uuid4().hex[:12]}",
                content=content,
                embedding=embedding,
                metadata={"type": "explicit_storage"},
            )
        )
        return f"Successfully stored: {content}"

    async def _retrieve(self, query: str) -> str:
        try:
            hits = await self._relevant(query)
        except Exception as err:
            logger.warning("memory_tool_retrieve_failed", error=str(err))
            return f"Error retrieving memories: {err}"
        if not hits:
            return "No relevant information found in memory."
        lines = [f"{i}. {item.content}" for i, item in enumerate(hits, start=1)]
        return "Relevant stored memories:\n" + "\n".join(lines)

    async def _relevant(self, query: str) -> List[VectorStoreItem]:
        if not len(self.store):
            return []
        embedding = await self.embeddings.embed(query)
        return self.store.similarity_search(embedding, self.top_k)

    async def _already_stored(self, content: str) -> bool:
        lowered = content.lower()
        return any(lowered in item.content.lower() for item in await self._relevant(content))
