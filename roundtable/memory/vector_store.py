from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np


@dataclass
class VectorStoreItem:
    id: str
    content: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise ValueError("Vectors must be the same length for cosine similarity.")
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class InMemoryVectorStore:
    """Naive in-process vector store with cosine similarity search."""

    def __init__(self, max_items: int | None = None) -> None:
        self.max_items = max_items
        self._items: List[VectorStoreItem] = []

    def add_item(self, item: VectorStoreItem) -> None:
        self._items.append(item)
        if self.max_items is not None and len(self._items) > self.max_items:
            self._items.pop(0)

    def all_items(self) -> List[VectorStoreItem]:
        return list(self._items)

    def similarity_search(self, query_embedding: Sequence[float], k: int = 3) -> List[VectorStoreItem]:
        if k <= 0 or not self._items:
            return []
        scores = [cosine_similarity(item.embedding, query_embedding) for item in self._items]
        # stable on ties: earlier items win
        order = sorted(range(len(scores)), key=lambda i: -scores[i])
        return [self._items[i] for i in order[:k]]

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)
