"""Random serial numbers for exploring the dataset."""

from __future__ import annotations

from .config import DEFAULT_SAMPLE_SIZE
from .store import GraphStore

RANDOM_SERIALS_QUERY = """
MATCH (p:Serial)
WITH p, rand() AS r
ORDER BY r
LIMIT $limit
RETURN p.serialNumber AS serial
"""


class RandomSampler:
    def __init__(self, store: GraphStore, limit: int = DEFAULT_SAMPLE_SIZE):
        self.store = store
        self.limit = min(limit, DEFAULT_SAMPLE_SIZE)

    def sample(self) -> list[str]:
        if self.limit <= 0:
            return []
        rows = self.store.read(RANDOM_SERIALS_QUERY, limit=self.limit)
        return [r["serial"] for r in rows[: self.limit]]
