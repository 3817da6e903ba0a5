"""Administrative operations: reset and node statistics."""

from __future__ import annotations

import logging

from .models import AdminResult
from .store import LABELS, GraphStore

logger = logging.getLogger(__name__)

CLEAR_QUERY = "MATCH (n) DETACH DELETE n"

NODE_COUNTS_QUERY = """
UNWIND $labels AS label
CALL {
  WITH label
  MATCH (n) WHERE label IN labels(n)
  RETURN count(n) AS count
}
RETURN label, count
"""


class GraphAdmin:
    def __init__(self, store: GraphStore):
        self.store = store

    def clear(self) -> AdminResult:
        """Delete every node and relationship."""
        self.store.write(CLEAR_QUERY)
        logger.info("graph cleared")
        return AdminResult(ok=True, message="Database cleared")

    def node_counts(self) -> dict[str, int]:
        counts = {label: 0 for label in LABELS}
        for rec in self.store.read(NODE_COUNTS_QUERY, labels=list(LABELS)):
            counts[rec["label"]] = int(rec["count"] or 0)
        return counts
