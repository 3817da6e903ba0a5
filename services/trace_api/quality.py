"""Per-supplier rejection rates over inspected serials."""

from __future__ import annotations

from .models import SupplierQuality
from .store import GraphStore

# Counting is DISTINCT on the serial so a serial with several inspections is
# counted once, and rejected once if any of them is a REJECT.
SUPPLIER_QUALITY_QUERY = """
MATCH (s:Supplier)-[:DELIVERED]->(:Batch)-[:USED_IN]->(p:Serial)-[:HAS_INSPECTION]->(i:Inspection)
WITH s, count(DISTINCT p) AS total,
     count(DISTINCT CASE WHEN i.status = 'REJECT' THEN p END) AS rejected
RETURN s.supplierId AS supplierId,
       s.name       AS supplier,
       total,
       rejected
"""


def reject_rate(rejected: int, total: int) -> float:
    return 100.0 * rejected / total


class QualityAnalytics:
    def __init__(self, store: GraphStore):
        self.store = store

    def supplier_quality(self) -> list[SupplierQuality]:
        """Suppliers with at least one inspected serial, worst reject rate first."""
        rows = []
        for rec in self.store.read(SUPPLIER_QUALITY_QUERY):
            total = int(rec["total"] or 0)
            if not total:
                continue
            rejected = int(rec["rejected"] or 0)
            rows.append(
                SupplierQuality(
                    supplierId=rec["supplierId"],
                    supplier=rec["supplier"],
                    total=total,
                    rejected=rejected,
                    rejectRatePercent=reject_rate(rejected, total),
                )
            )
        # sorted() is stable: ties keep the traversal order
        return sorted(rows, key=lambda r: r.rejectRatePercent, reverse=True)
