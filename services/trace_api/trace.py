"""Serial trace: inspection outcome, batch, supplier and batch siblings."""

from __future__ import annotations

from .errors import SerialNotFound
from .models import SerialTrace
from .store import GraphStore

UNKNOWN_STATUS = "UNKNOWN"

# Each hop is OPTIONAL so a serial with missing links still resolves, with
# nulls for the parts that could not be found. With several inspections the
# latest by date wins.
SERIAL_TRACE_QUERY = """
MATCH (p:Serial {serialNumber: $serial})
OPTIONAL MATCH (p)-[:HAS_INSPECTION]->(i:Inspection)
WITH p, i ORDER BY i.date DESC
WITH p, head(collect(i)) AS latest
OPTIONAL MATCH (b:Batch)-[:USED_IN]->(p)
OPTIONAL MATCH (s:Supplier)-[:DELIVERED]->(b)
OPTIONAL MATCH (b)-[:USED_IN]->(other:Serial)
WITH p, latest, b, s, collect(DISTINCT other.serialNumber) AS affectedSerials
RETURN p.serialNumber AS serial,
       coalesce(latest.status, $unknown) AS status,
       b.batchId AS batchId,
       s.supplierId AS supplierId,
       s.name AS supplierName,
       affectedSerials
"""


class TraceResolver:
    def __init__(self, store: GraphStore):
        self.store = store

    def trace(self, serial_number: str) -> SerialTrace:
        """
        Reconstruct the supply chain of one serialized unit.

        Raises:
            SerialNotFound: no Serial node has ``serial_number``.
        """
        rows = self.store.read(SERIAL_TRACE_QUERY, serial=serial_number, unknown=UNKNOWN_STATUS)
        if not rows:
            raise SerialNotFound(serial_number)

        rec = rows[0]
        affected = rec.get("affectedSerials") or []
        if rec.get("batchId") is None:
            affected = []
        return SerialTrace(
            serial=rec["serial"],
            status=rec.get("status") or UNKNOWN_STATUS,
            batchId=rec.get("batchId"),
            supplierId=rec.get("supplierId"),
            supplierName=rec.get("supplierName"),
            affectedSerials=list(dict.fromkeys(affected)),
        )
