"""
Synthetic traceability dataset generator.

Seeding runs four ordered phases, each as its own transaction:

1. upsert the reference catalog (suppliers, materials, product models, SUPPLIES)
2. upsert 5 batches for every Supplier -> Material pair
3. create 5..14 serials for every batch
4. create one inspection for every serial created in phase 3

Reference data and batches are MERGEd by natural key, serials and inspections
are always CREATEd, so re-seeding grows the transactional data. A failing
phase aborts the run without rolling back the phases before it.

The random decisions are made here in Python from rows read back from the
store, so the probability model can be exercised without a database.
"""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from typing import Any, Optional

from .models import SeedReport
from .store import GraphStore

logger = logging.getLogger(__name__)

# ────────────────────────────────────────────────────────────────────
# Reference catalog
# ────────────────────────────────────────────────────────────────────

SUPPLIERS = [
    {"supplierId": "S1", "name": "Alpha Components", "qualityGroup": "GOOD"},
    {"supplierId": "S2", "name": "Bravo Metals", "qualityGroup": "GOOD"},
    {"supplierId": "S3", "name": "Charlie Plastics", "qualityGroup": "GOOD"},
    {"supplierId": "S4", "name": "Echo Electronics", "qualityGroup": "GOOD"},
    {"supplierId": "S5", "name": "Delta Supplies", "qualityGroup": "BAD"},
]

MATERIALS = [
    {"materialId": "M1", "name": "Plastic Housing"},
    {"materialId": "M2", "name": "Metal Bracket"},
    {"materialId": "M3", "name": "PCB Board"},
    {"materialId": "M4", "name": "Cable Harness"},
]

PRODUCT_MODELS = [
    {"modelId": "P1", "name": "Widget A"},
    {"modelId": "P2", "name": "Widget B"},
    {"modelId": "P3", "name": "Widget C"},
]

SUPPLIES = {
    "S1": ["M1", "M2"],
    "S2": ["M1", "M3"],
    "S3": ["M2", "M4"],
    "S4": ["M3", "M4"],
    "S5": ["M1", "M2", "M3"],
}

# ── Generation parameters ──

EPOCH = date(2025, 1, 1)
BATCHES_PER_PAIR = 5
RECEIVED_WINDOW_DAYS = 60     # receivedDate = EPOCH + 0..59 days
SERIALS_PER_BATCH = (5, 15)   # half-open: 5..14 serials
PRODUCTION_WINDOW_DAYS = 30   # productionDate = receivedDate + 0..29 days
INSPECTION_DELAY = timedelta(days=1)

REJECT_PROBABILITY = {"BAD": 0.20, "GOOD": 0.03}
DEFECT_CODES = ("CRACK", "DISCOLOR", "DIMENSION", "SCRATCH")

SEED_MESSAGE = (
    "Sample data created. Use /api/suppliers/quality or /api/serial/random to explore it."
)

# ────────────────────────────────────────────────────────────────────
# Cypher
# ────────────────────────────────────────────────────────────────────

UPSERT_SUPPLIERS = """
UNWIND $rows AS row
MERGE (s:Supplier {supplierId: row.supplierId})
SET s.name = row.name, s.qualityGroup = row.qualityGroup
"""

UPSERT_MATERIALS = """
UNWIND $rows AS row
MERGE (m:Material {materialId: row.materialId})
SET m.name = row.name
"""

UPSERT_PRODUCT_MODELS = """
UNWIND $rows AS row
MERGE (pm:ProductModel {modelId: row.modelId})
SET pm.name = row.name
"""

UPSERT_SUPPLIES = """
UNWIND $rows AS row
MATCH (s:Supplier {supplierId: row.supplierId})
MATCH (m:Material {materialId: row.materialId})
MERGE (s)-[:SUPPLIES]->(m)
"""

SUPPLY_PAIRS_QUERY = """
MATCH (s:Supplier)-[:SUPPLIES]->(m:Material)
RETURN s.supplierId AS supplierId, m.materialId AS materialId
ORDER BY supplierId, materialId
"""

UPSERT_BATCHES = """
UNWIND $rows AS row
MATCH (s:Supplier {supplierId: row.supplierId})
MATCH (m:Material {materialId: row.materialId})
MERGE (b:Batch {batchId: row.batchId})
  ON CREATE SET b.receivedDate = row.receivedDate,
                b.lotNumber    = row.lotNumber
MERGE (s)-[:DELIVERED]->(b)
MERGE (b)-[:OF_MATERIAL]->(m)
RETURN count(b) AS batches
"""

BATCHES_QUERY = """
MATCH (s:Supplier)-[:DELIVERED]->(b:Batch)
RETURN b.batchId AS batchId, b.receivedDate AS receivedDate, s.qualityGroup AS qualityGroup
ORDER BY batchId
"""

PRODUCT_MODELS_QUERY = """
MATCH (pm:ProductModel)
RETURN pm.modelId AS modelId
ORDER BY modelId
"""

CREATE_SERIALS = """
UNWIND $rows AS row
MATCH (b:Batch {batchId: row.batchId})
MATCH (pm:ProductModel {modelId: row.modelId})
CREATE (p:Serial {serialNumber: row.serialNumber, productionDate: row.productionDate})
CREATE (b)-[:USED_IN]->(p)
CREATE (p)-[:INSTANCE_OF]->(pm)
RETURN row.serialNumber AS serialNumber, elementId(p) AS nodeId
"""

# Bound by element id: a serial key can repeat across runs, the node cannot.
# The unique Batch key anchors the lookup to one batch's serials.
CREATE_INSPECTIONS = """
UNWIND $rows AS row
MATCH (:Batch {batchId: row.batchId})-[:USED_IN]->(p:Serial)
WHERE elementId(p) = row.nodeId
CREATE (i:Inspection {
  inspectionId: row.inspectionId,
  date: row.date,
  status: row.status,
  defectCode: row.defectCode
})
CREATE (p)-[:HAS_INSPECTION]->(i)
RETURN count(i) AS inspections
"""

# ────────────────────────────────────────────────────────────────────
# Planning (pure)
# ────────────────────────────────────────────────────────────────────


def batch_id(supplier_id: str, material_id: str, n: int) -> str:
    return f"{supplier_id}_{material_id}_B{n}"


def serial_number(batch: str, n: int) -> str:
    return f"SN_{batch}_{n}"


def supply_pairs() -> list[tuple[str, str]]:
    return [(sid, mid) for sid, mids in SUPPLIES.items() for mid in mids]


def reject_probability(quality_group: Optional[str]) -> float:
    """Suppliers outside the BAD group get the GOOD rate."""
    if quality_group == "BAD":
        return REJECT_PROBABILITY["BAD"]
    return REJECT_PROBABILITY["GOOD"]


def plan_batches(pairs: list[tuple[str, str]], rng: random.Random) -> list[dict]:
    batches = []
    for supplier_id, material_id in pairs:
        for n in range(1, BATCHES_PER_PAIR + 1):
            batches.append({
                "batchId": batch_id(supplier_id, material_id, n),
                "supplierId": supplier_id,
                "materialId": material_id,
                "receivedDate": EPOCH + timedelta(days=rng.randrange(RECEIVED_WINDOW_DAYS)),
                "lotNumber": f"LOT-{supplier_id}-{material_id}-{n}",
            })
    return batches


def plan_serials(batches: list[dict], model_ids: list[str], rng: random.Random) -> list[dict]:
    """
    Serials for each batch row (``batchId``, ``receivedDate``, ``qualityGroup``).

    The owning supplier's quality group travels with each serial so the
    inspection phase needs no extra lookup.
    """
    if not model_ids:
        return []

    serials = []
    for batch in batches:
        received = batch.get("receivedDate") or EPOCH
        count = rng.randrange(*SERIALS_PER_BATCH)
        for n in range(1, count + 1):
            serials.append({
                "serialNumber": serial_number(batch["batchId"], n),
                "batchId": batch["batchId"],
                "modelId": rng.choice(model_ids),
                "productionDate": received + timedelta(days=rng.randrange(PRODUCTION_WINDOW_DAYS)),
                "qualityGroup": batch.get("qualityGroup"),
            })
    return serials


def plan_inspection(serial: dict, rng: random.Random) -> dict:
    rejected = rng.random() < reject_probability(serial.get("qualityGroup"))
    return {
        "inspectionId": f"INSP_{serial['serialNumber']}",
        "serialNumber": serial["serialNumber"],
        "date": serial["productionDate"] + INSPECTION_DELAY,
        "status": "REJECT" if rejected else "OK",
        "defectCode": rng.choice(DEFECT_CODES) if rejected else None,
    }


def plan_reference_dataset(rng: random.Random) -> dict[str, list[dict]]:
    """Plan a full dataset from the reference catalog alone, without a store."""
    groups = {s["supplierId"]: s["qualityGroup"] for s in SUPPLIERS}
    batches = plan_batches(supply_pairs(), rng)
    for b in batches:
        b["qualityGroup"] = groups[b["supplierId"]]
    serials = plan_serials(batches, [m["modelId"] for m in PRODUCT_MODELS], rng)
    inspections = [plan_inspection(s, rng) for s in serials]
    return {"batches": batches, "serials": serials, "inspections": inspections}


# ────────────────────────────────────────────────────────────────────
# Seeding against the store
# ────────────────────────────────────────────────────────────────────


def _serial_params(serial: dict) -> dict[str, Any]:
    return {k: serial[k] for k in ("serialNumber", "batchId", "modelId", "productionDate")}


class SeedGenerator:
    def __init__(self, store: GraphStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def seed(self) -> SeedReport:
        self.store.ensure_schema()

        self.upsert_catalog()
        batches = self.upsert_batches()
        serials = self.create_serials()
        inspections = self.create_inspections(serials)

        rejects = sum(1 for i in inspections if i["status"] == "REJECT")
        logger.info(
            "seed complete: %d batches, %d serials, %d inspections (%d rejects)",
            batches, len(serials), len(inspections), rejects,
        )
        return SeedReport(
            ok=True,
            message=SEED_MESSAGE,
            batches=batches,
            serials=len(serials),
            inspections=len(inspections),
            rejects=rejects,
        )

    def upsert_catalog(self) -> None:
        """Phase 1."""
        supplies = [{"supplierId": sid, "materialId": mid} for sid, mid in supply_pairs()]
        self.store.write_many([
            (UPSERT_SUPPLIERS, {"rows": SUPPLIERS}),
            (UPSERT_MATERIALS, {"rows": MATERIALS}),
            (UPSERT_PRODUCT_MODELS, {"rows": PRODUCT_MODELS}),
            (UPSERT_SUPPLIES, {"rows": supplies}),
        ])
        logger.info(
            "catalog upserted: %d suppliers, %d materials, %d product models",
            len(SUPPLIERS), len(MATERIALS), len(PRODUCT_MODELS),
        )

    def upsert_batches(self) -> int:
        """Phase 2: returns the number of batches upserted (new or existing)."""
        pairs = [(r["supplierId"], r["materialId"]) for r in self.store.read(SUPPLY_PAIRS_QUERY)]
        rows = plan_batches(pairs, self.rng)
        if not rows:
            return 0
        [result] = self.store.write_many([(UPSERT_BATCHES, {"rows": rows})])
        count = int(result[0]["batches"]) if result else 0
        logger.info("batches upserted: %d over %d supply pairs", count, len(pairs))
        return count

    def create_serials(self) -> list[dict]:
        """Phase 3: returns the created serials, each carrying its ``nodeId``."""
        batches = self.store.read(BATCHES_QUERY)
        model_ids = [r["modelId"] for r in self.store.read(PRODUCT_MODELS_QUERY)]
        planned = plan_serials(batches, model_ids, self.rng)
        if not planned:
            return []

        [created] = self.store.write_many(
            [(CREATE_SERIALS, {"rows": [_serial_params(s) for s in planned]})]
        )
        node_ids = {r["serialNumber"]: r["nodeId"] for r in created}
        serials = []
        for s in planned:
            if s["serialNumber"] in node_ids:
                serials.append({**s, "nodeId": node_ids[s["serialNumber"]]})
        logger.info("serials created: %d across %d batches", len(serials), len(batches))
        return serials

    def create_inspections(self, serials: list[dict]) -> list[dict]:
        """Phase 4: one inspection per serial created in phase 3."""
        if not serials:
            return []
        inspections = []
        for s in serials:
            inspection = plan_inspection(s, self.rng)
            inspection["nodeId"] = s["nodeId"]
            inspection["batchId"] = s["batchId"]
            inspections.append(inspection)
        self.store.write_many([(CREATE_INSPECTIONS, {"rows": inspections})])
        logger.info("inspections created: %d", len(inspections))
        return inspections
