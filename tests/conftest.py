"""
Pytest fixtures for Trace-API tests.

Provides:
- FakeStore: records statements and answers reads from canned rows
- MemoryGraphStore: an in-memory traceability graph that answers the
  service's Cypher statements with equivalent Python lookups
- TestClient wired to either store through ``dependency_overrides``
- A live Neo4j store for ``integration`` tests (skipped unless configured)
"""

import os
import random
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient

from trace_api import admin, quality, sampler, seed, trace
from trace_api.main import app, get_store


class FakeStore:
    """Answers each query with ``responses[query]``: rows, a callable or an exception."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.reads = []
        self.writes = []
        self.transactions = []
        self.schema_ensured = 0

    def _answer(self, query, params):
        resp = self.responses.get(query, [])
        if isinstance(resp, Exception):
            raise resp
        if callable(resp):
            return resp(params)
        return [dict(r) for r in resp]

    def read(self, query, **params):
        self.reads.append((query, params))
        return self._answer(query, params)

    def write(self, query, **params):
        self.writes.append((query, params))
        return self._answer(query, params)

    def write_many(self, statements):
        statements = list(statements)
        self.transactions.append(statements)
        return [self._answer(q, p) for q, p in statements]

    def ensure_schema(self):
        self.schema_ensured += 1

    def close(self):
        pass


class MemoryGraphStore:
    """Traceability graph held in dicts, dispatching on the query constants."""

    def __init__(self, rng=None):
        self.rng = rng or random.Random(7)
        self.failures = {}
        self.schema_ensured = 0
        self.reset()
        self.handlers = {
            seed.UPSERT_SUPPLIERS: self._upsert_suppliers,
            seed.UPSERT_MATERIALS: self._upsert_materials,
            seed.UPSERT_PRODUCT_MODELS: self._upsert_models,
            seed.UPSERT_SUPPLIES: self._upsert_supplies,
            seed.SUPPLY_PAIRS_QUERY: self._supply_pairs,
            seed.UPSERT_BATCHES: self._upsert_batches,
            seed.BATCHES_QUERY: self._batches,
            seed.PRODUCT_MODELS_QUERY: self._models,
            seed.CREATE_SERIALS: self._create_serials,
            seed.CREATE_INSPECTIONS: self._create_inspections,
            quality.SUPPLIER_QUALITY_QUERY: self._quality,
            trace.SERIAL_TRACE_QUERY: self._trace,
            sampler.RANDOM_SERIALS_QUERY: self._random,
            admin.CLEAR_QUERY: self._clear,
            admin.NODE_COUNTS_QUERY: self._counts,
        }

    def reset(self):
        self.suppliers = {}
        self.materials = {}
        self.models = {}
        self.supplies = set()
        self.batches = {}
        self.serials = []
        self.inspections = []
        self._next_id = 0

    # ── store interface ──

    def _run(self, query, params):
        if query in self.failures:
            raise self.failures[query]
        return self.handlers[query](params)

    def read(self, query, **params):
        return self._run(query, params)

    def write(self, query, **params):
        return self._run(query, params)

    def write_many(self, statements):
        return [self._run(q, p) for q, p in statements]

    def ensure_schema(self):
        self.schema_ensured += 1

    def close(self):
        pass

    # ── helpers for building fixtures by hand ──

    def add_serial(self, serial_number, batch_id=None, production_date=None):
        self._next_id += 1
        node = {
            "nodeId": f"serial-{self._next_id}",
            "serialNumber": serial_number,
            "batchId": batch_id,
            "productionDate": production_date,
            "modelId": None,
        }
        self.serials.append(node)
        return node

    def add_inspection(self, node, status, date, defect_code=None):
        self.inspections.append({
            "nodeId": node["nodeId"],
            "inspectionId": f"INSP_{node['serialNumber']}",
            "date": date,
            "status": status,
            "defectCode": defect_code,
        })

    # ── writes ──

    def _upsert_suppliers(self, params):
        for row in params["rows"]:
            self.suppliers[row["supplierId"]] = dict(row)
        return []

    def _upsert_materials(self, params):
        for row in params["rows"]:
            self.materials[row["materialId"]] = dict(row)
        return []

    def _upsert_models(self, params):
        for row in params["rows"]:
            self.models[row["modelId"]] = dict(row)
        return []

    def _upsert_supplies(self, params):
        for row in params["rows"]:
            if row["supplierId"] in self.suppliers and row["materialId"] in self.materials:
                self.supplies.add((row["supplierId"], row["materialId"]))
        return []

    def _upsert_batches(self, params):
        count = 0
        for row in params["rows"]:
            if row["supplierId"] in self.suppliers and row["materialId"] in self.materials:
                self.batches.setdefault(row["batchId"], {
                    "batchId": row["batchId"],
                    "supplierId": row["supplierId"],
                    "materialId": row["materialId"],
                    "receivedDate": row["receivedDate"],
                    "lotNumber": row["lotNumber"],
                })
                count += 1
        return [{"batches": count}]

    def _create_serials(self, params):
        created = []
        for row in params["rows"]:
            if row["batchId"] in self.batches and row["modelId"] in self.models:
                node = self.add_serial(row["serialNumber"], row["batchId"], row["productionDate"])
                node["modelId"] = row["modelId"]
                created.append({"serialNumber": node["serialNumber"], "nodeId": node["nodeId"]})
        return created

    def _create_inspections(self, params):
        by_id = {s["nodeId"]: s for s in self.serials}
        count = 0
        for row in params["rows"]:
            node = by_id.get(row["nodeId"])
            if node is not None and node["batchId"] == row["batchId"]:
                self.add_inspection(node, row["status"], row["date"], row["defectCode"])
                self.inspections[-1]["inspectionId"] = row["inspectionId"]
                count += 1
        return [{"inspections": count}]

    def _clear(self, params):
        self.reset()
        return []

    # ── reads ──

    def _supply_pairs(self, params):
        return [{"supplierId": s, "materialId": m} for s, m in sorted(self.supplies)]

    def _batches(self, params):
        return [
            {
                "batchId": b["batchId"],
                "receivedDate": b["receivedDate"],
                "qualityGroup": self.suppliers[b["supplierId"]]["qualityGroup"],
            }
            for b in sorted(self.batches.values(), key=lambda b: b["batchId"])
        ]

    def _models(self, params):
        return [{"modelId": m} for m in sorted(self.models)]

    def _inspections_of(self, node):
        return [i for i in self.inspections if i["nodeId"] == node["nodeId"]]

    def _quality(self, params):
        rows = []
        for sid, supplier in self.suppliers.items():
            inspected, rejected = set(), set()
            for node in self.serials:
                batch = self.batches.get(node["batchId"])
                if batch is None or batch["supplierId"] != sid:
                    continue
                statuses = [i["status"] for i in self._inspections_of(node)]
                if statuses:
                    inspected.add(node["nodeId"])
                if "REJECT" in statuses:
                    rejected.add(node["nodeId"])
            if inspected:
                rows.append({
                    "supplierId": sid,
                    "supplier": supplier["name"],
                    "total": len(inspected),
                    "rejected": len(rejected),
                })
        return rows

    def _trace(self, params):
        rows = []
        for node in self.serials:
            if node["serialNumber"] != params["serial"]:
                continue
            inspections = sorted(self._inspections_of(node), key=lambda i: i["date"], reverse=True)
            batch = self.batches.get(node["batchId"])
            supplier = self.suppliers.get(batch["supplierId"]) if batch else None
            affected = []
            if batch:
                for other in self.serials:
                    if other["batchId"] == batch["batchId"] and other["serialNumber"] not in affected:
                        affected.append(other["serialNumber"])
            rows.append({
                "serial": node["serialNumber"],
                "status": inspections[0]["status"] if inspections else params["unknown"],
                "batchId": batch["batchId"] if batch else None,
                "supplierId": supplier["supplierId"] if supplier else None,
                "supplierName": supplier["name"] if supplier else None,
                "affectedSerials": affected,
            })
        return rows

    def _random(self, params):
        picked = self.rng.sample(self.serials, min(params["limit"], len(self.serials)))
        return [{"serial": s["serialNumber"]} for s in picked]

    def _counts(self, params):
        counts = defaultdict(int, {
            "Supplier": len(self.suppliers),
            "Material": len(self.materials),
            "ProductModel": len(self.models),
            "Batch": len(self.batches),
            "Serial": len(self.serials),
            "Inspection": len(self.inspections),
        })
        return [{"label": label, "count": counts[label]} for label in params["labels"]]


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def graph():
    return MemoryGraphStore()


@pytest.fixture
def seeded_graph(graph):
    seed.SeedGenerator(graph, random.Random(42)).seed()
    return graph


def _client_for(store):
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


@pytest.fixture
def client(graph):
    yield _client_for(graph)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_client(fake_store):
    yield _client_for(fake_store)
    app.dependency_overrides.clear()


# =============================================================================
# Live Neo4j (integration)
# =============================================================================

@pytest.fixture(scope="module")
def neo4j_store():
    """GraphStore on the database named by NEO4J_*; the database is cleared."""
    if not (os.getenv("NEO4J_URI") and os.getenv("NEO4J_PASSWORD")):
        pytest.skip("NEO4J_URI / NEO4J_PASSWORD not set")
    from trace_api.config import load_settings
    from trace_api.store import GraphStore

    store = GraphStore.from_settings(load_settings(dotenv=False))
    store.verify()
    yield store
    store.close()
