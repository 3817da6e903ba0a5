#!/usr/bin/env python3
"""
Seed the traceability graph from the command line.

Online (default): connects with the NEO4J_* settings, optionally clears the
database, runs the seed generator one or more times and prints node counts.

Offline (--cypher PATH): plans a dataset from the reference catalog without
touching a database and writes it as a Cypher script, e.g.
  infra/neo4j/seed_generated.cypher

Usage:
    python scripts/seed_graph.py --clear --seed 42
    python scripts/seed_graph.py --runs 2
    python scripts/seed_graph.py --cypher infra/neo4j/seed_generated.cypher --seed 42
"""

import argparse
import random
import sys
from pathlib import Path

from trace_api.admin import GraphAdmin
from trace_api.config import init_settings
from trace_api.errors import StoreError
from trace_api.seed import (
    MATERIALS,
    PRODUCT_MODELS,
    SUPPLIERS,
    SeedGenerator,
    plan_reference_dataset,
    supply_pairs,
)
from trace_api.store import GraphStore

ROOT = Path(__file__).resolve().parent.parent

# ── Helpers ─────────────────────────────────────────────────────────

def cypher_str(v):
    if v is None:
        return "null"
    return "'" + str(v).replace("\\", "\\\\").replace("'", "\\'") + "'"

def cypher_date(d):
    return f"date('{d.isoformat()}')"


# ── Offline: Cypher script ──────────────────────────────────────────

def render_cypher(dataset):
    cy = ["// Generated by seed_graph.py", ""]

    cy.append("// Suppliers")
    for s in SUPPLIERS:
        cy.append(
            f"MERGE (s:Supplier {{supplierId:{cypher_str(s['supplierId'])}}}) "
            f"SET s.name = {cypher_str(s['name'])}, s.qualityGroup = {cypher_str(s['qualityGroup'])};"
        )
    cy.append("")

    cy.append("// Materials")
    for m in MATERIALS:
        cy.append(f"MERGE (m:Material {{materialId:{cypher_str(m['materialId'])}}}) SET m.name = {cypher_str(m['name'])};")
    cy.append("")

    cy.append("// Product models")
    for pm in PRODUCT_MODELS:
        cy.append(f"MERGE (pm:ProductModel {{modelId:{cypher_str(pm['modelId'])}}}) SET pm.name = {cypher_str(pm['name'])};")
    cy.append("")

    cy.append("// Supply relationships")
    for sid, mid in supply_pairs():
        cy.append(
            f"MATCH (s:Supplier {{supplierId:{cypher_str(sid)}}}), (m:Material {{materialId:{cypher_str(mid)}}}) "
            "MERGE (s)-[:SUPPLIES]->(m);"
        )
    cy.append("")

    cy.append("// Batches")
    for b in dataset["batches"]:
        cy.append(
            f"MATCH (s:Supplier {{supplierId:{cypher_str(b['supplierId'])}}}), "
            f"(m:Material {{materialId:{cypher_str(b['materialId'])}}}) "
            f"MERGE (b:Batch {{batchId:{cypher_str(b['batchId'])}}}) "
            f"ON CREATE SET b.receivedDate = {cypher_date(b['receivedDate'])}, b.lotNumber = {cypher_str(b['lotNumber'])} "
            "MERGE (s)-[:DELIVERED]->(b) MERGE (b)-[:OF_MATERIAL]->(m);"
        )
    cy.append("")

    # Serial and inspection are created in one statement so the inspection
    # binds to the serial node just created, even if its key already exists.
    cy.append("// Serials & inspections")
    inspections = {i["serialNumber"]: i for i in dataset["inspections"]}
    for p in dataset["serials"]:
        i = inspections[p["serialNumber"]]
        cy.append(
            f"MATCH (b:Batch {{batchId:{cypher_str(p['batchId'])}}}), (pm:ProductModel {{modelId:{cypher_str(p['modelId'])}}}) "
            f"CREATE (p:Serial {{serialNumber:{cypher_str(p['serialNumber'])}, productionDate:{cypher_date(p['productionDate'])}}}) "
            f"CREATE (i:Inspection {{inspectionId:{cypher_str(i['inspectionId'])}, date:{cypher_date(i['date'])}, "
            f"status:{cypher_str(i['status'])}, defectCode:{cypher_str(i['defectCode'])}}}) "
            "CREATE (b)-[:USED_IN]->(p) CREATE (p)-[:INSTANCE_OF]->(pm) CREATE (p)-[:HAS_INSPECTION]->(i);"
        )
    cy.append("")
    return "\n".join(cy)


def write_cypher(path, seed):
    dataset = plan_reference_dataset(random.Random(seed))
    content = render_cypher(dataset)
    out = Path(path)
    if not out.is_absolute():
        out = ROOT / out
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(content, encoding="utf-8")

    rejects = sum(1 for i in dataset["inspections"] if i["status"] == "REJECT")
    print(f"Generated {out} ({len(content):,} bytes)")
    print(f"\nStats: {len(SUPPLIERS)} suppliers, {len(MATERIALS)} materials, "
          f"{len(PRODUCT_MODELS)} product models, {len(dataset['batches'])} batches, "
          f"{len(dataset['serials'])} serials, {len(dataset['inspections'])} inspections "
          f"({rejects} rejects)")


# ── Online: seed a database ─────────────────────────────────────────

def seed_database(clear, runs, seed):
    settings = init_settings()
    store = GraphStore.from_settings(settings)
    admin = GraphAdmin(store)
    try:
        store.verify()
        if clear:
            print(admin.clear().message)
        generator = SeedGenerator(store, random.Random(seed))
        for run in range(1, runs + 1):
            report = generator.seed()
            print(f"Run {run}: {report.batches} batches, {report.serials} serials, "
                  f"{report.inspections} inspections ({report.rejects} rejects)")

        print("\nNode counts:")
        for label, count in admin.node_counts().items():
            print(f"  {label}: {count:,}")
    finally:
        store.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the traceability graph")
    parser.add_argument("--clear", action="store_true", help="delete all nodes first")
    parser.add_argument("--runs", type=int, default=1, help="number of seed runs")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--cypher", metavar="PATH", help="write a Cypher script instead")
    args = parser.parse_args(argv)

    if args.cypher:
        write_cypher(args.cypher, args.seed)
        return 0
    try:
        seed_database(args.clear, args.runs, args.seed)
    except StoreError as exc:
        print(f"Seeding failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
