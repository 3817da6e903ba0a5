"""Pydantic models returned by the traceability components."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class SupplierQuality(BaseModel):
    supplierId: str
    supplier: Optional[str] = None
    total: int
    rejected: int
    rejectRatePercent: float


class SerialTrace(BaseModel):
    serial: str
    status: str
    batchId: Optional[str] = None
    supplierId: Optional[str] = None
    supplierName: Optional[str] = None
    affectedSerials: list[str] = []


class SerialSample(BaseModel):
    serials: list[str]


class AdminResult(BaseModel):
    ok: bool
    message: str


class SeedReport(AdminResult):
    batches: int = 0
    serials: int = 0
    inspections: int = 0
    rejects: int = 0
