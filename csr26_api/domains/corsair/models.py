from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class AttributionIds(BaseModel):
    merchantIds: List[str] = Field(default_factory=list)
    partnerIds: List[str] = Field(default_factory=list)


class CorsairExportRecord(BaseModel):
    """One certified user as handed over to Corsair Connect."""

    corsairId: str
    email: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dateOfBirth: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    totalImpactKg: Decimal
    maturedImpactKg: Decimal
    pendingImpactKg: Decimal
    walletBalance: Decimal
    certificationDate: str
    transactionCount: int
    firstTransactionDate: Optional[str] = None
    lastTransactionDate: Optional[str] = None
    attributionIds: AttributionIds


class CorsairBatchExportResult(BaseModel):
    exportDate: datetime
    recordCount: int
    records: List[CorsairExportRecord]
    format: Literal["csv", "json"] = "json"


class CorsairExportStats(BaseModel):
    totalCertified: int
    totalExported: int
    pendingExport: int
    threshold: Decimal
