from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class MaturationResult(BaseModel):
    """Outcome of a maturation pass."""

    processedAt: datetime
    midTermProcessed: int
    finalProcessed: int
    usersUpdated: int
    totalMaturedKg: Decimal
