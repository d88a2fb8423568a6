"""
Impact arithmetic.

Amounts are EUR, impact is kilograms of plastic removed. Everything here is
pure: callers fetch price and threshold from settings and pass them in.

    impact_kg = amount / price_per_kg
    cost      = weight_kg * price_per_kg * multiplier   (weight-based claims)

Credited impact matures in three tranches (the 5/45/50 rule): 5% at once,
45% after 40 weeks and the final 50% after 80 weeks.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel

KG_PLACES = Decimal("0.0001")
EUR_PLACES = Decimal("0.01")

IMMEDIATE_SHARE = Decimal("0.05")
MID_TERM_SHARE = Decimal("0.45")
MID_TERM_WEEKS = 40
FINAL_WEEKS = 80

BOTTLES_PER_KG = 25


class ImpactCalculation(BaseModel):
    amount: Decimal
    impactKg: Decimal
    impactGrams: Decimal
    displayValue: str
    belowThreshold: bool
    thresholdProgress: float


@dataclass(frozen=True)
class MaturationBreakdown:
    immediate_kg: Decimal
    mid_term_kg: Decimal
    final_kg: Decimal
    mid_term_matures_at: datetime
    final_matures_at: datetime

    def as_transaction_data(self) -> dict:
        """Column values for a Transaction row."""
        return {
            "immediateImpactKg": self.immediate_kg,
            "midTermImpactKg": self.mid_term_kg,
            "finalImpactKg": self.final_kg,
            "midTermMaturesAt": self.mid_term_matures_at,
            "finalMaturesAt": self.final_matures_at,
        }


def quantize_kg(value: Decimal) -> Decimal:
    return value.quantize(KG_PLACES, rounding=ROUND_HALF_UP)


def quantize_eur(value: Decimal) -> Decimal:
    return value.quantize(EUR_PLACES, rounding=ROUND_HALF_UP)


def format_impact_display(impact_kg: Decimal) -> str:
    """``"450g"`` below one kilogram, ``"9.09 kg"`` from one kilogram up."""
    grams = impact_kg * 1000
    if grams < 1000:
        return f"{grams.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}g"
    return f"{impact_kg.quantize(EUR_PLACES, rounding=ROUND_HALF_UP)} kg"


def threshold_progress(amount: Decimal, threshold: Decimal) -> float:
    """Percentage of the certification threshold reached, capped at 100."""
    if threshold <= 0:
        return 100.0 if amount > 0 else 0.0
    progress = min(amount / threshold * 100, Decimal(100))
    return float(max(progress, Decimal(0)))


def _build(
    amount: Decimal, impact_kg: Decimal, threshold: Decimal
) -> ImpactCalculation:
    impact_kg = quantize_kg(impact_kg)
    return ImpactCalculation(
        amount=amount,
        impactKg=impact_kg,
        impactGrams=impact_kg * 1000,
        displayValue=format_impact_display(impact_kg),
        belowThreshold=amount < threshold,
        thresholdProgress=threshold_progress(amount, threshold),
    )


def calculate_impact(
    amount: Decimal, price_per_kg: Decimal, threshold: Decimal
) -> ImpactCalculation:
    """Impact bought by ``amount`` EUR at ``price_per_kg``."""
    if price_per_kg <= 0:
        raise ValueError("price_per_kg must be positive")
    amount = Decimal(amount)
    return _build(amount, amount / price_per_kg, threshold)


def calculate_weight_based_impact(
    weight_grams: int,
    multiplier: Decimal,
    price_per_kg: Decimal,
    threshold: Decimal,
) -> ImpactCalculation:
    """
    Impact for a product of known packaging weight.

    The customer is credited ``weight * multiplier`` kilograms and the
    merchant's cost for that credit is returned as ``amount``.
    """
    weight_kg = Decimal(weight_grams) / 1000
    multiplier = Decimal(multiplier)
    amount = quantize_eur(weight_kg * price_per_kg * multiplier)
    return _build(amount, weight_kg * multiplier, threshold)


def resolve_multiplier(
    override: Optional[Decimal] = None,
    sku_multiplier: Optional[Decimal] = None,
    merchant_multiplier: Optional[Decimal] = None,
    default_multiplier: Optional[Decimal] = None,
) -> Decimal:
    """First positive candidate: request, SKU, merchant, global default, 1."""
    for candidate in (override, sku_multiplier, merchant_multiplier, default_multiplier):
        if candidate is not None and Decimal(candidate) > 0:
            return Decimal(candidate)
    return Decimal(1)


def resolve_price_per_kg(
    merchant_price: Optional[Decimal], global_price: Decimal
) -> Decimal:
    if merchant_price is not None and Decimal(merchant_price) > 0:
        return Decimal(merchant_price)
    return global_price


def calculate_maturation_breakdown(
    impact_kg: Decimal, start: datetime
) -> MaturationBreakdown:
    """
    Split ``impact_kg`` into its three maturation tranches.

    The final tranche absorbs rounding so the parts always sum to the total.
    """
    total = quantize_kg(Decimal(impact_kg))
    immediate = quantize_kg(total * IMMEDIATE_SHARE)
    mid_term = quantize_kg(total * MID_TERM_SHARE)
    return MaturationBreakdown(
        immediate_kg=immediate,
        mid_term_kg=mid_term,
        final_kg=total - immediate - mid_term,
        mid_term_matures_at=start + timedelta(weeks=MID_TERM_WEEKS),
        final_matures_at=start + timedelta(weeks=FINAL_WEEKS),
    )


def equivalent_bottles(impact_kg: Decimal) -> int:
    return int(
        (Decimal(impact_kg) * BOTTLES_PER_KG).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
