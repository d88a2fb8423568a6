"""
Tests for the pure impact arithmetic in csr26_api/domains/impact/calculations.py
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from csr26_api.domains.impact.calculations import (
    calculate_impact,
    calculate_maturation_breakdown,
    calculate_weight_based_impact,
    equivalent_bottles,
    format_impact_display,
    resolve_multiplier,
    resolve_price_per_kg,
    threshold_progress,
)

PRICE = Decimal("0.11")
THRESHOLD = Decimal("10")


class TestCalculateImpact:
    def test_threshold_amount(self):
        """€10 at €0.11/kg buys 90.9091 kg and reaches the threshold."""
        impact = calculate_impact(Decimal("10"), PRICE, THRESHOLD)

        assert impact.impactKg == Decimal("90.9091")
        assert impact.impactGrams == Decimal("90909.1000")
        assert impact.displayValue == "90.91 kg"
        assert impact.belowThreshold is False
        assert impact.thresholdProgress == 100.0

    def test_small_amount_displays_grams(self):
        impact = calculate_impact(Decimal("0.05"), PRICE, THRESHOLD)

        assert impact.impactKg == Decimal("0.4545")
        assert impact.displayValue == "455g"
        assert impact.belowThreshold is True
        assert impact.thresholdProgress == pytest.approx(0.5)

    def test_zero_amount(self):
        impact = calculate_impact(Decimal("0"), PRICE, THRESHOLD)

        assert impact.impactKg == Decimal("0")
        assert impact.displayValue == "0g"
        assert impact.thresholdProgress == 0.0

    def test_non_positive_price_rejected(self):
        with pytest.raises(ValueError):
            calculate_impact(Decimal("10"), Decimal("0"), THRESHOLD)


class TestWeightBasedImpact:
    def test_weight_times_multiplier(self):
        """17 g with a ×2 multiplier credits 34 g, costing the merchant €0.00374."""
        impact = calculate_weight_based_impact(17, Decimal(2), PRICE, THRESHOLD)

        assert impact.impactKg == Decimal("0.0340")
        assert impact.amount == Decimal("0.00")
        assert impact.displayValue == "34g"

    def test_heavy_product_cost(self):
        impact = calculate_weight_based_impact(5000, Decimal(5), PRICE, THRESHOLD)

        assert impact.impactKg == Decimal("25.0000")
        assert impact.amount == Decimal("2.75")


class TestResolvers:
    def test_multiplier_precedence(self):
        assert resolve_multiplier(Decimal(3), Decimal(2), Decimal(5), Decimal(1)) == 3
        assert resolve_multiplier(None, Decimal(2), Decimal(5), Decimal(1)) == 2
        assert resolve_multiplier(None, None, Decimal(5), Decimal(1)) == 5
        assert resolve_multiplier(None, None, None, Decimal(4)) == 4
        assert resolve_multiplier() == 1

    def test_non_positive_multiplier_skipped(self):
        assert resolve_multiplier(Decimal(0), Decimal(-1), Decimal(5)) == 5

    def test_merchant_price_overrides_global(self):
        assert resolve_price_per_kg(Decimal("0.09"), PRICE) == Decimal("0.09")
        assert resolve_price_per_kg(None, PRICE) == PRICE
        assert resolve_price_per_kg(Decimal("0"), PRICE) == PRICE


class TestMaturationBreakdown:
    def test_tranches_sum_to_total(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)

        breakdown = calculate_maturation_breakdown(Decimal("90.9091"), start)

        assert breakdown.immediate_kg == Decimal("4.5455")
        assert breakdown.mid_term_kg == Decimal("40.9091")
        assert breakdown.final_kg == Decimal("45.4545")
        assert (
            breakdown.immediate_kg + breakdown.mid_term_kg + breakdown.final_kg
            == Decimal("90.9091")
        )

    def test_maturity_dates(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)

        breakdown = calculate_maturation_breakdown(Decimal("1"), start)

        assert breakdown.mid_term_matures_at == start + timedelta(weeks=40)
        assert breakdown.final_matures_at == start + timedelta(weeks=80)

    def test_transaction_columns(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)

        data = calculate_maturation_breakdown(Decimal("20"), start).as_transaction_data()

        assert data["immediateImpactKg"] == Decimal("1.0000")
        assert data["midTermImpactKg"] == Decimal("9.0000")
        assert data["finalImpactKg"] == Decimal("10.0000")
        assert set(data) == {
            "immediateImpactKg",
            "midTermImpactKg",
            "finalImpactKg",
            "midTermMaturesAt",
            "finalMaturesAt",
        }


class TestDisplayHelpers:
    def test_format_impact_display_boundary(self):
        assert format_impact_display(Decimal("0.9994")) == "999g"
        assert format_impact_display(Decimal("1")) == "1.00 kg"

    def test_threshold_progress_capped(self):
        assert threshold_progress(Decimal("5"), THRESHOLD) == 50.0
        assert threshold_progress(Decimal("25"), THRESHOLD) == 100.0
        assert threshold_progress(Decimal("-3"), THRESHOLD) == 0.0

    def test_equivalent_bottles(self):
        assert equivalent_bottles(Decimal("1")) == 25
        assert equivalent_bottles(Decimal("0.05")) == 1
        assert equivalent_bottles(Decimal("0")) == 0
