from decimal import Decimal

from ..dataclasses import AdjustmentMode, AdjustmentType, CustomAdjustment
from ..services.adjustments import adjustment_amount, apply_adjustments


def adj(label, value, type=AdjustmentType.FIXED, mode=AdjustmentMode.SURCHARGE, taxable=True):
    return CustomAdjustment(label=label, type=type, mode=mode, value=Decimal(value), taxable=taxable)


class TestAdjustmentAmounts:
    """Single adjustment arithmetic"""

    def test_fixed_surcharge(self):
        assert adjustment_amount(Decimal("100"), adj("Setup", "25")) == Decimal("25")

    def test_fixed_discount(self):
        assert adjustment_amount(Decimal("100"), adj("Promo", "25", mode=AdjustmentMode.DISCOUNT)) == Decimal("-25")

    def test_percentage(self):
        assert adjustment_amount(Decimal("200"), adj("Rush", "10", type=AdjustmentType.PERCENTAGE)) == Decimal("20")


class TestApplyAdjustments:
    """Order-level adjustments against the services subtotal"""

    def test_percentages_do_not_compound(self):
        """Two 10% discounts on 100 give -20, not -19"""
        result = apply_adjustments(Decimal("100"), [
            adj("Loyalty", "10", type=AdjustmentType.PERCENTAGE, mode=AdjustmentMode.DISCOUNT),
            adj("Holiday", "10", type=AdjustmentType.PERCENTAGE, mode=AdjustmentMode.DISCOUNT),
        ])
        assert result.adjustments_total == Decimal("-20")
        assert [line.amount for line in result.breakdown] == [Decimal("-10"), Decimal("-10")]

    def test_order_does_not_matter(self):
        items = [
            adj("Rush", "15", type=AdjustmentType.PERCENTAGE),
            adj("Promo", "30", mode=AdjustmentMode.DISCOUNT),
            adj("Setup", "12.50"),
        ]
        forward = apply_adjustments(Decimal("240"), items)
        backward = apply_adjustments(Decimal("240"), list(reversed(items)))
        assert forward.adjustments_total == backward.adjustments_total == Decimal("18.50")

    def test_taxable_split(self):
        result = apply_adjustments(Decimal("100"), [
            adj("Setup", "20", taxable=True),
            adj("Gratuity", "15", taxable=False),
            adj("Promo", "5", mode=AdjustmentMode.DISCOUNT, taxable=False),
        ])
        assert result.taxable_total == Decimal("20")
        assert result.non_taxable_total == Decimal("10")
        assert result.adjustments_total == Decimal("30")

    def test_breakdown_preserves_list_order(self):
        result = apply_adjustments(Decimal("50"), [adj("B", "1"), adj("A", "2")])
        assert [line.label for line in result.breakdown] == ["B", "A"]

    def test_no_adjustments(self):
        result = apply_adjustments(Decimal("50"), [])
        assert result.adjustments_total == Decimal("0")
        assert result.breakdown == []
