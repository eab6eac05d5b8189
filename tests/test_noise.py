"""Tests for receipt line noise filtering."""

import pytest

from receiptchef.parsing.noise import RULES, classify_line, is_totals_start


def _rule_index(name):
    return [r.name for r in RULES].index(name)


class TestRulePrecedence:
    def test_layers_are_ordered(self):
        order = ["trivial", "code", "structural", "digits", "override", "default"]
        layers = [r.layer for r in RULES]
        positions = [order.index(l) for l in layers]
        assert positions == sorted(positions)

    def test_override_after_digit_dominance_before_default(self):
        assert _rule_index("digit_heavy") < _rule_index("item_with_barcode")
        assert _rule_index("item_with_barcode") < _rule_index("has_letters")


class TestKeep:
    def test_item_with_barcode_is_kept(self):
        verdict = classify_line("CHICKEN BREAST 04061234567890")
        assert verdict.keep is True
        assert verdict.rule == "item_with_barcode"

    def test_short_word_with_barcode_is_kept(self):
        """Three letters alone would fail the default rule."""
        verdict = classify_line("EGG 12345678")
        assert verdict.keep is True
        assert verdict.rule == "item_with_barcode"

    def test_plain_item_is_kept(self):
        verdict = classify_line("BNLS CHKN BRST")
        assert verdict.keep is True
        assert verdict.reason is None

    def test_mixed_case_item(self):
        assert classify_line("Bananas").keep is True


class TestDrop:
    @pytest.mark.parametrize(
        "line, reason",
        [
            ("", "empty"),
            ("BF", "too_short"),
            ("YOU SAVED $1.00", "promo"),
            ("04061234567890", "long_code"),
            ("0412345678901", "long_code"),
            ("(555) 123-4567", "phone"),
            ("1234 MAIN STREET", "address"),
            ("12/25/2024 10:42", "date_time"),
            ("ST# 4521 OP# 09", "store_meta"),
            ("PRODUCE", "store_meta"),
            ("VISA TEND", "payment_total"),
            ("1.24 LB @ 2.99/LB", "weight_price"),
            ("2 FOR $5", "deal_math"),
            ("MILK 2%", "percent"),
            ("3.49", "numbers_only"),
            ("AB-123456", "digit_heavy"),
            ("EGG 1234567", "too_few_letters"),
        ],
    )
    def test_drop_reason(self, line, reason):
        verdict = classify_line(line)
        assert verdict.keep is False
        assert verdict.reason == reason


class TestTotalsStart:
    @pytest.mark.parametrize(
        "line",
        ["SUBTOTAL 8.97", "TOTAL", "total 12.00", "BALANCE DUE 4.00", "AMOUNT DUE"],
    )
    def test_totals_lines(self, line):
        assert is_totals_start(line) is True

    @pytest.mark.parametrize("line", ["TAX 0.42", "TOTALLY NUTS", "MILK"])
    def test_not_totals(self, line):
        assert is_totals_start(line) is False
