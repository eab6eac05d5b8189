"""Tests for item name cleanup."""

import pytest

from receiptchef.parsing.clean_name import (
    clean_name,
    expand_abbreviations,
    normalize_spacing,
    split_camel_case,
    strip_leading_code,
    strip_trailing_codes,
)


class TestCleanName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("BNLS CHKN BRST", "Boneless Chicken Breast"),
            ("38066 Tomatoes", "Tomatoes"),
            ("470B6 RICE", "Rice"),
            ("OREO COOKIE", "Oreo Cookie"),
            ("ABCD Soup", "Abcd Soup"),
            ("CHICKEN BREAST 04061234567890", "Chicken Breast"),
            ("MILK 3.49", "Milk"),
            ("OatMilk", "Oat Milk"),
            ("GRND BEEF", "Ground Beef"),
            ("CO-JACK CHEESE", "Colby Jack Cheese"),
            ("SUGAR - FREE GUM", "Sugar Free Gum"),
            ("ORG   BANANAS", "Organic Bananas"),
            ("Jalapeño Peppers", "Jalapeno Peppers"),
        ],
    )
    def test_clean(self, raw, expected):
        assert clean_name(raw) == expected

    def test_idempotent_on_clean_name(self):
        assert clean_name("Boneless Chicken Breast") == "Boneless Chicken Breast"


class TestSteps:
    def test_leading_code_needs_two_digits(self):
        assert strip_leading_code("A1BC SOUP") == "A1BC SOUP"
        assert strip_leading_code("A1B2 SOUP") == "SOUP"

    def test_leading_letters_never_stripped(self):
        assert strip_leading_code("UPUP HOUSEH") == "UPUP HOUSEH"

    def test_single_token_not_stripped(self):
        assert strip_leading_code("12345") == "12345"

    def test_trailing_sku_groups(self):
        assert strip_trailing_codes("BREAD 0123 4567 F") == "BREAD"

    def test_trailing_keeps_short_numbers(self):
        assert strip_trailing_codes("MILK 2") == "MILK 2"

    def test_spacing_tightened_around_slash_and_hyphen(self):
        assert normalize_spacing("REFRIG  /  FROZEN - X") == "REFRIG/FROZEN-X"

    def test_camel_case(self):
        assert split_camel_case("PeanutButter") == "Peanut Butter"

    def test_abbreviations_whole_word_only(self):
        assert expand_abbreviations("chkn bnls") == "Chicken Boneless"
        assert expand_abbreviations("CHKNS") == "CHKNS"

    def test_code_stripping_runs_before_abbreviations(self):
        """A PLU code that happens to contain letters is removed, not expanded."""
        assert clean_name("4011GRN BNLS HAM") == "Boneless Ham"
