"""Tests for the silver cleansing helpers."""

from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from DWH.common.exceptions import ValidationError
from DWH.silver.utils import (
    GENDER_LABELS,
    clean_string_column,
    date_to_key,
    map_code,
    parse_date_key,
    reconcile_amounts,
    split_product_key,
)


class TestParseDateKey:

    def test_valid_key(self):
        assert parse_date_key(20240105) == date(2024, 1, 5)

    @pytest.mark.parametrize("value", [0, None, 2024015, 202401050, float("nan")])
    def test_unusable_keys_become_none(self, value):
        assert parse_date_key(value) is None

    def test_impossible_calendar_date_raises(self):
        with pytest.raises(ValidationError):
            parse_date_key(20231345)

    def test_date_to_key_inverts_parse(self):
        assert date_to_key(date(2023, 12, 31)) == 20231231
        assert parse_date_key(date_to_key(date(2024, 2, 29))) == date(2024, 2, 29)


class TestReconcileAmounts:

    def test_zero_amount_is_recomputed(self):
        assert reconcile_amounts(0, 3, 10) == (Decimal("30.0000"), Decimal("10.0000"))

    def test_inconsistent_amount_is_recomputed(self):
        amount, _ = reconcile_amounts(25, 3, 10)
        assert amount == Decimal("30")

    def test_negative_price_uses_absolute_value(self):
        amount, price = reconcile_amounts(None, 2, -5)
        assert amount == Decimal("10")
        assert price == Decimal("5")

    def test_missing_price_derived_from_amount(self):
        assert reconcile_amounts(40, 4, None) == (Decimal("40.0000"), Decimal("10.0000"))

    def test_inexact_derived_price_is_rounded(self):
        assert reconcile_amounts(10, 3, None) == (Decimal("10.0000"), Decimal("3.3333"))

    def test_zero_quantity_leaves_price_null(self):
        amount, price = reconcile_amounts(40, 0, None)
        assert amount == Decimal("40")
        assert price is None


class TestStringAndCodes:

    def test_clean_string_column_trims_and_nulls(self):
        cleaned = clean_string_column(pd.Series(["  Ann ", None, "null", ""]))
        assert cleaned.iloc[0] == "Ann"
        assert cleaned.iloc[1:].isna().all()

    def test_map_code_unknown_is_not_applicable(self):
        assert map_code(" f ", GENDER_LABELS) == "Female"
        assert map_code("X", GENDER_LABELS) == "n/a"
        assert map_code(None, GENDER_LABELS) == "n/a"

    def test_split_product_key(self):
        assert split_product_key("CO-RF-FR-R92B-58") == ("CO_RF", "FR-R92B-58")
        assert split_product_key(None) == (None, None)
