# DWH/silver/utils.py
"""
Silver Layer Utilities - cleaning and value-reconciliation helpers.
Contains reusable functions for null placeholders, coded enumerations,
YYYYMMDD date keys and monetary reconciliation.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from DWH.common.exceptions import ValidationError

# Placeholder values that should be treated as null
NULL_PLACEHOLDERS = [
    '[NULL]', '[null]', 'NULL', 'null', 'None', 'none',
    'N/A', 'n/a', 'NA', 'na', 'NaN', 'nan', '<NA>', 'NaT',
    '', ' ', '  ', '-', '--', '.', 'undefined'
]

# Label for blank or unmapped codes - never null in silver
NOT_APPLICABLE = "n/a"

MARITAL_STATUS_LABELS = {"S": "Single", "M": "Married"}
GENDER_LABELS = {"F": "Female", "M": "Male"}
PRODUCT_LINE_LABELS = {"M": "Mountain", "R": "Road", "S": "Other Sales", "T": "Touring"}

MONEY_QUANT = Decimal("0.0001")


def is_null(value: Any) -> bool:
    """True for None, NaN, NaT and pd.NA."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def clean_string_column(series: pd.Series, default_value: Optional[str] = None) -> pd.Series:
    """
    Clean a string column by handling null/empty/placeholder values.

    Args:
        series: Pandas Series to clean
        default_value: Value to use for nulls (None = keep as null)

    Returns:
        Trimmed Series with null placeholders replaced
    """
    result = series.astype(str).str.strip().str.strip('"').str.strip("'")
    result = result.where(~result.isin(NULL_PLACEHOLDERS), pd.NA)

    if default_value is not None:
        result = result.fillna(default_value)

    return result


def map_code_column(series: pd.Series, labels: Dict[str, str]) -> pd.Series:
    """
    Map single-letter codes to descriptive labels (case-insensitive).
    Blank, null and unknown codes become NOT_APPLICABLE.
    """
    codes = clean_string_column(series).str.upper()
    return codes.map(labels).fillna(NOT_APPLICABLE)


def map_code(value: Any, labels: Dict[str, str]) -> str:
    """Scalar version of map_code_column."""
    if is_null(value):
        return NOT_APPLICABLE
    return labels.get(str(value).strip().upper(), NOT_APPLICABLE)


# DATE KEYS (YYYYMMDD integers)

def parse_date_key(value: Any) -> Optional[date]:
    """
    Convert a YYYYMMDD integer into a date.

    Zero, null and values that are not exactly 8 digits become None.

    Raises:
        ValidationError: 8 digits that do not form a calendar date
    """
    if is_null(value):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    text = str(number)
    if number <= 0 or len(text) != 8:
        return None
    try:
        return date(int(text[:4]), int(text[4:6]), int(text[6:]))
    except ValueError as e:
        raise ValidationError(
            f"Invalid date key {number}",
            validation_type="date_key",
            original_error=e,
        ) from e


def date_to_key(value: date) -> int:
    """Inverse of parse_date_key for pushing a boundary down into SQL."""
    return value.year * 10000 + value.month * 100 + value.day


# MONEY

def to_decimal(value: Any) -> Optional[Decimal]:
    if is_null(value):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def reconcile_amounts(sales: Any, quantity: Any, price: Any) -> Tuple[Optional[Decimal], Optional[Decimal]]:
    """
    Repair a sales line so that sales == quantity * |price|.

    - sales null, non-positive or inconsistent -> quantity * |price|
    - price null or non-positive -> sales / quantity (None when quantity is 0)

    A derived price is rounded, so quantity * price may differ from sales
    by less than quantity * 0.00005.

    Returns:
        (sales, price) quantized to 4 decimal places
    """
    amount = to_decimal(sales)
    unit_price = to_decimal(price)
    qty = None if is_null(quantity) else int(quantity)

    expected = None
    if qty is not None and unit_price is not None:
        expected = (qty * abs(unit_price)).quantize(MONEY_QUANT)

    if amount is None or amount <= 0 or (expected is not None and amount != expected):
        amount = expected

    if unit_price is None or unit_price <= 0:
        unit_price = amount / qty if amount is not None and qty else None

    if amount is not None:
        amount = amount.quantize(MONEY_QUANT)
    if unit_price is not None:
        unit_price = unit_price.quantize(MONEY_QUANT)
    return amount, unit_price


# PRODUCT KEYS

def split_product_key(raw_key: Any) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a composite product key 'CO-RF-FR-R92B-58' into
    category id 'CO_RF' and product number 'FR-R92B-58'.
    """
    if is_null(raw_key):
        return None, None
    key = str(raw_key).strip()
    return key[:5].replace("-", "_"), key[6:]
