"""
Change fingerprints - SHA-256 over an entity's mutable attributes.

A fingerprint is only ever compared for inequality; it is never decoded.
"""

import hashlib
import numbers
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Sequence

import numpy as np
import pandas as pd

from DWH.silver.utils import is_null

HASH_DELIMITER = "|"

CUSTOMER_HASH_FIELDS = (
    "cst_key", "cst_firstname", "cst_lastname", "cst_marital_status", "cst_gndr",
)
PRODUCT_HASH_FIELDS = ("prd_nm", "prd_cost", "prd_line")


def normalize_value(value: Any) -> str:
    """Render one attribute in a representation-independent way."""
    if is_null(value):
        return ""
    if isinstance(value, (bool, np.bool_)):
        return "1" if value else "0"
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, (Decimal, numbers.Real)):
        number = Decimal(str(value))
        if number == number.to_integral_value():
            return str(int(number))
        return format(number.normalize(), "f")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def fingerprint(record, fields: Sequence[str]) -> str:
    """
    Digest the ordered field values of a record (mapping or pandas row).

    Field order matters: ("a", "b") and ("b", "a") give different digests.
    """
    payload = HASH_DELIMITER.join(normalize_value(record[name]) for name in fields)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def fingerprint_frame(df: pd.DataFrame, fields: Sequence[str]) -> pd.Series:
    """Fingerprint every row of a DataFrame."""
    if df.empty:
        return pd.Series(index=df.index, dtype=object)
    return df.apply(lambda row: fingerprint(row, fields), axis=1)
