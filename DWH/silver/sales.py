# DWH/silver/sales.py
"""
Sales - delta append (bronze.crm_sales_details -> silver.crm_sales_details).

Facts are immutable: lines past the watermark are reconciled and appended,
never updated. Boundaries are compared as dates; the raw YYYYMMDD integers
are parsed first and the watermark date is only turned back into an
integer key to prefilter in SQL.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd
from sqlalchemy import select, tuple_
from sqlalchemy.orm import Session

from db.db_utils import insert_dataframe
from db.models_bronze import BronzeSalesDetail
from db.models_silver import SilverSalesDetail
from DWH.audit.watermark import DEFAULT_BUFFER, advance_watermark, get_watermark
from DWH.silver.results import LoadResult
from DWH.silver.utils import (
    clean_string_column,
    date_to_key,
    parse_date_key,
    reconcile_amounts,
)

logger = logging.getLogger(__name__)

TABLE_NAME = "silver.crm_sales_details"

NATURAL_KEY = ["sls_ord_num", "sls_prd_key"]

FACT_COLUMNS = [
    "sls_ord_num", "sls_prd_key", "sls_cust_id", "sls_order_dt", "sls_ship_dt",
    "sls_due_dt", "sls_sales", "sls_quantity", "sls_price",
]


def read_sales_after(session: Session, watermark: datetime) -> pd.DataFrame:
    """Bronze sales lines whose raw order date key is past the watermark date."""
    bronze = BronzeSalesDetail.__table__
    stmt = (
        select(bronze)
        .where(bronze.c.sls_order_dt > date_to_key(watermark.date()))
        .order_by(bronze.c.dwh_row_id)
    )
    return pd.read_sql(stmt, session.connection(), coerce_float=False)


def parse_sales_dates(df: pd.DataFrame) -> pd.DataFrame:
    """
    Replace the YYYYMMDD integer columns with dates.

    Raises:
        ValidationError: an 8-digit key is not a calendar date
    """
    df = df.copy()
    for column in ("sls_order_dt", "sls_ship_dt", "sls_due_dt"):
        df[column] = df[column].apply(parse_date_key).astype(object)
    return df


def filter_after_watermark(df: pd.DataFrame, watermark: datetime) -> pd.DataFrame:
    """Rows whose parsed order date is strictly after the watermark date."""
    if df.empty:
        return df
    boundary = watermark.date()
    mask = df["sls_order_dt"].apply(lambda d: d is not None and not pd.isna(d) and d > boundary)
    return df[mask.astype(bool)].copy()


def reconcile_sales(df: pd.DataFrame) -> pd.DataFrame:
    """Apply the amount/price reconciliation rule to every line."""
    df = df.copy()
    if df.empty:
        return df
    repaired = df.apply(
        lambda row: reconcile_amounts(row["sls_sales"], row["sls_quantity"], row["sls_price"]),
        axis=1,
    )
    df["sls_sales"] = [amount for amount, _ in repaired]
    df["sls_price"] = [price for _, price in repaired]
    return df


def clean_sales_data(df: pd.DataFrame) -> pd.DataFrame:
    """Drop incomplete lines, dedupe natural keys, reconcile amounts."""
    df = df.copy()
    df["sls_ord_num"] = clean_string_column(df["sls_ord_num"])
    df["sls_prd_key"] = clean_string_column(df["sls_prd_key"])
    df = df.dropna(subset=["sls_ord_num", "sls_prd_key", "sls_cust_id"])

    # Last delivered line wins for a repeated natural key
    df = df.sort_values("dwh_row_id").drop_duplicates(subset=NATURAL_KEY, keep="last")

    df = reconcile_sales(df)
    logger.info(f"Sales data cleaned: {len(df)} records")
    return df[FACT_COLUMNS].reset_index(drop=True)


def drop_existing_facts(session: Session, df: pd.DataFrame, chunk_size: int = 500) -> pd.DataFrame:
    """Remove lines already present in silver (re-read through the watermark buffer)."""
    if df.empty:
        return df
    keys = list(df[NATURAL_KEY].itertuples(index=False, name=None))
    existing = set()
    for i in range(0, len(keys), chunk_size):
        chunk = keys[i:i + chunk_size]
        rows = session.execute(
            select(SilverSalesDetail.sls_ord_num, SilverSalesDetail.sls_prd_key)
            .where(tuple_(SilverSalesDetail.sls_ord_num, SilverSalesDetail.sls_prd_key).in_(chunk))
        ).all()
        existing.update((row.sls_ord_num, row.sls_prd_key) for row in rows)
    if not existing:
        return df
    mask = [key not in existing for key in keys]
    return df[mask]


def append_sales_delta(
    session: Session,
    watermark: datetime = None,
    batch_id: Optional[int] = None,
    buffer: timedelta = DEFAULT_BUFFER,
) -> LoadResult:
    """
    Append reconciled sales lines past the watermark, then advance it.

    Runs entirely inside the caller's transaction.

    Returns:
        LoadResult with the number of appended lines
    """
    if watermark is None:
        watermark = get_watermark(session, TABLE_NAME)
    logger.info(f">> Starting Delta Load: {TABLE_NAME} (Watermark: {watermark})")

    raw_df = read_sales_after(session, watermark)
    slice_df = filter_after_watermark(parse_sales_dates(raw_df), watermark) if not raw_df.empty else raw_df
    if slice_df.empty:
        logger.info("No new sales records to process")
        return LoadResult(table_name=TABLE_NAME, watermark_before=watermark, watermark_after=watermark)

    observed_max = slice_df["sls_order_dt"].max()
    df = clean_sales_data(slice_df)
    new_df = drop_existing_facts(session, df).copy()
    skipped = len(df) - len(new_df)
    new_df["dwh_batch_id"] = batch_id
    inserted = insert_dataframe(new_df, SilverSalesDetail, session)
    logger.info(f"Sales appended: {inserted} new lines, {skipped} already loaded")

    watermark_after = advance_watermark(session, TABLE_NAME, observed_max, buffer)

    return LoadResult(
        table_name=TABLE_NAME,
        row_count=inserted,
        inserted=inserted,
        skipped=skipped,
        watermark_before=watermark,
        watermark_after=watermark_after,
    )
