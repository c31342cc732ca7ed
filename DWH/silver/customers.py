# DWH/silver/customers.py
"""
Customers - incremental SCD Type 1 merge (bronze.crm_cust_info -> silver.crm_cust_info).

Only rows newer than the watermark are read. Each customer keeps one row
that is overwritten in place when its fingerprint changes.
"""

import logging
from datetime import datetime, timedelta

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from db.db_utils import clean_nulls, insert_dataframe
from db.models_bronze import BronzeCustomer
from db.models_silver import SilverCustomer
from DWH.audit.watermark import DEFAULT_BUFFER, advance_watermark, get_watermark
from DWH.silver.fingerprint import CUSTOMER_HASH_FIELDS, fingerprint_frame
from DWH.silver.results import LoadResult
from DWH.silver.utils import (
    GENDER_LABELS,
    MARITAL_STATUS_LABELS,
    clean_string_column,
    map_code_column,
)

logger = logging.getLogger(__name__)

TABLE_NAME = "silver.crm_cust_info"

CUSTOMER_COLUMNS = [
    "cst_id", "cst_key", "cst_firstname", "cst_lastname",
    "cst_marital_status", "cst_gndr", "cst_create_date",
]


def read_new_customers(session: Session, watermark: datetime) -> pd.DataFrame:
    """Bronze customers with a business key, created after the watermark."""
    bronze = BronzeCustomer.__table__
    stmt = (
        select(bronze)
        .where(bronze.c.cst_id.isnot(None))
        .where(bronze.c.cst_create_date > watermark.date())
        .order_by(bronze.c.dwh_row_id)
    )
    return pd.read_sql(stmt, session.connection(), coerce_float=False)


def latest_per_customer(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the most recent row per cst_id (ties: highest dwh_row_id)."""
    if df.empty:
        return df
    df = df.sort_values(["cst_id", "cst_create_date", "dwh_row_id"])
    return df.drop_duplicates(subset=["cst_id"], keep="last").reset_index(drop=True)


def clean_customer_data(df: pd.DataFrame) -> pd.DataFrame:
    """
    Trim names and expand coded enumerations.
    Unmapped marital status / gender codes become 'n/a'.
    """
    df = df.copy()
    df["cst_key"] = clean_string_column(df["cst_key"], default_value="")
    df["cst_firstname"] = df["cst_firstname"].str.strip()
    df["cst_lastname"] = df["cst_lastname"].str.strip()
    df["cst_marital_status"] = map_code_column(df["cst_marital_status"], MARITAL_STATUS_LABELS)
    df["cst_gndr"] = map_code_column(df["cst_gndr"], GENDER_LABELS)
    df["cst_id"] = df["cst_id"].astype(int)

    df = df[CUSTOMER_COLUMNS].copy()
    df["dwh_hash_full"] = fingerprint_frame(df, CUSTOMER_HASH_FIELDS)
    logger.info(f"Customer data cleaned: {len(df)} records")
    return df


def load_current_hashes(session: Session, keys, chunk_size: int = 500) -> dict:
    """Map cst_id -> stored fingerprint for the given keys."""
    keys = [int(k) for k in keys]
    hashes = {}
    for i in range(0, len(keys), chunk_size):
        chunk = keys[i:i + chunk_size]
        rows = session.execute(
            select(SilverCustomer.cst_id, SilverCustomer.dwh_hash_full)
            .where(SilverCustomer.cst_id.in_(chunk))
        ).all()
        hashes.update({row.cst_id: row.dwh_hash_full for row in rows})
    return hashes


def merge_customers_incremental(
    session: Session,
    watermark: datetime = None,
    run_time: datetime = None,
    buffer: timedelta = DEFAULT_BUFFER,
) -> LoadResult:
    """
    Upsert new/changed customers and advance the watermark.

    Runs entirely inside the caller's transaction: nothing here commits.

    Args:
        session: Session owning the load transaction
        watermark: Boundary to filter on (read from the store when omitted)
        run_time: Timestamp stamped on changed rows (now when omitted)
        buffer: Safety buffer subtracted when the watermark advances

    Returns:
        LoadResult with inserted/updated counts
    """
    if watermark is None:
        watermark = get_watermark(session, TABLE_NAME)
    if run_time is None:
        run_time = datetime.now()
    logger.info(f">> Starting Incremental Merge: {TABLE_NAME} (Watermark: {watermark})")

    raw_df = read_new_customers(session, watermark)
    if raw_df.empty:
        logger.info("No new customer records to process")
        return LoadResult(table_name=TABLE_NAME, watermark_before=watermark, watermark_after=watermark)

    observed_max = raw_df["cst_create_date"].max()
    logger.info(f"Found {len(raw_df)} new customer records (latest {observed_max})")

    df = clean_customer_data(latest_per_customer(raw_df))
    stored = load_current_hashes(session, df["cst_id"].tolist())

    is_new = ~df["cst_id"].isin(list(stored.keys()))
    is_changed = ~is_new & (df["dwh_hash_full"] != df["cst_id"].map(stored))

    new_df = df[is_new].copy()
    new_df["dwh_last_changed"] = run_time
    inserted = insert_dataframe(new_df, SilverCustomer, session)

    changed_df = df[is_changed].copy()
    changed_df["dwh_last_changed"] = run_time
    updates = clean_nulls(changed_df).to_dict(orient="records")
    if updates:
        session.bulk_update_mappings(SilverCustomer, updates)
        session.flush()
    updated = len(updates)

    unchanged = len(df) - inserted - updated
    logger.info(f"Customers merged: {inserted} inserted, {updated} updated, {unchanged} unchanged")

    watermark_after = advance_watermark(session, TABLE_NAME, observed_max, buffer)

    return LoadResult(
        table_name=TABLE_NAME,
        row_count=inserted + updated,
        inserted=inserted,
        updated=updated,
        skipped=unchanged,
        watermark_before=watermark,
        watermark_after=watermark_after,
    )
