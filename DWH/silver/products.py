# DWH/silver/products.py
"""
Products - SCD Type 2 versioning (bronze.crm_prd_info -> silver.crm_prd_info).

The whole bronze table is compared with the current versions on every run:
a changed product gets its current version expired and a new one inserted,
so history is append-only.
"""

import logging
from datetime import datetime

import pandas as pd
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from db.db_utils import insert_dataframe
from db.models_bronze import BronzeProduct
from db.models_silver import SilverProduct
from DWH.common.exceptions import InvariantViolation
from DWH.silver.fingerprint import PRODUCT_HASH_FIELDS, fingerprint_frame
from DWH.silver.results import LoadResult
from DWH.silver.utils import (
    PRODUCT_LINE_LABELS,
    clean_string_column,
    map_code_column,
    split_product_key,
)

logger = logging.getLogger(__name__)

TABLE_NAME = "silver.crm_prd_info"

VERSION_COLUMNS = [
    "prd_id", "cat_id", "prd_key", "prd_nm", "prd_cost", "prd_line",
    "prd_start_dt", "dwh_hash_full",
]


def read_bronze_products(session: Session) -> pd.DataFrame:
    bronze = BronzeProduct.__table__
    stmt = (
        select(bronze)
        .where(bronze.c.prd_id.isnot(None))
        .where(bronze.c.prd_key.isnot(None))
        .order_by(bronze.c.dwh_row_id)
    )
    return pd.read_sql(stmt, session.connection(), coerce_float=False)


def clean_product_data(df: pd.DataFrame) -> pd.DataFrame:
    """
    One row per prd_id with normalised versioned attributes and fingerprint.

    Duplicate prd_ids keep the latest prd_start_dt (ties: highest dwh_row_id).
    """
    df = df.sort_values(["prd_id", "prd_start_dt", "dwh_row_id"], na_position="first")
    df = df.drop_duplicates(subset=["prd_id"], keep="last").reset_index(drop=True)

    df["prd_id"] = df["prd_id"].astype(int)
    df["prd_nm"] = clean_string_column(df["prd_nm"])
    df["prd_cost"] = pd.to_numeric(df["prd_cost"], errors="coerce").fillna(0).astype(int)
    df["prd_line"] = map_code_column(df["prd_line"], PRODUCT_LINE_LABELS)

    # Category and product number are encoded in the raw key
    split_keys = df["prd_key"].apply(split_product_key)
    df["cat_id"] = [cat_id for cat_id, _ in split_keys]
    df["prd_key"] = [number for _, number in split_keys]

    df["dwh_hash_full"] = fingerprint_frame(df, PRODUCT_HASH_FIELDS)
    logger.info(f"Product data cleaned: {len(df)} records")
    return df[VERSION_COLUMNS].copy()


def load_current_versions(session: Session) -> pd.DataFrame:
    silver = SilverProduct.__table__
    stmt = (
        select(silver.c.dwh_version_id, silver.c.prd_id, silver.c.dwh_hash_full)
        .where(silver.c.is_current.is_(True))
    )
    return pd.read_sql(stmt, session.connection())


def expire_changed_versions(session: Session, source_df: pd.DataFrame, run_time: datetime) -> int:
    """Close the current version of every product whose fingerprint changed."""
    current = load_current_versions(session)
    if current.empty or source_df.empty:
        return 0

    merged = current.merge(
        source_df[["prd_id", "dwh_hash_full"]],
        on="prd_id",
        how="inner",
        suffixes=("_target", "_source"),
    )
    changed = merged[merged["dwh_hash_full_target"] != merged["dwh_hash_full_source"]]
    version_ids = [int(v) for v in changed["dwh_version_id"]]
    if not version_ids:
        return 0

    for i in range(0, len(version_ids), 500):
        chunk = version_ids[i:i + 500]
        session.execute(
            update(SilverProduct)
            .where(SilverProduct.dwh_version_id.in_(chunk))
            .values(is_current=False, expiry_date=run_time)
            .execution_options(synchronize_session=False)
        )
    session.flush()
    return len(version_ids)


def insert_new_versions(session: Session, source_df: pd.DataFrame, run_time: datetime) -> int:
    """Insert a current version for every product that has none (new or just expired)."""
    current_ids = set(
        session.execute(
            select(SilverProduct.prd_id).where(SilverProduct.is_current.is_(True))
        ).scalars()
    )
    new_df = source_df[~source_df["prd_id"].isin(current_ids)].copy()
    if new_df.empty:
        return 0

    new_df["effective_date"] = run_time
    new_df["expiry_date"] = None
    new_df["is_current"] = True
    return insert_dataframe(new_df, SilverProduct, session)


def assert_single_current_version(session: Session) -> None:
    """
    Raises:
        InvariantViolation: a prd_id has more than one current version
    """
    offenders = session.execute(
        select(SilverProduct.prd_id)
        .where(SilverProduct.is_current.is_(True))
        .group_by(SilverProduct.prd_id)
        .having(func.count() > 1)
    ).scalars().all()
    if offenders:
        raise InvariantViolation(
            f"{len(offenders)} product(s) with more than one current version",
            table_name=TABLE_NAME,
            offending_keys=list(offenders),
        )


def merge_products_versioned(session: Session, run_time: datetime = None) -> LoadResult:
    """
    Expire changed versions, then insert new ones, then verify the
    one-current-version invariant - all in the caller's transaction.

    Expiry must complete before insertion is evaluated: a product only
    qualifies for a new version once it has no current one.
    """
    if run_time is None:
        run_time = datetime.now()
    logger.info(f">> Starting SCD Type 2 Process: {TABLE_NAME}")

    raw_df = read_bronze_products(session)
    if raw_df.empty:
        logger.info("No bronze product records found")
        return LoadResult(table_name=TABLE_NAME)

    source_df = clean_product_data(raw_df)

    expired = expire_changed_versions(session, source_df, run_time)
    inserted = insert_new_versions(session, source_df, run_time)
    assert_single_current_version(session)

    logger.info(f"Products versioned: {expired} expired, {inserted} new versions")
    return LoadResult(
        table_name=TABLE_NAME,
        row_count=inserted,
        inserted=inserted,
        expired=expired,
        skipped=len(source_df) - inserted,
    )
