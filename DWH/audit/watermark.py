"""
Watermark Store - last successfully processed boundary per incremental table.

All functions work inside the caller's session/transaction: a watermark
written here becomes visible exactly when the load that produced it commits.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models_audit import WatermarkThreshold
from DWH.common.exceptions import WatermarkNotFoundError

logger = logging.getLogger(__name__)

# "Beginning of time" for tables that have never been loaded
SENTINEL_WATERMARK = datetime(1900, 1, 1)
DEFAULT_BUFFER = timedelta(days=1)


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _get_record(session: Session, table_name: str) -> WatermarkThreshold:
    record = session.execute(
        select(WatermarkThreshold).where(WatermarkThreshold.table_name == table_name)
    ).scalar_one_or_none()
    if record is None:
        raise WatermarkNotFoundError(table_name)
    return record


def register_watermark(
    session: Session,
    table_name: str,
    watermark_column: str,
    initial: datetime = SENTINEL_WATERMARK,
) -> WatermarkThreshold:
    """Seed a watermark row. Leaves an existing row untouched."""
    record = session.get(WatermarkThreshold, table_name)
    if record is None:
        record = WatermarkThreshold(
            table_name=table_name,
            last_load_date=initial,
            watermark_column=watermark_column,
        )
        session.add(record)
        session.flush()
        logger.info(f"Registered watermark for {table_name} on {watermark_column} ({initial})")
    return record


def get_watermark(session: Session, table_name: str) -> datetime:
    """
    Get the last processed boundary for a table.

    Returns the sentinel when the row exists but holds no boundary yet.

    Raises:
        WatermarkNotFoundError: if the table was never registered
    """
    record = _get_record(session, table_name)
    if record.last_load_date is None:
        return SENTINEL_WATERMARK
    return record.last_load_date


def get_watermark_column(session: Session, table_name: str) -> str:
    return _get_record(session, table_name).watermark_column


def advance_watermark(
    session: Session,
    table_name: str,
    observed_max: Union[date, datetime],
    buffer: timedelta = DEFAULT_BUFFER,
) -> datetime:
    """
    Move the watermark to observed_max - buffer, never backwards.

    The buffer re-includes the last window on the next run so late-arriving
    rows with a boundary equal or close to the maximum are not skipped.

    Returns:
        The boundary stored after the call
    """
    record = _get_record(session, table_name)
    current = record.last_load_date or SENTINEL_WATERMARK
    candidate = _as_datetime(observed_max) - buffer

    if candidate <= current:
        logger.info(f"Watermark for {table_name} kept at {current} (candidate {candidate} is not newer)")
        return current

    record.last_load_date = candidate
    record.updated_at = datetime.utcnow()
    session.flush()
    logger.info(f"Watermark for {table_name} advanced: {current} -> {candidate}")
    return candidate
