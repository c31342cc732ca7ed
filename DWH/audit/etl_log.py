"""
Audit log and data-quality issue sinks.

Both write through their own session and commit independently of any load
transaction, so a failed load is still recorded after its changes roll back.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from db.db_utils import transaction_scope
from db.models_audit import DataQualityIssue, EtlLog
from DWH.common.quality_checks import QCResult

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "Success"
STATUS_FAILED = "Failed"

LAYER_SILVER = "Silver"

# Table name used for the batch-level failure entry
FULL_BATCH_TABLE = "Full Silver Batch"


def log_attempt(
    engine: Engine,
    batch_id: Optional[int],
    table_name: str,
    start_time: datetime,
    end_time: datetime,
    row_count: Optional[int],
    status: str,
    error_message: Optional[str] = None,
) -> None:
    """Append one etl_log row for an attempted load."""
    with transaction_scope(engine) as session:
        session.add(EtlLog(
            batch_id=batch_id,
            table_name=table_name,
            start_time=start_time,
            end_time=end_time,
            row_count=row_count,
            status=status,
            error_message=error_message,
        ))

    duration = (end_time - start_time).total_seconds()
    if status == STATUS_SUCCESS:
        logger.info(f">> {table_name}: {row_count} rows in {duration:.2f} seconds")
    else:
        logger.error(f"!! {table_name} failed after {duration:.2f} seconds: {error_message}")


def log_quality_issues(
    engine: Engine,
    batch_id: Optional[int],
    results: Iterable[QCResult],
    layer: str = LAYER_SILVER,
) -> int:
    """Write one data_quality_issues row per failed check. Returns rows written."""
    failed = [r for r in results if not r.passed]
    if not failed:
        return 0

    with transaction_scope(engine) as session:
        for result in failed:
            description = (result.details or {}).get("description", result.message)
            session.add(DataQualityIssue(
                batch_id=batch_id,
                table_name=result.table_name,
                check_name=result.check_name,
                expected_value=result.expected_value,
                actual_value=result.actual_value,
                issue_description=description,
                check_layer=layer,
            ))

    logger.warning(f"{len(failed)} data quality issue(s) recorded for batch {batch_id}")
    return len(failed)


def next_batch_id(engine: Engine) -> int:
    """Next batch identifier: one above the highest batch id in the run log."""
    with transaction_scope(engine) as session:
        current = session.execute(select(func.max(EtlLog.batch_id))).scalar()
    return (current or 0) + 1
