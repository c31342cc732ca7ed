# DWH/silver/transformer.py
"""
Silver Layer ETL - hardcoded CRM entities.

Customers (SCD1, watermark), products (SCD2) and sales (delta append,
watermark) are loaded in that order, each in its own transaction together
with its watermark advance. The first failure aborts the hardcoded path for
the batch.
"""

import logging
import threading
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from db.db_utils import transaction_scope
from DWH.audit.etl_log import (
    FULL_BATCH_TABLE,
    STATUS_FAILED,
    STATUS_SUCCESS,
    log_attempt,
    log_quality_issues,
)
from DWH.audit.watermark import DEFAULT_BUFFER
from DWH.common.exceptions import SilverTransformError, TransientStorageError
from DWH.silver import customers, products, sales
from DWH.silver.results import LoadResult
from DWH.silver.validator import run_entity_checks

logger = logging.getLogger(__name__)

EntityLoader = Callable[[Session], LoadResult]


def build_entity_loaders(
    batch_id: Optional[int],
    run_time: datetime,
    buffer: timedelta = DEFAULT_BUFFER,
) -> List[Tuple[str, EntityLoader]]:
    """Hardcoded entities in load order."""
    return [
        (customers.TABLE_NAME, partial(customers.merge_customers_incremental, run_time=run_time, buffer=buffer)),
        (products.TABLE_NAME, partial(products.merge_products_versioned, run_time=run_time)),
        (sales.TABLE_NAME, partial(sales.append_sales_delta, batch_id=batch_id, buffer=buffer)),
    ]


def load_entity(engine: Engine, table_name: str, loader: EntityLoader) -> LoadResult:
    """
    Run one entity load in its own transaction.

    Raises:
        TransientStorageError: the connection dropped or the transaction conflicted
    """
    try:
        with transaction_scope(engine) as session:
            return loader(session)
    except OperationalError as e:
        raise TransientStorageError(
            f"Storage unavailable while loading {table_name}: {e.orig}",
            table_name=table_name,
            original_error=e,
        ) from e
    except DBAPIError as e:
        if not e.connection_invalidated:
            raise
        raise TransientStorageError(
            f"Connection lost while loading {table_name}",
            table_name=table_name,
            original_error=e,
        ) from e


def _record_failure(
    engine: Engine,
    batch_id: Optional[int],
    table_name: str,
    start_time: datetime,
    batch_start: datetime,
    error: Exception,
) -> None:
    """Entity-level and batch-level Failed entries. Audit problems are logged, not raised."""
    end_time = datetime.now()
    try:
        log_attempt(engine, batch_id, table_name, start_time, end_time, None, STATUS_FAILED, str(error))
        log_attempt(
            engine, batch_id, FULL_BATCH_TABLE, batch_start, end_time, None, STATUS_FAILED,
            f"{table_name}: {error}",
        )
    except Exception:
        logger.exception(f"Could not write failure audit for {table_name} (batch {batch_id})")


def run_silver_transform(
    engine: Engine,
    batch_id: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    buffer: timedelta = DEFAULT_BUFFER,
) -> Dict[str, Any]:
    """
    Load the hardcoded silver entities for one batch.

    Args:
        engine: Warehouse engine
        batch_id: Batch identifier stamped on audit rows and new facts
        cancel_event: Checked before each entity's transaction starts
        buffer: Watermark safety buffer

    Returns:
        dict: {"entities": [LoadResult], "quality": [QCResult], "cancelled": bool}

    Raises:
        SilverTransformError: an entity failed; later entities were not run
    """
    logger.info("=" * 60)
    logger.info(f"SILVER LAYER: Loading CRM tables | Batch ID: {batch_id}")
    logger.info("=" * 60)

    batch_start = datetime.now()
    results: Dict[str, Any] = {"entities": [], "quality": [], "cancelled": False}

    for table_name, loader in build_entity_loaders(batch_id, batch_start, buffer):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Cancellation requested, stopping before {table_name}")
            results["cancelled"] = True
            break

        logger.info("-" * 40)
        start_time = datetime.now()
        try:
            load_result = load_entity(engine, table_name, loader)
        except Exception as e:
            logger.error(f"!! {table_name} failed, silver batch aborted: {e}")
            _record_failure(engine, batch_id, table_name, start_time, batch_start, e)
            raise SilverTransformError(
                f"Silver batch aborted at {table_name}: {e}",
                table_name=table_name,
                batch_id=batch_id,
                original_error=e,
            ) from e

        log_attempt(
            engine, batch_id, table_name, start_time, datetime.now(),
            load_result.row_count, STATUS_SUCCESS,
        )
        results["entities"].append(load_result)

        quality = run_entity_checks(engine, table_name, load_result)
        try:
            log_quality_issues(engine, batch_id, quality)
        except Exception:
            logger.exception(f"Could not record quality issues for {table_name}")
        results["quality"].extend(quality)

    loaded = ", ".join(f"{r.table_name}={r.row_count}" for r in results["entities"])
    logger.info(f"SILVER CRM LOAD COMPLETE: {loaded or 'nothing loaded'}")
    return results
