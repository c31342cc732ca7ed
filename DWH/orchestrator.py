# DWH/orchestrator.py
"""
Silver batch orchestrator.
Runs the hardcoded CRM entities, then the metadata-driven ERP reloads,
under one batch id.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine

from db.db_utils import get_engine
from DWH.audit.etl_log import next_batch_id
from DWH.bootstrap import init_database
from DWH.common.config import get_settings
from DWH.common.exceptions import SilverTransformError
from DWH.common.logging import configure_logging, create_run_log_file, set_batch_context
from DWH.silver.metadata_driven import run_configured_loads
from DWH.silver.transformer import run_silver_transform

logger = logging.getLogger(__name__)

BATCH_SUCCESS = "Success"
BATCH_PARTIAL = "Completed With Errors"
BATCH_CANCELLED = "Cancelled"


def run_silver_batch(
    engine: Optional[Engine] = None,
    batch_id: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    max_workers: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run one silver batch.

    Pipeline Flow:
        CRM customers (SCD1) -> CRM products (SCD2) -> CRM sales (delta)
        -> ERP tables (metadata-driven full reload)

    Args:
        engine: Warehouse engine (built from settings when omitted)
        batch_id: Batch identifier (next free id when omitted)
        cancel_event: Set it to stop before the next table starts
        max_workers: Parallel lanes for the metadata-driven engine

    Returns:
        dict: batch_id, status, entities, configured, quality, cancelled

    Raises:
        SilverTransformError: a hardcoded entity failed (ERP reloads were not run)
    """
    settings = get_settings()
    if engine is None:
        engine = get_engine(settings.database_url)
    if batch_id is None:
        batch_id = next_batch_id(engine)
    if max_workers is None:
        max_workers = settings.metadata_max_workers
    buffer = timedelta(days=settings.watermark_buffer_days)
    set_batch_context(batch_id)

    batch_start = datetime.now()
    logger.info("")
    logger.info("=" * 60)
    logger.info(f"  SILVER BATCH {batch_id} started")
    logger.info("=" * 60)

    try:
        transform = run_silver_transform(engine, batch_id, cancel_event=cancel_event, buffer=buffer)
    except SilverTransformError as e:
        logger.error(f"SILVER BATCH {batch_id} FAILED: {e}")
        raise

    results: Dict[str, Any] = {
        "batch_id": batch_id,
        "status": BATCH_SUCCESS,
        "entities": transform["entities"],
        "configured": [],
        "quality": transform["quality"],
        "cancelled": transform["cancelled"],
    }

    if not results["cancelled"]:
        logger.info("")
        logger.info("=" * 60)
        logger.info("  Loading ERP tables (metadata-driven engine)")
        logger.info("=" * 60)
        results["configured"] = run_configured_loads(
            engine,
            batch_id,
            max_workers=max_workers,
            cancel_event=cancel_event,
        )
        if cancel_event is not None and cancel_event.is_set():
            results["cancelled"] = True

    if results["cancelled"]:
        results["status"] = BATCH_CANCELLED
    elif any(not entry.succeeded for entry in results["configured"]):
        results["status"] = BATCH_PARTIAL

    duration = (datetime.now() - batch_start).total_seconds()
    failed_checks = sum(1 for r in results["quality"] if not r.passed)

    logger.info("")
    logger.info("=" * 60)
    logger.info(f"SILVER BATCH {batch_id}: {results['status'].upper()}")
    logger.info("=" * 60)
    logger.info("Summary:")
    for entity in results["entities"]:
        logger.info(f"  {entity.table_name}: {entity.row_count} rows "
                    f"(inserted {entity.inserted}, updated {entity.updated}, expired {entity.expired})")
    for entry in results["configured"]:
        outcome = f"{entry.row_count} rows" if entry.succeeded else f"FAILED ({entry.error_message})"
        logger.info(f"  {entry.target_table}: {outcome}")
    logger.info(f"  Quality issues: {failed_checks}")
    logger.info(f"  Total duration: {duration:.2f} seconds")
    logger.info("")

    return results


def main() -> None:
    """Configure logging from settings, initialize the warehouse and run one batch."""
    settings = get_settings()
    log_file = settings.log_file
    if log_file is None and settings.log_dir:
        log_file = create_run_log_file(settings.log_dir)
    configure_logging(settings.log_level, log_file)

    engine = get_engine(settings.database_url)
    init_database(engine)
    run_silver_batch(engine)


if __name__ == "__main__":
    main()
