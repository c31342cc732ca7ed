# DWH/silver/metadata_driven.py
"""
Metadata-driven full reload for configured source -> target pairs.

Each active FULL entry in audit.etl_config is reloaded in its own
transaction: the target is emptied and refilled from the source using the
columns both tables share. A failing entry is rolled back and logged; the
remaining entries still run.
"""

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import MetaData, Table, delete, func, insert, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import NoSuchTableError

from db.db_utils import transaction_scope
from DWH.audit.config_store import LoadConfigEntry, load_config_entries, select_full_load_entries
from DWH.audit.etl_log import STATUS_FAILED, STATUS_SUCCESS, log_attempt, log_quality_issues
from DWH.common.exceptions import ValidationError
from DWH.common.quality_checks import check_row_count_parity
from DWH.silver.results import EntryResult

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_table_name(qualified_name: str) -> Tuple[str, str]:
    """
    Split 'schema.table' into its parts.

    Raises:
        ValidationError: the name is not two plain identifiers
    """
    parts = (qualified_name or "").strip().split(".")
    if len(parts) != 2 or not all(IDENTIFIER_PATTERN.match(part) for part in parts):
        raise ValidationError(
            f"Invalid table name '{qualified_name}' (expected schema.table)",
            validation_type="identifier",
            table_name=qualified_name,
        )
    return parts[0], parts[1]


def reflect_table(conn: Connection, qualified_name: str) -> Table:
    """
    Raises:
        ValidationError: the table does not exist
    """
    schema, name = parse_table_name(qualified_name)
    try:
        return Table(name, MetaData(), schema=schema, autoload_with=conn)
    except NoSuchTableError as e:
        raise ValidationError(
            f"Table '{qualified_name}' does not exist",
            validation_type="missing_table",
            table_name=qualified_name,
            original_error=e,
        ) from e


def matching_columns(source: Table, target: Table) -> List[str]:
    """
    Column names present in both tables, in target order (case-insensitive match).

    Raises:
        ValidationError: the tables share no column
    """
    source_names = {column.name.lower() for column in source.columns}
    shared = [column.name for column in target.columns if column.name.lower() in source_names]
    if not shared:
        raise ValidationError(
            "No matching columns found between source and target",
            validation_type="column_intersection",
            table_name=f"{target.schema}.{target.name}",
        )
    return shared


def _source_column(source: Table, name: str):
    by_lower = {column.name.lower(): column for column in source.columns}
    return by_lower[name.lower()]


def reload_entry(engine: Engine, entry: LoadConfigEntry) -> Tuple[int, List[str]]:
    """
    Empty the target and copy the shared columns from the source, in one transaction.

    Returns:
        (rows in target after the reload, columns copied)
    """
    with transaction_scope(engine) as session:
        conn = session.connection()
        source = reflect_table(conn, entry.source_table)
        target = reflect_table(conn, entry.target_table)
        columns = matching_columns(source, target)

        session.execute(delete(target))
        session.execute(
            insert(target).from_select(
                columns,
                select(*[_source_column(source, name) for name in columns]),
            )
        )
        row_count = session.execute(select(func.count()).select_from(target)).scalar()
    return int(row_count or 0), columns


def check_entry_parity(engine: Engine, batch_id: Optional[int], entry: LoadConfigEntry) -> None:
    """Source vs target row count after a successful reload. Findings go to the DQ sink."""
    try:
        with transaction_scope(engine) as session:
            conn = session.connection()
            source = reflect_table(conn, entry.source_table)
            target = reflect_table(conn, entry.target_table)
            result = check_row_count_parity(
                session,
                entry.target_table,
                select(func.count()).select_from(source),
                select(func.count()).select_from(target),
                description="Row count mismatch after full reload",
            )
        log_quality_issues(engine, batch_id, [result])
    except Exception:
        logger.exception(f"Row count check for {entry.target_table} could not run")


def run_entry(
    engine: Engine,
    batch_id: Optional[int],
    entry: LoadConfigEntry,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[EntryResult]:
    """Reload one entry and audit the attempt. Returns None when cancelled before starting."""
    if cancel_event is not None and cancel_event.is_set():
        logger.warning(f"Cancellation requested, {entry.target_table} not started")
        return None

    start_time = datetime.now()
    logger.info(f">> Dynamic Framework Loading: {entry.target_table}")
    try:
        row_count, columns = reload_entry(engine, entry)
    except Exception as e:
        end_time = datetime.now()
        logger.error(f"!! ERROR loading {entry.target_table}: {e}")
        log_attempt(engine, batch_id, entry.target_table, start_time, end_time, None, STATUS_FAILED, str(e))
        return EntryResult(
            source_table=entry.source_table,
            target_table=entry.target_table,
            status=STATUS_FAILED,
            start_time=start_time,
            end_time=end_time,
            error_message=str(e),
        )

    end_time = datetime.now()
    log_attempt(engine, batch_id, entry.target_table, start_time, end_time, row_count, STATUS_SUCCESS)
    check_entry_parity(engine, batch_id, entry)
    return EntryResult(
        source_table=entry.source_table,
        target_table=entry.target_table,
        status=STATUS_SUCCESS,
        start_time=start_time,
        end_time=end_time,
        row_count=row_count,
        columns=tuple(columns),
    )


def run_configured_loads(
    engine: Engine,
    batch_id: Optional[int] = None,
    entries: Optional[Sequence[LoadConfigEntry]] = None,
    max_workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> List[EntryResult]:
    """
    Reload every active FULL entry in priority order.

    Args:
        engine: Warehouse engine
        batch_id: Batch the audit rows belong to
        entries: Configuration to use (read from audit.etl_config when omitted)
        max_workers: Entries reloaded in parallel (1 = strictly sequential)
        cancel_event: When set, entries not started yet are left out

    Returns:
        One EntryResult per attempted entry, in priority order
    """
    if entries is None:
        with transaction_scope(engine) as session:
            entries = load_config_entries(session)

    # One entry per target, so parallel entries never share a target
    selected = select_full_load_entries(entries)
    logger.info(f"Metadata-driven engine: {len(selected)} configured load(s)")
    if not selected:
        return []

    if max_workers <= 1 or len(selected) == 1:
        results = [run_entry(engine, batch_id, entry, cancel_event) for entry in selected]
    else:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="silver-load") as pool:
            futures = [pool.submit(run_entry, engine, batch_id, entry, cancel_event) for entry in selected]
            results = [future.result() for future in futures]

    results = [result for result in results if result is not None]
    failed = sum(1 for result in results if not result.succeeded)
    logger.info(f"Metadata-driven engine finished: {len(results) - failed} succeeded, {failed} failed")
    return results
