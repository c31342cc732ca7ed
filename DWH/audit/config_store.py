"""
Load configuration store for the metadata-driven engine.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models_audit import EtlConfig

logger = logging.getLogger(__name__)

LOAD_TYPE_FULL = "FULL"
LOAD_TYPE_INCREMENTAL = "INCREMENTAL"

# (source, target, load_type, priority)
DEFAULT_LOAD_CONFIG: Tuple[Tuple[str, str, str, int], ...] = (
    ("bronze.erp_loc_a101", "silver.erp_loc_a101", LOAD_TYPE_FULL, 10),
    ("bronze.erp_cust_az12", "silver.erp_cust_az12", LOAD_TYPE_FULL, 20),
    ("bronze.erp_px_cat_g1v2", "silver.erp_px_cat_g1v2", LOAD_TYPE_FULL, 30),
)


@dataclass(frozen=True)
class LoadConfigEntry:
    """One configured source -> target load."""
    source_table: str
    target_table: str
    load_type: str = LOAD_TYPE_FULL
    is_active: bool = True
    priority: int = 10
    config_id: int = 0

    @classmethod
    def from_model(cls, row: EtlConfig) -> "LoadConfigEntry":
        return cls(
            source_table=row.source_table,
            target_table=row.target_table,
            load_type=(row.load_type or "").upper(),
            is_active=bool(row.is_active),
            priority=row.priority,
            config_id=row.config_id,
        )


def load_config_entries(session: Session) -> List[LoadConfigEntry]:
    """Read configuration ordered by priority (ties by config id)."""
    stmt = select(EtlConfig).order_by(EtlConfig.priority, EtlConfig.config_id)
    return [LoadConfigEntry.from_model(row) for row in session.execute(stmt).scalars()]


def select_full_load_entries(entries: Sequence[LoadConfigEntry]) -> List[LoadConfigEntry]:
    """
    Active FULL entries in ascending priority, one per target.

    A target listed twice is processed once (first by priority).
    """
    selected: List[LoadConfigEntry] = []
    seen_targets = set()
    for entry in sorted(entries, key=lambda e: (e.priority, e.config_id)):
        if not entry.is_active:
            continue
        if entry.load_type.upper() != LOAD_TYPE_FULL:
            logger.info(f"Skipping {entry.target_table}: load type {entry.load_type} "
                        f"is not handled by the generic engine")
            continue
        target_key = entry.target_table.lower()
        if target_key in seen_targets:
            logger.warning(f"Duplicate configuration for target {entry.target_table} ignored")
            continue
        seen_targets.add(target_key)
        selected.append(entry)
    return selected


def seed_default_config(session: Session) -> int:
    """Insert the default ERP load configuration for targets not configured yet."""
    existing = set(session.execute(select(EtlConfig.target_table)).scalars())
    added = 0
    for source, target, load_type, priority in DEFAULT_LOAD_CONFIG:
        if target in existing:
            continue
        session.add(EtlConfig(
            source_table=source,
            target_table=target,
            load_type=load_type,
            is_active=True,
            priority=priority,
        ))
        added += 1
    session.flush()
    if added:
        logger.info(f"ETL configuration seeded: {added} entries")
    return added
