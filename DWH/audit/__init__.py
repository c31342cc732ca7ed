"""
Audit Layer - watermarks, load configuration, run log and data-quality issues.
"""

from DWH.audit.watermark import (
    SENTINEL_WATERMARK,
    register_watermark,
    get_watermark,
    get_watermark_column,
    advance_watermark,
)
from DWH.audit.config_store import (
    LoadConfigEntry,
    load_config_entries,
    select_full_load_entries,
    seed_default_config,
)
from DWH.audit.etl_log import (
    STATUS_SUCCESS,
    STATUS_FAILED,
    FULL_BATCH_TABLE,
    log_attempt,
    log_quality_issues,
    next_batch_id,
)

__all__ = [
    "SENTINEL_WATERMARK",
    "register_watermark",
    "get_watermark",
    "get_watermark_column",
    "advance_watermark",
    "LoadConfigEntry",
    "load_config_entries",
    "select_full_load_entries",
    "seed_default_config",
    "STATUS_SUCCESS",
    "STATUS_FAILED",
    "FULL_BATCH_TABLE",
    "log_attempt",
    "log_quality_issues",
    "next_batch_id",
]
