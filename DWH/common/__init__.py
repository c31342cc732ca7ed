"""
Common utilities shared across the pipeline.
Includes quality checks, logging, settings and custom exceptions.
"""

from DWH.common.quality_checks import (
    QCResult,
    QCReport,
    check_row_count_parity,
    check_duplicate_keys,
    check_sum_reconciliation,
    check_referential_integrity,
    check_unknown_member_keys,
)
from DWH.common.exceptions import (
    ETLError,
    ValidationError,
    WatermarkNotFoundError,
    TransientStorageError,
    InvariantViolation,
    SilverTransformError,
)
from DWH.common.logging import configure_logging, get_logger, create_run_log_file, set_batch_context
from DWH.common.config import Settings, get_settings

__all__ = [
    # Quality Checks
    "QCResult",
    "QCReport",
    "check_row_count_parity",
    "check_duplicate_keys",
    "check_sum_reconciliation",
    "check_referential_integrity",
    "check_unknown_member_keys",
    # Exceptions
    "ETLError",
    "ValidationError",
    "WatermarkNotFoundError",
    "TransientStorageError",
    "InvariantViolation",
    "SilverTransformError",
    # Logging
    "configure_logging",
    "get_logger",
    "create_run_log_file",
    "set_batch_context",
    # Settings
    "Settings",
    "get_settings",
]
