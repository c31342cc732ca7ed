# DWH/__init__.py
"""
Silver-layer engine for a medallion data warehouse.

Bronze (raw CRM/ERP copies) is turned into cleansed, historized silver
tables under one batch id:
- Customers: incremental SCD Type 1 merge (watermark)
- Products: SCD Type 2 versioning
- Sales: delta append (watermark)
- ERP tables: metadata-driven full reload from audit.etl_config

Usage:
    from DWH import init_database, run_silver_batch
    init_database(engine)
    results = run_silver_batch(engine)
"""

__version__ = "1.0.0"
__author__ = "ETL Team"

# Main entry point
from DWH.orchestrator import run_silver_batch
from DWH.bootstrap import init_database

# Layer-specific exports
from DWH.silver import run_silver_transform, run_configured_loads
from DWH.common import QCReport, QCResult, SilverTransformError

__all__ = [
    # Version
    "__version__",
    # Main orchestrator
    "run_silver_batch",
    "init_database",
    # Silver layer
    "run_silver_transform",
    "run_configured_loads",
    # Common utilities
    "QCReport",
    "QCResult",
    "SilverTransformError",
]
