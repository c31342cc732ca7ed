# DWH/bootstrap.py
"""
One-time (idempotent) warehouse setup: schemas, tables, watermark rows and
the default metadata-driven load configuration.
"""

import logging

from sqlalchemy.engine import Engine

from db.db_utils import create_all_tables, transaction_scope
from DWH.audit.config_store import seed_default_config
from DWH.audit.watermark import register_watermark
from DWH.silver import customers, sales

logger = logging.getLogger(__name__)

# table -> column its watermark tracks
WATERMARKED_TABLES = {
    customers.TABLE_NAME: "cst_create_date",
    sales.TABLE_NAME: "sls_order_dt",
}


def init_database(engine: Engine, seed_config: bool = True) -> None:
    """Create everything the silver batch needs. Safe to run repeatedly."""
    logger.info("Initializing warehouse schemas and tables...")
    create_all_tables(engine)

    with transaction_scope(engine) as session:
        for table_name, column in WATERMARKED_TABLES.items():
            register_watermark(session, table_name, column)
        if seed_config:
            seed_default_config(session)

    logger.info("Warehouse initialized")
