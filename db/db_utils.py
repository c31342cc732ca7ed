# db/db_utils.py
"""
Database helpers shared by every layer.

Engines are cached per URL. SQLite URLs get the layer schemas (bronze, silver,
audit) ATTACHed as sibling database files so the same schema-qualified models
work locally and in tests.
"""

import logging
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional

import numpy as np
import pandas as pd
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.models_audit import AuditBase
from db.models_bronze import BronzeBase
from db.models_silver import SilverBase

logger = logging.getLogger(__name__)

LAYER_SCHEMAS = ("bronze", "silver", "audit")


def _sqlite_schema_path(database: Optional[str], schema: str) -> str:
    if not database or database == ":memory:":
        return ":memory:"
    path = Path(database)
    return str(path.with_name(f"{path.stem}_{schema}{path.suffix or '.db'}"))


def _attach_sqlite_schemas(engine: Engine) -> None:
    database = engine.url.database

    @event.listens_for(engine, "connect")
    def _attach(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        for schema in LAYER_SCHEMAS:
            cursor.execute(
                f"ATTACH DATABASE '{_sqlite_schema_path(database, schema)}' AS {schema}"
            )
        cursor.close()


@lru_cache(maxsize=None)
def get_engine(database_url: str) -> Engine:
    """Create (once per URL) the SQLAlchemy engine."""
    engine = create_engine(database_url, future=True, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        _attach_sqlite_schemas(engine)
    logger.debug(f"Engine created for dialect '{engine.dialect.name}'")
    return engine


def get_session(engine: Engine) -> Session:
    """Open a new session bound to the engine. Caller closes it."""
    return sessionmaker(bind=engine, expire_on_commit=False)()


@contextmanager
def transaction_scope(engine: Engine) -> Iterator[Session]:
    """
    Own one transaction from start to finish.

    Commits when the block exits normally, rolls back on any exception and
    always closes the session. Callers never commit or roll back themselves.
    """
    session = get_session(engine)
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


# SCHEMA AND TABLE MANAGEMENT

def create_schemas(engine: Engine) -> None:
    """Create the layer schemas if they don't exist (SQLite attaches them instead)."""
    if engine.dialect.name == "sqlite":
        return
    with engine.connect() as conn:
        for schema in LAYER_SCHEMAS:
            conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
        conn.commit()
    logger.info(f"Schemas {', '.join(LAYER_SCHEMAS)} created or already exist")


def create_all_tables(engine: Engine) -> None:
    """Create bronze, silver and audit tables."""
    create_schemas(engine)
    BronzeBase.metadata.create_all(engine)
    SilverBase.metadata.create_all(engine)
    AuditBase.metadata.create_all(engine)
    logger.info("Bronze, silver and audit tables created successfully")


# DATAFRAME HELPERS

def clean_nulls(df: pd.DataFrame) -> pd.DataFrame:
    """Replace NaN/NaT with None for database insertion."""
    df = df.astype(object)
    df = df.replace({pd.NaT: None, pd.NA: None, np.nan: None})
    return df.where(pd.notna(df), None)


def insert_dataframe(df: pd.DataFrame, table_class, session: Session, batch_size: int = 1000) -> int:
    """
    Bulk insert a DataFrame into a model's table inside the caller's transaction.

    Returns:
        Number of rows inserted
    """
    if df.empty:
        return 0

    records = clean_nulls(df).to_dict(orient="records")
    total = len(records)

    for i in range(0, total, batch_size):
        batch = records[i:i + batch_size]
        session.bulk_insert_mappings(table_class, batch)
        logger.debug(f"  Inserted batch {i // batch_size + 1} ({len(batch)} records)")

    session.flush()
    return total
