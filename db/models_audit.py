# db/models_audit.py
"""
Audit Models - run log, data quality issues, load configuration and watermarks.
Schema: audit
"""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base

AuditBase = declarative_base()


class EtlLog(AuditBase):
    """One row per table per attempted load. Append-only."""

    __tablename__ = "etl_log"
    __table_args__ = {"schema": "audit"}

    log_id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(Integer, index=True)
    table_name = Column(String(100), nullable=False)
    start_time = Column(DateTime, default=datetime.utcnow)
    end_time = Column(DateTime)
    row_count = Column(BigInteger)
    status = Column(String(20), nullable=False)
    error_message = Column(Text)

    def __repr__(self):
        return f"<EtlLog(batch={self.batch_id}, table={self.table_name}, status={self.status})>"


class DataQualityIssue(AuditBase):
    """A failed post-load check. Append-only."""

    __tablename__ = "data_quality_issues"
    __table_args__ = {"schema": "audit"}

    issue_id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(Integer, index=True)
    table_name = Column(String(100), nullable=False)
    check_name = Column(String(100), nullable=False)
    expected_value = Column(Text)
    actual_value = Column(Text)
    issue_description = Column(Text)
    check_layer = Column(String(20))
    check_date = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<DataQualityIssue(table={self.table_name}, check={self.check_name})>"


class EtlConfig(AuditBase):
    """Drives the metadata-driven full-reload engine."""

    __tablename__ = "etl_config"
    __table_args__ = {"schema": "audit"}

    config_id = Column(Integer, primary_key=True, autoincrement=True)
    source_table = Column(String(255), nullable=False)
    target_table = Column(String(255), nullable=False, unique=True)
    load_type = Column(String(50), nullable=False, default="FULL")
    is_active = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=10)

    def __repr__(self):
        return f"<EtlConfig({self.source_table} -> {self.target_table}, p={self.priority})>"


class WatermarkThreshold(AuditBase):
    """Last processed boundary per incrementally loaded table."""

    __tablename__ = "watermark_thresholds"
    __table_args__ = {"schema": "audit"}

    table_name = Column(String(100), primary_key=True)
    last_load_date = Column(DateTime)
    watermark_column = Column(String(50), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<WatermarkThreshold(table={self.table_name}, last={self.last_load_date})>"
