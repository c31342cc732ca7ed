"""Tests for the watermark store."""

from datetime import date, datetime, timedelta

import pytest

from db.db_utils import transaction_scope
from DWH.audit.watermark import (
    SENTINEL_WATERMARK,
    advance_watermark,
    get_watermark,
    get_watermark_column,
    register_watermark,
)
from DWH.common.exceptions import WatermarkNotFoundError

TABLE = "silver.crm_sales_details"


class TestWatermarkStore:

    def test_seeded_watermarks_start_at_sentinel(self, engine):
        with transaction_scope(engine) as session:
            assert get_watermark(session, TABLE) == SENTINEL_WATERMARK
            assert get_watermark(session, "silver.crm_cust_info") == SENTINEL_WATERMARK
            assert get_watermark_column(session, TABLE) == "sls_order_dt"

    def test_unregistered_table_raises(self, engine):
        with transaction_scope(engine) as session:
            with pytest.raises(WatermarkNotFoundError):
                get_watermark(session, "silver.unknown")

    def test_register_is_idempotent(self, engine):
        with transaction_scope(engine) as session:
            register_watermark(session, TABLE, "other_column", initial=datetime(2020, 1, 1))
            assert get_watermark(session, TABLE) == SENTINEL_WATERMARK
            assert get_watermark_column(session, TABLE) == "sls_order_dt"

    def test_advance_subtracts_buffer(self, engine):
        with transaction_scope(engine) as session:
            stored = advance_watermark(session, TABLE, date(2024, 1, 10))
        assert stored == datetime(2024, 1, 9)
        with transaction_scope(engine) as session:
            assert get_watermark(session, TABLE) == datetime(2024, 1, 9)

    def test_never_moves_backwards(self, engine):
        observed = [date(2024, 1, 10), date(2023, 6, 1), date(2024, 1, 10), date(2024, 3, 1), date(2024, 2, 1)]
        history = []
        with transaction_scope(engine) as session:
            for value in observed:
                advance_watermark(session, TABLE, value, buffer=timedelta(days=1))
                history.append(get_watermark(session, TABLE))
        assert history == sorted(history)
        assert history[-1] == datetime(2024, 2, 29)

    def test_rolled_back_advance_is_not_persisted(self, engine):
        with pytest.raises(RuntimeError):
            with transaction_scope(engine) as session:
                advance_watermark(session, TABLE, date(2024, 1, 10))
                raise RuntimeError("load failed")
        with transaction_scope(engine) as session:
            assert get_watermark(session, TABLE) == SENTINEL_WATERMARK
