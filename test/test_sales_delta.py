"""Tests for the sales delta append."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from db.db_utils import transaction_scope
from db.models_bronze import BronzeSalesDetail
from db.models_silver import SilverSalesDetail
from DWH.audit.watermark import get_watermark
from DWH.common.exceptions import ValidationError
from DWH.silver.sales import TABLE_NAME, append_sales_delta


def _append(engine, batch_id=1):
    with transaction_scope(engine) as session:
        return append_sales_delta(session, batch_id=batch_id)


def _silver_sales(engine):
    with transaction_scope(engine) as session:
        return session.execute(
            select(SilverSalesDetail).order_by(SilverSalesDetail.dwh_row_id)
        ).scalars().all()


class TestSalesDelta:

    def test_zero_amount_reconciled(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [sales_row(amount=0, quantity=3, price=10)])

        _append(engine)

        (line,) = _silver_sales(engine)
        assert line.sls_sales == Decimal("30")
        assert line.sls_price == Decimal("10")

    def test_every_line_balances(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [
            sales_row(order="SO1", amount=0, quantity=3, price=10),
            sales_row(order="SO2", amount=None, quantity=2, price=-7),
            sales_row(order="SO3", amount=50, quantity=5, price=None),
            sales_row(order="SO4", amount=99, quantity=1, price=45),
            sales_row(order="SO5", amount=12, quantity=4, price=3),
        ])

        _append(engine)

        lines = _silver_sales(engine)
        assert len(lines) == 5
        for line in lines:
            assert line.sls_sales == line.sls_quantity * abs(line.sls_price)

    def test_derived_price_balances_within_rounding(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [sales_row(amount=10, quantity=3, price=None)])

        _append(engine)

        (line,) = _silver_sales(engine)
        assert line.sls_sales == Decimal("10")
        assert line.sls_price == Decimal("3.3333")
        assert abs(line.sls_sales - line.sls_quantity * line.sls_price) < line.sls_quantity * Decimal("0.00005")

    def test_dates_parsed_and_batch_stamped(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [sales_row(ship_dt=0, due_dt=None)])

        _append(engine, batch_id=42)

        (line,) = _silver_sales(engine)
        assert line.sls_order_dt == date(2024, 1, 5)
        assert line.sls_ship_dt is None
        assert line.sls_due_dt is None
        assert line.dwh_batch_id == 42

    def test_watermark_advances_with_buffer(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [
            sales_row(order="SO1", order_dt=20240105),
            sales_row(order="SO2", order_dt=20240120),
        ])

        result = _append(engine)

        assert result.watermark_after == datetime(2024, 1, 19)
        with transaction_scope(engine) as session:
            assert get_watermark(session, TABLE_NAME) == datetime(2024, 1, 19)

    def test_watermark_counts_lines_dropped_in_cleaning(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [
            sales_row(order="SO1", order_dt=20240105),
            sales_row(order="SO2", order_dt=20240120, cust_id=None),
        ])

        result = _append(engine)

        assert result.inserted == 1
        assert result.watermark_after == datetime(2024, 1, 19)
        assert [line.sls_ord_num for line in _silver_sales(engine)] == ["SO1"]

    def test_buffer_day_not_appended_twice(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [sales_row(order="SO1", order_dt=20240120)])
        _append(engine, batch_id=1)
        add_rows(BronzeSalesDetail, [sales_row(order="SO2", order_dt=20240120)])

        result = _append(engine, batch_id=2)

        lines = _silver_sales(engine)
        assert [line.sls_ord_num for line in lines] == ["SO1", "SO2"]
        assert result.inserted == 1
        assert result.skipped == 1

    def test_lines_before_watermark_ignored(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [sales_row(order="SO1", order_dt=20240120)])
        _append(engine)
        add_rows(BronzeSalesDetail, [sales_row(order="SO0", order_dt=20240101)])

        _append(engine)

        assert [line.sls_ord_num for line in _silver_sales(engine)] == ["SO1"]

    def test_missing_order_date_left_out(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [sales_row(order="SO1", order_dt=0), sales_row(order="SO2")])

        _append(engine)

        assert [line.sls_ord_num for line in _silver_sales(engine)] == ["SO2"]

    def test_invalid_date_key_rolls_back(self, engine, add_rows, sales_row):
        add_rows(BronzeSalesDetail, [sales_row(order="SO1"), sales_row(order="SO2", ship_dt=20231345)])

        with pytest.raises(ValidationError):
            _append(engine)

        assert _silver_sales(engine) == []
        with transaction_scope(engine) as session:
            assert get_watermark(session, TABLE_NAME) == datetime(1900, 1, 1)

    def test_no_new_lines(self, engine):
        result = _append(engine)
        assert result.row_count == 0
        assert result.watermark_after == datetime(1900, 1, 1)
