"""
Shared fixtures: a throwaway SQLite warehouse per test with the bronze,
silver and audit schemas attached and the default configuration seeded.
"""

from datetime import date

import pytest

from db.db_utils import get_engine, transaction_scope
from db.models_bronze import BronzeCustomer, BronzeErpLocation, BronzeProduct, BronzeSalesDetail
from DWH.bootstrap import init_database


@pytest.fixture
def engine(tmp_path):
    """Initialized warehouse engine backed by files in tmp_path."""
    engine = get_engine(f"sqlite:///{tmp_path / 'dwh.db'}")
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def add_rows(engine):
    """Insert ORM rows in their own committed transaction."""
    def _add(model, rows):
        with transaction_scope(engine) as session:
            session.add_all([model(**row) for row in rows])
    return _add


@pytest.fixture
def customer_row():
    def _row(cst_id=1, cst_key="C1", first="Ann", last="Lee", marital="S", gender="F",
             created=date(2024, 1, 1)):
        return {
            "cst_id": cst_id,
            "cst_key": cst_key,
            "cst_firstname": first,
            "cst_lastname": last,
            "cst_marital_status": marital,
            "cst_gndr": gender,
            "cst_create_date": created,
        }
    return _row


@pytest.fixture
def product_row():
    def _row(prd_id=1, prd_key="CO-RF-FR-R92B-58", name="Road Frame", cost=10, line="R",
             start=date(2024, 1, 1)):
        return {
            "prd_id": prd_id,
            "prd_key": prd_key,
            "prd_nm": name,
            "prd_cost": cost,
            "prd_line": line,
            "prd_start_dt": start,
            "prd_end_dt": None,
        }
    return _row


@pytest.fixture
def sales_row():
    def _row(order="SO1", prd_key="FR-R92B-58", cust_id=1, order_dt=20240105, ship_dt=20240110,
             due_dt=20240115, amount=30, quantity=3, price=10):
        return {
            "sls_ord_num": order,
            "sls_prd_key": prd_key,
            "sls_cust_id": cust_id,
            "sls_order_dt": order_dt,
            "sls_ship_dt": ship_dt,
            "sls_due_dt": due_dt,
            "sls_sales": amount,
            "sls_quantity": quantity,
            "sls_price": price,
        }
    return _row


@pytest.fixture
def seeded_bronze(add_rows, customer_row, product_row, sales_row):
    """A small consistent bronze snapshot covering every silver table."""
    add_rows(BronzeCustomer, [customer_row()])
    add_rows(BronzeProduct, [product_row()])
    add_rows(BronzeSalesDetail, [sales_row()])
    add_rows(BronzeErpLocation, [{"cid": "AW-1", "cntry": "Germany"}, {"cid": "AW-2", "cntry": "France"}])
