# DWH/silver/validator.py
"""
Silver Layer Validation - post-load quality checks per entity.

Runs after the entity's transaction has committed. Findings are written to
audit.data_quality_issues; they never undo or block a load.
"""

import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from db.db_utils import transaction_scope
from db.models_bronze import BronzeCustomer, BronzeProduct, BronzeSalesDetail
from db.models_silver import SilverCustomer, SilverProduct, SilverSalesDetail
from DWH.audit.watermark import SENTINEL_WATERMARK
from DWH.common.quality_checks import (
    QCReport,
    QCResult,
    check_duplicate_keys,
    check_referential_integrity,
    check_row_count_parity,
    check_sum_reconciliation,
)
from DWH.silver import customers, products, sales
from DWH.silver.results import LoadResult
from DWH.silver.utils import date_to_key

logger = logging.getLogger(__name__)


def validate_customers(session: Session, load_result: Optional[LoadResult] = None) -> List[QCResult]:
    """Distinct bronze customers vs silver rows."""
    return [check_row_count_parity(
        session,
        customers.TABLE_NAME,
        select(func.count(func.distinct(BronzeCustomer.cst_id))).where(BronzeCustomer.cst_id.isnot(None)),
        select(func.count()).select_from(SilverCustomer),
        check_name="Row Count",
        description="Customer record mismatch",
    )]


def validate_products(session: Session, load_result: Optional[LoadResult] = None) -> List[QCResult]:
    """
    Checks:
    - No product with more than one current version
    - Current versions match distinct bronze products
    """
    duplicates = check_duplicate_keys(
        session,
        products.TABLE_NAME,
        [SilverProduct.prd_id],
        where=SilverProduct.is_current.is_(True),
        check_name="Duplicate Check",
        description="Duplicate active product keys detected",
    )
    parity = check_row_count_parity(
        session,
        products.TABLE_NAME,
        select(func.count(func.distinct(BronzeProduct.prd_id)))
        .where(BronzeProduct.prd_id.isnot(None))
        .where(BronzeProduct.prd_key.isnot(None)),
        select(func.count()).select_from(SilverProduct).where(SilverProduct.is_current.is_(True)),
        check_name="Current Version Count",
        description="Current product versions do not match bronze products",
    )
    return [duplicates, parity]


def validate_sales(session: Session, load_result: Optional[LoadResult] = None) -> List[QCResult]:
    """
    Checks:
    - Revenue of the loaded slice (reconciled bronze vs silver)
    - Every sales line points at a known customer
    - Every sales line points at a current product
    """
    watermark = SENTINEL_WATERMARK
    if load_result is not None and load_result.watermark_before is not None:
        watermark = load_result.watermark_before

    amount = BronzeSalesDetail.sls_sales
    line_total = BronzeSalesDetail.sls_quantity * func.abs(BronzeSalesDetail.sls_price)
    reconciled = case(
        (or_(amount.is_(None), amount <= 0, amount != line_total), line_total),
        else_=amount,
    )
    expected_total = session.execute(
        select(func.sum(reconciled))
        .where(BronzeSalesDetail.sls_order_dt > date_to_key(watermark.date()))
    ).scalar()

    actual_total = session.execute(
        select(func.sum(SilverSalesDetail.sls_sales))
        .where(SilverSalesDetail.sls_order_dt > watermark.date())
    ).scalar()

    results = [check_sum_reconciliation(
        sales.TABLE_NAME,
        expected_total,
        actual_total,
        check_name="Revenue Check",
        description="Sales amount mismatch during delta load",
    )]

    slice_filter = SilverSalesDetail.sls_order_dt > watermark.date()

    results.append(check_referential_integrity(
        session,
        sales.TABLE_NAME,
        SilverSalesDetail.sls_cust_id,
        SilverCustomer.cst_id,
        child_where=slice_filter,
        check_name="Customer Reference",
        description="Sales lines referencing unknown customers",
    ))
    results.append(check_referential_integrity(
        session,
        sales.TABLE_NAME,
        SilverSalesDetail.sls_prd_key,
        SilverProduct.prd_key,
        parent_where=SilverProduct.is_current.is_(True),
        child_where=slice_filter,
        check_name="Product Reference",
        description="Sales lines referencing no current product",
    ))
    return results


ENTITY_VALIDATORS: Dict[str, Callable[..., List[QCResult]]] = {
    customers.TABLE_NAME: validate_customers,
    products.TABLE_NAME: validate_products,
    sales.TABLE_NAME: validate_sales,
}


def run_entity_checks(engine: Engine, table_name: str, load_result: Optional[LoadResult] = None) -> List[QCResult]:
    """
    Run the post-load checks registered for a table.

    A check that cannot run is reported as a failed 'Check Execution' result.
    """
    validator = ENTITY_VALIDATORS.get(table_name)
    if validator is None:
        return []

    logger.info(f"Validating {table_name}...")
    report = QCReport(layer="Silver")
    try:
        with transaction_scope(engine) as session:
            report.extend(validator(session, load_result))
    except Exception as e:
        logger.exception(f"Quality checks for {table_name} could not run")
        report.add(QCResult(
            check_name="Check Execution",
            table_name=table_name,
            passed=False,
            message=str(e),
            expected_value="completed",
            actual_value="error",
            details={"description": f"Quality checks could not run: {e}"},
        ))
    return report.results

