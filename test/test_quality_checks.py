"""Tests for the quality check primitives and the audit sinks."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from db.db_utils import transaction_scope
from db.models_audit import DataQualityIssue, EtlLog
from db.models_bronze import BronzeCustomer
from db.models_silver import SilverCustomer, SilverProduct, SilverSalesDetail
from DWH.audit.etl_log import STATUS_SUCCESS, log_attempt, log_quality_issues, next_batch_id
from DWH.common.quality_checks import (
    QCReport,
    QCResult,
    check_duplicate_keys,
    check_referential_integrity,
    check_row_count_parity,
    check_sum_reconciliation,
    check_unknown_member_keys,
)


class TestChecks:

    def test_row_count_parity(self, engine, add_rows, customer_row):
        add_rows(BronzeCustomer, [customer_row(), customer_row(cst_id=2, cst_key="C2")])
        with transaction_scope(engine) as session:
            result = check_row_count_parity(
                session,
                "silver.crm_cust_info",
                select(func.count()).select_from(BronzeCustomer),
                select(func.count()).select_from(SilverCustomer),
            )
        assert not result.passed
        assert (result.expected_value, result.actual_value) == ("2", "0")

    def test_duplicate_current_keys(self, engine, add_rows):
        add_rows(SilverProduct, [
            {"prd_id": 1, "prd_key": "K", "effective_date": datetime(2024, 1, 1), "is_current": True},
            {"prd_id": 1, "prd_key": "K", "effective_date": datetime(2023, 1, 1), "is_current": False},
        ])
        with transaction_scope(engine) as session:
            current_only = check_duplicate_keys(
                session, "silver.crm_prd_info", [SilverProduct.prd_id],
                where=SilverProduct.is_current.is_(True),
            )
            all_rows = check_duplicate_keys(session, "silver.crm_prd_info", [SilverProduct.prd_id])
        assert current_only.passed
        assert not all_rows.passed

    def test_sum_reconciliation_tolerance(self):
        assert check_sum_reconciliation("t", Decimal("100.00"), Decimal("100.004")).passed
        assert not check_sum_reconciliation("t", Decimal("100.00"), Decimal("90")).passed
        assert check_sum_reconciliation("t", None, 0).passed

    def test_referential_integrity_counts_orphans(self, engine, add_rows):
        add_rows(SilverCustomer, [{"cst_id": 1, "cst_key": "C1"}])
        add_rows(SilverSalesDetail, [
            {"sls_ord_num": "SO1", "sls_prd_key": "P", "sls_cust_id": 1},
            {"sls_ord_num": "SO2", "sls_prd_key": "P", "sls_cust_id": 9},
            {"sls_ord_num": "SO3", "sls_prd_key": "P", "sls_cust_id": 9},
        ])
        with transaction_scope(engine) as session:
            result = check_referential_integrity(
                session, "silver.crm_sales_details", SilverSalesDetail.sls_cust_id, SilverCustomer.cst_id,
            )
        assert not result.passed
        assert result.actual_value == "1"

    def test_unknown_member_keys(self, engine, add_rows):
        add_rows(SilverSalesDetail, [{"sls_ord_num": "SO1", "sls_prd_key": "P", "sls_cust_id": -1}])
        with transaction_scope(engine) as session:
            result = check_unknown_member_keys(session, "gold.fact_sales", [SilverSalesDetail.sls_cust_id])
        assert not result.passed
        assert result.actual_value == "1"

    def test_report_counts(self):
        report = QCReport()
        report.extend([
            QCResult("a", "t", True, "ok"),
            QCResult("b", "t", False, "bad"),
        ])
        assert not report.passed
        assert report.failed_count == 1
        assert report.passed_count == 1
        assert "FAIL" in report.summary()


class TestAuditSinks:

    def test_only_failed_results_written(self, engine):
        written = log_quality_issues(engine, 7, [
            QCResult("Row Count", "silver.crm_cust_info", False, "mismatch", "2", "1",
                     details={"description": "Customer record mismatch"}),
            QCResult("Duplicate Check", "silver.crm_prd_info", True, "ok"),
        ])
        assert written == 1
        with transaction_scope(engine) as session:
            issue = session.execute(select(DataQualityIssue)).scalar_one()
        assert issue.batch_id == 7
        assert issue.check_layer == "Silver"
        assert issue.issue_description == "Customer record mismatch"
        assert (issue.expected_value, issue.actual_value) == ("2", "1")

    def test_batch_ids_follow_the_log(self, engine):
        assert next_batch_id(engine) == 1
        now = datetime.now()
        log_attempt(engine, 4, "silver.crm_cust_info", now, now, 3, STATUS_SUCCESS)
        assert next_batch_id(engine) == 5
        with transaction_scope(engine) as session:
            log = session.execute(select(EtlLog)).scalar_one()
        assert log.row_count == 3
        assert log.status == "Success"
