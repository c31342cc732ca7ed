"""
Post-Load Quality Control Module
- Row count parity between layers
- Duplicate key detection
- Aggregate (monetary) reconciliation
- Referential integrity / unknown-member checks
- Logging of validation results

Every check is a read-only query. A failing check produces a QCResult with
passed=False; it never raises on a data problem.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, literal, or_, select
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass
class QCResult:
    """Single quality check result."""
    check_name: str
    table_name: str
    passed: bool
    message: str
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


@dataclass
class QCReport:
    """Aggregated QC report for one batch."""
    layer: str = "Silver"
    timestamp: datetime = field(default_factory=datetime.now)
    results: List[QCResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    def add(self, result: QCResult) -> None:
        self.results.append(result)
        status = "PASS" if result.passed else "FAIL"
        log_fn = logger.info if result.passed else logger.warning
        log_fn(f"[QC {status}] {result.table_name}: {result.check_name} - {result.message}")

    def extend(self, results: Sequence[QCResult]) -> None:
        for result in results:
            self.add(result)

    def summary(self) -> str:
        lines = [
            "=" * 60,
            f"QC REPORT ({self.layer}) - {self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
            "=" * 60,
            f"Total Checks: {len(self.results)}",
            f"Passed: {self.passed_count}",
            f"Failed: {self.failed_count}",
            "-" * 60,
        ]
        for r in self.results:
            status = "PASS" if r.passed else "FAIL"
            lines.append(f"[{status}] {r.table_name}.{r.check_name}: {r.message}")
        lines.append("=" * 60)
        return "\n".join(lines)


def _scalar(session: Session, stmt) -> Any:
    return session.execute(stmt).scalar()


# INDIVIDUAL CHECK FUNCTIONS

def check_row_count_parity(
    session: Session,
    table_name: str,
    source_count_stmt,
    target_count_stmt,
    check_name: str = "Row Count",
    description: str = "Record count mismatch between source and target",
) -> QCResult:
    """Compare a source-side count query with a target-side count query."""
    expected = int(_scalar(session, source_count_stmt) or 0)
    actual = int(_scalar(session, target_count_stmt) or 0)
    passed = expected == actual
    return QCResult(
        check_name=check_name,
        table_name=table_name,
        passed=passed,
        message=f"Source: {expected}, target: {actual}" + ("" if passed else f" - {description}"),
        expected_value=str(expected),
        actual_value=str(actual),
        details={"description": description},
    )


def check_duplicate_keys(
    session: Session,
    table_name: str,
    key_columns: Sequence,
    where=None,
    check_name: str = "Duplicate Check",
    description: str = "Duplicate keys detected",
) -> QCResult:
    """Count key values that occur more than once (optionally within a filtered projection)."""
    grouped = select(*key_columns).group_by(*key_columns).having(func.count() > 1)
    if where is not None:
        grouped = grouped.where(where)
    duplicate_count = int(_scalar(session, select(func.count()).select_from(grouped.subquery())) or 0)
    passed = duplicate_count == 0
    return QCResult(
        check_name=check_name,
        table_name=table_name,
        passed=passed,
        message=f"Duplicated keys: {duplicate_count}" + ("" if passed else f" - {description}"),
        expected_value="0",
        actual_value=str(duplicate_count),
        details={"description": description},
    )


def check_sum_reconciliation(
    table_name: str,
    expected_total,
    actual_total,
    check_name: str = "Revenue Check",
    description: str = "Amount mismatch",
    tolerance: Decimal = Decimal("0.01"),
) -> QCResult:
    """Compare two monetary totals (None counts as zero)."""
    expected = Decimal(str(expected_total or 0))
    actual = Decimal(str(actual_total or 0))
    passed = abs(expected - actual) <= tolerance
    return QCResult(
        check_name=check_name,
        table_name=table_name,
        passed=passed,
        message=f"Expected total {expected}, actual {actual}" + ("" if passed else f" - {description}"),
        expected_value=str(expected),
        actual_value=str(actual),
        details={"description": description},
    )


def check_referential_integrity(
    session: Session,
    table_name: str,
    child_column,
    parent_column,
    parent_where=None,
    child_where=None,
    check_name: Optional[str] = None,
    description: str = "Foreign keys without a parent row",
) -> QCResult:
    """Count distinct non-null child keys missing from the parent projection."""
    parents = select(parent_column).where(parent_column.isnot(None))
    if parent_where is not None:
        parents = parents.where(parent_where)

    orphan_stmt = (
        select(func.count(func.distinct(child_column)))
        .where(child_column.isnot(None))
        .where(child_column.not_in(parents))
    )
    if child_where is not None:
        orphan_stmt = orphan_stmt.where(child_where)
    orphans = int(_scalar(session, orphan_stmt) or 0)
    passed = orphans == 0
    return QCResult(
        check_name=check_name or f"Referential Integrity ({child_column.key})",
        table_name=table_name,
        passed=passed,
        message=f"Orphan keys: {orphans}" + ("" if passed else f" - {description}"),
        expected_value="0",
        actual_value=str(orphans),
        details={"description": description},
    )


def check_unknown_member_keys(
    session: Session,
    table_name: str,
    key_columns: Sequence,
    unknown_key: Any = -1,
    check_name: str = "Referential Integrity",
    description: str = "Missing key mappings (unknown member) found in fact table",
) -> QCResult:
    """Count rows whose foreign keys were mapped to the unknown-member sentinel."""
    if not key_columns:
        return QCResult(check_name=check_name, table_name=table_name, passed=True,
                        message="No key columns to check")

    table = key_columns[0].table
    condition = or_(*[column == literal(unknown_key) for column in key_columns])
    hits = int(_scalar(session, select(func.count()).select_from(table).where(condition)) or 0)
    passed = hits == 0
    return QCResult(
        check_name=check_name,
        table_name=table_name,
        passed=passed,
        message=f"Rows on unknown member ({unknown_key}): {hits}" + ("" if passed else f" - {description}"),
        expected_value="0",
        actual_value=str(hits),
        details={"description": description},
    )
