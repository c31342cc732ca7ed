"""
Immutable per-step results handed from one pipeline step to the next.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one hardcoded entity load (committed or about to be)."""
    table_name: str
    row_count: int = 0
    inserted: int = 0
    updated: int = 0
    expired: int = 0
    skipped: int = 0
    watermark_before: Optional[datetime] = None
    watermark_after: Optional[datetime] = None


@dataclass(frozen=True)
class EntryResult:
    """Outcome of one metadata-driven configuration entry."""
    source_table: str
    target_table: str
    status: str
    start_time: datetime
    end_time: datetime
    row_count: Optional[int] = None
    error_message: Optional[str] = None
    columns: tuple = ()

    @property
    def succeeded(self) -> bool:
        return self.error_message is None
