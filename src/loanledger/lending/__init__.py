"""Book lending core.

Provides functionality for:
- Borrowing and returning book copies
- At most one open loan per book, enforced by the database
- Due date management and overdue reporting
- Loan views enriched with borrower and book details
"""

from .enrichment import LoanEnricher
from .manager import LoanManager
from .models import LOAN_PERIOD, LoanRecord
from .queries import LoanQueries
from .schemas import UNKNOWN, LendingStats, LoanStatus, LoanView, OverdueReport
from .store import LoanRecordStore

__all__ = [
    "LOAN_PERIOD",
    "UNKNOWN",
    "LoanRecord",
    "LoanRecordStore",
    "LoanEnricher",
    "LoanManager",
    "LoanQueries",
    "LoanView",
    "LoanStatus",
    "LendingStats",
    "OverdueReport",
]
