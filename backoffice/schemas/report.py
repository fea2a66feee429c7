from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from backoffice.models.enums import Polarity


class LedgerSummary(BaseModel):
    polarity: Polarity
    start: date
    end: date
    total_due: Decimal
    total_settled: Decimal
    overdue_count: int


class CashFlowSummary(BaseModel):
    """Both ledgers side by side for one period."""
    start: date
    end: date
    payables: LedgerSummary
    receivables: LedgerSummary
    projected_net: Decimal  # receivable due - payable due
    realized_net: Decimal   # received - paid
