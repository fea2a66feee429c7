from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, TypeAdapter

from backoffice.models.enums import (
    ExpenseCategory,
    ObligationStatus,
    PaymentMethod,
    Polarity,
    RecurrenceKind,
)
from backoffice.models.obligation import Obligation


class ObligationBase(BaseModel):
    """Fields a caller may set on create and overwrite on update."""
    description: str = Field(..., min_length=1, max_length=500)
    fiscal_document: Optional[str] = None
    original_amount: Decimal
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    issue_date: date
    due_date: date
    is_recurring: bool = False
    recurrence_kind: Optional[RecurrenceKind] = None
    recurrence_interval_days: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    cost_center: Optional[str] = None         # payables
    category: Optional[ExpenseCategory] = None  # payables
    salesperson_id: Optional[str] = None      # receivables


class ObligationCreate(ObligationBase):
    counterparty_id: Optional[str] = None
    # Used only when the counterparty lookup finds nothing (e.g. a sale snapshot)
    counterparty_name: Optional[str] = None
    salesperson_name: Optional[str] = None
    source_document_id: Optional[str] = None


class ObligationUpdate(ObligationBase):
    pass


class SettleRequest(BaseModel):
    """Payment (payables) or receipt (receivables) against an obligation."""
    amount: Decimal
    payment_method: PaymentMethod
    settlement_date: Optional[datetime] = None
    notes: Optional[str] = None
    interest: Optional[Decimal] = Field(default=None, ge=0)
    penalty: Optional[Decimal] = Field(default=None, ge=0)
    discount: Optional[Decimal] = Field(default=None, ge=0)


class InterestResponse(BaseModel):
    id: str
    as_of: date
    daily_rate: Decimal
    interest: Decimal


class ObligationResponse(BaseModel):
    """Transport record. Enums travel as their lower-case names."""
    id: Optional[str] = None  # None for unsaved previews
    polarity: Polarity
    sequence_number: Optional[str] = None
    description: str
    counterparty_id: Optional[str] = None
    counterparty_name: Optional[str] = None
    source_document_id: Optional[str] = None
    fiscal_document: Optional[str] = None
    original_amount: Decimal
    discount: Decimal
    interest: Decimal
    penalty: Decimal
    settled_amount: Decimal
    remaining_amount: Decimal
    issue_date: date
    due_date: date
    settlement_date: Optional[datetime] = None
    status: ObligationStatus
    payment_method: Optional[PaymentMethod] = None
    is_recurring: bool
    recurrence_kind: Optional[RecurrenceKind] = None
    recurrence_interval_days: Optional[int] = None
    successor_id: Optional[str] = None
    notes: Optional[str] = None
    cost_center: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    salesperson_id: Optional[str] = None
    salesperson_name: Optional[str] = None
    is_overdue: bool
    days_until_due: int
    created_at: datetime
    updated_at: datetime
    active: bool

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_obligation(cls, obligation: Obligation, today: date) -> "ObligationResponse":
        data = obligation.model_dump(exclude={"id"})
        return cls(
            id=obligation.id,
            remaining_amount=obligation.remaining_amount,
            is_overdue=obligation.is_overdue(),
            days_until_due=(obligation.due_date - today).days,
            **data
        )


ObligationList = TypeAdapter(List[ObligationResponse])
