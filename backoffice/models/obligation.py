"""
Obligation model - money owed by the business (payable) or to it (receivable).

Design principles:
- One record type for both ledgers, tagged by polarity
- Self-validating: every state change goes through a method that checks
  the state machine before touching any field
- Status: pending -> partially_settled -> settled, cancelled as the other
  terminal state, overdue written by the periodic refresh
- All amounts are Decimal, never float
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from backoffice.models.base import MongoModel, utcnow
from backoffice.models.enums import (
    ExpenseCategory,
    ObligationStatus,
    PaymentMethod,
    Polarity,
    RecurrenceKind,
    REFRESHABLE_STATUSES,
    TERMINAL_STATUSES,
)
from backoffice.utils.obligation_validation import (
    InvalidAmountError,
    InvalidInputError,
    InvalidStateError,
    Money,
    ZERO,
    require_non_negative,
    to_money,
)
from backoffice.utils.recurrence import add_months, advance_by_days, as_date, next_due_date


class Obligation(MongoModel):
    """
    A payable or receivable.

    Invariants:
    - settled_amount <= original_amount
    - status == settled implies remaining_amount == 0
    - settled and cancelled records accept no further settlement or cancellation
    """

    polarity: Polarity
    sequence_number: Optional[str] = None  # CP-001 / CR-001, set by the repository

    description: str = ""
    counterparty_id: Optional[str] = None    # supplier or customer
    counterparty_name: Optional[str] = None  # snapshot taken at creation, never resynced
    source_document_id: Optional[str] = None  # purchase or sale that originated it
    fiscal_document: Optional[str] = None

    # Financial
    original_amount: Decimal
    discount: Decimal = ZERO
    interest: Decimal = ZERO
    penalty: Decimal = ZERO
    settled_amount: Decimal = ZERO

    # Dates
    issue_date: date
    due_date: date
    settlement_date: Optional[datetime] = None

    status: ObligationStatus = ObligationStatus.PENDING
    payment_method: Optional[PaymentMethod] = None

    # Recurrence
    is_recurring: bool = False
    recurrence_kind: Optional[RecurrenceKind] = None
    recurrence_interval_days: Optional[int] = Field(default=None, gt=0)
    successor_id: Optional[str] = None

    notes: Optional[str] = None

    # Payable only
    cost_center: Optional[str] = None
    category: Optional[ExpenseCategory] = None

    # Receivable only
    salesperson_id: Optional[str] = None
    salesperson_name: Optional[str] = None

    active: bool = True

    @property
    def remaining_amount(self) -> Decimal:
        """Open balance. Discount, interest and penalty are not netted in."""
        return self.original_amount - self.settled_amount

    def is_overdue(self) -> bool:
        """Read of the stored label; kept fresh by refresh_status."""
        return self.status == ObligationStatus.OVERDUE

    def is_past_due(self, as_of) -> bool:
        return as_date(as_of) > self.due_date

    def can_be_settled(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    def settle(
        self,
        amount: Money,
        method: PaymentMethod,
        settled_at: Optional[datetime] = None,
        *,
        interest: Optional[Money] = None,
        penalty: Optional[Money] = None,
        discount: Optional[Money] = None,
    ) -> None:
        """
        Record a (partial) payment or receipt.

        All checks run before any field is touched, so a rejected call
        leaves the record exactly as it was.
        """
        if not self.can_be_settled():
            raise InvalidStateError(f"Cannot settle a {self.status.value} obligation")

        amount = to_money(amount)
        if amount <= ZERO:
            raise InvalidAmountError("Settlement amount must be greater than zero")

        remaining = self.remaining_amount
        if amount > remaining:
            raise InvalidAmountError(
                f"Settlement amount {amount} exceeds remaining balance {remaining}"
            )

        charges = {
            "interest": require_non_negative(interest, "interest"),
            "penalty": require_non_negative(penalty, "penalty"),
            "discount": require_non_negative(discount, "discount"),
        }
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise InvalidInputError(f"Unsupported payment method: {method!r}") from None

        self.settled_amount += amount
        self.payment_method = method
        self.settlement_date = settled_at or utcnow()
        for name, value in charges.items():
            if value:
                setattr(self, name, getattr(self, name) + value)

        if self.remaining_amount == ZERO:
            self.status = ObligationStatus.SETTLED
        else:
            self.status = ObligationStatus.PARTIALLY_SETTLED
        self.updated_at = utcnow()

    def cancel(self) -> None:
        if self.status == ObligationStatus.SETTLED:
            raise InvalidStateError("Cannot cancel a settled obligation")
        if self.status == ObligationStatus.CANCELLED:
            raise InvalidStateError("Obligation is already cancelled")
        self.status = ObligationStatus.CANCELLED
        self.updated_at = utcnow()

    def compute_interest(self, as_of, daily_rate: Money) -> Decimal:
        """Simple daily interest on the original amount; zero until past due."""
        days_late = (as_date(as_of) - self.due_date).days
        if days_late <= 0:
            return ZERO
        return self.original_amount * to_money(daily_rate) * days_late

    def refresh_status(self, today) -> bool:
        """Relabel as overdue when past due. Returns True if the status changed."""
        if self.status in REFRESHABLE_STATUSES and self.is_past_due(today):
            self.status = ObligationStatus.OVERDUE
            self.updated_at = utcnow()
            return True
        return False

    def next_installment_due_date(self) -> date:
        if self.recurrence_kind is not None:
            return next_due_date(self.due_date, self.recurrence_kind)
        if self.recurrence_interval_days:
            return advance_by_days(self.due_date, self.recurrence_interval_days)
        return add_months(self.due_date, 1)

    def generate_next_installment(self) -> Optional["Obligation"]:
        """
        Build (but do not persist) the next installment of a recurring record.

        The successor starts pending with no id or sequence number. It never
        inherits source_document_id: a sale backs exactly one receivable.
        """
        if not self.is_recurring:
            return None

        return Obligation(
            polarity=self.polarity,
            description=self.description,
            counterparty_id=self.counterparty_id,
            counterparty_name=self.counterparty_name,
            original_amount=self.original_amount,
            issue_date=self.due_date,
            due_date=self.next_installment_due_date(),
            status=ObligationStatus.PENDING,
            is_recurring=True,
            recurrence_kind=self.recurrence_kind,
            recurrence_interval_days=self.recurrence_interval_days,
            notes=self.notes,
            cost_center=self.cost_center,
            category=self.category,
            salesperson_id=self.salesperson_id,
            salesperson_name=self.salesperson_name,
        )
