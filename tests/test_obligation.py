from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backoffice.models.enums import ObligationStatus, PaymentMethod, Polarity, RecurrenceKind
from backoffice.utils.obligation_validation import (
    InvalidAmountError,
    InvalidInputError,
    InvalidStateError,
    ObligationError,
)

from conftest import make_obligation

PAID_AT = datetime(2024, 6, 20, 10, 0, tzinfo=timezone.utc)


def test_new_obligation_is_pending_with_full_balance():
    obligation = make_obligation(original_amount=Decimal("1000.00"))

    assert obligation.status == ObligationStatus.PENDING
    assert obligation.remaining_amount == Decimal("1000.00")
    assert obligation.can_be_settled()


def test_partial_then_full_settlement():
    obligation = make_obligation(original_amount=Decimal("1000.00"))

    obligation.settle(Decimal("300.00"), PaymentMethod.PIX, PAID_AT)
    assert obligation.status == ObligationStatus.PARTIALLY_SETTLED
    assert obligation.remaining_amount == Decimal("700.00")
    assert obligation.payment_method == PaymentMethod.PIX
    assert obligation.settlement_date == PAID_AT

    obligation.settle(Decimal("700.00"), PaymentMethod.PIX, PAID_AT)
    assert obligation.status == ObligationStatus.SETTLED
    assert obligation.remaining_amount == Decimal("0")
    assert obligation.settled_amount == Decimal("1000.00")


def test_settled_amount_never_decreases_nor_exceeds_original():
    obligation = make_obligation(original_amount=Decimal("90.00"))
    previous = obligation.settled_amount

    for amount in ("10.00", "25.50", "4.50", "50.00"):
        obligation.settle(Decimal(amount), PaymentMethod.CASH, PAID_AT)
        assert obligation.settled_amount >= previous
        assert obligation.settled_amount <= obligation.original_amount
        previous = obligation.settled_amount

    assert obligation.status == ObligationStatus.SETTLED


def test_overpayment_is_rejected_without_side_effects():
    obligation = make_obligation(polarity=Polarity.RECEIVABLE, original_amount=Decimal("1500.00"))
    before = obligation.model_dump()

    with pytest.raises(InvalidAmountError):
        obligation.settle(Decimal("1700.00"), PaymentMethod.PIX, PAID_AT)

    assert obligation.model_dump() == before


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_non_positive_settlement_is_rejected(amount):
    obligation = make_obligation()

    with pytest.raises(InvalidAmountError):
        obligation.settle(amount, PaymentMethod.CASH, PAID_AT)
    assert obligation.settled_amount == Decimal("0")


def test_negative_charge_is_rejected_before_mutation():
    obligation = make_obligation()

    with pytest.raises(InvalidAmountError):
        obligation.settle(Decimal("10"), PaymentMethod.CASH, PAID_AT, penalty=Decimal("-1"))
    assert obligation.settled_amount == Decimal("0")
    assert obligation.status == ObligationStatus.PENDING


def test_unknown_payment_method_is_a_domain_error_without_side_effects():
    obligation = make_obligation()
    before = obligation.model_dump()

    with pytest.raises(InvalidInputError) as excinfo:
        obligation.settle(Decimal("10"), "bitcoin", PAID_AT)

    assert isinstance(excinfo.value, ObligationError)
    assert "bitcoin" in str(excinfo.value)
    assert obligation.model_dump() == before


def test_payment_method_accepts_its_wire_value():
    obligation = make_obligation()

    obligation.settle(Decimal("10"), "pix", PAID_AT)

    assert obligation.payment_method == PaymentMethod.PIX


def test_charges_accumulate_without_touching_the_balance():
    obligation = make_obligation(original_amount=Decimal("100.00"))

    obligation.settle(
        Decimal("100.00"), PaymentMethod.DEBIT_CARD, PAID_AT,
        interest=Decimal("3.30"), penalty=Decimal("2.00"), discount=Decimal("1.00")
    )

    assert obligation.interest == Decimal("3.30")
    assert obligation.penalty == Decimal("2.00")
    assert obligation.discount == Decimal("1.00")
    assert obligation.status == ObligationStatus.SETTLED


def test_settled_obligation_refuses_settle_and_cancel():
    obligation = make_obligation(original_amount=Decimal("10"))
    obligation.settle(Decimal("10"), PaymentMethod.CASH, PAID_AT)

    with pytest.raises(InvalidStateError):
        obligation.settle(Decimal("1"), PaymentMethod.CASH, PAID_AT)
    with pytest.raises(InvalidStateError):
        obligation.cancel()


def test_cancel_twice_fails():
    obligation = make_obligation()
    obligation.cancel()
    assert obligation.status == ObligationStatus.CANCELLED

    with pytest.raises(InvalidStateError):
        obligation.cancel()
    with pytest.raises(InvalidStateError):
        obligation.settle(Decimal("1"), PaymentMethod.CASH, PAID_AT)


def test_partially_settled_obligation_can_be_cancelled():
    obligation = make_obligation(original_amount=Decimal("100"))
    obligation.settle(Decimal("40"), PaymentMethod.CASH, PAID_AT)

    obligation.cancel()

    assert obligation.status == ObligationStatus.CANCELLED
    assert obligation.settled_amount == Decimal("40")


def test_interest_is_zero_until_past_due():
    obligation = make_obligation(original_amount=Decimal("1000"), due_date=date(2024, 6, 30))

    assert obligation.compute_interest(date(2024, 6, 1), Decimal("0.0011")) == Decimal("0")
    assert obligation.compute_interest(date(2024, 6, 30), Decimal("0.0011")) == Decimal("0")


def test_interest_accrues_per_day_late():
    obligation = make_obligation(original_amount=Decimal("1000"), due_date=date(2024, 6, 30))

    one_day = obligation.compute_interest(date(2024, 7, 1), Decimal("0.0011"))
    ten_days = obligation.compute_interest(date(2024, 7, 10), Decimal("0.0011"))

    assert one_day > 0
    assert one_day == Decimal("1.1")
    assert ten_days == Decimal("11")


def test_refresh_status_flips_past_due_once():
    obligation = make_obligation(due_date=date(2024, 6, 14))

    assert obligation.refresh_status(date(2024, 6, 15)) is True
    assert obligation.status == ObligationStatus.OVERDUE
    assert obligation.is_overdue()
    assert obligation.refresh_status(date(2024, 6, 15)) is False


def test_refresh_status_leaves_future_and_closed_records():
    upcoming = make_obligation(due_date=date(2024, 6, 20))
    settled = make_obligation(due_date=date(2024, 6, 1), original_amount=Decimal("5"))
    settled.settle(Decimal("5"), PaymentMethod.CASH, PAID_AT)

    assert upcoming.refresh_status(date(2024, 6, 15)) is False
    assert settled.refresh_status(date(2024, 6, 15)) is False
    assert settled.status == ObligationStatus.SETTLED


def test_overdue_record_can_still_be_settled():
    obligation = make_obligation(due_date=date(2024, 6, 1), original_amount=Decimal("50"))
    obligation.refresh_status(date(2024, 6, 15))

    obligation.settle(Decimal("50"), PaymentMethod.PIX, PAID_AT)

    assert obligation.status == ObligationStatus.SETTLED


def test_non_recurring_generates_nothing():
    assert make_obligation(is_recurring=False).generate_next_installment() is None


@pytest.mark.parametrize("kind, expected", [
    (RecurrenceKind.MONTHLY, date(2024, 2, 10)),
    (RecurrenceKind.WEEKLY, date(2024, 1, 17)),
    (RecurrenceKind.YEARLY, date(2025, 1, 10)),
])
def test_next_installment_follows_recurrence_kind(kind, expected):
    obligation = make_obligation(
        issue_date=date(2024, 1, 1),
        due_date=date(2024, 1, 10),
        is_recurring=True,
        recurrence_kind=kind,
    )

    successor = obligation.generate_next_installment()

    assert successor.due_date == expected
    assert successor.issue_date == date(2024, 1, 10)


def test_successor_copies_terms_but_starts_fresh():
    obligation = make_obligation(
        polarity=Polarity.RECEIVABLE,
        original_amount=Decimal("250"),
        counterparty_id="cus-1",
        counterparty_name="Maria Silva",
        source_document_id="sale-1",
        is_recurring=True,
        recurrence_kind=RecurrenceKind.MONTHLY,
        salesperson_id="usr-1",
    )
    obligation.id = "abc"
    obligation.sequence_number = "CR-001"
    obligation.settle(Decimal("250"), PaymentMethod.CASH, PAID_AT)

    successor = obligation.generate_next_installment()

    assert successor.id is None
    assert successor.sequence_number is None
    assert successor.status == ObligationStatus.PENDING
    assert successor.settled_amount == Decimal("0")
    assert successor.original_amount == Decimal("250")
    assert successor.counterparty_name == "Maria Silva"
    assert successor.salesperson_id == "usr-1"
    assert successor.source_document_id is None
    assert successor.is_recurring


def test_interval_days_used_without_kind():
    obligation = make_obligation(due_date=date(2024, 1, 10), is_recurring=True, recurrence_interval_days=10)

    assert obligation.generate_next_installment().due_date == date(2024, 1, 20)


def test_recurring_without_kind_or_interval_advances_one_month():
    obligation = make_obligation(due_date=date(2024, 1, 31), is_recurring=True)

    assert obligation.generate_next_installment().due_date == date(2024, 2, 29)


def test_is_past_due_accepts_datetime():
    obligation = make_obligation(due_date=date(2024, 6, 14))

    assert obligation.is_past_due(datetime(2024, 6, 15, tzinfo=timezone.utc))
    assert not obligation.is_past_due(datetime(2024, 6, 14, 23, 59, tzinfo=timezone.utc))
    assert obligation.is_past_due(date(2024, 6, 14) + timedelta(days=1))
