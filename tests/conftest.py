from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from backoffice.core.cache import MemoryCache
from backoffice.models.base import new_object_id, utcnow
from backoffice.models.enums import (
    ExpenseCategory,
    ObligationStatus,
    Polarity,
    TERMINAL_STATUSES,
)
from backoffice.models.obligation import Obligation
from backoffice.services.obligation_service import PayableService, ReceivableService
from backoffice.utils.obligation_validation import ZERO

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


class InMemoryObligationStore:
    """Dict-backed stand-in for ObligationRepository with the same query semantics."""

    def __init__(self, polarity: Polarity, prefix: str = "CP"):
        self.polarity = polarity
        self.prefix = prefix
        self.records: Dict[str, Obligation] = {}
        self.counter = 0

    def _matching(self, predicate) -> List[Obligation]:
        found = [o for o in self.records.values() if o.active and predicate(o)]
        return [o.model_copy(deep=True) for o in sorted(found, key=lambda o: o.due_date)]

    async def get_by_id(self, obligation_id: str) -> Optional[Obligation]:
        record = self.records.get(obligation_id)
        if record is None or not record.active:
            return None
        return record.model_copy(deep=True)

    async def list_all(self):
        return self._matching(lambda o: True)

    async def list_by_status(self, status):
        return self._matching(lambda o: o.status == status)

    async def list_overdue(self, today: date):
        return self._matching(lambda o: o.due_date < today and o.status not in TERMINAL_STATUSES)

    async def list_by_party(self, counterparty_id: str):
        return self._matching(lambda o: o.counterparty_id == counterparty_id)

    async def list_by_period(self, start: date, end: date):
        return self._matching(lambda o: start <= o.due_date <= end)

    async def list_due_within(self, today: date, days: int):
        end = today + timedelta(days=days)
        return self._matching(
            lambda o: today <= o.due_date <= end and o.status == ObligationStatus.PENDING
        )

    async def list_by_category(self, category: ExpenseCategory):
        return self._matching(lambda o: o.category == category)

    async def list_by_salesperson(self, salesperson_id: str):
        return self._matching(lambda o: o.salesperson_id == salesperson_id)

    async def get_by_source_document(self, source_document_id: str):
        found = self._matching(lambda o: o.source_document_id == source_document_id)
        return found[0] if found else None

    async def list_recurring_due(self):
        return self._matching(
            lambda o: o.is_recurring and o.status == ObligationStatus.SETTLED and o.successor_id is None
        )

    async def next_sequence_number(self) -> str:
        self.counter += 1
        return f"{self.prefix}-{self.counter:03d}"

    async def create(self, obligation: Obligation) -> Obligation:
        obligation.sequence_number = await self.next_sequence_number()
        obligation.id = new_object_id()
        obligation.created_at = obligation.updated_at = utcnow()
        self.records[obligation.id] = obligation.model_copy(deep=True)
        return obligation

    async def update(self, obligation: Obligation) -> Obligation:
        obligation.updated_at = utcnow()
        self.records[obligation.id] = obligation.model_copy(deep=True)
        return obligation

    async def delete(self, obligation_id: str) -> bool:
        return self.records.pop(obligation_id, None) is not None

    async def total_due_in_period(self, start: date, end: date) -> Decimal:
        return sum(
            (o.original_amount for o in self._matching(
                lambda o: start <= o.due_date <= end and o.status != ObligationStatus.CANCELLED
            )),
            ZERO
        )

    async def total_settled_in_period(self, start: date, end: date) -> Decimal:
        return sum(
            (o.settled_amount for o in self._matching(
                lambda o: o.status == ObligationStatus.SETTLED
                and o.settlement_date is not None
                and start <= o.settlement_date.date() <= end
            )),
            ZERO
        )

    async def count_overdue(self, today: date) -> int:
        return len(await self.list_overdue(today))


class FakeDirectory:
    """Counterparty or salesperson names keyed by id."""

    def __init__(self, names: Optional[Dict[str, str]] = None):
        self.names = names or {}
        self.calls: List[str] = []

    async def get_name_by_id(self, counterparty_id: str) -> Optional[str]:
        self.calls.append(counterparty_id)
        return self.names.get(counterparty_id)


class RaisingCache:
    """Cache whose every call fails."""

    async def get(self, key):
        raise ConnectionError("cache down")

    async def set(self, key, value, ttl_seconds):
        raise ConnectionError("cache down")

    async def remove(self, key):
        raise ConnectionError("cache down")

    async def remove_by_prefix(self, prefix):
        raise ConnectionError("cache down")


def make_obligation(**overrides) -> Obligation:
    data = {
        "polarity": Polarity.PAYABLE,
        "description": "Office rent",
        "original_amount": Decimal("100.00"),
        "issue_date": date(2024, 6, 1),
        "due_date": date(2024, 6, 30),
    }
    data.update(overrides)
    return Obligation(**data)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def cache(clock):
    return MemoryCache(max_size=100, clock=clock)


@pytest.fixture
def payable_store():
    return InMemoryObligationStore(Polarity.PAYABLE, "CP")


@pytest.fixture
def receivable_store():
    return InMemoryObligationStore(Polarity.RECEIVABLE, "CR")


@pytest.fixture
def suppliers():
    return FakeDirectory({"sup-1": "Acme Supplies"})


@pytest.fixture
def customers():
    return FakeDirectory({"cus-1": "Maria Silva"})


@pytest.fixture
def salespeople():
    return FakeDirectory({"usr-1": "Joao Vendedor"})


@pytest.fixture
def payable_service(payable_store, cache, suppliers, clock):
    return PayableService(payable_store, cache, suppliers, clock=clock)


@pytest.fixture
def receivable_service(receivable_store, cache, customers, salespeople, clock):
    return ReceivableService(receivable_store, cache, customers, salespeople, clock=clock)
