"""
ObligationRepository - persistence of payables and receivables.

One collection per polarity ("payables", "receivables"). Money is stored as
Decimal128 and calendar dates as midnight-UTC datetimes, so range queries
and $sum aggregations run on the server.

Sequence numbers (CP-001, CR-001, ...) come from an atomic counter document
per polarity, so two concurrent creates never share a number.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from bson import Decimal128, ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from backoffice.core.config import settings
from backoffice.db.mongo import PAYABLES, RECEIVABLES
from backoffice.models.base import utcnow
from backoffice.models.enums import ExpenseCategory, ObligationStatus, Polarity
from backoffice.models.obligation import Obligation
from backoffice.utils.obligation_validation import ZERO

COUNTERS = "counters"

_DATE_FIELDS = ("issue_date", "due_date")

_CLOSED = [ObligationStatus.SETTLED.value, ObligationStatus.CANCELLED.value]


class ObligationStore(Protocol):
    """What the services need from persistence, per polarity."""

    polarity: Polarity

    async def get_by_id(self, obligation_id: str) -> Optional[Obligation]: ...
    async def list_all(self) -> List[Obligation]: ...
    async def list_by_status(self, status: ObligationStatus) -> List[Obligation]: ...
    async def list_overdue(self, today: date) -> List[Obligation]: ...
    async def list_by_party(self, counterparty_id: str) -> List[Obligation]: ...
    async def list_by_period(self, start: date, end: date) -> List[Obligation]: ...
    async def list_due_within(self, today: date, days: int) -> List[Obligation]: ...
    async def list_by_category(self, category: ExpenseCategory) -> List[Obligation]: ...
    async def list_by_salesperson(self, salesperson_id: str) -> List[Obligation]: ...
    async def get_by_source_document(self, source_document_id: str) -> Optional[Obligation]: ...
    async def list_recurring_due(self) -> List[Obligation]: ...
    async def create(self, obligation: Obligation) -> Obligation: ...
    async def update(self, obligation: Obligation) -> Obligation: ...
    async def delete(self, obligation_id: str) -> bool: ...
    async def next_sequence_number(self) -> str: ...
    async def total_due_in_period(self, start: date, end: date) -> Decimal: ...
    async def total_settled_in_period(self, start: date, end: date) -> Decimal: ...
    async def count_overdue(self, today: date) -> int: ...


def _midnight(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _to_bson(value: Any) -> Any:
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return _midnight(value)
    return value


def to_document(obligation: Obligation) -> Dict[str, Any]:
    """Serialize an obligation for Mongo (without _id)."""
    data = obligation.model_dump(exclude={"id"})
    return {key: _to_bson(value) for key, value in data.items()}


def from_document(doc: Dict[str, Any]) -> Obligation:
    """Build an obligation from a raw Mongo document."""
    data = dict(doc)
    data["_id"] = str(data["_id"])
    for key, value in data.items():
        if isinstance(value, Decimal128):
            data[key] = value.to_decimal()
    for key in _DATE_FIELDS:
        if isinstance(data.get(key), datetime):
            data[key] = data[key].date()
    return Obligation(**data)


class ObligationRepository:
    """Mongo-backed ledger for one polarity."""

    def __init__(self, db: AsyncIOMotorDatabase, polarity: Polarity):
        self.db = db
        self.polarity = Polarity(polarity)
        if self.polarity == Polarity.PAYABLE:
            self.collection = db[PAYABLES]
            self.number_prefix = settings.PAYABLE_NUMBER_PREFIX
        else:
            self.collection = db[RECEIVABLES]
            self.number_prefix = settings.RECEIVABLE_NUMBER_PREFIX
        self.counters = db[COUNTERS]

    async def _find(self, query: Dict[str, Any]) -> List[Obligation]:
        query = {**query, "active": True}
        docs = await self.collection.find(query).sort("due_date", 1).to_list(None)
        return [from_document(doc) for doc in docs]

    # ===== READS =====

    async def get_by_id(self, obligation_id: str) -> Optional[Obligation]:
        if not ObjectId.is_valid(obligation_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(obligation_id), "active": True})
        if doc:
            return from_document(doc)
        return None

    async def list_all(self) -> List[Obligation]:
        return await self._find({})

    async def list_by_status(self, status: ObligationStatus) -> List[Obligation]:
        return await self._find({"status": ObligationStatus(status).value})

    async def list_overdue(self, today: date) -> List[Obligation]:
        """Past due and still open, by live date comparison."""
        return await self._find({
            "due_date": {"$lt": _midnight(today)},
            "status": {"$nin": _CLOSED}
        })

    async def list_by_party(self, counterparty_id: str) -> List[Obligation]:
        return await self._find({"counterparty_id": counterparty_id})

    async def list_by_period(self, start: date, end: date) -> List[Obligation]:
        return await self._find({
            "due_date": {"$gte": _midnight(start), "$lte": _midnight(end)}
        })

    async def list_due_within(self, today: date, days: int) -> List[Obligation]:
        """Pending records falling due between today and today + days."""
        return await self._find({
            "due_date": {
                "$gte": _midnight(today),
                "$lte": _midnight(today + timedelta(days=days))
            },
            "status": ObligationStatus.PENDING.value
        })

    async def list_by_category(self, category: ExpenseCategory) -> List[Obligation]:
        return await self._find({"category": ExpenseCategory(category).value})

    async def list_by_salesperson(self, salesperson_id: str) -> List[Obligation]:
        return await self._find({"salesperson_id": salesperson_id})

    async def get_by_source_document(self, source_document_id: str) -> Optional[Obligation]:
        doc = await self.collection.find_one({
            "source_document_id": source_document_id,
            "active": True
        })
        if doc:
            return from_document(doc)
        return None

    async def list_recurring_due(self) -> List[Obligation]:
        """Settled recurring records whose next installment was not generated yet."""
        return await self._find({
            "is_recurring": True,
            "status": ObligationStatus.SETTLED.value,
            "successor_id": None
        })

    # ===== WRITES =====

    async def next_sequence_number(self) -> str:
        counter = await self.counters.find_one_and_update(
            {"_id": self.polarity.value},
            {"$inc": {"value": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return f"{self.number_prefix}-{counter['value']:03d}"

    async def create(self, obligation: Obligation) -> Obligation:
        """Insert a new record, assigning its id and sequence number."""
        now = utcnow()
        obligation.sequence_number = await self.next_sequence_number()
        obligation.created_at = now
        obligation.updated_at = now

        result = await self.collection.insert_one(to_document(obligation))
        obligation.id = str(result.inserted_id)
        return obligation

    async def update(self, obligation: Obligation) -> Obligation:
        obligation.updated_at = utcnow()
        await self.collection.replace_one(
            {"_id": ObjectId(obligation.id)},
            to_document(obligation)
        )
        return obligation

    async def delete(self, obligation_id: str) -> bool:
        """Hard delete. Returns False when nothing matched."""
        if not ObjectId.is_valid(obligation_id):
            return False
        result = await self.collection.delete_one({"_id": ObjectId(obligation_id)})
        return result.deleted_count > 0

    # ===== AGGREGATES =====

    async def _sum(self, match: Dict[str, Any], field: str) -> Decimal:
        result = await self.collection.aggregate([
            {"$match": {**match, "active": True}},
            {"$group": {"_id": None, "total": {"$sum": f"${field}"}}}
        ]).to_list(1)
        if not result:
            return ZERO
        total = result[0]["total"]
        if isinstance(total, Decimal128):
            return total.to_decimal()
        return Decimal(total)

    async def total_due_in_period(self, start: date, end: date) -> Decimal:
        """Original amounts falling due in [start, end], cancelled excluded."""
        return await self._sum({
            "due_date": {"$gte": _midnight(start), "$lte": _midnight(end)},
            "status": {"$ne": ObligationStatus.CANCELLED.value}
        }, "original_amount")

    async def total_settled_in_period(self, start: date, end: date) -> Decimal:
        """Amounts of fully settled records whose settlement date is in [start, end]."""
        return await self._sum({
            "settlement_date": {
                "$gte": _midnight(start),
                "$lt": _midnight(end + timedelta(days=1))
            },
            "status": ObligationStatus.SETTLED.value
        }, "settled_amount")

    async def count_overdue(self, today: date) -> int:
        return await self.collection.count_documents({
            "due_date": {"$lt": _midnight(today)},
            "status": {"$nin": _CLOSED},
            "active": True
        })
