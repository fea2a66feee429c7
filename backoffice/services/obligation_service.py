"""
Obligation services - one per ledger polarity.

Each operation loads a single obligation (or a bounded batch for the two
jobs), lets the entity enforce its state machine, persists, and only then
invalidates the ledger's cache keys. A crash between persist and
invalidate leaves a stale list view that expires with its TTL.

Cache calls never raise: a failing cache is logged and treated as a miss.
"""

import functools
import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from pydantic import ValidationError

from backoffice.core.cache import CacheBackend, LedgerCacheKeys
from backoffice.core.config import settings
from backoffice.models.base import utcnow
from backoffice.models.enums import (
    ExpenseCategory,
    ObligationStatus,
    PaymentMethod,
    Polarity,
)
from backoffice.models.obligation import Obligation
from backoffice.repositories.counterparty_repo import CounterpartyLookup
from backoffice.repositories.obligation_repo import ObligationStore
from backoffice.schemas.obligation import (
    InterestResponse,
    ObligationCreate,
    ObligationList,
    ObligationResponse,
    ObligationUpdate,
)
from backoffice.utils.obligation_validation import (
    InvalidAmountError,
    InvalidInputError,
    InvalidStateError,
    Money,
    NotFoundError,
    ObligationError,
    append_note,
    require_non_negative,
    require_positive,
    to_money,
)

logger = logging.getLogger(__name__)

MAX_DUE_WITHIN_DAYS = 365

Clock = Callable[[], datetime]


def log_failures(operation: str):
    """Log and re-raise: domain rejections at INFO, anything else with a traceback."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except ObligationError as exc:
                logger.info("%s %s rejected: %s", self.polarity.value, operation, exc)
                raise
            except Exception:
                logger.exception("Error during %s %s", self.polarity.value, operation)
                raise
        return wrapper
    return decorator


class ObligationService:
    """Ledger operations for one polarity. Use PayableService or ReceivableService."""

    polarity: Polarity
    settlement_tag: str = "Settlement"

    def __init__(
        self,
        repository: ObligationStore,
        cache: Optional[CacheBackend] = None,
        counterparties: Optional[CounterpartyLookup] = None,
        *,
        clock: Clock = utcnow,
        list_ttl_seconds: Optional[int] = None,
        daily_interest_rate: Optional[Money] = None,
        key_prefix: Optional[str] = None,
    ):
        self.repository = repository
        self.cache = cache
        self.counterparties = counterparties
        self._clock = clock
        self.list_ttl_seconds = list_ttl_seconds or settings.CACHE_LIST_TTL_SECONDS
        self.daily_interest_rate = to_money(
            daily_interest_rate if daily_interest_rate is not None
            else settings.DEFAULT_DAILY_INTEREST_RATE
        )
        self.keys = LedgerCacheKeys(key_prefix or settings.CACHE_KEY_PREFIX, self.polarity.value)

    # ===== HELPERS =====

    def _today(self) -> date:
        return self._clock().date()

    def _map(self, obligation: Obligation) -> ObligationResponse:
        return ObligationResponse.from_obligation(obligation, self._today())

    def _map_all(self, obligations: List[Obligation]) -> List[ObligationResponse]:
        today = self._today()
        return [ObligationResponse.from_obligation(o, today) for o in obligations]

    async def _load(self, obligation_id: str) -> Obligation:
        obligation = await self.repository.get_by_id(obligation_id)
        if obligation is None:
            raise NotFoundError(f"{self.polarity.value.capitalize()} {obligation_id} not found")
        return obligation

    async def _lookup_name(self, lookup: Optional[CounterpartyLookup], party_id: Optional[str]) -> Optional[str]:
        if lookup is None or not party_id:
            return None
        return await lookup.get_name_by_id(party_id)

    def _scrub(self, obligation: Obligation) -> None:
        """Drop attributes that belong to the other ledger."""
        pass

    async def _resolve_salesperson(self, data) -> Optional[str]:
        return None

    # ===== CACHE =====

    async def _cache_get(self, key: str) -> Optional[bytes]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except Exception as exc:
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None

    async def _cache_set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value, ttl_seconds)
        except Exception as exc:
            logger.warning("Cache set failed for %s: %s", key, exc)

    async def invalidate_cache(self) -> None:
        """Drop the list view and every other key of this ledger."""
        if self.cache is None:
            return
        try:
            await self.cache.remove(self.keys.all())
            await self.cache.remove_by_prefix(self.keys.pattern())
        except Exception as exc:
            logger.warning("Cache invalidation failed for %s: %s", self.keys.pattern(), exc)

    # ===== READS =====

    @log_failures("list all")
    async def list_all(self) -> List[ObligationResponse]:
        """Cache-aside read of the whole ledger."""
        key = self.keys.all()
        cached = await self._cache_get(key)
        if cached is not None:
            try:
                result = ObligationList.validate_json(cached)
                logger.debug("Cache hit for %s", key)
                return result
            except ValidationError:
                logger.warning("Discarding unreadable cache entry %s", key)

        obligations = await self.repository.list_all()
        result = self._map_all(obligations)
        await self._cache_set(key, ObligationList.dump_json(result), self.list_ttl_seconds)
        logger.debug("Cache miss for %s, loaded %d records", key, len(result))
        return result

    @log_failures("get")
    async def get_by_id(self, obligation_id: str) -> Optional[ObligationResponse]:
        obligation = await self.repository.get_by_id(obligation_id)
        return self._map(obligation) if obligation else None

    @log_failures("list by status")
    async def list_by_status(self, status: ObligationStatus) -> List[ObligationResponse]:
        return self._map_all(await self.repository.list_by_status(status))

    @log_failures("list overdue")
    async def list_overdue(self) -> List[ObligationResponse]:
        return self._map_all(await self.repository.list_overdue(self._today()))

    @log_failures("list by party")
    async def list_by_party(self, counterparty_id: str) -> List[ObligationResponse]:
        return self._map_all(await self.repository.list_by_party(counterparty_id))

    @log_failures("list by period")
    async def list_by_period(self, start: date, end: date) -> List[ObligationResponse]:
        return self._map_all(await self.repository.list_by_period(start, end))

    @log_failures("list due within")
    async def list_due_within(self, days: int) -> List[ObligationResponse]:
        if not 1 <= days <= MAX_DUE_WITHIN_DAYS:
            raise InvalidInputError(f"days must be between 1 and {MAX_DUE_WITHIN_DAYS}, got {days}")
        return self._map_all(await self.repository.list_due_within(self._today(), days))

    @log_failures("get by source document")
    async def get_by_source_document(self, source_document_id: str) -> Optional[ObligationResponse]:
        obligation = await self.repository.get_by_source_document(source_document_id)
        return self._map(obligation) if obligation else None

    @log_failures("compute interest")
    async def compute_interest(
        self,
        obligation_id: str,
        as_of: Optional[date] = None,
        daily_rate: Optional[Money] = None,
    ) -> InterestResponse:
        obligation = await self._load(obligation_id)
        as_of = as_of or self._today()
        rate = require_non_negative(daily_rate, "daily_rate") if daily_rate is not None else self.daily_interest_rate
        return InterestResponse(
            id=obligation.id,
            as_of=as_of,
            daily_rate=rate,
            interest=obligation.compute_interest(as_of, rate)
        )

    # ===== WRITES =====

    @log_failures("create")
    async def create(self, data: ObligationCreate) -> ObligationResponse:
        amount = require_positive(data.original_amount, "original_amount")

        # Snapshot; later renames of the party are not propagated
        counterparty_name = await self._lookup_name(self.counterparties, data.counterparty_id)
        salesperson_name = await self._resolve_salesperson(data)

        obligation = Obligation(
            polarity=self.polarity,
            description=data.description,
            counterparty_id=data.counterparty_id,
            counterparty_name=counterparty_name or data.counterparty_name,
            source_document_id=data.source_document_id,
            fiscal_document=data.fiscal_document,
            original_amount=amount,
            discount=data.discount,
            issue_date=data.issue_date,
            due_date=data.due_date,
            status=ObligationStatus.PENDING,
            is_recurring=data.is_recurring,
            recurrence_kind=data.recurrence_kind,
            recurrence_interval_days=data.recurrence_interval_days,
            notes=data.notes,
            cost_center=data.cost_center,
            category=data.category,
            salesperson_id=data.salesperson_id,
            salesperson_name=salesperson_name or data.salesperson_name,
        )
        self._scrub(obligation)

        created = await self.repository.create(obligation)
        await self.invalidate_cache()

        logger.info("Created %s %s - %s", self.polarity.value, created.sequence_number, created.description)
        return self._map(created)

    @log_failures("update")
    async def update(self, obligation_id: str, data: ObligationUpdate) -> ObligationResponse:
        obligation = await self._load(obligation_id)
        if obligation.status == ObligationStatus.SETTLED:
            raise InvalidStateError(f"Cannot change a settled {self.polarity.value}")

        amount = require_positive(data.original_amount, "original_amount")
        if obligation.settled_amount > 0 and amount <= obligation.settled_amount:
            raise InvalidAmountError(
                f"original_amount must stay above the {obligation.settled_amount} already settled"
            )

        obligation.description = data.description
        obligation.fiscal_document = data.fiscal_document
        obligation.original_amount = amount
        obligation.discount = data.discount
        obligation.issue_date = data.issue_date
        obligation.due_date = data.due_date
        obligation.is_recurring = data.is_recurring
        obligation.recurrence_kind = data.recurrence_kind
        obligation.recurrence_interval_days = data.recurrence_interval_days
        obligation.notes = data.notes
        obligation.cost_center = data.cost_center
        obligation.category = data.category
        obligation.salesperson_id = data.salesperson_id
        obligation.salesperson_name = await self._resolve_salesperson(data)
        self._scrub(obligation)

        updated = await self.repository.update(obligation)
        await self.invalidate_cache()

        logger.info("Updated %s %s", self.polarity.value, obligation_id)
        return self._map(updated)

    @log_failures("delete")
    async def delete(self, obligation_id: str) -> bool:
        """Hard delete. Missing ids return False; settled records are kept."""
        obligation = await self.repository.get_by_id(obligation_id)
        if obligation is None:
            return False
        if obligation.status == ObligationStatus.SETTLED:
            raise InvalidStateError(f"Cannot delete a settled {self.polarity.value}")

        deleted = await self.repository.delete(obligation_id)
        if deleted:
            await self.invalidate_cache()
            logger.info("Deleted %s %s", self.polarity.value, obligation_id)
        return deleted

    @log_failures("settle")
    async def settle(
        self,
        obligation_id: str,
        amount: Money,
        method: PaymentMethod,
        settlement_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        *,
        interest: Optional[Money] = None,
        penalty: Optional[Money] = None,
        discount: Optional[Money] = None,
    ) -> ObligationResponse:
        obligation = await self._load(obligation_id)
        obligation.settle(
            amount,
            method,
            settlement_date or self._clock(),
            interest=interest,
            penalty=penalty,
            discount=discount,
        )
        obligation.notes = append_note(obligation.notes, self.settlement_tag, notes)

        updated = await self.repository.update(obligation)
        await self.invalidate_cache()

        logger.info(
            "%s %s settled %s, remaining %s",
            self.polarity.value.capitalize(), obligation_id, amount, updated.remaining_amount
        )
        return self._map(updated)

    @log_failures("cancel")
    async def cancel(self, obligation_id: str) -> bool:
        obligation = await self.repository.get_by_id(obligation_id)
        if obligation is None:
            return False

        obligation.cancel()
        await self.repository.update(obligation)
        await self.invalidate_cache()

        logger.info("Cancelled %s %s", self.polarity.value, obligation_id)
        return True

    # ===== BATCH JOBS =====

    @log_failures("refresh statuses")
    async def refresh_all_statuses(self, today: Optional[date] = None) -> int:
        """Relabel past-due open records as overdue. Returns how many changed."""
        today = today or self._today()
        candidates = (
            await self.repository.list_by_status(ObligationStatus.PENDING)
            + await self.repository.list_by_status(ObligationStatus.PARTIALLY_SETTLED)
        )

        changed = 0
        for obligation in candidates:
            if obligation.refresh_status(today):
                await self.repository.update(obligation)
                changed += 1

        await self.invalidate_cache()
        logger.info("Refreshed %s statuses: %d of %d changed", self.polarity.value, changed, len(candidates))
        return changed

    @log_failures("process recurring")
    async def process_recurring(self, persist: bool = True) -> List[ObligationResponse]:
        """
        Generate the next installment of every recurring record that is due one.

        With persist=False nothing is written and the successors come back
        without id or sequence number.
        """
        parents = await self.repository.list_recurring_due()

        generated: List[Obligation] = []
        for parent in parents:
            successor = parent.generate_next_installment()
            if successor is None:
                continue
            if persist:
                successor = await self.repository.create(successor)
                parent.successor_id = successor.id
                await self.repository.update(parent)
            generated.append(successor)

        if persist and generated:
            await self.invalidate_cache()

        logger.info(
            "Processed recurring %s: %d installments %s",
            self.polarity.value, len(generated), "created" if persist else "previewed"
        )
        return self._map_all(generated)


class PayableService(ObligationService):
    """Money owed to suppliers."""

    polarity = Polarity.PAYABLE
    settlement_tag = "Payment"

    def _scrub(self, obligation: Obligation) -> None:
        obligation.salesperson_id = None
        obligation.salesperson_name = None

    @log_failures("list by category")
    async def list_by_category(self, category: ExpenseCategory) -> List[ObligationResponse]:
        return self._map_all(await self.repository.list_by_category(category))


class ReceivableService(ObligationService):
    """Money owed by customers."""

    polarity = Polarity.RECEIVABLE
    settlement_tag = "Receipt"

    def __init__(self, repository: ObligationStore, cache=None, counterparties=None, salespeople=None, **kwargs):
        super().__init__(repository, cache, counterparties, **kwargs)
        self.salespeople = salespeople

    def _scrub(self, obligation: Obligation) -> None:
        obligation.cost_center = None
        obligation.category = None

    async def _resolve_salesperson(self, data) -> Optional[str]:
        name = await self._lookup_name(self.salespeople, data.salesperson_id)
        return name or getattr(data, "salesperson_name", None)

    @log_failures("list by salesperson")
    async def list_by_salesperson(self, salesperson_id: str) -> List[ObligationResponse]:
        return self._map_all(await self.repository.list_by_salesperson(salesperson_id))
