import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from pydantic import ValidationError

from backoffice.core.cache import CacheBackend, LedgerCacheKeys
from backoffice.core.config import settings
from backoffice.models.base import utcnow
from backoffice.models.enums import Polarity
from backoffice.repositories.obligation_repo import ObligationStore
from backoffice.schemas.report import CashFlowSummary, LedgerSummary
from backoffice.utils.obligation_validation import InvalidAmountError

logger = logging.getLogger(__name__)


class ReportingService:
    """Period totals per ledger. Summaries share the ledger's cache namespace."""

    def __init__(
        self,
        payables: ObligationStore,
        receivables: ObligationStore,
        cache: Optional[CacheBackend] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        ttl_seconds: Optional[int] = None,
        key_prefix: Optional[str] = None,
    ):
        self.repositories = {
            Polarity.PAYABLE: payables,
            Polarity.RECEIVABLE: receivables,
        }
        self.cache = cache
        self._clock = clock
        self.ttl_seconds = ttl_seconds or settings.CACHE_LIST_TTL_SECONDS
        self.key_prefix = key_prefix or settings.CACHE_KEY_PREFIX

    def _repo(self, polarity: Polarity) -> ObligationStore:
        return self.repositories[Polarity(polarity)]

    async def total_due(self, polarity: Polarity, start: date, end: date) -> Decimal:
        return await self._repo(polarity).total_due_in_period(start, end)

    async def total_settled(self, polarity: Polarity, start: date, end: date) -> Decimal:
        return await self._repo(polarity).total_settled_in_period(start, end)

    async def overdue_count(self, polarity: Polarity) -> int:
        return await self._repo(polarity).count_overdue(self._clock().date())

    async def ledger_summary(self, polarity: Polarity, start: date, end: date) -> LedgerSummary:
        if start > end:
            raise InvalidAmountError("Period start must not be after its end")

        polarity = Polarity(polarity)
        key = LedgerCacheKeys(self.key_prefix, polarity.value).report(start, end)

        cached = await self._cache_get(key)
        if cached is not None:
            try:
                return LedgerSummary.model_validate_json(cached)
            except ValidationError:
                logger.warning("Discarding unreadable cache entry %s", key)

        summary = LedgerSummary(
            polarity=polarity,
            start=start,
            end=end,
            total_due=await self.total_due(polarity, start, end),
            total_settled=await self.total_settled(polarity, start, end),
            overdue_count=await self.overdue_count(polarity),
        )
        await self._cache_set(key, summary.model_dump_json().encode())
        return summary

    async def cash_flow_summary(self, start: date, end: date) -> CashFlowSummary:
        payables = await self.ledger_summary(Polarity.PAYABLE, start, end)
        receivables = await self.ledger_summary(Polarity.RECEIVABLE, start, end)
        return CashFlowSummary(
            start=start,
            end=end,
            payables=payables,
            receivables=receivables,
            projected_net=receivables.total_due - payables.total_due,
            realized_net=receivables.total_settled - payables.total_settled,
        )

    async def _cache_get(self, key: str) -> Optional[bytes]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except Exception as exc:
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None

    async def _cache_set(self, key: str, value: bytes) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value, self.ttl_seconds)
        except Exception as exc:
            logger.warning("Cache set failed for %s: %s", key, exc)
