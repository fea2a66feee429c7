from fastapi import Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from backoffice.core.cache import CacheBackend, HybridCache, MemoryCache, MongoCache
from backoffice.core.config import settings
from backoffice.db.mongo import CACHE_ENTRIES, get_db
from backoffice.models.enums import Polarity
from backoffice.repositories.counterparty_repo import (
    CUSTOMERS,
    SUPPLIERS,
    USERS,
    CounterpartyRepository,
)
from backoffice.repositories.obligation_repo import ObligationRepository
from backoffice.services.obligation_service import PayableService, ReceivableService
from backoffice.services.reporting_service import ReportingService
from backoffice.services.sales_integration import SalesIntegrationService
from backoffice.utils.obligation_validation import (
    InvalidAmountError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    ObligationError,
)

_cache: CacheBackend = None


def get_cache(db: AsyncIOMotorDatabase = Depends(get_db)) -> CacheBackend:
    """One cache per process, so a degraded hybrid stays degraded."""
    global _cache
    if _cache is None:
        memory = MemoryCache(max_size=settings.CACHE_MAX_ENTRIES)
        if settings.CACHE_BACKEND == "hybrid":
            _cache = HybridCache(MongoCache(db, CACHE_ENTRIES), memory)
        else:
            _cache = memory
    return _cache


def get_payable_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: CacheBackend = Depends(get_cache)
) -> PayableService:
    return PayableService(
        ObligationRepository(db, Polarity.PAYABLE),
        cache,
        CounterpartyRepository(db, SUPPLIERS),
    )


def get_receivable_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: CacheBackend = Depends(get_cache)
) -> ReceivableService:
    return ReceivableService(
        ObligationRepository(db, Polarity.RECEIVABLE),
        cache,
        CounterpartyRepository(db, CUSTOMERS),
        CounterpartyRepository(db, USERS),
    )


def get_reporting_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    cache: CacheBackend = Depends(get_cache)
) -> ReportingService:
    return ReportingService(
        ObligationRepository(db, Polarity.PAYABLE),
        ObligationRepository(db, Polarity.RECEIVABLE),
        cache,
    )


def get_sales_integration(
    receivables: ReceivableService = Depends(get_receivable_service)
) -> SalesIntegrationService:
    return SalesIntegrationService(receivables)


def to_http(exc: ObligationError) -> HTTPException:
    """Translate a domain rejection into the matching HTTP error."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (InvalidAmountError, InvalidInputError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
