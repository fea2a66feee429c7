"""
Routes shared by the payables and receivables ledgers.

Static paths are registered before /{obligation_id} so they win the match.
"""
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from backoffice.api.deps import to_http
from backoffice.models.enums import ObligationStatus
from backoffice.schemas.obligation import (
    InterestResponse,
    ObligationCreate,
    ObligationResponse,
    ObligationUpdate,
    SettleRequest,
)
from backoffice.services.obligation_service import MAX_DUE_WITHIN_DAYS, ObligationService
from backoffice.utils.obligation_validation import ObligationError


def build_obligation_router(get_service: Callable[..., ObligationService], label: str) -> APIRouter:
    router = APIRouter()
    not_found = f"{label} not found"

    @router.get("/", response_model=List[ObligationResponse])
    async def list_all(service: ObligationService = Depends(get_service)):
        return await service.list_all()

    @router.get("/status/{obligation_status}", response_model=List[ObligationResponse])
    async def list_by_status(
        obligation_status: ObligationStatus,
        service: ObligationService = Depends(get_service)
    ):
        return await service.list_by_status(obligation_status)

    @router.get("/overdue", response_model=List[ObligationResponse])
    async def list_overdue(service: ObligationService = Depends(get_service)):
        return await service.list_overdue()

    @router.get("/party/{counterparty_id}", response_model=List[ObligationResponse])
    async def list_by_party(counterparty_id: str, service: ObligationService = Depends(get_service)):
        return await service.list_by_party(counterparty_id)

    @router.get("/period", response_model=List[ObligationResponse])
    async def list_by_period(
        start: date = Query(...),
        end: date = Query(...),
        service: ObligationService = Depends(get_service)
    ):
        if start > end:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")
        return await service.list_by_period(start, end)

    @router.get("/due-within/{days}", response_model=List[ObligationResponse])
    async def list_due_within(
        days: int = Path(..., ge=1, le=MAX_DUE_WITHIN_DAYS),
        service: ObligationService = Depends(get_service)
    ):
        return await service.list_due_within(days)

    @router.post("/jobs/refresh-statuses")
    async def refresh_statuses(service: ObligationService = Depends(get_service)):
        """Relabel past-due open records as overdue."""
        changed = await service.refresh_all_statuses()
        return {"updated": changed}

    @router.post("/jobs/process-recurring", response_model=List[ObligationResponse])
    async def process_recurring(
        persist: bool = True,
        service: ObligationService = Depends(get_service)
    ):
        """Generate next installments; persist=false only previews them."""
        return await service.process_recurring(persist=persist)

    @router.post("/", response_model=ObligationResponse, status_code=status.HTTP_201_CREATED)
    async def create(data: ObligationCreate, service: ObligationService = Depends(get_service)):
        try:
            return await service.create(data)
        except ObligationError as e:
            raise to_http(e)

    @router.get("/{obligation_id}", response_model=ObligationResponse)
    async def get(obligation_id: str, service: ObligationService = Depends(get_service)):
        obligation = await service.get_by_id(obligation_id)
        if not obligation:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return obligation

    @router.get("/{obligation_id}/interest", response_model=InterestResponse)
    async def compute_interest(
        obligation_id: str,
        as_of: Optional[date] = None,
        daily_rate: Optional[Decimal] = Query(default=None, ge=0),
        service: ObligationService = Depends(get_service)
    ):
        try:
            return await service.compute_interest(obligation_id, as_of, daily_rate)
        except ObligationError as e:
            raise to_http(e)

    @router.put("/{obligation_id}", response_model=ObligationResponse)
    async def update(
        obligation_id: str,
        data: ObligationUpdate,
        service: ObligationService = Depends(get_service)
    ):
        try:
            return await service.update(obligation_id, data)
        except ObligationError as e:
            raise to_http(e)

    @router.delete("/{obligation_id}")
    async def delete(obligation_id: str, service: ObligationService = Depends(get_service)):
        try:
            deleted = await service.delete(obligation_id)
        except ObligationError as e:
            raise to_http(e)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return {"message": f"{label} deleted successfully"}

    @router.post("/{obligation_id}/settle", response_model=ObligationResponse)
    async def settle(
        obligation_id: str,
        request: SettleRequest,
        service: ObligationService = Depends(get_service)
    ):
        try:
            return await service.settle(
                obligation_id,
                request.amount,
                request.payment_method,
                request.settlement_date,
                request.notes,
                interest=request.interest,
                penalty=request.penalty,
                discount=request.discount,
            )
        except ObligationError as e:
            raise to_http(e)

    @router.post("/{obligation_id}/cancel")
    async def cancel(obligation_id: str, service: ObligationService = Depends(get_service)):
        try:
            cancelled = await service.cancel(obligation_id)
        except ObligationError as e:
            raise to_http(e)
        if not cancelled:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return {"message": f"{label} cancelled successfully"}

    return router
