"""Hooks the sales subsystem calls when a sale changes state."""
from fastapi import APIRouter, Depends

from backoffice.api.deps import get_sales_integration, to_http
from backoffice.models.sale import Sale
from backoffice.schemas.sale import SaleSyncResponse
from backoffice.services.sales_integration import SaleSyncResult, SalesIntegrationService
from backoffice.utils.obligation_validation import ObligationError

router = APIRouter()


def _to_response(sale: Sale, result: SaleSyncResult, on_credit: bool) -> SaleSyncResponse:
    return SaleSyncResponse(
        sale_id=sale.id,
        on_credit=on_credit,
        action=result.action.value,
        receivable=result.receivable
    )


@router.post("/events/created", response_model=SaleSyncResponse)
async def sale_created(sale: Sale, service: SalesIntegrationService = Depends(get_sales_integration)):
    try:
        result = await service.on_sale_created(sale)
    except ObligationError as e:
        raise to_http(e)
    return _to_response(sale, result, service.is_on_credit(sale))


@router.post("/events/finalized", response_model=SaleSyncResponse)
async def sale_finalized(sale: Sale, service: SalesIntegrationService = Depends(get_sales_integration)):
    try:
        result = await service.on_sale_finalized(sale)
    except ObligationError as e:
        raise to_http(e)
    return _to_response(sale, result, service.is_on_credit(sale))


@router.post("/events/cancelled", response_model=SaleSyncResponse)
async def sale_cancelled(sale: Sale, service: SalesIntegrationService = Depends(get_sales_integration)):
    try:
        result = await service.on_sale_cancelled(sale)
    except ObligationError as e:
        raise to_http(e)
    return _to_response(sale, result, service.is_on_credit(sale))
