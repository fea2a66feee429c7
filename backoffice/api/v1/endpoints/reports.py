from datetime import date

from fastapi import APIRouter, Depends, Query

from backoffice.api.deps import get_reporting_service, to_http
from backoffice.models.enums import Polarity
from backoffice.schemas.report import CashFlowSummary, LedgerSummary
from backoffice.services.reporting_service import ReportingService
from backoffice.utils.obligation_validation import ObligationError

router = APIRouter()


@router.get("/cash-flow", response_model=CashFlowSummary)
async def cash_flow(
    start: date = Query(...),
    end: date = Query(...),
    service: ReportingService = Depends(get_reporting_service)
):
    """Both ledgers for the period with projected and realized net."""
    try:
        return await service.cash_flow_summary(start, end)
    except ObligationError as e:
        raise to_http(e)


@router.get("/{polarity}", response_model=LedgerSummary)
async def ledger_summary(
    polarity: Polarity,
    start: date = Query(...),
    end: date = Query(...),
    service: ReportingService = Depends(get_reporting_service)
):
    try:
        return await service.ledger_summary(polarity, start, end)
    except ObligationError as e:
        raise to_http(e)
