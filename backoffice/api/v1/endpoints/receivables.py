from typing import List

from fastapi import Depends

from backoffice.api.deps import get_receivable_service
from backoffice.api.v1.endpoints.obligations import build_obligation_router
from backoffice.schemas.obligation import ObligationResponse
from backoffice.services.obligation_service import ReceivableService

router = build_obligation_router(get_receivable_service, "Receivable")


@router.get("/salesperson/{salesperson_id}", response_model=List[ObligationResponse])
async def list_by_salesperson(
    salesperson_id: str,
    service: ReceivableService = Depends(get_receivable_service)
):
    """Receivables credited to one salesperson."""
    return await service.list_by_salesperson(salesperson_id)
