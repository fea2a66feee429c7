from typing import List

from fastapi import Depends

from backoffice.api.deps import get_payable_service
from backoffice.api.v1.endpoints.obligations import build_obligation_router
from backoffice.models.enums import ExpenseCategory
from backoffice.schemas.obligation import ObligationResponse
from backoffice.services.obligation_service import PayableService

router = build_obligation_router(get_payable_service, "Payable")


@router.get("/category/{category}", response_model=List[ObligationResponse])
async def list_by_category(
    category: ExpenseCategory,
    service: PayableService = Depends(get_payable_service)
):
    """Payables filed under one expense category."""
    return await service.list_by_category(category)
