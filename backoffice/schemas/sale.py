from typing import Optional

from pydantic import BaseModel

from backoffice.schemas.obligation import ObligationResponse


class SaleSyncResponse(BaseModel):
    sale_id: str
    on_credit: bool
    action: str
    receivable: Optional[ObligationResponse] = None
