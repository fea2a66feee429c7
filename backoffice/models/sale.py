"""
Sale aggregate as seen by the ledgers.

Owned by the sales subsystem; receivables only read it when a sale is
created, finalized or cancelled.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from backoffice.models.base import MongoModel, utcnow
from backoffice.models.enums import PaymentMethod


class SaleStatus(str, Enum):
    PENDING = "pending"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"


class Sale(MongoModel):
    # Links the receivable through source_document_id, so it is mandatory here
    id: str = Field(..., min_length=1, validation_alias="_id", serialization_alias="_id")
    number: Optional[str] = None  # VND-001
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None  # denormalized

    total: Decimal = Field(gt=0)
    payment_method: PaymentMethod
    sale_date: datetime = Field(default_factory=utcnow)
    due_date: Optional[date] = None  # only for deferred payment

    salesperson_id: Optional[str] = None
    salesperson_name: Optional[str] = None

    status: SaleStatus = SaleStatus.PENDING

    @property
    def label(self) -> str:
        return self.number or self.id
