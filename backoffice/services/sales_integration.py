"""
Keeps receivables in step with the sale lifecycle.

- created: an on-credit sale gets exactly one receivable
- finalized: a cash sale gets a receivable settled in full on the spot
- cancelled: the linked receivable is cancelled when the state machine allows
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from backoffice.core.config import settings
from backoffice.models.base import utcnow
from backoffice.models.enums import ObligationStatus, PaymentMethod
from backoffice.models.sale import Sale
from backoffice.schemas.obligation import ObligationCreate, ObligationResponse
from backoffice.services.obligation_service import ReceivableService
from backoffice.utils.obligation_validation import InvalidStateError

logger = logging.getLogger(__name__)


class SaleSyncAction(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    SETTLED = "settled"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    REFUSED = "refused"


@dataclass
class SaleSyncResult:
    action: SaleSyncAction
    receivable: Optional[ObligationResponse] = None


class SalesIntegrationService:
    def __init__(
        self,
        receivables: ReceivableService,
        *,
        invoice_term_days: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.receivables = receivables
        self.invoice_term_days = invoice_term_days or settings.INVOICE_DEFAULT_TERM_DAYS
        self._clock = clock

    def is_on_credit(self, sale: Sale) -> bool:
        """Deferred payment: a due date after the sale day, or an invoice."""
        if sale.payment_method == PaymentMethod.INVOICE:
            return True
        return sale.due_date is not None and sale.due_date > sale.sale_date.date()

    def resolve_due_date(self, sale: Sale) -> date:
        if sale.due_date is not None:
            return sale.due_date
        return sale.sale_date.date() + timedelta(days=self.invoice_term_days)

    async def _ensure_receivable(self, sale: Sale, due_date: date) -> SaleSyncResult:
        existing = await self.receivables.get_by_source_document(sale.id)
        if existing is not None:
            return SaleSyncResult(SaleSyncAction.ALREADY_EXISTS, existing)

        data = ObligationCreate(
            description=f"Sale {sale.label}",
            original_amount=sale.total,
            issue_date=sale.sale_date.date(),
            due_date=due_date,
            counterparty_id=sale.customer_id,
            counterparty_name=sale.customer_name,
            salesperson_id=sale.salesperson_id,
            salesperson_name=sale.salesperson_name,
            source_document_id=sale.id,
        )
        receivable = await self.receivables.create(data)
        logger.info("Receivable %s created for sale %s", receivable.sequence_number, sale.label)
        return SaleSyncResult(SaleSyncAction.CREATED, receivable)

    async def on_sale_created(self, sale: Sale) -> SaleSyncResult:
        if not self.is_on_credit(sale):
            return SaleSyncResult(SaleSyncAction.SKIPPED)
        return await self._ensure_receivable(sale, self.resolve_due_date(sale))

    async def on_sale_finalized(self, sale: Sale) -> SaleSyncResult:
        """Cash sales are paid at the counter; on-credit receivables stay open."""
        if self.is_on_credit(sale):
            existing = await self.receivables.get_by_source_document(sale.id)
            return SaleSyncResult(SaleSyncAction.SKIPPED, existing)

        ensured = await self._ensure_receivable(sale, sale.sale_date.date())
        receivable = ensured.receivable
        if receivable.status != ObligationStatus.PENDING:
            return SaleSyncResult(SaleSyncAction.SKIPPED, receivable)

        settled = await self.receivables.settle(
            receivable.id,
            receivable.remaining_amount,
            sale.payment_method,
            self._clock(),
            f"Sale {sale.label} finalized",
        )
        return SaleSyncResult(SaleSyncAction.SETTLED, settled)

    async def on_sale_cancelled(self, sale: Sale) -> SaleSyncResult:
        receivable = await self.receivables.get_by_source_document(sale.id)
        if receivable is None or receivable.status == ObligationStatus.CANCELLED:
            return SaleSyncResult(SaleSyncAction.SKIPPED, receivable)

        if receivable.status == ObligationStatus.SETTLED:
            logger.warning(
                "Sale %s cancelled but receivable %s is fully settled (%s); leaving it as is",
                sale.label, receivable.sequence_number, receivable.settled_amount
            )
            return SaleSyncResult(SaleSyncAction.REFUSED, receivable)

        if receivable.settled_amount > 0:
            logger.warning(
                "Sale %s cancelled after partial settlement: %s on receivable %s is not reversed",
                sale.label, receivable.settled_amount, receivable.sequence_number
            )

        try:
            await self.receivables.cancel(receivable.id)
        except InvalidStateError as exc:
            logger.warning("Receivable %s refused cancellation: %s", receivable.sequence_number, exc)
            return SaleSyncResult(SaleSyncAction.REFUSED, receivable)

        logger.info("Receivable %s cancelled with sale %s", receivable.sequence_number, sale.label)
        return SaleSyncResult(SaleSyncAction.CANCELLED, await self.receivables.get_by_id(receivable.id))
