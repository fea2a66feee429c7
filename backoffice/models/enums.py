from enum import Enum


class Polarity(str, Enum):
    """Which side of the business an obligation sits on."""
    PAYABLE = "payable"        # owed by the business to a supplier
    RECEIVABLE = "receivable"  # owed to the business by a customer


class ObligationStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_SETTLED = "partially_settled"
    OVERDUE = "overdue"
    SETTLED = "settled"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({ObligationStatus.SETTLED, ObligationStatus.CANCELLED})

# Statuses the overdue refresh is allowed to relabel
REFRESHABLE_STATUSES = (ObligationStatus.PENDING, ObligationStatus.PARTIALLY_SETTLED)


class RecurrenceKind(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PIX = "pix"
    INVOICE = "invoice"  # bank slip (boleto)


class ExpenseCategory(str, Enum):
    SUPPLIERS = "suppliers"
    PAYROLL = "payroll"
    TAXES = "taxes"
    RENT = "rent"
    ENERGY = "energy"
    PHONE = "phone"
    INTERNET = "internet"
    MARKETING = "marketing"
    MAINTENANCE = "maintenance"
    FUEL = "fuel"
    OTHER = "other"
