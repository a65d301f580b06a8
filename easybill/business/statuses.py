# ==== DOMAIN STATUSES AND TYPES ==== #

"""
Enumerations shared by models, schemas and services in EasyBill.

Values are persisted as plain strings, so renaming a member is a data
migration.
"""

from enum import Enum
from typing import Dict, Tuple


# ==== TENANCY ==== #


class TenantStatus(str, Enum):
    """
    Tenant lifecycle.

    Progression: PENDING → TRIAL → ACTIVE, with SUSPENDED and CANCELLED
    blocking all tenant traffic at the gateway.
    """

    PENDING = "PENDING"
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


BLOCKED_TENANT_STATUSES = {TenantStatus.SUSPENDED.value, TenantStatus.CANCELLED.value}


class SubscriptionPlan(str, Enum):
    BASIC = "BASIC"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


# (max_users, max_stores) applied when a tenant is created without limits
PLAN_LIMITS: Dict[str, Tuple[int, int]] = {
    SubscriptionPlan.BASIC.value: (5, 1),
    SubscriptionPlan.PRO.value: (20, 5),
    SubscriptionPlan.ENTERPRISE.value: (100, 50),
}


# ==== USERS ==== #


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    LOCKED = "LOCKED"


class Role(str, Enum):
    SUPER_ADMIN = "ROLE_SUPER_ADMIN"
    ADMIN = "ROLE_ADMIN"
    MANAGER = "ROLE_MANAGER"
    CASHIER = "ROLE_CASHIER"
    USER = "ROLE_USER"


# ==== BILLING ==== #


class InvoiceStatus(str, Enum):
    """
    Invoice lifecycle.

    DRAFT → COMPLETED on payment; COMPLETED → CANCELLED or RETURNED. Every
    non-draft transition moves stock.
    """

    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class PaymentMode(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"
    WALLET = "WALLET"
    CREDIT = "CREDIT"
    BANK_TRANSFER = "BANK_TRANSFER"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FLAT = "FLAT"


# ==== INVENTORY ==== #


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"


class AdjustmentType(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    SET = "SET"


class ReferenceType(str, Enum):
    SALE = "SALE"
    RETURN = "RETURN"
    PURCHASE = "PURCHASE"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"


# ==== NOTIFICATIONS ==== #


class NotificationType(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"
    PUSH = "PUSH"


class NotificationStatus(str, Enum):
    """PENDING → SENT, or PENDING → FAILED → (retry) SENT / FAILED."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


# ==== CUSTOMERS ==== #


class CustomerSegment(str, Enum):
    """Assigned from lifetime spend, see ``SEGMENT_THRESHOLDS``."""

    REGULAR = "REGULAR"
    VIP = "VIP"
    PREMIUM = "PREMIUM"


class WalletTransactionType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class LoyaltyTransactionType(str, Enum):
    EARNED = "EARNED"
    REDEEMED = "REDEEMED"


# ==== OFFERS ==== #


class OfferType(str, Enum):
    PERCENTAGE_DISCOUNT = "PERCENTAGE_DISCOUNT"
    FIXED_AMOUNT_DISCOUNT = "FIXED_AMOUNT_DISCOUNT"
    MINIMUM_PURCHASE = "MINIMUM_PURCHASE"


class OfferStatus(str, Enum):
    """DRAFT → ACTIVE ⇄ PAUSED. Only ACTIVE offers inside their window apply."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


# ==== REPORTS ==== #


class ReportType(str, Enum):
    SALES = "SALES"
    INVENTORY = "INVENTORY"
    CUSTOMER = "CUSTOMER"
    TAX = "TAX"
