"""Validated record types handed from the order store to the analytics.

Rows are converted into these frozen models once, at the fetch boundary.
Analyzers only ever see `OrderRecord` / `OrderItemRecord`, never raw rows.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from orderlens.core.exceptions import MissingScopeError

UNKNOWN_PRODUCT_ID = "unknown"
UNKNOWN_PRODUCT_NAME = "Unknown Product"


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# Orders in these states never count toward revenue or customer activity
NON_REVENUE_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})


class ScopeKind(str, Enum):
    """Tenant boundary an analytics request is evaluated over."""

    BRANCH = "branch"
    BRAND = "brand"


class TenantScope(BaseModel):
    """A branch, or a brand aggregating all of its branches."""

    model_config = ConfigDict(frozen=True)

    kind: ScopeKind
    scope_id: str = Field(..., min_length=1)

    @classmethod
    def for_branch(cls, branch_id: str | None) -> "TenantScope":
        """Build a branch scope.

        Raises:
            MissingScopeError: If branch_id is missing or blank.
        """
        if branch_id is None or not branch_id.strip():
            raise MissingScopeError("branch_id is required")
        return cls(kind=ScopeKind.BRANCH, scope_id=branch_id.strip())

    @classmethod
    def for_brand(cls, brand_id: str | None) -> "TenantScope":
        """Build a brand scope.

        Raises:
            MissingScopeError: If brand_id is missing or blank.
        """
        if brand_id is None or not brand_id.strip():
            raise MissingScopeError("brand_id is required")
        return cls(kind=ScopeKind.BRAND, scope_id=brand_id.strip())

    @property
    def is_brand(self) -> bool:
        """Whether the scope spans several branches."""
        return self.kind == ScopeKind.BRAND


class OrderRecord(BaseModel):
    """One order as consumed by the analyzers.

    Attributes:
        id: Order identifier.
        branch_id: Branch that received the order.
        customer_phone: Customer identifier; None for anonymous orders.
        created_at: Timezone-aware checkout timestamp.
        status: Lifecycle status.
        total_amount: Order total.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    branch_id: str
    customer_phone: str | None = None
    created_at: datetime
    status: OrderStatus
    total_amount: float = Field(0.0, ge=0)

    @field_validator("customer_phone")
    @classmethod
    def normalize_phone(cls, v: str | None) -> str | None:
        """Blank phone numbers identify nobody."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("created_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive timestamps from the store are UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def counts_as_revenue(self) -> bool:
        """Whether the order contributes to revenue and customer activity."""
        return self.status not in NON_REVENUE_STATUSES


class OrderItemRecord(BaseModel):
    """One order line as consumed by the analyzers.

    Attributes:
        order_id: Parent order.
        product_id: Product identifier ("unknown" when the product was deleted).
        product_name: Display name (latest catalog name when resolvable,
            otherwise the checkout snapshot).
        quantity: Units ordered.
        unit_price: Unit price at checkout.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str
    product_id: str = UNKNOWN_PRODUCT_ID
    product_name: str = UNKNOWN_PRODUCT_NAME
    quantity: int = Field(0, ge=0)
    unit_price: float = Field(0.0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def fill_missing(cls, data: object) -> object:
        """Replace null product id/name with the unknown placeholders."""
        if isinstance(data, dict):
            if not data.get("product_id"):
                data = {**data, "product_id": UNKNOWN_PRODUCT_ID}
            if not data.get("product_name"):
                data = {**data, "product_name": UNKNOWN_PRODUCT_NAME}
        return data

    @property
    def revenue(self) -> float:
        """Line revenue (quantity * unit price)."""
        return self.quantity * self.unit_price
