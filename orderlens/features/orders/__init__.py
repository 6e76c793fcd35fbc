"""Order store: ORM models, validated records and the row-fetch repository."""

from orderlens.features.orders.schemas import (
    OrderItemRecord,
    OrderRecord,
    OrderStatus,
    ScopeKind,
    TenantScope,
)

__all__ = [
    "OrderItemRecord",
    "OrderRecord",
    "OrderStatus",
    "ScopeKind",
    "TenantScope",
]
