"""Order store ORM models.

Tables mirror the hosted Postgres schema the analytics read from:
- Tenancy: Brand, Branch
- Catalog: Product, ProductInventory
- Facts: Order, OrderItem

Order items keep name and price snapshots taken at checkout, so revenue is
always computed from `qty * unit_price_snapshot` rather than the current
catalog price.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderlens.core.database import Base
from orderlens.shared.models import TimestampMixin

# ============================================================================
# TENANCY
# ============================================================================


class Brand(TimestampMixin, Base):
    """Brand: a tenant owning one or more branches.

    Attributes:
        id: Primary key (UUID string).
        name: Brand display name.
    """

    __tablename__ = "brands"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))

    branches: Mapped[list["Branch"]] = relationship(back_populates="brand")


class Branch(TimestampMixin, Base):
    """Branch: a single store of a brand.

    Attributes:
        id: Primary key (UUID string).
        brand_id: Owning brand.
        name: Branch display name.
    """

    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    brand_id: Mapped[str] = mapped_column(ForeignKey("brands.id"), index=True)
    name: Mapped[str] = mapped_column(String(200))

    brand: Mapped[Brand] = relationship(back_populates="branches")


# ============================================================================
# CATALOG
# ============================================================================


class Product(TimestampMixin, Base):
    """Product sold by a branch.

    Attributes:
        id: Primary key (UUID string).
        branch_id: Branch offering the product.
        name: Current display name (may differ from order snapshots).
        price: Current list price.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    branch_id: Mapped[str] = mapped_column(ForeignKey("branches.id"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))


class ProductInventory(TimestampMixin, Base):
    """Stock level of a product at a branch.

    Attributes:
        id: Surrogate primary key.
        product_id: Product (FK).
        branch_id: Branch holding the stock (FK).
        qty_available: Units on hand.
    """

    __tablename__ = "product_inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), index=True)
    branch_id: Mapped[str] = mapped_column(ForeignKey("branches.id"), index=True)
    qty_available: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        CheckConstraint("qty_available >= 0", name="ck_product_inventory_qty_available"),
    )


# ============================================================================
# FACTS
# ============================================================================


class Order(TimestampMixin, Base):
    """Customer order placed at a branch.

    Attributes:
        id: Primary key (UUID string).
        branch_id: Branch receiving the order.
        brand_id: Brand of the branch (denormalized for brand-level scans).
        customer_phone: Customer identifier (nullable for walk-in orders).
        status: Lifecycle status (CREATED ... COMPLETED, CANCELLED, REFUNDED).
        total_amount: Order total charged to the customer.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    branch_id: Mapped[str] = mapped_column(ForeignKey("branches.id"))
    brand_id: Mapped[str] = mapped_column(ForeignKey("brands.id"))
    customer_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="CREATED")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    items: Mapped[list["OrderItem"]] = relationship(back_populates="order")

    __table_args__ = (
        Index("ix_orders_branch_created", "branch_id", "created_at"),
        Index("ix_orders_brand_created", "brand_id", "created_at"),
        Index("ix_orders_branch_phone", "branch_id", "customer_phone"),
        CheckConstraint("total_amount >= 0", name="ck_orders_total_amount"),
    )


class OrderItem(TimestampMixin, Base):
    """Line item of an order with checkout-time snapshots.

    Attributes:
        id: Surrogate primary key.
        order_id: Parent order (FK).
        product_id: Product sold (nullable once the product is deleted).
        product_name_snapshot: Product name at checkout.
        qty: Units ordered.
        unit_price_snapshot: Unit price at checkout.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), index=True)
    product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    product_name_snapshot: Mapped[str | None] = mapped_column(String(200), nullable=True)
    qty: Mapped[int] = mapped_column(Integer, default=0)
    unit_price_snapshot: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    order: Mapped[Order] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("qty >= 0", name="ck_order_items_qty"),
        CheckConstraint("unit_price_snapshot >= 0", name="ck_order_items_unit_price"),
    )
