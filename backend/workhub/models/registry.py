"""Personal registry models: products with warranty details and subscriptions."""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from workhub.db.base import BaseModel

PRODUCT_CATEGORIES = ("electronics", "vehicles", "jewellery", "gadgets")
SUBSCRIPTION_CATEGORIES = (
    "streaming",
    "cloud",
    "software",
    "database",
    "productivity",
    "social",
    "music",
    "payment",
    "general",
)
SUBSCRIPTION_CURRENCIES = ("USD", "EUR", "GBP", "INR")
SUBSCRIPTION_FREQUENCIES = ("daily", "monthly", "yearly", "data-based", "next-date")


def money(precision: int = 15, scale: int = 2) -> Numeric:
    """Fixed-point column type surfaced to Python as float."""
    return Numeric(precision, scale, asdecimal=False)


class Product(BaseModel):
    """A registered purchase. Warranty status is derived at read time."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True
    )  # electronics, vehicles, jewellery, gadgets

    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    registration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    warranty_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    warranty_expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)

    total_cost: Mapped[float | None] = mapped_column(money(), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    owner_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Product {self.name} ({self.category})>"


class _ProductDetail(BaseModel):
    """Shared shape of the one-per-product category detail rows."""

    __abstract__ = True

    product_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )


class ElectronicsDetail(_ProductDetail):
    __tablename__ = "electronics"

    type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(100), nullable=True)


class VehicleDetail(_ProductDetail):
    __tablename__ = "vehicles"

    vehicle_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    body_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(100), nullable=True)


class JewelleryDetail(_ProductDetail):
    __tablename__ = "jewellery"

    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rate_per_unit: Mapped[float | None] = mapped_column(money(10, 2), nullable=True)
    cgst: Mapped[float | None] = mapped_column(money(5, 2), nullable=True)
    igst: Mapped[float | None] = mapped_column(money(5, 2), nullable=True)
    vat: Mapped[float | None] = mapped_column(money(5, 2), nullable=True)
    total_weight: Mapped[float | None] = mapped_column(money(10, 3), nullable=True)
    stone_weight: Mapped[float | None] = mapped_column(money(10, 3), nullable=True)
    stone_cost: Mapped[float | None] = mapped_column(money(12, 2), nullable=True)
    diamond_weight: Mapped[float | None] = mapped_column(money(10, 3), nullable=True)
    diamond_cost: Mapped[float | None] = mapped_column(money(12, 2), nullable=True)


class GadgetDetail(_ProductDetail):
    __tablename__ = "gadgets"

    gadget_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    imei: Mapped[str | None] = mapped_column(String(50), nullable=True)
    specifications: Mapped[str | None] = mapped_column(Text, nullable=True)


# Category name -> detail model
PRODUCT_DETAIL_MODELS: dict[str, type[_ProductDetail]] = {
    "electronics": ElectronicsDetail,
    "vehicles": VehicleDetail,
    "jewellery": JewelleryDetail,
    "gadgets": GadgetDetail,
}


class Subscription(BaseModel):
    """A recurring payment. Renewal status is derived at read time."""

    __tablename__ = "subscriptions"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")

    cost: Mapped[float] = mapped_column(money(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    frequency: Mapped[str] = mapped_column(
        String(20), nullable=False, default="monthly"
    )  # daily, monthly, yearly, data-based, next-date

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_renewal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_payment_amount: Mapped[float | None] = mapped_column(money(10, 2), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    owner_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Subscription {self.name} {self.cost} {self.currency}>"
