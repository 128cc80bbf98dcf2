"""Product and subscription registry.

Both are private to their owner. Warranty and renewal statuses are derived
from the stored dates on every read and are never written back.
"""

from collections import Counter
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.config import get_settings
from workhub.exceptions import NotFoundError, ValidationError
from workhub.models.registry import (
    PRODUCT_CATEGORIES,
    PRODUCT_DETAIL_MODELS,
    Product,
    Subscription,
)
from workhub.services.derived_state import (
    RENEWAL_EXPIRING_SOON,
    days_until,
    renewal_status,
    warranty_expiring_soon,
    warranty_expiry,
    warranty_status,
)
from workhub.utils.clock import Clock, SystemClock

logger = structlog.get_logger()

settings = get_settings()


class ProductService:
    """Owner-scoped product CRUD with category detail rows."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or SystemClock()

    async def get(self, product_id: UUID, owner_id: UUID) -> Product:
        product = await self.db.get(Product, product_id)
        if product is None or product.owner_id != owner_id:
            raise NotFoundError("Product", product_id)
        return product

    async def get_details(self, product: Product) -> dict[str, Any] | None:
        model = PRODUCT_DETAIL_MODELS.get(product.category)
        if model is None:
            return None
        detail = await self.db.scalar(select(model).where(model.product_id == product.id))
        if detail is None:
            return None
        return {
            column.key: getattr(detail, column.key)
            for column in model.__table__.columns
            if column.key not in ("id", "product_id", "created_at", "updated_at")
        }

    def describe(self, product: Product, details: dict | None, now: datetime) -> dict[str, Any]:
        """Row fields plus the warranty values derived against now."""
        expiry = product.warranty_expiry_date
        return {
            "id": product.id,
            "name": product.name,
            "category": product.category,
            "purchase_date": product.purchase_date,
            "registration_date": product.registration_date,
            "warranty_years": product.warranty_years,
            "warranty_expiry_date": expiry,
            "total_cost": product.total_cost,
            "notes": product.notes,
            "owner_id": product.owner_id,
            "created_at": product.created_at,
            "updated_at": product.updated_at,
            "details": details,
            "warranty_status": warranty_status(expiry, now),
            "days_until_expiry": days_until(expiry, now) if expiry else None,
            "warranty_expiring_soon": warranty_expiring_soon(
                expiry, now, settings.warranty_expiring_soon_days
            ),
        }

    async def list_owned(
        self,
        owner_id: UUID,
        category: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        query = select(Product).where(Product.owner_id == owner_id)
        if category:
            query = query.where(Product.category == category)
        result = await self.db.execute(query.order_by(Product.created_at.desc()))

        now = self.clock.now()
        items = []
        for product in result.scalars().all():
            item = self.describe(product, await self.get_details(product), now)
            if status and item["warranty_status"] != status:
                continue
            items.append(item)
        return items

    async def create(
        self, owner_id: UUID, data: dict[str, Any], details: dict[str, Any] | None
    ) -> Product:
        if data.get("category") not in PRODUCT_CATEGORIES:
            raise ValidationError(
                f"Invalid category '{data.get('category')}'", field="category"
            )
        product = Product(owner_id=owner_id, **data)
        self._sync_expiry(product)
        self.db.add(product)
        await self.db.flush()

        await self._write_details(product, details or {})
        logger.info("product_created", product_id=str(product.id), category=product.category)
        return product

    async def update(
        self,
        product_id: UUID,
        owner_id: UUID,
        changes: dict[str, Any],
        details: dict[str, Any] | None,
    ) -> Product:
        product = await self.get(product_id, owner_id)
        previous_category = product.category
        for field, value in changes.items():
            setattr(product, field, value)
        self._sync_expiry(product)

        # A computed expiry goes away with its inputs unless one is given explicitly
        cleared_input = any(
            field in changes and changes[field] is None
            for field in ("purchase_date", "warranty_years")
        )
        if cleared_input and "warranty_expiry_date" not in changes:
            product.warranty_expiry_date = None

        if product.category != previous_category:
            await self._drop_details(product.id, previous_category)
            await self._write_details(product, details or {})
        elif details is not None:
            await self._write_details(product, details)

        await self.db.flush()
        logger.info("product_updated", product_id=str(product.id), fields=sorted(changes))
        return product

    async def delete(self, product_id: UUID, owner_id: UUID) -> None:
        product = await self.get(product_id, owner_id)
        await self._drop_details(product.id, product.category)
        await self.db.delete(product)
        await self.db.flush()
        logger.info("product_deleted", product_id=str(product_id))

    @staticmethod
    def _sync_expiry(product: Product) -> None:
        """Expiry follows purchase date + warranty years whenever both are known."""
        computed = warranty_expiry(product.purchase_date, product.warranty_years)
        if computed is not None:
            product.warranty_expiry_date = computed

    async def _write_details(self, product: Product, values: dict[str, Any]) -> None:
        model = PRODUCT_DETAIL_MODELS[product.category]
        allowed = {column.key for column in model.__table__.columns} - {
            "id",
            "product_id",
            "created_at",
            "updated_at",
        }
        unknown = set(values) - allowed
        if unknown:
            raise ValidationError(
                f"Unknown {product.category} detail fields: {', '.join(sorted(unknown))}",
                field="details",
            )

        detail = await self.db.scalar(select(model).where(model.product_id == product.id))
        if detail is None:
            detail = model(product_id=product.id)
            self.db.add(detail)
        for field, value in values.items():
            setattr(detail, field, value)
        await self.db.flush()

    async def _drop_details(self, product_id: UUID, category: str) -> None:
        model = PRODUCT_DETAIL_MODELS.get(category)
        if model is not None:
            await self.db.execute(delete(model).where(model.product_id == product_id))


class SubscriptionService:
    """Owner-scoped subscription CRUD."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or SystemClock()

    async def get(self, subscription_id: UUID, owner_id: UUID) -> Subscription:
        subscription = await self.db.get(Subscription, subscription_id)
        if subscription is None or subscription.owner_id != owner_id:
            raise NotFoundError("Subscription", subscription_id)
        return subscription

    def describe(self, subscription: Subscription, now: datetime) -> dict[str, Any]:
        renewal = subscription.next_renewal_date
        return {
            "id": subscription.id,
            "name": subscription.name,
            "description": subscription.description,
            "category": subscription.category,
            "cost": subscription.cost,
            "currency": subscription.currency,
            "frequency": subscription.frequency,
            "start_date": subscription.start_date,
            "next_renewal_date": renewal,
            "next_payment_amount": subscription.next_payment_amount,
            "is_active": subscription.is_active,
            "owner_id": subscription.owner_id,
            "created_at": subscription.created_at,
            "updated_at": subscription.updated_at,
            "renewal_status": renewal_status(
                subscription.is_active, renewal, now, settings.renewal_expiring_soon_days
            ),
            "days_until_renewal": days_until(renewal, now) if renewal else None,
        }

    async def list_owned(
        self,
        owner_id: UUID,
        category: str | None = None,
        frequency: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        query = select(Subscription).where(Subscription.owner_id == owner_id)
        if category:
            query = query.where(Subscription.category == category)
        if frequency:
            query = query.where(Subscription.frequency == frequency)
        result = await self.db.execute(query.order_by(Subscription.created_at.desc()))

        now = self.clock.now()
        items = [self.describe(s, now) for s in result.scalars().all()]
        if status:
            items = [item for item in items if item["renewal_status"] == status]
        return items

    async def stats(self, owner_id: UUID) -> dict[str, Any]:
        """Totals over the owner's active subscriptions."""
        items = await self.list_owned(owner_id)
        active = [item for item in items if item["is_active"]]

        cost_by_currency: dict[str, float] = {}
        for item in active:
            cost_by_currency[item["currency"]] = round(
                cost_by_currency.get(item["currency"], 0.0) + (item["cost"] or 0.0), 2
            )

        return {
            "total_active": len(active),
            "total_cost": round(sum(item["cost"] or 0.0 for item in active), 2),
            "cost_by_currency": cost_by_currency,
            "expiring_soon": sum(
                1 for item in active if item["renewal_status"] == RENEWAL_EXPIRING_SOON
            ),
            "categories": dict(Counter(item["category"] for item in active)),
        }

    async def create(self, owner_id: UUID, data: dict[str, Any]) -> Subscription:
        subscription = Subscription(owner_id=owner_id, **data)
        self.db.add(subscription)
        await self.db.flush()
        logger.info("subscription_created", subscription_id=str(subscription.id))
        return subscription

    async def update(
        self, subscription_id: UUID, owner_id: UUID, changes: dict[str, Any]
    ) -> Subscription:
        subscription = await self.get(subscription_id, owner_id)
        for field, value in changes.items():
            setattr(subscription, field, value)
        await self.db.flush()
        logger.info(
            "subscription_updated",
            subscription_id=str(subscription.id),
            fields=sorted(changes),
        )
        return subscription

    async def delete(self, subscription_id: UUID, owner_id: UUID) -> None:
        subscription = await self.get(subscription_id, owner_id)
        await self.db.delete(subscription)
        await self.db.flush()
        logger.info("subscription_deleted", subscription_id=str(subscription_id))
