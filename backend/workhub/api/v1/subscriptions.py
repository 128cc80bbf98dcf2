"""Subscription registry endpoints."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser
from workhub.db.session import get_db_session
from workhub.services.registry import SubscriptionService
from workhub.utils.clock import Clock, get_clock
from workhub.utils.payload import reject_nulls

router = APIRouter()

CATEGORY_PATTERN = (
    "^(streaming|cloud|software|database|productivity|social|music|payment|general)$"
)
CURRENCY_PATTERN = "^(USD|EUR|GBP|INR)$"
FREQUENCY_PATTERN = "^(daily|monthly|yearly|data-based|next-date)$"
RENEWAL_STATUS_PATTERN = "^(inactive|active|expiring_soon|expired)$"


class SubscriptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str = Field(default="general", pattern=CATEGORY_PATTERN)
    cost: float = Field(..., ge=0)
    currency: str = Field(default="USD", pattern=CURRENCY_PATTERN)
    frequency: str = Field(default="monthly", pattern=FREQUENCY_PATTERN)
    start_date: date
    next_renewal_date: date | None = None
    next_payment_amount: float | None = Field(None, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def check_dates(self) -> "SubscriptionCreate":
        if self.next_renewal_date and self.next_renewal_date < self.start_date:
            raise ValueError("next_renewal_date must not be before start_date")
        return self


class SubscriptionUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, pattern=CATEGORY_PATTERN)
    cost: float | None = Field(None, ge=0)
    currency: str | None = Field(None, pattern=CURRENCY_PATTERN)
    frequency: str | None = Field(None, pattern=FREQUENCY_PATTERN)
    start_date: date | None = None
    next_renewal_date: date | None = None
    next_payment_amount: float | None = Field(None, ge=0)
    is_active: bool | None = None


class SubscriptionResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    category: str
    cost: float
    currency: str
    frequency: str
    start_date: date
    next_renewal_date: date | None
    next_payment_amount: float | None
    is_active: bool
    owner_id: UUID
    created_at: datetime
    updated_at: datetime
    renewal_status: str
    days_until_renewal: int | None


class SubscriptionStatsResponse(BaseModel):
    total_active: int
    total_cost: float
    cost_by_currency: dict[str, float]
    expiring_soon: int
    categories: dict[str, int]


@router.get("/", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    category: str | None = Query(None, pattern=CATEGORY_PATTERN),
    frequency: str | None = Query(None, pattern=FREQUENCY_PATTERN),
    renewal_status: str | None = Query(None, pattern=RENEWAL_STATUS_PATTERN),
) -> list[dict[str, Any]]:
    return await SubscriptionService(db, clock).list_owned(
        current_user.id, category=category, frequency=frequency, status=renewal_status
    )


@router.get("/stats", response_model=SubscriptionStatsResponse)
async def get_subscription_stats(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Totals over active subscriptions. Costs are summed per listed amount, not normalized by frequency."""
    return await SubscriptionService(db, clock).stats(current_user.id)


@router.post("/", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    data: SubscriptionCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    service = SubscriptionService(db, clock)
    subscription = await service.create(current_user.id, data.model_dump())
    return service.describe(subscription, clock.now())


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    service = SubscriptionService(db, clock)
    subscription = await service.get(subscription_id, current_user.id)
    return service.describe(subscription, clock.now())


@router.patch("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: UUID,
    data: SubscriptionUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    changes = reject_nulls(
        data.model_dump(exclude_unset=True),
        ("name", "category", "cost", "currency", "frequency", "start_date", "is_active"),
    )
    service = SubscriptionService(db, clock)
    subscription = await service.update(subscription_id, current_user.id, changes)
    return service.describe(subscription, clock.now())


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await SubscriptionService(db).delete(subscription_id, current_user.id)
