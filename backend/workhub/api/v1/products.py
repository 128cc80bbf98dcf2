"""Product registry endpoints. Every product is private to its owner."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.api.v1.auth import CurrentUser
from workhub.db.session import get_db_session
from workhub.services.registry import ProductService
from workhub.utils.clock import Clock, get_clock
from workhub.utils.payload import reject_nulls

router = APIRouter()

CATEGORY_PATTERN = "^(electronics|vehicles|jewellery|gadgets)$"
WARRANTY_STATUS_PATTERN = "^(no_warranty|under_warranty|warranty_expired)$"


class ProductCreate(BaseModel):
    """Register a product. ``details`` holds the category-specific fields."""

    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., pattern=CATEGORY_PATTERN)
    purchase_date: date
    registration_date: date | None = None
    warranty_years: int | None = Field(None, ge=0, le=100)
    warranty_expiry_date: date | None = None
    total_cost: float | None = Field(None, ge=0)
    notes: str | None = None
    details: dict[str, Any] | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    category: str | None = Field(None, pattern=CATEGORY_PATTERN)
    purchase_date: date | None = None
    registration_date: date | None = None
    warranty_years: int | None = Field(None, ge=0, le=100)
    warranty_expiry_date: date | None = None
    total_cost: float | None = Field(None, ge=0)
    notes: str | None = None
    details: dict[str, Any] | None = None


class ProductResponse(BaseModel):
    id: UUID
    name: str
    category: str
    purchase_date: date
    registration_date: date | None
    warranty_years: int | None
    warranty_expiry_date: date | None
    total_cost: float | None
    notes: str | None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime
    details: dict[str, Any] | None
    warranty_status: str
    days_until_expiry: int | None
    warranty_expiring_soon: bool


@router.get("/", response_model=list[ProductResponse])
async def list_products(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    category: str | None = Query(None, pattern=CATEGORY_PATTERN),
    warranty_status: str | None = Query(None, pattern=WARRANTY_STATUS_PATTERN),
) -> list[dict[str, Any]]:
    """List the current user's products, newest first."""
    return await ProductService(db, clock).list_owned(
        current_user.id, category=category, status=warranty_status
    )


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    service = ProductService(db, clock)
    product = await service.create(
        current_user.id, data.model_dump(exclude={"details"}), data.details
    )
    return service.describe(product, await service.get_details(product), clock.now())


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    service = ProductService(db, clock)
    product = await service.get(product_id, current_user.id)
    return service.describe(product, await service.get_details(product), clock.now())


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    data: ProductUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Update a product. Changing category replaces the detail row."""
    changes = reject_nulls(
        data.model_dump(exclude_unset=True), ("name", "category", "purchase_date")
    )
    details = changes.pop("details", None)

    service = ProductService(db, clock)
    product = await service.update(product_id, current_user.id, changes, details)
    return service.describe(product, await service.get_details(product), clock.now())


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await ProductService(db).delete(product_id, current_user.id)
