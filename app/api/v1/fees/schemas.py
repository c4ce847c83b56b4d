"""Fees schemas: fee templates with breakdowns, and the optional fee catalog."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import FeeCategory, OptionalFeeCategory


# --- Fee Templates ---
class FeeBreakdownItem(BaseModel):
    """Breakdown line in a create/update payload. id keeps an existing line (and its payment links) on update."""

    id: Optional[UUID] = None
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0)
    category: FeeCategory
    order: int = 0
    is_refundable: Optional[bool] = True


class FeeTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    grade_level: str = Field(..., min_length=1, max_length=30)
    academic_year_id: UUID
    total_amount: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    is_active: bool = True
    breakdowns: List[FeeBreakdownItem] = Field(default_factory=list)


class FeeTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    total_amount: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    breakdowns: Optional[List[FeeBreakdownItem]] = Field(
        None, description="When given, replaces the template's breakdowns"
    )


class FeeBreakdownResponse(BaseModel):
    id: UUID
    description: str
    amount: Decimal
    category: str
    order: int
    is_refundable: Optional[bool] = None

    class Config:
        from_attributes = True


class FeeTemplateResponse(BaseModel):
    id: UUID
    name: str
    grade_level: str
    academic_year_id: UUID
    academic_year_name: Optional[str] = None
    total_amount: Decimal
    description: Optional[str] = None
    is_active: bool
    breakdowns: List[FeeBreakdownResponse]
    created_at: datetime
    updated_at: datetime


# --- Optional Fees ---
class OptionalFeeVariationItem(BaseModel):
    id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0)


class OptionalFeeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    category: OptionalFeeCategory
    has_variations: bool = False
    applicable_grade_levels: List[str] = Field(default_factory=list, description="Empty means every grade")
    academic_year_id: Optional[UUID] = None
    is_active: bool = True
    sort_order: int = 0
    variations: List[OptionalFeeVariationItem] = Field(default_factory=list)


class OptionalFeeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    category: Optional[OptionalFeeCategory] = None
    has_variations: Optional[bool] = None
    applicable_grade_levels: Optional[List[str]] = None
    academic_year_id: Optional[UUID] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    variations: Optional[List[OptionalFeeVariationItem]] = Field(
        None, description="When given, variations are synced: matched by id, others created, missing ones deleted"
    )


class OptionalFeeVariationResponse(BaseModel):
    id: UUID
    name: str
    amount: Decimal

    class Config:
        from_attributes = True


class OptionalFeeResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    category: str
    has_variations: bool
    applicable_grade_levels: List[str]
    academic_year_id: Optional[UUID] = None
    is_active: bool
    sort_order: int
    variations: List[OptionalFeeVariationResponse]
    created_at: datetime
    updated_at: datetime
