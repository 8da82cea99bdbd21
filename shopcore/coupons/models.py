from datetime import date
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class ApplyCouponIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)


class CouponCreateIn(BaseModel):
    code: str = Field(..., min_length=3, max_length=20)
    discount_percentage: Decimal
    min_order_amount: Decimal = Decimal("0")
    expires_on: Optional[date] = None
    is_active: bool = True


class CouponUpdateIn(BaseModel):
    discount_percentage: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    expires_on: Optional[date] = None
    is_active: Optional[bool] = None

    model_config = {"extra": "forbid"}
