"""
할인 코드/쿠폰 및 오퍼 API 스키마
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DiscountValidateRequest(BaseModel):
    """할인 코드 검증 요청"""

    code: str = Field(..., min_length=1, max_length=50, description="할인 코드 (대소문자 무관)")
    order_amount: Decimal = Field(..., ge=0, description="할인 적용 대상 금액")

    class Config:
        json_schema_extra = {"example": {"code": "SAVE10", "order_amount": "1000.00"}}


class DiscountValidateResponse(BaseModel):
    """할인 적용 결과 스냅샷"""

    promotion_id: UUID
    code: str
    name: str
    source: str
    discount_type: str
    discount_value: float
    discount_amount: float
    final_amount: float


class EligiblePromotionItem(BaseModel):
    promotion_id: UUID
    code: str
    name: str
    description: Optional[str] = None
    source: str
    discount_type: str
    discount_value: float
    minimum_amount: float
    maximum_discount: Optional[float] = None
    valid_to: datetime
    used_count: int
    max_usage_per_user: Optional[int] = None


class EligiblePromotionListResponse(BaseModel):
    promotions: List[EligiblePromotionItem]


class VariantOfferPrice(BaseModel):
    product_variant_id: UUID
    name: str
    price: float
    offer_amount: float
    final_price: float


class BestOfferResponse(BaseModel):
    """상품별 최적 오퍼"""

    product_id: UUID
    offer_id: Optional[UUID] = None
    offer_name: Optional[str] = None
    offer_type: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    variants: List[VariantOfferPrice]
