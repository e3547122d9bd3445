"""
할인 코드/쿠폰 API 엔드포인트

할인 코드 검증(할인 금액 미리보기)과 사용 가능한 프로모션 목록 조회
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.schemas.promotion_schemas import (
    DiscountValidateRequest,
    DiscountValidateResponse,
    EligiblePromotionItem,
    EligiblePromotionListResponse,
)
from storefront.middleware.auth import get_current_user
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.services.promotion_service import PromotionService

router = APIRouter(prefix="/v1/discounts", tags=["할인"])


@router.post("/validate", response_model=DiscountValidateResponse)
async def validate_discount(
    request: DiscountValidateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    할인 코드 적용 가능 여부 확인 및 할인 금액 계산

    사용 횟수는 변경하지 않으며, 실제 차감은 주문 생성 시 이루어집니다.

    **오류 케이스**:
    - `404`: 없거나 만료된 코드
    - `400`: 최소 주문 금액 미달, 전체/1인당 사용 한도 초과
    """
    quote = await PromotionService(db).evaluate(
        request.code, request.order_amount, current_user.id
    )
    promotion = quote.promotion
    return DiscountValidateResponse(
        promotion_id=promotion.id,
        code=promotion.code,
        name=promotion.name,
        source=promotion.source,
        discount_type=promotion.discount_type,
        discount_value=promotion.discount_value,
        discount_amount=quote.discount_amount,
        final_amount=quote.final_amount,
    )


@router.get("/eligible", response_model=EligiblePromotionListResponse)
async def list_eligible(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """지금 사용할 수 있는 할인 코드/쿠폰 목록 (한도 소진된 항목 제외)"""
    eligible = await PromotionService(db).list_eligible(current_user.id)
    return EligiblePromotionListResponse(
        promotions=[
            EligiblePromotionItem(
                promotion_id=promotion.id,
                code=promotion.code,
                name=promotion.name,
                description=promotion.description,
                source=promotion.source,
                discount_type=promotion.discount_type,
                discount_value=promotion.discount_value,
                minimum_amount=promotion.minimum_amount,
                maximum_discount=promotion.maximum_discount,
                valid_to=promotion.valid_to,
                used_count=used,
                max_usage_per_user=promotion.max_usage_per_user,
            )
            for promotion, used in eligible
        ]
    )
