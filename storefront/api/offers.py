"""
오퍼 API 엔드포인트
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.schemas.promotion_schemas import BestOfferResponse, VariantOfferPrice
from storefront.models.base import get_db
from storefront.services.offer_service import OfferService
from storefront.utils.money import ZERO, round_money

router = APIRouter(prefix="/v1/offers", tags=["오퍼"])


@router.get("/best", response_model=BestOfferResponse)
async def get_best_offer(
    product_id: UUID = Query(..., description="상품 ID"),
    db: AsyncSession = Depends(get_db),
):
    """
    상품에 적용되는 최적 오퍼와 옵션별 할인 후 가격

    상품 오퍼와 카테고리 오퍼 중 할인 값(discount_value)이 가장 큰 오퍼를 선택합니다.
    """
    product, offer = await OfferService(db).get_best_offer_for_product(product_id)

    variants = []
    for variant in product.variants:
        if variant.is_deleted:
            continue
        price = round_money(variant.price)
        reduction = offer.calculate_discount(price) if offer else ZERO
        variants.append(
            VariantOfferPrice(
                product_variant_id=variant.id,
                name=variant.name,
                price=price,
                offer_amount=reduction,
                final_price=round_money(price - reduction),
            )
        )

    return BestOfferResponse(
        product_id=product.id,
        offer_id=offer.id if offer else None,
        offer_name=offer.name if offer else None,
        offer_type=offer.offer_type if offer else None,
        discount_type=offer.discount_type if offer else None,
        discount_value=offer.discount_value if offer else None,
        variants=variants,
    )
