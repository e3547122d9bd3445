"""
오퍼 서비스

목적: 상품/카테고리에 적용 가능한 최적 오퍼 선택 및 오퍼 사용 횟수 관리
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.base import utcnow
from storefront.models.offer import Offer, OfferType
from storefront.models.product import Product
from storefront.models.promotion import PromotionStatus
from storefront.utils.exceptions import NotFoundException, OfferUnavailableException


class OfferService:
    """오퍼 서비스"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    def _valid_offer_filter(self):
        now = utcnow()
        return and_(
            Offer.status == PromotionStatus.ACTIVE.value,
            Offer.is_deleted.is_(False),
            Offer.valid_from <= now,
            Offer.valid_to >= now,
            or_(Offer.max_usage.is_(None), Offer.usage_count < Offer.max_usage),
        )

    async def get_best_offer(
        self, product_id: UUID, category_id: Optional[UUID] = None
    ) -> Optional[Offer]:
        """
        상품에 적용할 최적 오퍼 조회

        상품 지정 오퍼와 카테고리 오퍼 중 discount_value 가 가장 큰 오퍼를 선택합니다.
        (계산된 할인 금액이 아니라 할인 값 기준, 동률이면 먼저 등록된 오퍼)
        """
        scope = and_(
            Offer.offer_type == OfferType.PRODUCT.value,
            Offer.products.any(Product.id == product_id),
        )
        if category_id is not None:
            scope = or_(
                scope,
                and_(
                    Offer.offer_type == OfferType.CATEGORY.value,
                    Offer.category_id == category_id,
                ),
            )

        result = await self.db.execute(
            select(Offer)
            .where(self._valid_offer_filter(), scope)
            .order_by(Offer.discount_value.desc(), Offer.created_at.asc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_best_offer_for_product(self, product_id: UUID) -> tuple[Product, Optional[Offer]]:
        """상품 ID로 상품과 최적 오퍼를 함께 조회"""
        result = await self.db.execute(
            select(Product).where(Product.id == product_id, Product.is_deleted.is_(False))
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundException(resource="상품", resource_id=str(product_id))

        offer = await self.get_best_offer(product.id, product.category_id)
        return product, offer

    async def get_referral_offer(self) -> Optional[Offer]:
        """현재 유효한 추천 보상 오퍼 (여러 개면 할인 값이 가장 큰 것)"""
        result = await self.db.execute(
            select(Offer)
            .where(
                self._valid_offer_filter(),
                Offer.offer_type == OfferType.REFERRAL.value,
            )
            .order_by(Offer.discount_value.desc(), Offer.created_at.asc())
            .limit(1)
        )
        return result.scalars().first()

    async def consume(self, offer_id: UUID, offer_name: str) -> None:
        """
        오퍼 사용 횟수 증가 (한도 조건부 UPDATE)

        Raises:
            OfferUnavailableException: 동시 주문으로 한도가 소진된 경우
        """
        result = await self.db.execute(
            update(Offer)
            .where(
                Offer.id == offer_id,
                or_(Offer.max_usage.is_(None), Offer.usage_count < Offer.max_usage),
            )
            .values(usage_count=Offer.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise OfferUnavailableException(offer_name)
