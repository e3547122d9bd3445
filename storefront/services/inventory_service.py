"""
재고 서비스

목적: 상품 옵션 재고의 원자적 차감/복원 및 상품 단위 파생 필드 재계산
- 재고 차감은 "stock >= 수량" 조건부 UPDATE 로 처리하여 음수 재고와 갱신 유실을 방지
- 호출자의 트랜잭션 안에서 실행되며 커밋하지 않음
"""

from uuid import UUID
from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.product import Product, ProductVariant, ProductStatus
from storefront.utils.exceptions import OutOfStockException
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryService:
    """재고 서비스"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def reserve(self, variant_id: UUID, quantity: int, label: str = "") -> None:
        """
        재고 차감 (compare-and-decrement)

        Raises:
            OutOfStockException: 남은 재고가 요청 수량보다 적은 경우
        """
        result = await self.db.execute(
            update(ProductVariant)
            .where(
                ProductVariant.id == variant_id,
                ProductVariant.is_deleted.is_(False),
                ProductVariant.stock >= quantity,
            )
            .values(stock=ProductVariant.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info(f"재고 부족: variant_id={variant_id}, requested={quantity}")
            raise OutOfStockException(label or str(variant_id), requested=quantity)

    async def release(self, variant_id: UUID, quantity: int) -> None:
        """취소/반품된 수량만큼 재고 복원 (원자적 증가)"""
        await self.db.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(stock=ProductVariant.stock + quantity)
            .execution_options(synchronize_session=False)
        )

    async def recompute_product(self, product_id: UUID) -> None:
        """
        상품 총 재고/판매 상태 재계산

        삭제되지 않은 옵션 재고 합계를 total_stock 으로, 합계가 0 이면 inactive 로 설정합니다.
        """
        total_stock = (
            select(func.coalesce(func.sum(ProductVariant.stock), 0))
            .where(
                ProductVariant.product_id == product_id,
                ProductVariant.is_deleted.is_(False),
            )
            .scalar_subquery()
        )
        await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(
                total_stock=total_stock,
                status=case(
                    (total_stock > 0, ProductStatus.ACTIVE.value),
                    else_=ProductStatus.INACTIVE.value,
                ),
            )
            .execution_options(synchronize_session=False)
        )
