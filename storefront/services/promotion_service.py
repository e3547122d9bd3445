"""
프로모션 서비스

목적: 할인 코드/쿠폰 검증, 할인 금액 계산, 사용 횟수 차감
- 조회는 코드 대문자 정규화 후 discount 출처를 coupon 보다 우선
- 사용 횟수는 주문 생성 트랜잭션 안에서 조건부 UPDATE 로 원자적으로 증가
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.base import insert_if_absent, utcnow
from storefront.models.promotion import (
    DiscountType,
    Promotion,
    PromotionSource,
    PromotionStatus,
    UserPromotionUsage,
)
from storefront.utils.exceptions import (
    GlobalUsageExceededException,
    MinimumAmountNotMetException,
    PerUserUsageExceededException,
    PromotionNotFoundException,
    ValidationException,
)
from storefront.utils.logging import get_logger
from storefront.utils.money import round_money, to_decimal

logger = get_logger(__name__)


def normalize_code(code: Optional[str]) -> str:
    """할인 코드 정규화 (공백 제거 + 대문자)"""
    return (code or "").strip().upper()


@dataclass
class DiscountQuote:
    """할인 코드 적용 결과"""

    promotion: Promotion
    order_amount: Decimal
    discount_amount: Decimal

    @property
    def final_amount(self) -> Decimal:
        return round_money(max(self.order_amount - self.discount_amount, Decimal("0")))


class PromotionService:
    """프로모션 서비스"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def find_active_by_code(
        self, code: str, user_id: Optional[UUID] = None
    ) -> Promotion:
        """
        사용 가능한 프로모션 조회

        상태가 active 이고 현재 시각이 유효 기간 안에 있으며 삭제되지 않은 프로모션만 반환합니다.
        소유자가 지정된 쿠폰은 소유자 외에는 존재하지 않는 것으로 취급합니다.

        Raises:
            ValidationException: 코드가 비어 있는 경우
            PromotionNotFoundException: 조건에 맞는 프로모션이 없는 경우
        """
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationException("할인 코드를 입력해주세요.", field="code")

        now = utcnow()
        query = (
            select(Promotion)
            .where(
                Promotion.code == normalized,
                Promotion.is_deleted.is_(False),
                Promotion.status == PromotionStatus.ACTIVE.value,
                Promotion.valid_from <= now,
                Promotion.valid_to >= now,
            )
            .order_by(
                case((Promotion.source == PromotionSource.DISCOUNT.value, 0), else_=1)
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        promotion = result.scalars().first()

        if promotion is None or (
            promotion.owner_user_id is not None and promotion.owner_user_id != user_id
        ):
            raise PromotionNotFoundException(normalized)

        return promotion

    async def get_user_usage(
        self, user_id: UUID, promotion_id: UUID
    ) -> Optional[UserPromotionUsage]:
        result = await self.db.execute(
            select(UserPromotionUsage).where(
                UserPromotionUsage.user_id == user_id,
                UserPromotionUsage.promotion_id == promotion_id,
            ).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def evaluate(
        self, code: str, order_amount: Decimal, user_id: UUID
    ) -> DiscountQuote:
        """
        할인 코드 적용 가능 여부 확인 및 할인 금액 계산 (사용 횟수는 변경하지 않음)

        Args:
            code: 할인 코드 (대소문자 무관)
            order_amount: 할인 적용 대상 금액
            user_id: 사용자 ID

        Returns:
            DiscountQuote: 프로모션과 계산된 할인 금액

        Raises:
            PromotionNotFoundException: 유효한 코드가 없음
            MinimumAmountNotMetException: 최소 주문 금액 미달
            GlobalUsageExceededException: 전체 사용 한도 초과
            PerUserUsageExceededException: 1인당 사용 한도 초과
        """
        order_amount = round_money(order_amount)
        promotion = await self.find_active_by_code(code, user_id)

        if order_amount < Decimal(promotion.minimum_amount or 0):
            raise MinimumAmountNotMetException(round_money(promotion.minimum_amount))

        if promotion.is_usage_limit_reached():
            raise GlobalUsageExceededException(promotion.code)

        if promotion.max_usage_per_user is not None:
            usage = await self.get_user_usage(user_id, promotion.id)
            if usage is not None and usage.usage_count >= promotion.max_usage_per_user:
                raise PerUserUsageExceededException(promotion.code)

        return DiscountQuote(
            promotion=promotion,
            order_amount=order_amount,
            discount_amount=promotion.calculate_discount(order_amount),
        )

    async def consume(self, promotion: Promotion, user_id: UUID) -> None:
        """
        사용 횟수 차감 (전체 + 사용자별)

        두 카운터 모두 한도 조건을 포함한 UPDATE 로 증가시키며,
        어느 하나라도 실패하면 예외를 발생시켜 주문 트랜잭션 전체를 롤백하게 합니다.
        """
        result = await self.db.execute(
            update(Promotion)
            .where(
                Promotion.id == promotion.id,
                or_(
                    Promotion.max_usage.is_(None),
                    Promotion.usage_count < Promotion.max_usage,
                ),
            )
            .values(usage_count=Promotion.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise GlobalUsageExceededException(promotion.code)

        await insert_if_absent(
            self.db,
            UserPromotionUsage,
            ["user_id", "promotion_id"],
            user_id=user_id,
            promotion_id=promotion.id,
            usage_count=0,
        )

        stmt = (
            update(UserPromotionUsage)
            .where(
                UserPromotionUsage.user_id == user_id,
                UserPromotionUsage.promotion_id == promotion.id,
            )
            .values(
                usage_count=UserPromotionUsage.usage_count + 1,
                last_used_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if promotion.max_usage_per_user is not None:
            stmt = stmt.where(
                UserPromotionUsage.usage_count < promotion.max_usage_per_user
            )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            raise PerUserUsageExceededException(promotion.code)

        logger.info(f"프로모션 사용: code={promotion.code}, user_id={user_id}")

    async def list_eligible(self, user_id: UUID) -> List[tuple[Promotion, int]]:
        """
        사용자가 지금 사용할 수 있는 프로모션 목록

        Returns:
            (프로모션, 사용자 사용 횟수) 목록
        """
        now = utcnow()
        query = (
            select(Promotion, UserPromotionUsage.usage_count)
            .outerjoin(
                UserPromotionUsage,
                and_(
                    UserPromotionUsage.promotion_id == Promotion.id,
                    UserPromotionUsage.user_id == user_id,
                ),
            )
            .where(
                Promotion.is_deleted.is_(False),
                Promotion.status == PromotionStatus.ACTIVE.value,
                Promotion.valid_from <= now,
                Promotion.valid_to >= now,
                or_(
                    Promotion.owner_user_id.is_(None),
                    Promotion.owner_user_id == user_id,
                ),
                or_(
                    Promotion.max_usage.is_(None),
                    Promotion.usage_count < Promotion.max_usage,
                ),
            )
            .order_by(Promotion.valid_to)
        )
        result = await self.db.execute(query)

        eligible = []
        for promotion, used in result.all():
            used = used or 0
            if (
                promotion.max_usage_per_user is not None
                and used >= promotion.max_usage_per_user
            ):
                continue
            eligible.append((promotion, used))
        return eligible

    async def create_promotion(
        self,
        *,
        name: str,
        code: str,
        discount_type: str,
        discount_value: Decimal,
        valid_from: datetime,
        valid_to: datetime,
        source: str = PromotionSource.DISCOUNT.value,
        description: Optional[str] = None,
        minimum_amount: Decimal = Decimal("0"),
        maximum_discount: Optional[Decimal] = None,
        max_usage: Optional[int] = None,
        max_usage_per_user: Optional[int] = None,
        owner_user_id: Optional[UUID] = None,
    ) -> Promotion:
        """
        프로모션 생성 (호출자 트랜잭션 안에서 flush 만 수행)

        Raises:
            ValidationException: 이름/유형/값/기간/코드 중복 검증 실패
        """
        if not (name or "").strip():
            raise ValidationException("프로모션 이름은 필수입니다.", field="name")

        if discount_type not in (DiscountType.PERCENTAGE.value, DiscountType.FIXED.value):
            raise ValidationException(
                "할인 유형은 percentage 또는 fixed 여야 합니다.", field="discount_type"
            )

        discount_value = to_decimal(discount_value)
        if discount_value <= 0:
            raise ValidationException("할인 값은 0보다 커야 합니다.", field="discount_value")

        if discount_type == DiscountType.PERCENTAGE.value and discount_value > 100:
            raise ValidationException(
                "정률 할인은 100%를 초과할 수 없습니다.", field="discount_value"
            )

        if valid_to <= valid_from:
            raise ValidationException(
                "종료일은 시작일 이후여야 합니다.", field="valid_to"
            )

        normalized = normalize_code(code)
        if not normalized:
            raise ValidationException("할인 코드는 필수입니다.", field="code")

        # 삭제된 프로모션의 코드도 재사용하지 않음 (promotions.code 유니크 인덱스)
        existing = await self.db.execute(
            select(Promotion.id).where(Promotion.code == normalized)
        )
        if existing.first() is not None:
            raise ValidationException("이미 사용 중인 할인 코드입니다.", field="code")

        promotion = Promotion(
            source=source,
            code=normalized,
            name=name.strip(),
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            minimum_amount=to_decimal(minimum_amount),
            maximum_discount=maximum_discount,
            valid_from=valid_from,
            valid_to=valid_to,
            max_usage=max_usage,
            max_usage_per_user=max_usage_per_user,
            owner_user_id=owner_user_id,
        )
        self.db.add(promotion)
        await self.db.flush()
        return promotion
