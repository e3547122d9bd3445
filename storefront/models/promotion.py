"""
프로모션(Promotion) 및 사용자별 사용 이력(UserPromotionUsage) 모델

목적: 할인 코드(discount)와 쿠폰(coupon)을 하나의 테이블에서 관리
- source 컬럼으로 출처를 구분하며, 코드 조회 시 discount 가 coupon 보다 우선
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import (
    Column,
    String,
    Text,
    DECIMAL,
    Integer,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
    Uuid,
)
import uuid

from .base import Base, TimestampMixin, utcnow
from storefront.utils.money import ZERO, round_money, to_decimal


class PromotionSource(str, Enum):
    """프로모션 출처"""

    DISCOUNT = "discount"
    COUPON = "coupon"


class DiscountType(str, Enum):
    """할인 유형"""

    PERCENTAGE = "percentage"  # 정률 할인
    FIXED = "fixed"  # 정액 할인


class PromotionStatus(str, Enum):
    """프로모션 상태"""

    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


def calculate_discount_amount(
    amount: Decimal,
    discount_type: str,
    discount_value: Decimal,
    maximum_discount: Optional[Decimal] = None,
) -> Decimal:
    """
    할인 금액 계산 (프로모션/오퍼 공통)

    정률은 amount * value / 100, 정액은 value 를 기준으로 하고
    최대 할인 금액과 주문 금액 순서로 상한을 적용한 뒤 소수점 2자리로 반올림합니다.
    """
    amount = to_decimal(amount)
    value = to_decimal(discount_value)

    if discount_type == DiscountType.PERCENTAGE.value:
        discount = amount * value / Decimal("100")
    elif discount_type == DiscountType.FIXED.value:
        discount = value
    else:
        return ZERO

    if maximum_discount is not None:
        discount = min(discount, to_decimal(maximum_discount))

    discount = min(discount, amount)
    return round_money(max(discount, ZERO))


class Promotion(Base, TimestampMixin):
    """프로모션 모델 (할인 코드 + 쿠폰)"""

    __tablename__ = "promotions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    source = Column(String(20), nullable=False, default=PromotionSource.DISCOUNT.value)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(DECIMAL(10, 2), nullable=False)
    minimum_amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    maximum_discount = Column(DECIMAL(10, 2), nullable=True)
    valid_from = Column(DateTime, nullable=False)
    valid_to = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=PromotionStatus.ACTIVE.value)
    usage_count = Column(Integer, nullable=False, default=0)
    max_usage = Column(Integer, nullable=True)  # None = 무제한
    max_usage_per_user = Column(Integer, nullable=True)  # None = 무제한
    # 특정 사용자 전용 쿠폰 (추천 보상 등)
    owner_user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_deleted = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("discount_value > 0", name="check_discount_value_positive"),
        CheckConstraint("valid_to > valid_from", name="check_valid_date_range"),
        CheckConstraint("minimum_amount >= 0", name="check_minimum_non_negative"),
        CheckConstraint("usage_count >= 0", name="check_usage_non_negative"),
        CheckConstraint(
            "discount_type IN ('percentage', 'fixed')", name="check_discount_type"
        ),
        CheckConstraint("source IN ('discount', 'coupon')", name="check_source"),
        Index("idx_promotions_valid_dates", "valid_from", "valid_to"),
    )

    def __repr__(self):
        return f"<Promotion(id={self.id}, source={self.source}, code={self.code})>"

    def is_active_at(self, now=None) -> bool:
        """현재 사용 가능한 상태/기간인지 확인 (사용 횟수 제외)"""
        now = now or utcnow()
        return (
            self.status == PromotionStatus.ACTIVE.value
            and not self.is_deleted
            and self.valid_from <= now <= self.valid_to
        )

    def is_usage_limit_reached(self) -> bool:
        """전체 사용 한도에 도달했는지 확인"""
        if self.max_usage is None:
            return False
        return self.usage_count >= self.max_usage

    def calculate_discount(self, order_amount: Decimal) -> Decimal:
        """주문 금액에 대한 할인 금액 계산"""
        return calculate_discount_amount(
            order_amount,
            self.discount_type,
            self.discount_value,
            self.maximum_discount,
        )


class UserPromotionUsage(Base):
    """사용자별 프로모션 사용 이력 (첫 사용 시 생성)"""

    __tablename__ = "user_promotion_usages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    promotion_id = Column(
        Uuid,
        ForeignKey("promotions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "promotion_id", name="uq_user_promotion_usage"),
        CheckConstraint("usage_count >= 0", name="check_user_usage_non_negative"),
    )

    def __repr__(self):
        return (
            f"<UserPromotionUsage(user_id={self.user_id}, "
            f"promotion_id={self.promotion_id}, count={self.usage_count})>"
        )
