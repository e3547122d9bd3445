"""
오퍼(Offer) 모델

목적: 상품/카테고리 단위 자동 할인 및 추천 보상 조건
"""

from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    Column,
    String,
    Text,
    DECIMAL,
    Integer,
    DateTime,
    Boolean,
    ForeignKey,
    Table,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship
import uuid

from .base import Base, TimestampMixin
from .promotion import PromotionStatus, calculate_discount_amount
from storefront.utils.money import ZERO


class OfferType(str, Enum):
    """오퍼 적용 범위"""

    PRODUCT = "product"
    CATEGORY = "category"
    REFERRAL = "referral"


offer_products = Table(
    "offer_products",
    Base.metadata,
    Column(
        "offer_id",
        Uuid,
        ForeignKey("offers.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "product_id",
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Offer(Base, TimestampMixin):
    """오퍼 모델"""

    __tablename__ = "offers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    offer_type = Column(String(20), nullable=False)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(DECIMAL(10, 2), nullable=False)
    minimum_amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    maximum_discount = Column(DECIMAL(10, 2), nullable=True)
    category_id = Column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    valid_from = Column(DateTime, nullable=False)
    valid_to = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=PromotionStatus.ACTIVE.value)
    usage_count = Column(Integer, nullable=False, default=0)
    max_usage = Column(Integer, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    products = relationship("Product", secondary=offer_products, lazy="selectin")

    __table_args__ = (
        CheckConstraint("discount_value > 0", name="check_offer_value_positive"),
        CheckConstraint("valid_to > valid_from", name="check_offer_date_range"),
        CheckConstraint(
            "offer_type IN ('product', 'category', 'referral')",
            name="check_offer_type",
        ),
        CheckConstraint(
            "discount_type IN ('percentage', 'fixed')", name="check_offer_discount_type"
        ),
        Index("idx_offers_valid_dates", "valid_from", "valid_to"),
    )

    def __repr__(self):
        return f"<Offer(id={self.id}, name={self.name}, type={self.offer_type})>"

    def calculate_discount(self, amount: Decimal) -> Decimal:
        """최소 금액 미만이면 0, 이외에는 프로모션과 동일한 규칙으로 계산"""
        if Decimal(amount) < Decimal(self.minimum_amount or 0):
            return ZERO
        return calculate_discount_amount(
            amount, self.discount_type, self.discount_value, self.maximum_discount
        )
