"""
카테고리(Category), 상품(Product), 상품 옵션(ProductVariant) 모델

목적: 판매 상품 카탈로그와 옵션별 재고
"""

from enum import Enum
from sqlalchemy import (
    Column,
    String,
    Text,
    DECIMAL,
    Integer,
    Boolean,
    ForeignKey,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship
import uuid

from .base import Base, TimestampMixin


class ProductStatus(str, Enum):
    """상품 판매 상태 (옵션 재고 합계에서 파생)"""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Category(Base, TimestampMixin):
    """카테고리 모델"""

    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    products = relationship("Product", back_populates="category", lazy="noload")

    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"


class Product(Base, TimestampMixin):
    """상품 모델"""

    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category_id = Column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # 파생 필드: 옵션 변경 시마다 InventoryService.recompute_product 로 재계산
    total_stock = Column(Integer, nullable=False, default=0)
    status = Column(String(50), nullable=False, default=ProductStatus.ACTIVE.value)

    is_deleted = Column(Boolean, nullable=False, default=False)

    category = relationship("Category", back_populates="products", lazy="noload")
    variants = relationship(
        "ProductVariant", back_populates="product", lazy="selectin"
    )

    __table_args__ = (
        CheckConstraint("total_stock >= 0", name="check_total_stock_non_negative"),
        CheckConstraint(
            "status IN ('active', 'inactive')", name="check_product_status"
        ),
        Index("idx_products_category", "category_id"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name={self.name}, total_stock={self.total_stock})>"


class ProductVariant(Base, TimestampMixin):
    """상품 옵션 모델 (옵션 단위로 가격/재고 관리)"""

    __tablename__ = "product_variants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku = Column(String(100), nullable=True, unique=True)
    name = Column(String(255), nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)

    product = relationship("Product", back_populates="variants", lazy="noload")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_variant_price_non_negative"),
        CheckConstraint("stock >= 0", name="check_variant_stock_non_negative"),
    )

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, name={self.name}, stock={self.stock})>"
