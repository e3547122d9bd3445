"""
데이터베이스 모델 패키지

이 패키지는 모든 SQLAlchemy 모델을 관리합니다.
새로운 모델을 추가할 때는 이 파일에서 import하여 Alembic이 자동으로 감지할 수 있도록 합니다.
"""

from .base import Base, TimestampMixin, get_db, init_db, drop_db, close_db
from .user import User, UserRole, UserStatus
from .product import Category, Product, ProductVariant, ProductStatus
from .order import (
    Order,
    OrderItem,
    OrderOffer,
    OrderStatus,
    ItemStatus,
    PaymentMethod,
    PaymentStatus,
)
from .promotion import (
    Promotion,
    PromotionSource,
    PromotionStatus,
    DiscountType,
    UserPromotionUsage,
)
from .offer import Offer, OfferType, offer_products
from .wallet import Wallet, WalletTransaction, TransactionType
from .referral import Referral, ReferralStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "get_db",
    "init_db",
    "drop_db",
    "close_db",
    "User",
    "UserRole",
    "UserStatus",
    "Category",
    "Product",
    "ProductVariant",
    "ProductStatus",
    "Order",
    "OrderItem",
    "OrderOffer",
    "OrderStatus",
    "ItemStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Promotion",
    "PromotionSource",
    "PromotionStatus",
    "DiscountType",
    "UserPromotionUsage",
    "Offer",
    "OfferType",
    "offer_products",
    "Wallet",
    "WalletTransaction",
    "TransactionType",
    "Referral",
    "ReferralStatus",
]
