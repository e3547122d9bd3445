"""
주문(Order), 주문 항목(OrderItem), 적용 오퍼(OrderOffer) 모델

목적: 고객의 구매 주문 애그리거트
- 주문 시점의 가격, 배송지, 할인/오퍼 금액을 스냅샷으로 보관
- 주문 전체 상태와 항목별 상태/결제 상태를 별도로 관리
"""

from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    Column,
    String,
    Text,
    DECIMAL,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship
import secrets
import uuid

from .base import Base, utcnow


class OrderStatus(str, Enum):
    """주문 상태"""

    PENDING = "pending"  # 주문 접수
    CONFIRMED = "confirmed"  # 주문 확인
    PROCESSING = "processing"  # 배송 준비 중
    SHIPPED = "shipped"  # 배송 중
    DELIVERED = "delivered"  # 배송 완료
    CANCELLED = "cancelled"  # 취소됨
    RETURNED = "returned"  # 반품 요청됨 (검수 대기)
    RETURN_VERIFIED = "return_verified"  # 반품 검수 완료
    REJECTED = "rejected"  # 반품 거절


class ItemStatus(str, Enum):
    """주문 항목 상태"""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    RETURN_VERIFIED = "return_verified"


class PaymentMethod(str, Enum):
    """결제 수단"""

    COD = "cod"  # 착불
    ONLINE = "online"  # 온라인 결제 (Razorpay)
    WALLET = "wallet"  # 지갑 잔액 결제


class PaymentStatus(str, Enum):
    """결제 상태 (주문/항목 공통)"""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# 정방향 진행 순서 (관리자 상태 변경 시 역행 금지)
FORWARD_FLOW = [
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
]

# 고객 취소가 가능한 항목 상태
CANCELLABLE_ITEM_STATUSES = {
    ItemStatus.PENDING.value,
    ItemStatus.CONFIRMED.value,
    ItemStatus.PROCESSING.value,
}

# 더 이상 상태가 바뀌지 않는 항목 상태
FINAL_ITEM_STATUSES = {
    ItemStatus.CANCELLED.value,
    ItemStatus.RETURNED.value,
    ItemStatus.RETURN_VERIFIED.value,
}


class Order(Base):
    """주문 모델"""

    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(
        String(50),
        nullable=False,
        default=OrderStatus.PENDING.value,
        index=True,
    )

    # 배송지 스냅샷
    shipping_recipient_name = Column(String(100), nullable=False)
    shipping_address_line1 = Column(String(255), nullable=False)
    shipping_address_line2 = Column(String(255), nullable=True)
    shipping_city = Column(String(100), nullable=False)
    shipping_state = Column(String(100), nullable=False)
    shipping_postal_code = Column(String(20), nullable=False)
    shipping_country = Column(String(100), nullable=False, default="India")
    shipping_phone_number = Column(String(20), nullable=False)

    # 결제 정보
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    razorpay_order_id = Column(String(100), nullable=True)
    transaction_id = Column(String(100), nullable=True, unique=True)

    # 금액 (모두 주문 시점 계산값)
    subtotal = Column(DECIMAL(10, 2), nullable=False)
    subtotal_after_discount = Column(DECIMAL(10, 2), nullable=False)
    shipping = Column(DECIMAL(10, 2), nullable=False, default=0)
    total = Column(DECIMAL(10, 2), nullable=False)

    # 할인 스냅샷
    discount_id = Column(Uuid, nullable=True)
    discount_code = Column(String(50), nullable=True)
    discount_name = Column(String(200), nullable=True)
    discount_type = Column(String(20), nullable=True)
    discount_value = Column(DECIMAL(10, 2), nullable=True)
    discount_amount = Column(DECIMAL(10, 2), nullable=False, default=0)

    # 취소/반품 처리 정보
    cancellation_reason = Column(Text, nullable=True)
    return_rejection_reason = Column(Text, nullable=True)
    return_verified_by = Column(Uuid, nullable=True)
    return_verified_at = Column(DateTime, nullable=True)

    # 타임스탬프
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # 관계
    user = relationship("User", back_populates="orders", lazy="noload")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )
    offers = relationship(
        "OrderOffer",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # 제약 조건
    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="check_subtotal_non_negative"),
        CheckConstraint("shipping >= 0", name="check_shipping_non_negative"),
        CheckConstraint("total >= 0", name="check_total_non_negative"),
        CheckConstraint(
            "payment_method IN ('cod', 'online', 'wallet')",
            name="check_payment_method",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="check_payment_status",
        ),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'processing', 'shipped', 'delivered', "
            "'cancelled', 'returned', 'return_verified', 'rejected')",
            name="check_order_status",
        ),
        Index("idx_orders_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<Order(id={self.id}, order_number={self.order_number}, status={self.status})>"

    @staticmethod
    def generate_order_number() -> str:
        """주문 번호 생성: ORD-YYYYMMDD-XXXXXXXX"""
        date_str = utcnow().strftime("%Y%m%d")
        return f"ORD-{date_str}-{secrets.token_hex(4).upper()}"

    @property
    def is_prepaid(self) -> bool:
        """결제가 선행된 주문인지 (온라인/지갑)"""
        return self.payment_method in (
            PaymentMethod.ONLINE.value,
            PaymentMethod.WALLET.value,
        )

    @property
    def offer_total(self) -> Decimal:
        return sum((Decimal(o.offer_amount) for o in self.offers), Decimal("0"))

    def get_item(self, item_id) -> "OrderItem | None":
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def roll_up_status(self) -> None:
        """
        항목 상태를 주문 요약 상태에 반영 (정방향으로만)

        모든 항목이 같은 종결 상태에 도달한 경우에만 요약 상태를 변경하고,
        혼합 상태에서는 기존 요약 상태를 유지합니다.
        """
        statuses = {item.item_status for item in self.items}
        if statuses == {ItemStatus.DELIVERED.value}:
            self.status = OrderStatus.DELIVERED.value
        elif statuses == {ItemStatus.CANCELLED.value}:
            self.status = OrderStatus.CANCELLED.value
        elif statuses == {ItemStatus.RETURNED.value}:
            self.status = OrderStatus.RETURNED.value

        payment_statuses = {item.item_payment_status for item in self.items}
        if payment_statuses == {PaymentStatus.REFUNDED.value}:
            self.payment_status = PaymentStatus.REFUNDED.value
            return

        # 결제 없이 취소된 착불 항목은 결제 상태 판단에서 제외
        settled = [
            item
            for item in self.items
            if not (
                item.cancelled
                and item.item_payment_status == PaymentStatus.PENDING.value
            )
        ]
        if settled and all(
            item.item_payment_status == PaymentStatus.PAID.value for item in settled
        ):
            self.payment_status = PaymentStatus.PAID.value


class OrderItem(Base):
    """주문 항목 모델 (주문 시점의 가격 기록)"""

    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    product_variant_id = Column(
        Uuid, ForeignKey("product_variants.id"), nullable=False, index=True
    )
    product_name = Column(String(255), nullable=False)
    variant_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)  # 주문 시점의 단가

    item_status = Column(
        String(30), nullable=False, default=ItemStatus.PENDING.value
    )
    item_payment_status = Column(
        String(20), nullable=False, default=PaymentStatus.PENDING.value
    )
    refunded_amount = Column(DECIMAL(10, 2), nullable=True)

    cancelled = Column(Boolean, nullable=False, default=False)
    cancellation_reason = Column(Text, nullable=True)
    returned = Column(Boolean, nullable=False, default=False)
    return_reason = Column(Text, nullable=True)

    # 관계
    order = relationship("Order", back_populates="items", lazy="noload")

    # 제약 조건
    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_order_item_quantity_positive"),
        CheckConstraint("price >= 0", name="check_order_item_price_non_negative"),
    )

    def __repr__(self):
        return (
            f"<OrderItem(id={self.id}, variant_id={self.product_variant_id}, "
            f"quantity={self.quantity}, status={self.item_status})>"
        )

    def get_subtotal(self) -> Decimal:
        """이 항목의 소계 (단가 x 수량)"""
        return Decimal(self.price) * self.quantity

    @property
    def is_refunded(self) -> bool:
        return self.item_payment_status == PaymentStatus.REFUNDED.value


class OrderOffer(Base):
    """주문에 적용된 오퍼 스냅샷"""

    __tablename__ = "order_offers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    offer_id = Column(Uuid, nullable=False)
    offer_name = Column(String(200), nullable=False)
    product_variant_id = Column(Uuid, nullable=True)
    offer_amount = Column(DECIMAL(10, 2), nullable=False)

    order = relationship("Order", back_populates="offers", lazy="noload")

    __table_args__ = (
        CheckConstraint("offer_amount >= 0", name="check_offer_amount_non_negative"),
    )

    def __repr__(self):
        return f"<OrderOffer(offer_id={self.offer_id}, amount={self.offer_amount})>"
