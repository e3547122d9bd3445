"""
환불 서비스

목적: 취소/반품 항목의 환불 금액 계산 및 지갑 입금

항목 환불액 계산 (안분 방식):
    item_gross     = 단가 * 수량
    total_gross    = 전체 항목 (단가 * 수량) 합계, 0 이면 1 로 간주
    discount_share = item_gross / total_gross * 주문 할인 금액
    offer_share    = item_gross / total_gross * 주문 오퍼 금액 합계
    shipping_share = 배송비 / 항목 수
    refund         = max(0, item_gross - discount_share - offer_share + shipping_share)
"""

from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import Settings, get_settings
from storefront.models.order import Order, OrderItem, PaymentStatus
from storefront.services.wallet_service import WalletService
from storefront.utils.exceptions import AlreadyRefundedException
from storefront.utils.logging import audit_logger, get_logger
from storefront.utils.money import ZERO, round_money
from storefront.utils.prometheus_metrics import record_refund

logger = get_logger(__name__)


def calculate_item_refund(order: Order, item: OrderItem) -> Decimal:
    """항목 단위 안분 환불액 계산"""
    item_gross = item.get_subtotal()

    total_gross = sum((i.get_subtotal() for i in order.items), Decimal("0"))
    if total_gross == 0:
        total_gross = Decimal("1")

    ratio = item_gross / total_gross
    discount_share = ratio * Decimal(order.discount_amount or 0)
    offer_share = ratio * order.offer_total

    item_count = len(order.items) or 1
    shipping_share = Decimal(order.shipping or 0) / item_count

    refund = item_gross - discount_share - offer_share + shipping_share
    return round_money(max(refund, ZERO))


def calculate_gross_refund(items: Iterable[OrderItem]) -> Decimal:
    """단가 * 수량 합계 (할인/배송비 안분 없음)"""
    return round_money(sum((item.get_subtotal() for item in items), Decimal("0")))


class RefundService:
    """환불 서비스 (호출자 트랜잭션 안에서 동작)"""

    def __init__(self, db_session: AsyncSession, settings: Optional[Settings] = None):
        self.db = db_session
        self.settings = settings or get_settings()
        self.wallet_service = WalletService(db_session, self.settings)

    async def refund_item(
        self,
        order: Order,
        item: OrderItem,
        actor: str,
        reason: str = "cancel",
        amount: Optional[Decimal] = None,
    ) -> Decimal:
        """
        주문 항목 환불 (지갑 입금 + 항목 결제 상태 refunded)

        Args:
            order: 주문
            item: 환불할 항목
            actor: 처리 주체 ("system": 고객 취소, "admin": 관리자 처리)
            reason: 환불 사유 (cancel, admin, return)
            amount: 지정 시 해당 금액으로 환불 (미지정 시 안분 계산)

        Returns:
            Decimal: 환불 금액

        Raises:
            AlreadyRefundedException: 이미 환불된 항목
        """
        if item.is_refunded:
            raise AlreadyRefundedException(item.id)

        refund_amount = calculate_item_refund(order, item) if amount is None else round_money(amount)

        if refund_amount > 0:
            await self.wallet_service.credit(
                order.user_id,
                refund_amount,
                (
                    f"주문 {order.order_number} 환불 "
                    f"({order.payment_method.upper()}) - 처리: {actor}"
                ),
                order_id=order.id,
                order_item_id=item.id,
            )

        item.item_payment_status = PaymentStatus.REFUNDED.value
        item.refunded_amount = refund_amount

        record_refund(reason, float(refund_amount))
        audit_logger.log_event(
            event_type="order.item_refunded",
            user_id=order.user_id,
            resource_type="order",
            resource_id=order.id,
            action="refund",
            details={
                "order_number": order.order_number,
                "item_id": str(item.id),
                "amount": str(refund_amount),
                "actor": actor,
                "reason": reason,
            },
        )
        logger.info(
            f"항목 환불 완료: order={order.order_number}, item_id={item.id}, amount={refund_amount}"
        )
        return refund_amount
