"""
주문 서비스

목적: 주문 생성부터 취소, 반품, 반품 검수, 관리자 상태 변경까지 주문 생명주기 관리

주요 흐름:
1. 주문 생성: 가격/오퍼/할인/합계를 서버에서 계산 → 결제 수단별 규칙 검증
   → 재고 차감, 할인/오퍼 사용 횟수 증가, 주문 저장, (지갑 결제 시) 지갑 차감을 한 트랜잭션으로 처리
2. 취소: 취소 가능 항목만 취소, 재고 복원, 선결제 주문은 항목별 지갑 환불
3. 반품: 배송 완료 항목만 반품 요청 (금전 이동 없음)
4. 반품 검수(관리자): 반품 항목 환불 후 return_verified, 또는 거절

모든 변경 작업은 실패 시 롤백 후 예외를 그대로 전파합니다.
"""

from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import Settings, get_settings
from storefront.models.base import utcnow
from storefront.models.order import (
    CANCELLABLE_ITEM_STATUSES,
    FINAL_ITEM_STATUSES,
    FORWARD_FLOW,
    ItemStatus,
    Order,
    OrderItem,
    OrderOffer,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from storefront.models.product import Product, ProductVariant
from storefront.models.user import User
from storefront.services.inventory_service import InventoryService
from storefront.services.offer_service import OfferService
from storefront.services.payment_gateway import RazorpayGateway
from storefront.services.promotion_service import DiscountQuote, PromotionService
from storefront.services.refund_service import RefundService, calculate_gross_refund
from storefront.services.wallet_service import WalletService
from storefront.utils.exceptions import (
    CODNotAvailableException,
    ConflictException,
    IneligibleOrderItemException,
    InvalidOrderStateException,
    NotFoundException,
    OrderNotFoundException,
    PaymentSignatureException,
    PaymentVerificationException,
    PriceChangedException,
    ProductVariantNotFoundException,
    ValidationException,
)
from storefront.utils.logging import audit_logger, get_logger
from storefront.utils.money import ZERO, round_money, to_decimal, to_paise
from storefront.utils.prometheus_metrics import record_order, record_promotion_redemption
from storefront.utils.security import verify_payment_signature

logger = get_logger(__name__)

PRICE_TOLERANCE = Decimal("0.01")


class OrderService:
    """주문 서비스"""

    def __init__(
        self,
        db_session: AsyncSession,
        settings: Optional[Settings] = None,
        gateway: Optional[RazorpayGateway] = None,
    ):
        self.db = db_session
        self.settings = settings or get_settings()
        self.gateway = gateway or RazorpayGateway.from_settings(self.settings)
        self.inventory = InventoryService(db_session)
        self.promotions = PromotionService(db_session)
        self.offers = OfferService(db_session)
        self.wallets = WalletService(db_session, self.settings)
        self.refunds = RefundService(db_session, self.settings)

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    async def get_order(
        self,
        order_id: UUID,
        user_id: Optional[UUID] = None,
        for_update: bool = False,
    ) -> Order:
        """
        주문 조회 (항목/오퍼 포함)

        user_id 가 주어지면 본인 주문만 조회되며, 다른 사용자의 주문은 존재하지 않는 것으로 취급합니다.
        """
        query = (
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundException(str(order_id))
        return order

    async def list_orders(
        self,
        user_id: UUID,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[List[Order], int]:
        """사용자 주문 목록 (최신순)"""
        conditions = [Order.user_id == user_id]
        if status:
            conditions.append(Order.status == status)

        total = await self.db.scalar(
            select(func.count()).select_from(Order).where(*conditions)
        )
        result = await self.db.execute(
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    # ------------------------------------------------------------------
    # 주문 생성
    # ------------------------------------------------------------------

    async def _load_variants(self, variant_ids: Sequence[UUID]) -> dict:
        result = await self.db.execute(
            select(ProductVariant, Product)
            .join(Product, Product.id == ProductVariant.product_id)
            .where(ProductVariant.id.in_(variant_ids))
        )
        rows = {variant.id: (variant, product) for variant, product in result.all()}

        for variant_id in variant_ids:
            row = rows.get(variant_id)
            if row is None or row[0].is_deleted or row[1].is_deleted:
                raise ProductVariantNotFoundException(str(variant_id))
        return rows

    def _check_cod(self, total: Decimal, state: str) -> None:
        """착불 가능 여부 (금액 한도, 제한 지역)"""
        if total > self.settings.COD_MAX_ORDER_TOTAL:
            raise CODNotAvailableException(
                f"₹{self.settings.COD_MAX_ORDER_TOTAL} 를 초과하는 주문은 착불 결제를 사용할 수 없습니다.",
                reason="amount_limit",
            )
        if self.settings.is_cod_restricted_state(state):
            raise CODNotAvailableException(
                f"'{state}' 지역은 착불 결제를 사용할 수 없습니다.",
                reason="restricted_state",
            )

    async def _check_online_payment(self, payment: Optional[dict], total: Decimal) -> None:
        """
        온라인 결제 확인

        1. 서명 검증
        2. 이미 다른 주문에 사용된 결제 ID 차단 (409)
        3. 게이트웨이 결제 조회: captured 상태, 주문 ID 일치, 금액 = 주문 합계
        """
        if not payment:
            raise ValidationException("온라인 결제 정보가 필요합니다.", field="payment")

        razorpay_order_id = payment.get("razorpay_order_id")
        payment_id = payment.get("razorpay_payment_id")

        if self.settings.ONLINE_PAYMENT_SIGNATURE_REQUIRED and not verify_payment_signature(
            razorpay_order_id,
            payment_id,
            payment.get("razorpay_signature"),
            self.settings.RAZORPAY_KEY_SECRET,
        ):
            logger.warning(f"주문 결제 서명 불일치: razorpay_order_id={razorpay_order_id}")
            raise PaymentSignatureException()

        used = await self.db.scalar(
            select(Order.id).where(Order.transaction_id == payment_id)
        )
        if used is not None:
            logger.warning(f"이미 사용된 결제로 주문 시도: payment_id={payment_id}")
            raise ConflictException(
                "이미 다른 주문에 사용된 결제입니다.", details={"payment_id": payment_id}
            )

        gateway_payment = await self.gateway.fetch_payment(payment_id)
        if gateway_payment.get("status") != "captured":
            raise PaymentVerificationException(
                "결제가 완료되지 않았습니다.", reason="payment_not_captured"
            )
        if gateway_payment.get("order_id") != razorpay_order_id:
            raise PaymentVerificationException(
                "결제 정보가 주문과 일치하지 않습니다.", reason="order_mismatch"
            )
        if int(gateway_payment.get("amount", -1)) != to_paise(total):
            logger.warning(
                f"주문 결제 금액 불일치: payment_id={payment_id}, "
                f"paid={gateway_payment.get('amount')}, total={total}"
            )
            raise PaymentVerificationException(
                "결제 금액이 주문 금액과 일치하지 않습니다.", reason="amount_mismatch"
            )

    async def place_order(
        self,
        user: User,
        items: List[dict],
        shipping_address: dict,
        payment_method: str,
        shipping: Decimal = ZERO,
        discount_code: Optional[str] = None,
        payment: Optional[dict] = None,
        expected_total: Optional[Decimal] = None,
    ) -> Order:
        """
        주문 생성

        Args:
            user: 주문자
            items: [{"product_variant_id", "quantity"}]
            shipping_address: 배송지 (recipient_name, address_line1, city, state ...)
            payment_method: cod, online, wallet
            shipping: 배송비
            discount_code: 할인 코드 (선택)
            payment: 온라인 결제 정보 (razorpay_order_id, razorpay_payment_id, razorpay_signature)
            expected_total: 클라이언트가 표시한 결제 금액 (선택, 불일치 시 거절)

        Returns:
            Order: 생성된 주문

        Raises:
            ValidationException: 항목/배송지/결제 수단 오류
            ProductVariantNotFoundException: 상품 옵션 없음
            OutOfStockException: 재고 부족
            CODNotAvailableException: 착불 불가
            PaymentSignatureException: 온라인 결제 서명 불일치
            InsufficientBalanceException: 지갑 잔액 부족
        """
        # 1. 입력 검증
        if not items:
            raise ValidationException("주문 항목이 비어 있습니다.", field="items")
        if not shipping_address:
            raise ValidationException("배송지 정보가 필요합니다.", field="shipping_address")
        if payment_method not in {m.value for m in PaymentMethod}:
            raise ValidationException("지원하지 않는 결제 수단입니다.", field="payment_method")

        variant_ids = [UUID(str(line["product_variant_id"])) for line in items]
        if len(set(variant_ids)) != len(variant_ids):
            raise ValidationException(
                "같은 상품 옵션이 중복되어 있습니다.", field="items"
            )
        for line in items:
            if int(line["quantity"]) < 1:
                raise ValidationException("수량은 1 이상이어야 합니다.", field="quantity")

        shipping = round_money(to_decimal(shipping or 0))
        if shipping < 0:
            raise ValidationException("배송비는 0 이상이어야 합니다.", field="shipping")

        # 2. 가격/오퍼 계산 (서버 기준 가격)
        rows = await self._load_variants(variant_ids)

        lines = []
        applied_offers = []
        subtotal = ZERO
        for position, line in enumerate(items):
            variant, product = rows[UUID(str(line["product_variant_id"]))]
            quantity = int(line["quantity"])
            price = round_money(variant.price)
            gross = price * quantity
            subtotal += gross

            offer = await self.offers.get_best_offer(product.id, product.category_id)
            if offer is not None:
                offer_amount = offer.calculate_discount(gross)
                if offer_amount > 0:
                    applied_offers.append((offer, variant.id, offer_amount))

            lines.append((position, variant, product, quantity, price))

        subtotal = round_money(subtotal)
        offer_total = round_money(sum((a for _, _, a in applied_offers), ZERO))
        subtotal_after_discount = round_money(max(subtotal - offer_total, ZERO))

        # 3. 할인 코드
        quote: Optional[DiscountQuote] = None
        discount_amount = ZERO
        if discount_code:
            quote = await self.promotions.evaluate(
                discount_code, subtotal_after_discount, user.id
            )
            discount_amount = quote.discount_amount

        total = round_money(max(subtotal_after_discount - discount_amount + shipping, ZERO))

        if expected_total is not None and abs(
            round_money(expected_total) - total
        ) > PRICE_TOLERANCE:
            raise PriceChangedException(round_money(expected_total), total)

        # 4. 결제 수단별 규칙
        if payment_method == PaymentMethod.COD.value:
            self._check_cod(total, shipping_address.get("state", ""))
        elif payment_method == PaymentMethod.ONLINE.value:
            await self._check_online_payment(payment, total)

        prepaid = payment_method in (PaymentMethod.ONLINE.value, PaymentMethod.WALLET.value)
        payment_status = PaymentStatus.PAID.value if prepaid else PaymentStatus.PENDING.value

        # 5. 변경 작업 (단일 트랜잭션)
        order_id = uuid.uuid4()
        try:
            for _, variant, product, quantity, _ in lines:
                await self.inventory.reserve(variant.id, quantity, label=product.name)
            for product_id in {product.id for _, _, product, _, _ in lines}:
                await self.inventory.recompute_product(product_id)

            if quote is not None:
                await self.promotions.consume(quote.promotion, user.id)
            for offer_id, offer_name in {(o.id, o.name) for o, _, _ in applied_offers}:
                await self.offers.consume(offer_id, offer_name)

            order = Order(
                id=order_id,
                order_number=Order.generate_order_number(),
                user_id=user.id,
                status=OrderStatus.PENDING.value,
                shipping_recipient_name=shipping_address["recipient_name"],
                shipping_address_line1=shipping_address["address_line1"],
                shipping_address_line2=shipping_address.get("address_line2"),
                shipping_city=shipping_address["city"],
                shipping_state=shipping_address["state"],
                shipping_postal_code=shipping_address["postal_code"],
                shipping_country=shipping_address.get("country") or "India",
                shipping_phone_number=shipping_address["phone_number"],
                payment_method=payment_method,
                payment_status=payment_status,
                razorpay_order_id=(payment or {}).get("razorpay_order_id")
                if payment_method == PaymentMethod.ONLINE.value
                else None,
                transaction_id=(payment or {}).get("razorpay_payment_id")
                if payment_method == PaymentMethod.ONLINE.value
                else None,
                subtotal=subtotal,
                subtotal_after_discount=subtotal_after_discount,
                shipping=shipping,
                total=total,
                discount_amount=discount_amount,
            )
            if quote is not None:
                order.discount_id = quote.promotion.id
                order.discount_code = quote.promotion.code
                order.discount_name = quote.promotion.name
                order.discount_type = quote.promotion.discount_type
                order.discount_value = quote.promotion.discount_value

            order.items = [
                OrderItem(
                    position=position,
                    product_id=product.id,
                    product_variant_id=variant.id,
                    product_name=product.name,
                    variant_name=variant.name,
                    quantity=quantity,
                    price=price,
                    item_status=ItemStatus.PENDING.value,
                    item_payment_status=payment_status,
                )
                for position, variant, product, quantity, price in lines
            ]
            order.offers = [
                OrderOffer(
                    offer_id=offer.id,
                    offer_name=offer.name,
                    product_variant_id=variant_id,
                    offer_amount=amount,
                )
                for offer, variant_id, amount in applied_offers
            ]
            self.db.add(order)
            try:
                await self.db.flush()
            except IntegrityError as e:
                if order.transaction_id:
                    raise ConflictException(
                        "이미 다른 주문에 사용된 결제입니다.",
                        details={"payment_id": order.transaction_id},
                    ) from e
                raise

            if payment_method == PaymentMethod.WALLET.value and total > 0:
                await self.wallets.debit(
                    user.id,
                    total,
                    f"주문 {order.order_number} 결제",
                    order_id=order.id,
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        record_order("placed", payment_method, item_count=len(lines))
        if quote is not None:
            record_promotion_redemption(quote.promotion.source)
        audit_logger.log_event(
            event_type="order.placed",
            user_id=user.id,
            resource_type="order",
            resource_id=order_id,
            action="create",
            details={
                "order_number": order.order_number,
                "payment_method": payment_method,
                "total": str(total),
                "discount_code": quote.promotion.code if quote else None,
            },
        )
        logger.info(f"주문 생성 완료: order_number={order.order_number}, total={total}")

        return await self.get_order(order_id)

    # ------------------------------------------------------------------
    # 취소
    # ------------------------------------------------------------------

    def _select_items(
        self, order: Order, variant_ids: Optional[Sequence[UUID]]
    ) -> List[OrderItem]:
        """상품 옵션 ID 목록에 해당하는 항목 (없는 ID가 있으면 오류)"""
        if variant_ids is None:
            return list(order.items)

        by_variant = {item.product_variant_id: item for item in order.items}
        missing = [v for v in variant_ids if v not in by_variant]
        if missing:
            raise IneligibleOrderItemException(
                "주문에 포함되지 않은 상품 옵션입니다.", item_ids=missing
            )
        return [by_variant[v] for v in dict.fromkeys(variant_ids)]

    async def _cancel_items(
        self, order: Order, items: List[OrderItem], reason: Optional[str], actor: str
    ) -> Decimal:
        """항목 취소 + 재고 복원 + 선결제 주문 환불. 환불 총액 반환"""
        refunded = ZERO
        for item in items:
            item.item_status = ItemStatus.CANCELLED.value
            item.cancelled = True
            item.cancellation_reason = reason

            await self.inventory.release(item.product_variant_id, item.quantity)
            await self.inventory.recompute_product(item.product_id)

            if order.is_prepaid and not item.is_refunded:
                refunded += await self.refunds.refund_item(
                    order, item, actor=actor, reason="cancel"
                )
        return refunded

    async def cancel_order(
        self,
        order_id: UUID,
        user: User,
        reason: Optional[str] = None,
        product_variant_ids: Optional[Sequence[UUID]] = None,
    ) -> Order:
        """
        주문 취소 (전체 또는 상품 옵션 단위 부분 취소)

        취소 가능 항목: pending, confirmed, processing 상태
        - 전체 취소 시 취소 가능한 항목만 취소하며, 취소 가능한 항목이 없으면 오류
        - 부분 취소 시 지정한 항목이 하나라도 취소 불가하면 전체 요청을 거절
        - 선결제(온라인/지갑) 주문은 취소 항목마다 안분 환불액을 지갑으로 입금

        Raises:
            OrderNotFoundException: 주문 없음 (다른 사용자 주문 포함)
            IneligibleOrderItemException: 취소 불가 항목
        """
        try:
            order = await self.get_order(order_id, user_id=user.id, for_update=True)
            candidates = self._select_items(order, product_variant_ids)

            if product_variant_ids is None:
                targets = [
                    i for i in candidates if i.item_status in CANCELLABLE_ITEM_STATUSES
                ]
                if not targets:
                    raise IneligibleOrderItemException(
                        "취소할 수 있는 주문 항목이 없습니다."
                    )
            else:
                blocked = [
                    i.product_variant_id
                    for i in candidates
                    if i.item_status not in CANCELLABLE_ITEM_STATUSES
                ]
                if blocked:
                    raise IneligibleOrderItemException(
                        "이미 취소/반품되었거나 배송이 시작된 항목은 취소할 수 없습니다.",
                        item_ids=blocked,
                    )
                targets = candidates

            refunded = await self._cancel_items(order, targets, reason, actor="system")
            if product_variant_ids is None or len(targets) == len(order.items):
                order.cancellation_reason = reason
            order.roll_up_status()

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        record_order("cancelled", order.payment_method)
        audit_logger.log_event(
            event_type="order.items_cancelled",
            user_id=user.id,
            resource_type="order",
            resource_id=order.id,
            action="cancel",
            details={
                "order_number": order.order_number,
                "items": [str(i.id) for i in targets],
                "refunded": str(refunded),
                "reason": reason,
            },
        )
        return await self.get_order(order_id)

    # ------------------------------------------------------------------
    # 반품
    # ------------------------------------------------------------------

    async def request_return(
        self, order_id: UUID, user: User, items: List[dict]
    ) -> Order:
        """
        반품 요청 (배송 완료 항목만 가능, 금전 이동 없음)

        반품 검수 또는 거절이 끝난 주문에는 추가 반품을 받지 않습니다.

        Args:
            items: [{"product_variant_id", "reason"}]
        """
        if not items:
            raise ValidationException("반품할 항목을 선택해주세요.", field="items")

        reasons = {UUID(str(i["product_variant_id"])): i.get("reason") for i in items}
        try:
            order = await self.get_order(order_id, user_id=user.id, for_update=True)
            self._ensure_return_open(order)
            targets = self._select_items(order, list(reasons.keys()))

            blocked = [
                i.product_variant_id
                for i in targets
                if i.item_status != ItemStatus.DELIVERED.value
            ]
            if blocked:
                raise IneligibleOrderItemException(
                    "배송 완료된 항목만 반품할 수 있습니다.", item_ids=blocked
                )

            for item in targets:
                item.item_status = ItemStatus.RETURNED.value
                item.returned = True
                item.return_reason = reasons[item.product_variant_id]

            order.roll_up_status()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        record_order("returned", order.payment_method)
        audit_logger.log_event(
            event_type="order.return_requested",
            user_id=user.id,
            resource_type="order",
            resource_id=order.id,
            action="return",
            details={"items": [str(i.id) for i in targets]},
        )
        return await self.get_order(order_id)

    def _ensure_return_open(self, order: Order) -> None:
        """검수/거절이 끝난 주문은 추가 반품 불가"""
        if order.status in (OrderStatus.RETURN_VERIFIED.value, OrderStatus.REJECTED.value):
            raise InvalidOrderStateException(
                "반품 처리가 완료된 주문은 추가로 반품할 수 없습니다.",
                current_status=order.status,
            )

    def _pending_returns(self, order: Order) -> List[OrderItem]:
        """검수 대기 중인 반품 항목 (없거나 이미 검수/거절된 주문이면 오류)"""
        if order.status in (OrderStatus.RETURN_VERIFIED.value, OrderStatus.REJECTED.value):
            raise InvalidOrderStateException(
                "이미 반품 처리가 완료된 주문입니다.", current_status=order.status
            )
        returned = [i for i in order.items if i.item_status == ItemStatus.RETURNED.value]
        if not returned:
            raise InvalidOrderStateException(
                "검수할 반품 항목이 없습니다.", current_status=order.status
            )
        return returned

    async def verify_return(
        self, order_id: UUID, admin: User, refund: bool = True
    ) -> tuple[Order, Decimal]:
        """
        반품 검수 승인 (관리자)

        환불 금액은 RETURN_REFUND_POLICY 설정을 따름:
        - proportional: 항목별 안분 환불 (취소 환불과 동일한 계산식)
        - gross: 반품 항목의 단가 * 수량 합계

        Args:
            refund: False 이면 지갑 입금 없이 검수만 완료

        Returns:
            (주문, 환불 총액)
        """
        total_refund = ZERO
        try:
            order = await self.get_order(order_id, for_update=True)
            returned = self._pending_returns(order)

            if refund:
                gross_policy = self.settings.RETURN_REFUND_POLICY == "gross"
                for item in returned:
                    if item.is_refunded:
                        continue
                    total_refund += await self.refunds.refund_item(
                        order,
                        item,
                        actor="admin",
                        reason="return",
                        amount=calculate_gross_refund([item]) if gross_policy else None,
                    )
                order.payment_status = PaymentStatus.REFUNDED.value

            for item in returned:
                item.item_status = ItemStatus.RETURN_VERIFIED.value

            order.status = OrderStatus.RETURN_VERIFIED.value
            order.return_verified_by = admin.id
            order.return_verified_at = utcnow()

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        record_order("return_verified", order.payment_method)
        audit_logger.log_event(
            event_type="order.return_verified",
            user_id=admin.id,
            resource_type="order",
            resource_id=order.id,
            action="verify_return",
            details={
                "order_number": order.order_number,
                "refund": refund,
                "refund_amount": str(total_refund),
            },
        )
        return await self.get_order(order_id), round_money(total_refund)

    async def reject_return(
        self, order_id: UUID, admin: User, reason: Optional[str] = None
    ) -> Order:
        """반품 거절 (관리자, 금전 이동 없음)"""
        try:
            order = await self.get_order(order_id, for_update=True)
            self._pending_returns(order)

            order.status = OrderStatus.REJECTED.value
            order.return_rejection_reason = reason
            order.return_verified_by = admin.id
            order.return_verified_at = utcnow()

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        audit_logger.log_event(
            event_type="order.return_rejected",
            user_id=admin.id,
            resource_type="order",
            resource_id=order.id,
            action="reject_return",
            details={"reason": reason},
        )
        return await self.get_order(order_id)

    # ------------------------------------------------------------------
    # 관리자 상태 변경
    # ------------------------------------------------------------------

    async def update_item_status(
        self,
        order_id: UUID,
        item_id: UUID,
        admin: User,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> Order:
        """
        주문 항목 상태/결제 상태 변경 (관리자)

        - 취소/반품된 항목은 다른 상태로 되돌릴 수 없음
        - cancelled 로 변경 시 재고 복원 (선결제 주문은 환불)
        - 착불 항목이 delivered 가 되면 결제 상태를 paid 로 변경
        - payment_status=refunded 는 항목당 1회만 허용되며 안분 환불액을 지갑으로 입금
        - 모든 항목이 같은 종결 상태가 되면 주문 요약 상태를 앞으로만 갱신
        """
        if status is None and payment_status is None:
            raise ValidationException("변경할 상태를 입력해주세요.", field="status")

        try:
            order = await self.get_order(order_id, for_update=True)
            item = order.get_item(item_id)
            if item is None:
                raise NotFoundException(resource="주문 항목", resource_id=str(item_id))

            if status is not None and status != item.item_status:
                if item.item_status in FINAL_ITEM_STATUSES:
                    raise IneligibleOrderItemException(
                        f"'{item.item_status}' 상태의 항목은 변경할 수 없습니다.",
                        item_ids=[item.id],
                    )

                if status == ItemStatus.CANCELLED.value:
                    await self._cancel_items(order, [item], reason=None, actor="admin")
                elif status == ItemStatus.RETURNED.value:
                    self._ensure_return_open(order)
                    item.item_status = status
                    item.returned = True
                elif status == ItemStatus.RETURN_VERIFIED.value:
                    raise ValidationException(
                        "반품 검수는 반품 검수 API를 사용해주세요.", field="status"
                    )
                else:
                    item.item_status = status
                    if (
                        status == ItemStatus.DELIVERED.value
                        and order.payment_method == PaymentMethod.COD.value
                        and item.item_payment_status == PaymentStatus.PENDING.value
                    ):
                        item.item_payment_status = PaymentStatus.PAID.value

            if payment_status is not None:
                if payment_status == PaymentStatus.REFUNDED.value:
                    await self.refunds.refund_item(
                        order, item, actor="admin", reason="admin"
                    )
                elif item.is_refunded:
                    raise IneligibleOrderItemException(
                        "환불된 항목의 결제 상태는 변경할 수 없습니다.",
                        item_ids=[item.id],
                    )
                else:
                    item.item_payment_status = payment_status

            order.roll_up_status()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        audit_logger.log_event(
            event_type="order.item_updated",
            user_id=admin.id,
            resource_type="order",
            resource_id=order_id,
            action="update_item",
            details={
                "item_id": str(item_id),
                "status": status,
                "payment_status": payment_status,
            },
        )
        return await self.get_order(order_id)

    async def update_order_status(
        self, order_id: UUID, admin: User, new_status: str, reason: Optional[str] = None
    ) -> Order:
        """
        주문 상태 변경 (관리자)

        - pending → confirmed → processing → shipped → delivered 순서로 앞으로만 이동하며,
          취소/반품되지 않은 모든 항목에 같은 상태를 반영
        - cancelled 는 취소 가능한 모든 항목을 취소 (재고 복원, 선결제 주문 환불)
        """
        try:
            order = await self.get_order(order_id, for_update=True)

            if new_status == OrderStatus.CANCELLED.value:
                targets = [
                    i for i in order.items if i.item_status in CANCELLABLE_ITEM_STATUSES
                ]
                if not targets:
                    raise InvalidOrderStateException(
                        "취소할 수 있는 항목이 없습니다.", current_status=order.status
                    )
                await self._cancel_items(order, targets, reason, actor="admin")
                order.cancellation_reason = reason
                order.roll_up_status()
            elif new_status in FORWARD_FLOW:
                if order.status not in FORWARD_FLOW or FORWARD_FLOW.index(
                    new_status
                ) <= FORWARD_FLOW.index(order.status):
                    raise InvalidOrderStateException(
                        f"'{order.status}' 상태에서 '{new_status}' 로 변경할 수 없습니다.",
                        current_status=order.status,
                    )

                for item in order.items:
                    if item.item_status in FINAL_ITEM_STATUSES:
                        continue
                    item.item_status = new_status
                    if (
                        new_status == OrderStatus.DELIVERED.value
                        and order.payment_method == PaymentMethod.COD.value
                        and item.item_payment_status == PaymentStatus.PENDING.value
                    ):
                        item.item_payment_status = PaymentStatus.PAID.value

                order.status = new_status
                order.roll_up_status()
            else:
                raise ValidationException(
                    f"관리자가 직접 설정할 수 없는 상태입니다: {new_status}", field="status"
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        record_order(new_status, order.payment_method)
        audit_logger.log_event(
            event_type="order.status_updated",
            user_id=admin.id,
            resource_type="order",
            resource_id=order_id,
            action="update_status",
            details={"status": new_status},
        )
        return await self.get_order(order_id)

    async def delete_order(self, order_id: UUID, admin: User) -> None:
        """
        주문 영구 삭제 (관리자, 데이터 정리용)

        비즈니스 규칙(재고/환불)을 적용하지 않으며 되돌릴 수 없습니다.
        """
        try:
            order = await self.get_order(order_id)
            order_number = order.order_number
            await self.db.delete(order)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.warning(f"주문 영구 삭제: order_number={order_number}, admin={admin.id}")
        audit_logger.log_event(
            event_type="order.deleted",
            user_id=admin.id,
            resource_type="order",
            resource_id=order_id,
            action="delete",
            details={"order_number": order_number},
        )
