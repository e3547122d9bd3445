"""
단위 테스트: 환불 금액 계산

할인/오퍼/배송비를 항목별로 안분하는 환불 계산식과 단가 x 수량 환불을 검증합니다.
"""

from decimal import Decimal
from uuid import uuid4

from storefront.models.order import Order, OrderItem, OrderOffer
from storefront.services.refund_service import calculate_gross_refund, calculate_item_refund


def build_order(prices, shipping="0", discount="0", offers=()):
    """(단가, 수량) 목록으로 저장되지 않은 주문 생성"""
    order = Order(
        id=uuid4(),
        order_number="ORD-20260101-TEST",
        shipping=Decimal(shipping),
        discount_amount=Decimal(discount),
    )
    order.items = [
        OrderItem(id=uuid4(), price=Decimal(price), quantity=quantity)
        for price, quantity in prices
    ]
    order.offers = [
        OrderOffer(offer_id=uuid4(), offer_name="오퍼", offer_amount=Decimal(amount))
        for amount in offers
    ]
    return order


class TestItemRefund:
    """항목 단위 안분 환불"""

    def test_discount_and_shipping_are_split(self):
        """Test: 할인은 금액 비율로, 배송비는 항목 수로 나눈다"""
        # Given: [600, 400] 주문, 배송비 100, 할인 50
        order = build_order([("600", 1), ("400", 1)], shipping="100", discount="50")

        # When: 첫 번째 항목 환불액 계산
        refund = calculate_item_refund(order, order.items[0])

        # Then: 600 - 30 + 50 = 620
        assert refund == Decimal("620.00")

    def test_offer_share_is_subtracted(self):
        """Test: 오퍼 금액도 금액 비율로 차감"""
        order = build_order(
            [("600", 1), ("400", 1)], shipping="100", discount="50", offers=["100"]
        )

        refund = calculate_item_refund(order, order.items[1])

        # 400 - 20(할인) - 40(오퍼) + 50(배송비)
        assert refund == Decimal("390.00")

    def test_quantity_is_part_of_item_gross(self):
        """Test: 항목 총액은 단가 x 수량"""
        order = build_order([("250", 2), ("500", 1)], discount="100")

        refund = calculate_item_refund(order, order.items[0])

        # 500 - (500/1000 * 100)
        assert refund == Decimal("450.00")

    def test_zero_value_order_refunds_only_shipping_share(self):
        """Test: 항목 총액이 0 이어도 0 으로 나누지 않음"""
        order = build_order([("0", 1), ("0", 1)], shipping="60")

        refund = calculate_item_refund(order, order.items[0])

        assert refund == Decimal("30.00")

    def test_refund_never_negative(self):
        """Test: 안분 차감액이 항목 금액보다 커도 0 원"""
        order = build_order([("100", 1)], discount="500")

        refund = calculate_item_refund(order, order.items[0])

        assert refund == Decimal("0.00")

    def test_full_refund_sum_matches_order_total(self):
        """Test: 모든 항목 환불액의 합은 주문 결제 금액과 같다"""
        order = build_order(
            [("600", 1), ("400", 1)], shipping="100", discount="50", offers=["100"]
        )
        paid = Decimal("1000") - Decimal("100") - Decimal("50") + Decimal("100")

        total = sum(calculate_item_refund(order, item) for item in order.items)

        assert total == paid

    def test_result_is_rounded_to_two_places(self):
        """Test: 소수점 2자리 반올림"""
        order = build_order([("100", 1), ("100", 1), ("100", 1)], discount="10")

        refund = calculate_item_refund(order, order.items[0])

        assert refund == Decimal("96.67")


class TestGrossRefund:
    """단가 x 수량 환불"""

    def test_sum_of_line_totals(self):
        order = build_order([("600", 1), ("199.99", 3)], shipping="100", discount="50")

        assert calculate_gross_refund(order.items) == Decimal("1199.97")

    def test_single_item(self):
        order = build_order([("600", 1), ("400", 1)], shipping="100", discount="50")

        assert calculate_gross_refund([order.items[0]]) == Decimal("600.00")
