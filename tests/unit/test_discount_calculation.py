"""
단위 테스트: 할인 금액 계산

정률/정액 할인, 최대 할인 금액 상한, 주문 금액 상한, 반올림 규칙을 검증합니다.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from storefront.models.base import utcnow
from storefront.models.offer import Offer
from storefront.models.promotion import DiscountType, Promotion, calculate_discount_amount
from storefront.services.promotion_service import DiscountQuote, normalize_code


class TestCalculateDiscountAmount:
    """할인 금액 계산 공통 함수"""

    def test_percentage_capped_by_maximum_discount(self):
        """Test: 1200 의 10% 는 120 이지만 최대 할인 100 으로 제한"""
        discount = calculate_discount_amount(
            Decimal("1200"), DiscountType.PERCENTAGE.value, Decimal("10"), Decimal("100")
        )

        assert discount == Decimal("100.00")

    def test_percentage_below_cap_is_proportional(self):
        discount = calculate_discount_amount(
            Decimal("800"), DiscountType.PERCENTAGE.value, Decimal("10"), Decimal("100")
        )

        assert discount == Decimal("80.00")

    def test_fixed_discount_never_exceeds_order_amount(self):
        """Test: 정액 할인이 주문 금액보다 크면 주문 금액까지만"""
        discount = calculate_discount_amount(
            Decimal("120"), DiscountType.FIXED.value, Decimal("150")
        )

        assert discount == Decimal("120.00")

    def test_rounds_half_up(self):
        """Test: 333.35 의 10% = 33.335 → 33.34"""
        discount = calculate_discount_amount(
            Decimal("333.35"), DiscountType.PERCENTAGE.value, Decimal("10")
        )

        assert discount == Decimal("33.34")

    def test_unknown_type_gives_zero(self):
        assert calculate_discount_amount(Decimal("500"), "bogo", Decimal("10")) == Decimal("0")

    @pytest.mark.parametrize("amount", ["0", "1", "99.99", "1000", "2500", "100000"])
    def test_percentage_bounded_by_cap_and_amount(self, amount):
        """Test: 정률 할인은 min(최대 할인, 주문 금액) 이하"""
        amount = Decimal(amount)
        discount = calculate_discount_amount(
            amount, DiscountType.PERCENTAGE.value, Decimal("25"), Decimal("300")
        )

        assert discount <= min(Decimal("300"), amount)
        assert discount >= 0


class TestPromotionModel:
    def _promotion(self, **overrides) -> Promotion:
        now = utcnow()
        values = dict(
            code="SAVE10",
            name="10% 할인",
            status="active",
            is_deleted=False,
            discount_type=DiscountType.PERCENTAGE.value,
            discount_value=Decimal("10"),
            minimum_amount=Decimal("500"),
            maximum_discount=Decimal("100"),
            valid_from=now - timedelta(days=1),
            valid_to=now + timedelta(days=1),
            usage_count=0,
            max_usage=None,
        )
        values.update(overrides)
        return Promotion(**values)

    def test_calculate_discount_uses_cap(self):
        assert self._promotion().calculate_discount(Decimal("1200")) == Decimal("100.00")

    def test_usage_limit(self):
        assert not self._promotion(max_usage=None, usage_count=999).is_usage_limit_reached()
        assert not self._promotion(max_usage=3, usage_count=2).is_usage_limit_reached()
        assert self._promotion(max_usage=3, usage_count=3).is_usage_limit_reached()

    def test_active_window(self):
        now = utcnow()
        assert self._promotion().is_active_at(now)
        assert not self._promotion(status="inactive").is_active_at(now)
        assert not self._promotion(is_deleted=True).is_active_at(now)
        assert not self._promotion(valid_to=now - timedelta(seconds=1)).is_active_at(now)


class TestOfferModel:
    def test_minimum_amount_not_met_gives_zero(self):
        now = utcnow()
        offer = Offer(
            name="의류 ₹100 할인",
            offer_type="category",
            discount_type=DiscountType.FIXED.value,
            discount_value=Decimal("100"),
            minimum_amount=Decimal("500"),
            valid_from=now - timedelta(days=1),
            valid_to=now + timedelta(days=1),
        )

        assert offer.calculate_discount(Decimal("499")) == Decimal("0")
        assert offer.calculate_discount(Decimal("500")) == Decimal("100.00")


class TestHelpers:
    def test_normalize_code(self):
        assert normalize_code("  save10 ") == "SAVE10"
        assert normalize_code(None) == ""

    def test_quote_final_amount(self):
        quote = DiscountQuote(
            promotion=None, order_amount=Decimal("1200.00"), discount_amount=Decimal("100.00")
        )

        assert quote.final_amount == Decimal("1100.00")
