"""
단위 테스트: 결제 서명, 금액 단위 변환, JWT, 로그 마스킹
"""

from datetime import timedelta
from decimal import Decimal
import logging

import pytest

from storefront import config
from storefront.utils.logging import SensitiveDataFilter
from storefront.utils.money import from_paise, round_money, to_decimal, to_paise
from storefront.utils.security import (
    JWTManager,
    generate_payment_signature,
    verify_payment_signature,
)

SECRET = "rzp_test_secret"


class TestPaymentSignature:
    def test_valid_signature(self):
        signature = generate_payment_signature("order_1", "pay_1", SECRET)

        assert verify_payment_signature("order_1", "pay_1", signature, SECRET)

    def test_signature_bound_to_order_and_payment(self):
        """Test: 다른 주문/결제 ID 로는 검증 실패"""
        signature = generate_payment_signature("order_1", "pay_1", SECRET)

        assert not verify_payment_signature("order_2", "pay_1", signature, SECRET)
        assert not verify_payment_signature("order_1", "pay_2", signature, SECRET)

    def test_wrong_secret_fails(self):
        signature = generate_payment_signature("order_1", "pay_1", "other_secret")

        assert not verify_payment_signature("order_1", "pay_1", signature, SECRET)

    @pytest.mark.parametrize(
        "order_id,payment_id,signature",
        [("", "pay_1", "x"), ("order_1", None, "x"), ("order_1", "pay_1", "")],
    )
    def test_missing_values_fail(self, order_id, payment_id, signature):
        assert not verify_payment_signature(order_id, payment_id, signature, SECRET)


class TestMoney:
    def test_round_half_up(self):
        assert round_money("2.345") == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_float_goes_through_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_paise_conversion(self):
        assert to_paise(Decimal("10.50")) == 1050
        assert to_paise("4999.99") == 499999
        assert from_paise(1999) == Decimal("19.99")


class TestJWT:
    def test_round_trip(self):
        token = JWTManager.create_access_token({"sub": "user-1"})

        payload = JWTManager.decode_token(token)

        assert payload["sub"] == "user-1"
        assert JWTManager.verify_token_type(payload, "access")

    def test_expired_token_rejected(self):
        token = JWTManager.create_access_token(
            {"sub": "user-1"}, expires_delta=timedelta(seconds=-1)
        )

        with pytest.raises(ValueError):
            JWTManager.decode_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            JWTManager.decode_token("not-a-token")


class TestConfig:
    def test_cod_restricted_state_ignores_case(self):
        settings = config.TestSettings()

        assert settings.is_cod_restricted_state("  ladakh ")
        assert settings.is_cod_restricted_state("Jammu and Kashmir")
        assert not settings.is_cod_restricted_state("Karnataka")

    def test_direct_topup_blocked_in_production(self):
        assert config.TestSettings().direct_topup_allowed
        assert not config.TestSettings(ENV="production").direct_topup_allowed


class TestSensitiveDataFilter:
    def test_masks_signature_and_bearer(self):
        masker = SensitiveDataFilter()

        text = masker.mask_sensitive_data(
            '{"razorpay_signature": "abc123"} Authorization: Bearer eyJhbGci.abc.def'
        )

        assert "abc123" not in text
        assert "eyJhbGci" not in text
        assert '"razorpay_signature": "***"' in text

    def test_masks_phone_number(self):
        record = logging.LogRecord(
            "test", logging.INFO, __file__, 1, "연락처 9876543210", (), None
        )

        SensitiveDataFilter().filter(record)

        assert record.msg == "연락처 98******10"
