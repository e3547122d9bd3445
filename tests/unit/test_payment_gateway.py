"""
단위 테스트: 결제 게이트웨이 클라이언트

httpx.MockTransport 로 게이트웨이 응답을 대체하여 요청 형식과 오류 처리를 검증합니다.
"""

import json

import httpx
import pytest

from storefront.services.payment_gateway import RazorpayGateway
from storefront.utils.exceptions import PaymentGatewayException
from storefront.utils.security import generate_payment_signature


def make_gateway(handler) -> RazorpayGateway:
    return RazorpayGateway(
        key_id="rzp_test_key",
        key_secret="rzp_test_secret",
        base_url="https://gateway.test/v1",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
class TestRazorpayGateway:
    async def test_create_order_posts_amount_in_paise(self):
        """Test: 주문 생성 요청 본문과 인증 헤더"""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["method"] = request.method
            captured["path"] = request.url.path
            captured["auth"] = request.headers.get("authorization", "")
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"id": "order_123", "amount": 50000, "currency": "INR", "status": "created"},
            )

        gateway = make_gateway(handler)

        order = await gateway.create_order(
            amount_paise=50000, currency="INR", receipt="wallet_1", notes={"user_id": "u1"}
        )

        assert order["id"] == "order_123"
        assert captured["method"] == "POST"
        assert captured["path"] == "/v1/orders"
        assert captured["auth"].startswith("Basic ")
        assert captured["body"] == {
            "amount": 50000,
            "currency": "INR",
            "receipt": "wallet_1",
            "notes": {"user_id": "u1"},
        }

    async def test_fetch_payment(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/payments/pay_1"
            return httpx.Response(200, json={"id": "pay_1", "status": "captured"})

        payment = await make_gateway(handler).fetch_payment("pay_1")

        assert payment["status"] == "captured"

    async def test_error_status_raises_gateway_exception(self):
        """Test: 게이트웨이 오류 응답은 502 예외로 변환"""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": {"description": "internal"}})

        with pytest.raises(PaymentGatewayException) as exc_info:
            await make_gateway(handler).fetch_order("order_1")

        assert exc_info.value.status_code == 502
        assert exc_info.value.details["operation"] == "fetch_order"

    async def test_network_error_raises_gateway_exception(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentGatewayException):
            await make_gateway(handler).create_order(100, "INR", "r1")


class TestSignatureVerification:
    def test_verify_signature_uses_key_secret(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={}))
        signature = generate_payment_signature("order_1", "pay_1", "rzp_test_secret")

        assert gateway.verify_signature("order_1", "pay_1", signature)
        assert not gateway.verify_signature("order_1", "pay_1", "deadbeef")
