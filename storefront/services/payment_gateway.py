"""
결제 게이트웨이(Razorpay) 클라이언트

목적: 지갑 충전용 결제 주문 생성, 결제/주문 조회 (지갑 충전, 온라인 주문 결제 확인), 결제 서명 검증
- httpx 비동기 클라이언트 사용, 재시도 없음 (실패 시 즉시 오류 반환)
- 전역 싱글턴 대신 FastAPI 의존성(get_payment_gateway)으로 주입
"""

from typing import Any, Optional

import httpx

from storefront.config import Settings, get_settings
from storefront.utils.exceptions import PaymentGatewayException
from storefront.utils.logging import get_logger
from storefront.utils.security import verify_payment_signature

logger = get_logger(__name__)


class RazorpayGateway:
    """Razorpay REST API 클라이언트"""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            base_url=settings.RAZORPAY_API_URL,
            timeout=settings.RAZORPAY_TIMEOUT_SECONDS,
        )

    async def _request(
        self, method: str, path: str, operation: str, json: Optional[dict] = None
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.key_id, self._key_secret),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"결제 게이트웨이 오류 응답: operation={operation}, "
                f"status={e.response.status_code}"
            )
            raise PaymentGatewayException(operation) from e
        except httpx.HTTPError as e:
            logger.error(f"결제 게이트웨이 통신 실패: operation={operation}, error={str(e)}")
            raise PaymentGatewayException(operation) from e

    async def create_order(
        self,
        amount_paise: int,
        currency: str,
        receipt: str,
        notes: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """
        결제 주문 생성

        Args:
            amount_paise: 결제 금액 (paise 단위)
            currency: 통화 코드 (INR)
            receipt: 가맹점 영수증 번호
            notes: 주문 메모 (user_id 등)

        Returns:
            게이트웨이 주문 객체 (id, amount, currency, status, notes ...)
        """
        return await self._request(
            "POST",
            "/orders",
            "create_order",
            json={
                "amount": amount_paise,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/orders/{order_id}", "fetch_order")

    async def fetch_payment(self, payment_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/payments/{payment_id}", "fetch_payment")

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256(order_id|payment_id) 서명 검증"""
        return verify_payment_signature(order_id, payment_id, signature, self._key_secret)


def get_payment_gateway() -> RazorpayGateway:
    """
    FastAPI 의존성: 결제 게이트웨이 클라이언트

    테스트에서는 app.dependency_overrides 로 가짜 게이트웨이를 주입합니다.
    """
    return RazorpayGateway.from_settings(get_settings())
