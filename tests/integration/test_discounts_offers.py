"""
[OK] Integration Tests: 할인 코드 검증 / 사용 가능 목록 / 상품 최적 오퍼
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.base import utcnow
from storefront.models.offer import OfferType
from storefront.models.product import Category, Product
from storefront.services.promotion_service import PromotionService
from storefront.utils.exceptions import ValidationException


@pytest.mark.asyncio
class TestDiscountValidation:
    """POST /v1/discounts/validate"""

    async def test_validate_returns_quote_without_consuming(
        self, async_client: AsyncClient, auth_headers: dict, promotion_factory
    ):
        """Test: 소문자 코드 허용, 할인 금액 미리보기, 사용 횟수 변경 없음"""
        await promotion_factory("SAVE10", maximum_discount=Decimal("100"), max_usage=1)

        first = await async_client.post(
            "/v1/discounts/validate",
            json={"code": "save10", "order_amount": "1200"},
            headers=auth_headers,
        )
        second = await async_client.post(
            "/v1/discounts/validate",
            json={"code": "SAVE10", "order_amount": "1200"},
            headers=auth_headers,
        )

        assert first.status_code == 200
        data = first.json()
        assert data["code"] == "SAVE10"
        assert data["discount_amount"] == 100.0
        assert data["final_amount"] == 1100.0
        assert second.status_code == 200

    async def test_minimum_amount_not_met(
        self, async_client: AsyncClient, auth_headers: dict, promotion_factory
    ):
        await promotion_factory("BIGSPEND", minimum_amount=Decimal("2000"))

        response = await async_client.post(
            "/v1/discounts/validate",
            json={"code": "BIGSPEND", "order_amount": "1999.99"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["rule"] == "minimum_amount"

    async def test_unknown_code_returns_404(
        self, async_client: AsyncClient, auth_headers: dict
    ):
        response = await async_client.post(
            "/v1/discounts/validate",
            json={"code": "NOPE", "order_amount": "100"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_expired_code_returns_404(
        self, async_client: AsyncClient, auth_headers: dict, promotion_factory
    ):
        now = utcnow()
        await promotion_factory(
            "OLD", valid_from=now - timedelta(days=10), valid_to=now - timedelta(days=1)
        )

        response = await async_client.post(
            "/v1/discounts/validate",
            json={"code": "OLD", "order_amount": "100"},
            headers=auth_headers,
        )

        assert response.status_code == 404

    async def test_owned_coupon_hidden_from_other_users(
        self, async_client: AsyncClient, another_user, auth_headers: dict,
        another_headers: dict, promotion_factory
    ):
        await promotion_factory("MINEONLY", owner_user_id=another_user.id, source="coupon")

        theirs = await async_client.post(
            "/v1/discounts/validate",
            json={"code": "MINEONLY", "order_amount": "500"},
            headers=auth_headers,
        )
        mine = await async_client.post(
            "/v1/discounts/validate",
            json={"code": "MINEONLY", "order_amount": "500"},
            headers=another_headers,
        )

        assert theirs.status_code == 404
        assert mine.status_code == 200
        assert mine.json()["source"] == "coupon"


@pytest.mark.asyncio
class TestEligiblePromotions:
    async def test_used_up_promotion_excluded(
        self, async_client: AsyncClient, auth_headers: dict, variants,
        order_payload, promotion_factory
    ):
        """Test: 1인당 한도를 다 쓴 코드는 목록에서 제외"""
        await promotion_factory("ONCEEACH", max_usage_per_user=1)
        await promotion_factory("ALWAYS")
        big, _ = variants

        before = await async_client.get("/v1/discounts/eligible", headers=auth_headers)
        await async_client.post(
            "/v1/orders",
            json=order_payload([(big, 1)], "cod", discount_code="ONCEEACH"),
            headers=auth_headers,
        )
        after = await async_client.get("/v1/discounts/eligible", headers=auth_headers)

        assert {p["code"] for p in before.json()["promotions"]} == {"ONCEEACH", "ALWAYS"}
        assert {p["code"] for p in after.json()["promotions"]} == {"ALWAYS"}

    async def test_globally_exhausted_promotion_excluded(
        self, async_client: AsyncClient, auth_headers: dict, promotion_factory
    ):
        await promotion_factory("SOLDOUT", max_usage=3, usage_count=3)

        response = await async_client.get("/v1/discounts/eligible", headers=auth_headers)

        assert response.json()["promotions"] == []


@pytest.mark.asyncio
class TestBestOffer:
    """GET /v1/offers/best (인증 불필요)"""

    async def test_variant_prices_after_offer(
        self, async_client: AsyncClient, product: Product, offer_factory
    ):
        product_id = str(product.id)
        offer = await offer_factory("상품 10%", products=[product])
        offer_id = str(offer.id)

        response = await async_client.get(f"/v1/offers/best?product_id={product_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["offer_id"] == offer_id
        assert data["discount_type"] == "percentage"
        prices = sorted((v["price"], v["final_price"]) for v in data["variants"])
        assert prices == [(400.0, 360.0), (600.0, 540.0)]

    async def test_higher_discount_value_wins(
        self, async_client: AsyncClient, product: Product, category: Category,
        offer_factory
    ):
        """Test: 상품 오퍼와 카테고리 오퍼 중 할인 값이 큰 오퍼 선택"""
        product_id = str(product.id)
        await offer_factory("상품 10%", products=[product])
        category_offer = await offer_factory(
            "카테고리 15%",
            offer_type=OfferType.CATEGORY.value,
            discount_value=Decimal("15"),
            category_id=category.id,
        )
        category_offer_id = str(category_offer.id)

        response = await async_client.get(f"/v1/offers/best?product_id={product_id}")

        assert response.json()["offer_id"] == category_offer_id

    async def test_no_offer(self, async_client: AsyncClient, product: Product):
        response = await async_client.get(f"/v1/offers/best?product_id={product.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["offer_id"] is None
        assert {v["offer_amount"] for v in data["variants"]} == {0.0}

    async def test_unknown_product_returns_404(self, async_client: AsyncClient):
        response = await async_client.get(f"/v1/offers/best?product_id={uuid4()}")

        assert response.status_code == 404

    async def test_product_id_required(self, async_client: AsyncClient):
        response = await async_client.get("/v1/offers/best")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
class TestCreatePromotion:
    """PromotionService.create_promotion 코드 중복 검증"""

    async def create(self, db_session: AsyncSession, code: str):
        now = utcnow()
        return await PromotionService(db_session).create_promotion(
            name="재출시 할인",
            code=code,
            discount_type="fixed",
            discount_value=Decimal("100"),
            valid_from=now,
            valid_to=now + timedelta(days=7),
        )

    async def test_new_code_normalized(self, db_session: AsyncSession):
        promotion = await self.create(db_session, " spring24 ")

        assert promotion.code == "SPRING24"

    async def test_code_of_deleted_promotion_not_reissued(
        self, db_session: AsyncSession, promotion_factory
    ):
        """Test: 삭제된 프로모션의 코드로 새 프로모션을 만들 수 없음"""
        await promotion_factory("RETIRED", is_deleted=True)

        with pytest.raises(ValidationException) as exc_info:
            await self.create(db_session, "retired")

        assert exc_info.value.details["field"] == "code"
