"""
[OK] Integration Tests: 관리자 주문 관리 API

주문/항목 상태 변경, 항목 단위 환불(1회), 요약 상태 반영, 주문 삭제를 검증합니다.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.user import User
from storefront.services.wallet_service import WalletService


async def place(client: AsyncClient, headers: dict, payload: dict) -> dict:
    response = await client.post("/v1/orders", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
class TestOrderStatusUpdate:
    """PUT /v1/admin/orders/{id}/status"""

    async def test_cod_delivery_marks_items_paid(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        """Test: 착불 주문 배송 완료 시 항목/주문 결제 상태 paid"""
        big, small = variants
        order = await place(
            async_client, auth_headers, order_payload([(big, 1), (small, 1)], "cod")
        )

        response = await async_client.put(
            f"/v1/admin/orders/{order['id']}/status",
            json={"status": "delivered"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "delivered"
        assert data["payment_status"] == "paid"
        assert {i["item_status"] for i in data["items"]} == {"delivered"}
        assert {i["item_payment_status"] for i in data["items"]} == {"paid"}

    async def test_status_moves_forward_only(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        """Test: shipped → confirmed 역방향 변경은 400"""
        big, _ = variants
        order = await place(async_client, auth_headers, order_payload([(big, 1)], "cod"))
        url = f"/v1/admin/orders/{order['id']}/status"

        shipped = await async_client.put(url, json={"status": "shipped"}, headers=admin_headers)
        backward = await async_client.put(url, json={"status": "confirmed"}, headers=admin_headers)

        assert shipped.status_code == 200
        assert shipped.json()["items"][0]["item_status"] == "shipped"
        assert backward.status_code == 400
        assert backward.json()["details"]["rule"] == "order_state"

    async def test_return_states_not_settable(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        big, _ = variants
        order = await place(async_client, auth_headers, order_payload([(big, 1)], "cod"))

        response = await async_client.put(
            f"/v1/admin/orders/{order['id']}/status",
            json={"status": "returned"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    async def test_admin_cancel_refunds_prepaid_order(
        self, async_client: AsyncClient, db_session: AsyncSession,
        test_user: User, auth_headers: dict, admin_headers: dict, variants, order_payload
    ):
        """Test: 관리자 전체 취소 시 온라인 결제 금액 전액 지갑 환불"""
        user_id = test_user.id
        big, small = variants
        order = await place(
            async_client, auth_headers,
            order_payload([(big, 1), (small, 1)], "online", shipping="100"),
        )

        response = await async_client.put(
            f"/v1/admin/orders/{order['id']}/status",
            json={"status": "cancelled", "reason": "재고 불일치"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["payment_status"] == "refunded"
        assert data["cancellation_reason"] == "재고 불일치"
        wallet = await WalletService(db_session).get_wallet(user_id)
        assert wallet.balance == Decimal("1100.00")

    async def test_customer_forbidden(
        self, async_client: AsyncClient, auth_headers: dict, variants, order_payload
    ):
        big, _ = variants
        order = await place(async_client, auth_headers, order_payload([(big, 1)], "cod"))

        response = await async_client.put(
            f"/v1/admin/orders/{order['id']}/status",
            json={"status": "shipped"},
            headers=auth_headers,
        )

        assert response.status_code == 403


@pytest.mark.asyncio
class TestItemStatusUpdate:
    """PUT /v1/admin/orders/{id}/items/{item_id}/status"""

    async def test_delivering_every_item_rolls_up_order(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        big, small = variants
        order = await place(
            async_client, auth_headers, order_payload([(big, 1), (small, 1)], "cod")
        )
        first, second = (item["id"] for item in order["items"])
        base = f"/v1/admin/orders/{order['id']}/items"

        partial = await async_client.put(
            f"{base}/{first}/status", json={"status": "delivered"}, headers=admin_headers
        )
        complete = await async_client.put(
            f"{base}/{second}/status", json={"status": "delivered"}, headers=admin_headers
        )

        # 혼합 상태에서는 요약 상태 유지
        assert partial.json()["status"] == "pending"
        assert partial.json()["items"][0]["item_payment_status"] == "paid"
        assert complete.json()["status"] == "delivered"
        assert complete.json()["payment_status"] == "paid"

    async def test_item_refund_only_once(
        self, async_client: AsyncClient, db_session: AsyncSession,
        test_user: User, auth_headers: dict, admin_headers: dict, variants, order_payload
    ):
        """Test: 항목 환불은 1회만, 두 번째 요청은 400이고 지갑 변화 없음"""
        # 600 항목 환불 = 600 + 배송비 100 / 항목 2개
        user_id = test_user.id
        big, small = variants
        order = await place(
            async_client, auth_headers,
            order_payload([(big, 1), (small, 1)], "online", shipping="100"),
        )
        url = f"/v1/admin/orders/{order['id']}/items/{order['items'][0]['id']}/status"

        first = await async_client.put(
            url, json={"payment_status": "refunded"}, headers=admin_headers
        )
        second = await async_client.put(
            url, json={"payment_status": "refunded"}, headers=admin_headers
        )

        assert first.status_code == 200
        assert first.json()["items"][0]["item_payment_status"] == "refunded"
        assert first.json()["items"][0]["refunded_amount"] == 650.0
        assert second.status_code == 400
        assert second.json()["details"]["rule"] == "refund_once"

        wallets = WalletService(db_session)
        wallet = await wallets.get_wallet(user_id)
        assert wallet.balance == Decimal("650.00")
        assert await wallets.ledger_balance(user_id) == Decimal("650.00")

    async def test_cancelled_item_cannot_change(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        big, small = variants
        big_id = str(big.id)
        order = await place(
            async_client, auth_headers, order_payload([(big, 1), (small, 1)], "cod")
        )
        await async_client.patch(
            f"/v1/orders/{order['id']}/cancel",
            json={"product_variant_ids": [big_id]},
            headers=auth_headers,
        )

        response = await async_client.put(
            f"/v1/admin/orders/{order['id']}/items/{order['items'][0]['id']}/status",
            json={"status": "shipped"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["rule"] == "item_eligible"

    async def test_empty_update_rejected(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        big, _ = variants
        order = await place(async_client, auth_headers, order_payload([(big, 1)], "cod"))

        response = await async_client.put(
            f"/v1/admin/orders/{order['id']}/items/{order['items'][0]['id']}/status",
            json={},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "status"

    async def test_unknown_item_returns_404(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        big, _ = variants
        order = await place(async_client, auth_headers, order_payload([(big, 1)], "cod"))

        response = await async_client.put(
            f"/v1/admin/orders/{order['id']}/items/00000000-0000-0000-0000-000000000009/status",
            json={"status": "shipped"},
            headers=admin_headers,
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestAdminOrderAccess:
    async def test_admin_reads_any_order_and_deletes(
        self, async_client: AsyncClient, auth_headers: dict, admin_headers: dict,
        variants, order_payload
    ):
        big, _ = variants
        order = await place(async_client, auth_headers, order_payload([(big, 1)], "cod"))
        url = f"/v1/admin/orders/{order['id']}"

        fetched = await async_client.get(url, headers=admin_headers)
        deleted = await async_client.delete(url, headers=admin_headers)
        missing = await async_client.get(url, headers=admin_headers)

        assert fetched.status_code == 200
        assert fetched.json()["order_number"] == order["order_number"]
        assert deleted.status_code == 204
        assert missing.status_code == 404
