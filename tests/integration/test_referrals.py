"""
[OK] Integration Tests: 추천인 API

추천 코드/링크 발급, 검증, 추천 완료 시 보상 쿠폰 발급과 오류 케이스를 검증합니다.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.base import utcnow
from storefront.models.referral import Referral, ReferralStatus
from storefront.models.user import User


async def create_link(client: AsyncClient, headers: dict) -> dict:
    response = await client.post("/v1/referrals/link", headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def add_referral(db_session: AsyncSession, referrer: User, expires_in: timedelta) -> Referral:
    now = utcnow()
    referral = Referral(
        id=uuid4(),
        referrer_id=referrer.id,
        referral_code=Referral.generate_code(),
        referral_token=Referral.generate_token(),
        status=ReferralStatus.PENDING.value,
        created_at=now - timedelta(days=31),
        expires_at=now + expires_in,
    )
    db_session.add(referral)
    await db_session.commit()
    return referral


@pytest.mark.asyncio
class TestReferralCodes:
    async def test_user_code_issued_once(
        self, async_client: AsyncClient, auth_headers: dict
    ):
        first = await async_client.post("/v1/referrals/code", headers=auth_headers)
        second = await async_client.post("/v1/referrals/code", headers=auth_headers)

        assert first.status_code == 201
        assert first.json()["referral_code"]
        assert second.status_code == 400
        assert second.json()["details"]["reason"] == "code_exists"

    async def test_link_created_pending(
        self, async_client: AsyncClient, test_user: User, auth_headers: dict
    ):
        user_id = str(test_user.id)

        link = await create_link(async_client, auth_headers)

        assert link["status"] == "pending"
        assert link["referrer_id"] == user_id
        assert link["referral_token"]
        assert link["expires_at"] is not None
        assert link["reward_claimed"] is False

    async def test_list_own_referrals(
        self, async_client: AsyncClient, auth_headers: dict, another_headers: dict
    ):
        await create_link(async_client, auth_headers)
        await create_link(async_client, auth_headers)
        await create_link(async_client, another_headers)

        response = await async_client.get("/v1/referrals", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data["referrals"]) == 2
        assert data["referral_count"] == 0
        assert data["total_referral_rewards"] == 0.0


@pytest.mark.asyncio
class TestReferralValidation:
    async def test_link_code_and_token_valid(
        self, async_client: AsyncClient, auth_headers: dict, another_headers: dict
    ):
        link = await create_link(async_client, another_headers)

        by_code = await async_client.post(
            "/v1/referrals/validate",
            json={"referral_code": link["referral_code"].lower()},
            headers=auth_headers,
        )
        by_token = await async_client.post(
            "/v1/referrals/validate",
            json={"referral_token": link["referral_token"]},
            headers=auth_headers,
        )

        assert by_code.status_code == 200
        assert by_code.json()["valid"] is True
        assert by_code.json()["referrer_id"] == link["referrer_id"]
        assert by_code.json()["expires_at"] is not None
        assert by_token.json()["referral_code"] == link["referral_code"]

    async def test_user_code_valid_without_expiry(
        self, async_client: AsyncClient, auth_headers: dict, another_headers: dict
    ):
        code = (await async_client.post("/v1/referrals/code", headers=another_headers)).json()[
            "referral_code"
        ]

        response = await async_client.post(
            "/v1/referrals/validate", json={"referral_code": code}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["expires_at"] is None

    async def test_unknown_code_invalid(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/v1/referrals/validate", json={"referral_code": "NOSUCH"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "not_found"

    async def test_expired_link_marked_expired(
        self, async_client: AsyncClient, db_session: AsyncSession,
        another_user: User, auth_headers: dict
    ):
        """Test: 만료 시각이 지난 링크는 expired 로 바뀌고 사용할 수 없음"""
        referral = await add_referral(db_session, another_user, timedelta(days=-1))
        referral_id, code = referral.id, referral.referral_code

        response = await async_client.post(
            "/v1/referrals/validate", json={"referral_code": code}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "expired"
        stored = await db_session.get(Referral, referral_id, populate_existing=True)
        assert stored.status == ReferralStatus.EXPIRED.value

    async def test_code_or_token_required(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/v1/referrals/validate", json={}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "referral_code"


@pytest.mark.asyncio
class TestReferralProcessing:
    """POST /v1/referrals/process (호출자 = 피추천인)"""

    async def test_process_rewards_referrer_with_coupon(
        self, async_client: AsyncClient, db_session: AsyncSession,
        test_user: User, another_user: User, auth_headers: dict, another_headers: dict,
        referral_offer
    ):
        """Test: 추천 완료 시 추천인 전용 1회용 쿠폰 발급, 누적 횟수/보상 증가"""
        # Given: another_user 가 만든 추천 링크
        referred_id = str(test_user.id)
        link = await create_link(async_client, another_headers)

        # When: test_user 가 추천 코드로 가입 완료 처리
        response = await async_client.post(
            "/v1/referrals/process",
            json={"referral_code": link["referral_code"]},
            headers=auth_headers,
        )

        # Then: 추천 완료
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["referred_id"] == referred_id
        assert data["reward_claimed"] is True
        coupon_id = data["reward_promotion_id"]
        assert coupon_id is not None

        # Then: 쿠폰은 추천인에게만 보임
        mine = await async_client.get("/v1/discounts/eligible", headers=another_headers)
        theirs = await async_client.get("/v1/discounts/eligible", headers=auth_headers)
        coupons = [p for p in mine.json()["promotions"] if p["promotion_id"] == coupon_id]
        assert len(coupons) == 1
        assert coupons[0]["source"] == "coupon"
        assert coupons[0]["discount_value"] == 200.0
        assert coupons[0]["minimum_amount"] == 1000.0
        assert coupons[0]["max_usage_per_user"] == 1
        assert all(p["promotion_id"] != coupon_id for p in theirs.json()["promotions"])

        # Then: 추천인 누적 횟수/보상
        await db_session.refresh(another_user)
        summary = await async_client.get("/v1/referrals", headers=another_headers)
        assert summary.json()["referral_count"] == 1
        assert summary.json()["total_referral_rewards"] == 200.0

    async def test_process_with_user_code(
        self, async_client: AsyncClient, auth_headers: dict, another_headers: dict,
        referral_offer
    ):
        code = (await async_client.post("/v1/referrals/code", headers=another_headers)).json()[
            "referral_code"
        ]

        response = await async_client.post(
            "/v1/referrals/process", json={"referral_code": code}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["referral_code"] != code

    async def test_second_referral_rejected(
        self, async_client: AsyncClient, auth_headers: dict, another_headers: dict,
        referral_offer
    ):
        first_link = await create_link(async_client, another_headers)
        second_link = await create_link(async_client, another_headers)
        await async_client.post(
            "/v1/referrals/process",
            json={"referral_code": first_link["referral_code"]},
            headers=auth_headers,
        )

        response = await async_client.post(
            "/v1/referrals/process",
            json={"referral_token": second_link["referral_token"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "already_referred"

    async def test_used_link_cannot_be_reused(
        self, async_client: AsyncClient, auth_headers: dict, another_headers: dict,
        admin_headers: dict, referral_offer
    ):
        link = await create_link(async_client, another_headers)
        await async_client.post(
            "/v1/referrals/process",
            json={"referral_code": link["referral_code"]},
            headers=auth_headers,
        )

        response = await async_client.post(
            "/v1/referrals/process",
            json={"referral_code": link["referral_code"]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "completed"

    async def test_self_referral_rejected(
        self, async_client: AsyncClient, auth_headers: dict, referral_offer
    ):
        link = await create_link(async_client, auth_headers)

        response = await async_client.post(
            "/v1/referrals/process",
            json={"referral_code": link["referral_code"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "self_referral"

    async def test_no_active_referral_offer(
        self, async_client: AsyncClient, auth_headers: dict, another_headers: dict
    ):
        link = await create_link(async_client, another_headers)

        response = await async_client.post(
            "/v1/referrals/process",
            json={"referral_code": link["referral_code"]},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "no_referral_offer"
        assert response.json()["details"]["rule"] == "referral"


@pytest.mark.asyncio
class TestReferralExpiry:
    async def test_admin_expires_stale_links(
        self, async_client: AsyncClient, db_session: AsyncSession,
        another_user: User, admin_headers: dict, auth_headers: dict
    ):
        await add_referral(db_session, another_user, timedelta(days=-2))
        await add_referral(db_session, another_user, timedelta(days=-1))
        await add_referral(db_session, another_user, timedelta(days=5))

        response = await async_client.post("/v1/admin/referrals/expire", headers=admin_headers)
        forbidden = await async_client.post("/v1/admin/referrals/expire", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["expired_count"] == 2
        assert forbidden.status_code == 403
