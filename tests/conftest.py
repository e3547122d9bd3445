"""
Pytest configuration and shared fixtures
"""

import os

# 애플리케이션 import 전에 테스트 환경 변수 설정 (get_settings 는 최초 1회만 로드)
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import timedelta
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront.config import get_settings
from storefront.main import app
from storefront.models import Base
from storefront.models.base import get_db, utcnow
from storefront.models.offer import Offer, OfferType
from storefront.models.product import Category, Product, ProductVariant
from storefront.models.promotion import DiscountType, Promotion, PromotionSource
from storefront.models.user import User, UserStatus
from storefront.services.payment_gateway import get_payment_gateway
from storefront.utils.money import to_paise
from storefront.utils.security import (
    JWTManager,
    generate_payment_signature,
    verify_payment_signature,
)


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PAYMENT_SECRET = get_settings().RAZORPAY_KEY_SECRET


class FakeGateway:
    """
    메모리 기반 결제 게이트웨이

    create_order 로 만든 주문은 결제 ID (pay_ + 주문 번호) 로 즉시 captured 됩니다.
    capture 는 고객이 게이트웨이에서 결제를 마친 상태를 바로 만들어 서명된 결제 정보를 반환합니다.
    """

    key_id = "rzp_test_key"

    def __init__(self, payment_status: str = "captured"):
        self.payment_status = payment_status
        self.orders = {}

    def _next_order_id(self, prefix: str) -> str:
        return f"order_{prefix}{len(self.orders) + 1:04d}"

    async def create_order(self, amount_paise, currency, receipt, notes=None):
        order_id = self._next_order_id("FAKE")
        self.orders[order_id] = {
            "id": order_id,
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        return self.orders[order_id]

    async def fetch_order(self, order_id):
        return self.orders[order_id]

    async def fetch_payment(self, payment_id):
        order_id = payment_id.replace("pay_", "order_")
        return {
            "id": payment_id,
            "order_id": order_id,
            "amount": self.orders[order_id]["amount"],
            "status": self.payment_status,
        }

    def verify_signature(self, order_id, payment_id, signature):
        return verify_payment_signature(order_id, payment_id, signature, PAYMENT_SECRET)

    def capture(self, amount) -> dict:
        """amount(루피) 결제를 완료하고 주문 생성 요청용 결제 정보 반환"""
        order_id = self._next_order_id("TEST")
        self.orders[order_id] = {
            "id": order_id,
            "amount": to_paise(amount),
            "currency": "INR",
            "receipt": order_id,
            "notes": {},
        }
        return signed_payment(order_id)


def signed_payment(order_id: str) -> dict:
    """서버 시크릿으로 서명한 결제 완료 정보 (결제 ID = pay_ + 주문 번호)"""
    payment_id = order_id.replace("order_", "pay_")
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": generate_payment_signature(order_id, payment_id, PAYMENT_SECRET),
    }


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.

    Uses in-memory SQLite database for fast test execution.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def payment_gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession, payment_gateway: FakeGateway
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing FastAPI endpoints.
    Override the database and payment gateway dependencies.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


def make_auth_headers(user: User) -> dict:
    """사용자 ID로 서명한 액세스 토큰 헤더"""
    token = JWTManager.create_access_token(
        {"sub": str(user.id), "role": user.role}, expires_delta=timedelta(hours=1)
    )
    return {"Authorization": f"Bearer {token}"}


async def _create_user(db_session: AsyncSession, email: str, name: str, **kwargs) -> User:
    user = User(id=uuid4(), email=email, name=name, **kwargs)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """테스트용 고객"""
    return await _create_user(db_session, "test@example.com", "Test User", role="customer")


@pytest_asyncio.fixture(scope="function")
async def another_user(db_session: AsyncSession) -> User:
    """다른 고객 (소유권/추천 테스트용)"""
    return await _create_user(db_session, "other@example.com", "Other User", role="customer")


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    """테스트용 관리자"""
    return await _create_user(db_session, "admin@example.com", "관리자", role="admin")


@pytest_asyncio.fixture(scope="function")
async def blocked_user(db_session: AsyncSession) -> User:
    """이용 정지 계정"""
    return await _create_user(
        db_session,
        "blocked@example.com",
        "Blocked User",
        role="customer",
        status=UserStatus.SUSPENDED.value,
    )


@pytest.fixture(scope="function")
def auth_headers(test_user: User) -> dict:
    return make_auth_headers(test_user)


@pytest.fixture(scope="function")
def another_headers(another_user: User) -> dict:
    return make_auth_headers(another_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> dict:
    return make_auth_headers(admin_user)


@pytest.fixture(scope="function")
def blocked_headers(blocked_user: User) -> dict:
    return make_auth_headers(blocked_user)


@pytest_asyncio.fixture(scope="function")
async def category(db_session: AsyncSession) -> Category:
    category = Category(id=uuid4(), name="Apparel")
    db_session.add(category)
    await db_session.commit()
    return category


@pytest_asyncio.fixture(scope="function")
async def product(db_session: AsyncSession, category: Category) -> Product:
    """옵션 2개(₹600, ₹400, 각 재고 10)를 가진 상품"""
    product = Product(id=uuid4(), name="Cotton Kurta", category_id=category.id, total_stock=20)
    product.variants = [
        ProductVariant(
            id=uuid4(),
            product_id=product.id,
            sku="KURTA-M",
            name="M",
            price=Decimal("600.00"),
            stock=10,
        ),
        ProductVariant(
            id=uuid4(),
            product_id=product.id,
            sku="KURTA-L",
            name="L",
            price=Decimal("400.00"),
            stock=10,
        ),
    ]
    db_session.add(product)
    await db_session.commit()
    return product


@pytest.fixture(scope="function")
def variants(product: Product) -> tuple:
    """(₹600 옵션, ₹400 옵션)"""
    by_sku = {v.sku: v for v in product.variants}
    return by_sku["KURTA-M"], by_sku["KURTA-L"]


@pytest.fixture(scope="function")
def shipping_address() -> dict:
    return {
        "recipient_name": "Asha Rao",
        "address_line1": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "country": "India",
        "phone_number": "9876543210",
    }


@pytest.fixture(scope="function")
def order_payload(shipping_address: dict, payment_gateway: FakeGateway):
    """
    주문 생성 요청 본문 생성 함수

    online 주문은 게이트웨이에서 paid 금액을 결제한 정보를 붙입니다.
    paid 를 생략하면 (단가 x 수량) 합계 + 배송비 (오퍼/할인 없는 주문 기준).
    """

    def build(lines, payment_method="cod", paid=None, **extra) -> dict:
        payload = {
            "items": [
                {"product_variant_id": str(variant.id), "quantity": quantity}
                for variant, quantity in lines
            ],
            "shipping_address": dict(shipping_address),
            "payment_method": payment_method,
        }
        if payment_method == "online":
            if paid is None:
                paid = sum(
                    (Decimal(variant.price) * quantity for variant, quantity in lines),
                    Decimal(str(extra.get("shipping", 0))),
                )
            payload["payment"] = payment_gateway.capture(paid)
        for key, value in extra.items():
            payload[key] = str(value) if isinstance(value, Decimal) else value
        return payload

    return build


@pytest.fixture(scope="function")
def promotion_factory(db_session: AsyncSession):
    """할인 코드/쿠폰 생성 함수"""

    async def create(code: str = "SAVE10", **overrides) -> Promotion:
        now = utcnow()
        values = dict(
            id=uuid4(),
            source=PromotionSource.DISCOUNT.value,
            code=code,
            name=f"{code} 할인",
            discount_type=DiscountType.PERCENTAGE.value,
            discount_value=Decimal("10"),
            minimum_amount=Decimal("0"),
            maximum_discount=None,
            valid_from=now - timedelta(days=1),
            valid_to=now + timedelta(days=30),
        )
        values.update(overrides)
        promotion = Promotion(**values)
        db_session.add(promotion)
        await db_session.commit()
        return promotion

    return create


@pytest.fixture(scope="function")
def offer_factory(db_session: AsyncSession):
    """오퍼 생성 함수"""

    async def create(name: str = "런칭 할인", **overrides) -> Offer:
        now = utcnow()
        values = dict(
            id=uuid4(),
            name=name,
            offer_type=OfferType.PRODUCT.value,
            discount_type=DiscountType.PERCENTAGE.value,
            discount_value=Decimal("10"),
            minimum_amount=Decimal("0"),
            valid_from=now - timedelta(days=1),
            valid_to=now + timedelta(days=30),
        )
        values.update(overrides)
        offer = Offer(**values)
        db_session.add(offer)
        await db_session.commit()
        return offer

    return create


@pytest_asyncio.fixture(scope="function")
async def referral_offer(offer_factory) -> Offer:
    """진행 중인 추천 보상 (₹200 정액, 최소 ₹1000)"""
    return await offer_factory(
        name="추천 보상 ₹200",
        offer_type=OfferType.REFERRAL.value,
        discount_type=DiscountType.FIXED.value,
        discount_value=Decimal("200"),
        minimum_amount=Decimal("1000"),
    )
