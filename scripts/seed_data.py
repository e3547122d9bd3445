"""
데이터베이스 시드 데이터 생성 스크립트

로컬 개발 및 데모용 초기 데이터를 생성합니다.
- 관리자 1명, 고객 2명
- 카테고리, 상품/옵션
- 할인 코드, 쿠폰, 상품 오퍼, 추천 보상 오퍼

계정 발급은 인증 서비스 담당이므로, 실행 후 각 계정의 개발용 액세스 토큰을 출력합니다.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import get_settings
from storefront.models import Base
from storefront.models.base import AsyncSessionLocal, engine, utcnow
from storefront.models.offer import Offer, OfferType
from storefront.models.product import Category, Product, ProductVariant
from storefront.models.promotion import DiscountType, PromotionSource
from storefront.models.user import User, UserRole
from storefront.services.inventory_service import InventoryService
from storefront.services.promotion_service import PromotionService
from storefront.utils.security import JWTManager

settings = get_settings()

SEED_TABLES = [
    "referrals",
    "wallet_transactions",
    "wallets",
    "order_offers",
    "order_items",
    "orders",
    "offer_products",
    "offers",
    "user_promotion_usages",
    "promotions",
    "product_variants",
    "products",
    "categories",
    "users",
]


async def create_users(session: AsyncSession) -> dict:
    """사용자 생성"""
    print("[INFO] 사용자 생성 중...")

    users_data = [
        {"email": "admin@storefront.dev", "name": "관리자", "role": UserRole.ADMIN.value},
        {"email": "customer1@example.com", "name": "Asha Rao", "role": UserRole.CUSTOMER.value},
        {"email": "customer2@example.com", "name": "Vikram Iyer", "role": UserRole.CUSTOMER.value},
    ]

    users = {}
    for data in users_data:
        user = User(email=data["email"], name=data["name"], role=data["role"])
        session.add(user)
        users[data["email"]] = user

    await session.commit()
    print(f"[SUCCESS] {len(users)} 명 사용자 생성 완료")
    return users


async def create_catalog(session: AsyncSession) -> dict:
    """카테고리/상품/옵션 생성 (상품 재고 합계는 옵션 기준으로 재계산)"""
    print("[INFO] 상품 생성 중...")

    apparel = Category(name="Apparel", description="의류")
    electronics = Category(name="Electronics", description="전자제품")
    session.add_all([apparel, electronics])
    await session.flush()

    catalog = [
        {
            "name": "Cotton Kurta",
            "category": apparel,
            "variants": [("KURTA-M", "M", "899.00", 40), ("KURTA-L", "L", "899.00", 25)],
        },
        {
            "name": "Running Shoes",
            "category": apparel,
            "variants": [("SHOE-8", "UK 8", "2499.00", 15), ("SHOE-9", "UK 9", "2499.00", 10)],
        },
        {
            "name": "Wireless Earbuds",
            "category": electronics,
            "variants": [("EARBUD-BLK", "Black", "3999.00", 30)],
        },
    ]

    products = {}
    for data in catalog:
        product = Product(name=data["name"], category_id=data["category"].id)
        session.add(product)
        await session.flush()
        for sku, name, price, stock in data["variants"]:
            session.add(
                ProductVariant(
                    product_id=product.id,
                    sku=sku,
                    name=name,
                    price=Decimal(price),
                    stock=stock,
                )
            )
        await session.flush()
        await InventoryService(session).recompute_product(product.id)
        products[data["name"]] = product

    await session.commit()
    print(f"[SUCCESS] {len(products)} 개 상품 생성 완료")
    return {"categories": {"apparel": apparel, "electronics": electronics}, "products": products}


async def create_promotions(session: AsyncSession, catalog: dict) -> None:
    """할인 코드, 쿠폰, 상품 오퍼, 추천 보상 오퍼 생성"""
    print("[INFO] 프로모션/오퍼 생성 중...")

    now = utcnow()
    promotions = PromotionService(session)

    await promotions.create_promotion(
        name="10% 할인",
        code="SAVE10",
        source=PromotionSource.DISCOUNT.value,
        discount_type=DiscountType.PERCENTAGE.value,
        discount_value=Decimal("10"),
        minimum_amount=Decimal("500"),
        maximum_discount=Decimal("300"),
        valid_from=now - timedelta(days=1),
        valid_to=now + timedelta(days=90),
        max_usage=1000,
        max_usage_per_user=2,
    )
    await promotions.create_promotion(
        name="첫 주문 ₹150 할인 쿠폰",
        code="WELCOME150",
        source=PromotionSource.COUPON.value,
        discount_type=DiscountType.FIXED.value,
        discount_value=Decimal("150"),
        minimum_amount=Decimal("999"),
        valid_from=now - timedelta(days=1),
        valid_to=now + timedelta(days=30),
        max_usage_per_user=1,
    )

    earbuds = catalog["products"]["Wireless Earbuds"]
    session.add_all(
        [
            Offer(
                name="이어버드 런칭 15% 할인",
                offer_type=OfferType.PRODUCT.value,
                discount_type=DiscountType.PERCENTAGE.value,
                discount_value=Decimal("15"),
                maximum_discount=Decimal("800"),
                valid_from=now - timedelta(days=1),
                valid_to=now + timedelta(days=60),
                products=[earbuds],
            ),
            Offer(
                name="의류 카테고리 ₹100 할인",
                offer_type=OfferType.CATEGORY.value,
                discount_type=DiscountType.FIXED.value,
                discount_value=Decimal("100"),
                minimum_amount=Decimal("500"),
                category_id=catalog["categories"]["apparel"].id,
                valid_from=now - timedelta(days=1),
                valid_to=now + timedelta(days=60),
            ),
            Offer(
                name="추천 보상 ₹200",
                offer_type=OfferType.REFERRAL.value,
                discount_type=DiscountType.FIXED.value,
                discount_value=Decimal("200"),
                minimum_amount=Decimal("1000"),
                valid_from=now - timedelta(days=1),
                valid_to=now + timedelta(days=365),
            ),
        ]
    )

    await session.commit()
    print("[SUCCESS] 프로모션/오퍼 생성 완료")


async def main():
    """메인 실행 함수"""
    print("[START] 시드 데이터 생성 시작")
    print(f"[INFO] 환경: {settings.ENV}")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("[SUCCESS] 데이터베이스 테이블 생성/확인 완료")

        async with AsyncSessionLocal() as session:
            result = await session.execute(select(User).limit(1))
            if result.scalar():
                print("[WARNING] 이미 데이터가 존재합니다.")

                response = input("기존 데이터를 삭제하고 새로 생성하시겠습니까? (y/N): ")
                if response.lower() != "y":
                    print("[SKIP] 시드 데이터 생성을 건너뜁니다.")
                    return

                print("[INFO] 기존 데이터 삭제 중...")
                # 외래 키 순서대로 삭제
                for table in SEED_TABLES:
                    await session.execute(text(f"DELETE FROM {table}"))
                await session.commit()
                print("[SUCCESS] 기존 데이터 삭제 완료")

            users = await create_users(session)
            catalog = await create_catalog(session)
            await create_promotions(session, catalog)

        print("[COMPLETE] 시드 데이터 생성 완료!")
        print("\n[개발용 액세스 토큰 (24시간)]")
        for email, user in users.items():
            token = JWTManager.create_access_token(
                {"sub": str(user.id), "role": user.role},
                expires_delta=timedelta(hours=24),
            )
            print(f"- {email} ({user.role}): {token}")

    except Exception as e:
        print(f"[ERROR] 시드 데이터 생성 실패: {e}")
        raise

    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
