"""
추천인(Referral) 서비스

목적: 추천 코드/링크 발급, 검증, 추천 완료 처리 및 보상 쿠폰 발급

추천 완료 흐름 (단일 트랜잭션):
1. 코드 또는 토큰으로 대기 중 추천 조회 (사용자 고정 코드면 추천을 즉시 생성)
2. 자기 추천 / 중복 추천 차단
3. 추천 완료 처리, 피추천인 연결, 추천인 누적 횟수/보상 증가
4. 활성 referral 오퍼 조건으로 추천인 전용 1회용 쿠폰 발급
"""

from datetime import timedelta
from decimal import Decimal
import secrets
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import Settings, get_settings
from storefront.models.base import utcnow
from storefront.models.offer import Offer
from storefront.models.promotion import DiscountType, Promotion, PromotionSource
from storefront.models.referral import Referral, ReferralStatus
from storefront.models.user import User
from storefront.services.offer_service import OfferService
from storefront.services.promotion_service import PromotionService
from storefront.utils.exceptions import ReferralException, ValidationException
from storefront.utils.logging import audit_logger, get_logger

logger = get_logger(__name__)

MAX_CODE_ATTEMPTS = 10


def reward_value(offer: Offer) -> Decimal:
    """추천인 누적 보상 금액 (정액은 할인 값, 정률은 최대 할인 금액)"""
    if offer.discount_type == DiscountType.FIXED.value:
        return Decimal(offer.discount_value)
    return Decimal(offer.maximum_discount or 0)


class ReferralService:
    """추천인 서비스"""

    def __init__(self, db_session: AsyncSession, settings: Optional[Settings] = None):
        self.db = db_session
        self.settings = settings or get_settings()
        self.offers = OfferService(db_session)
        self.promotions = PromotionService(db_session)

    async def _code_taken(self, code: str) -> bool:
        user_hit = await self.db.execute(select(User.id).where(User.referral_code == code))
        if user_hit.first() is not None:
            return True
        referral_hit = await self.db.execute(
            select(Referral.id).where(Referral.referral_code == code)
        )
        return referral_hit.first() is not None

    async def _new_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = Referral.generate_code()
            if not await self._code_taken(code):
                return code
        raise ReferralException(
            "추천 코드를 생성하지 못했습니다. 다시 시도해주세요.",
            reason="code_generation_failed",
        )

    async def generate_user_code(self, user: User) -> str:
        """
        사용자 고정 추천 코드 발급

        Raises:
            ReferralException: 이미 코드가 있는 경우
        """
        if user.referral_code:
            raise ReferralException("이미 추천 코드가 발급되었습니다.", reason="code_exists")

        try:
            user.referral_code = await self._new_code()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"추천 코드 발급: user_id={user.id}")
        return user.referral_code

    async def create_link(self, user: User) -> Referral:
        """대기 상태 추천 링크(코드 + 토큰) 생성"""
        now = utcnow()
        try:
            referral = Referral(
                referrer_id=user.id,
                referral_code=await self._new_code(),
                referral_token=Referral.generate_token(),
                status=ReferralStatus.PENDING.value,
                created_at=now,
                expires_at=now + timedelta(days=self.settings.REFERRAL_EXPIRY_DAYS),
            )
            self.db.add(referral)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return referral

    async def list_referrals(self, user: User) -> List[Referral]:
        result = await self.db.execute(
            select(Referral)
            .where(Referral.referrer_id == user.id)
            .order_by(Referral.created_at.desc())
        )
        return list(result.scalars().all())

    async def _find_pending(
        self, code: Optional[str], token: Optional[str], for_update: bool = False
    ) -> Optional[Referral]:
        """
        코드/토큰으로 대기 중 추천 조회

        만료 시각이 지난 추천은 expired 로 변경 후 커밋하고 오류를 발생시킵니다.
        """
        conditions = []
        if code:
            conditions.append(Referral.referral_code == code.strip().upper())
        if token:
            conditions.append(Referral.referral_token == token.strip())

        query = (
            select(Referral)
            .where(or_(*conditions))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        referral = result.scalars().first()
        if referral is None:
            return None

        if referral.status == ReferralStatus.PENDING.value and referral.is_expired():
            referral.status = ReferralStatus.EXPIRED.value
            await self.db.commit()

        if referral.status != ReferralStatus.PENDING.value:
            raise ReferralException(
                "만료되었거나 이미 사용된 추천 코드입니다.", reason=referral.status
            )
        return referral

    async def _find_user_by_code(self, code: Optional[str]) -> Optional[User]:
        if not code:
            return None
        result = await self.db.execute(
            select(User).where(User.referral_code == code.strip().upper())
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _require_input(code: Optional[str], token: Optional[str]) -> None:
        if not (code or "").strip() and not (token or "").strip():
            raise ValidationException(
                "추천 코드 또는 토큰을 입력해주세요.", field="referral_code"
            )

    async def validate(
        self, code: Optional[str] = None, token: Optional[str] = None
    ) -> dict:
        """
        추천 코드/토큰 유효성 확인 (대기 상태이며 만료되지 않은 경우만 유효)

        Returns:
            {"referrer_id", "referral_code", "expires_at"}
        """
        self._require_input(code, token)

        referral = await self._find_pending(code, token)
        if referral is not None:
            return {
                "referrer_id": referral.referrer_id,
                "referral_code": referral.referral_code,
                "expires_at": referral.expires_at,
            }

        referrer = await self._find_user_by_code(code)
        if referrer is None or referrer.is_blocked:
            raise ReferralException("유효하지 않은 추천 코드입니다.", reason="not_found")
        return {
            "referrer_id": referrer.id,
            "referral_code": referrer.referral_code,
            "expires_at": None,
        }

    async def process(
        self, user: User, code: Optional[str] = None, token: Optional[str] = None
    ) -> Referral:
        """
        추천 완료 처리 (호출자 = 피추천인)

        Raises:
            ReferralException: 자기 추천, 중복 추천, 만료/없는 코드, 추천 보상 오퍼 없음
        """
        self._require_input(code, token)

        if user.referred_by_id is not None:
            raise ReferralException("이미 추천인이 등록된 계정입니다.", reason="already_referred")

        now = utcnow()
        try:
            referral = await self._find_pending(code, token, for_update=True)
            if referral is None:
                referrer = await self._find_user_by_code(code)
                if referrer is None or referrer.is_blocked:
                    raise ReferralException(
                        "유효하지 않은 추천 코드입니다.", reason="not_found"
                    )
                referral = Referral(
                    referrer_id=referrer.id,
                    referral_code=await self._new_code(),
                    referral_token=Referral.generate_token(),
                    status=ReferralStatus.PENDING.value,
                    created_at=now,
                    expires_at=now + timedelta(days=self.settings.REFERRAL_EXPIRY_DAYS),
                )
                self.db.add(referral)

            if referral.referrer_id == user.id:
                raise ReferralException(
                    "본인의 추천 코드는 사용할 수 없습니다.", reason="self_referral"
                )

            offer = await self.offers.get_referral_offer()
            if offer is None:
                raise ReferralException(
                    "현재 추천 보상 프로그램이 진행 중이 아닙니다.", reason="no_referral_offer"
                )

            coupon: Promotion = await self.promotions.create_promotion(
                name=f"추천 보상 쿠폰 ({offer.name})",
                code=f"REF{secrets.token_hex(4).upper()}",
                source=PromotionSource.COUPON.value,
                description=offer.description,
                discount_type=offer.discount_type,
                discount_value=offer.discount_value,
                minimum_amount=offer.minimum_amount or Decimal("0"),
                maximum_discount=offer.maximum_discount,
                valid_from=now,
                valid_to=now + timedelta(days=self.settings.REFERRAL_COUPON_VALID_DAYS),
                max_usage=1,
                max_usage_per_user=1,
                owner_user_id=referral.referrer_id,
            )

            referral.referred_id = user.id
            referral.status = ReferralStatus.COMPLETED.value
            referral.completed_at = now
            referral.reward_claimed = True
            referral.reward_promotion_id = coupon.id

            user.referred_by_id = referral.referrer_id

            await self.db.execute(
                update(User)
                .where(User.id == referral.referrer_id)
                .values(
                    referral_count=User.referral_count + 1,
                    total_referral_rewards=User.total_referral_rewards
                    + reward_value(offer),
                )
                .execution_options(synchronize_session=False)
            )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        audit_logger.log_event(
            event_type="referral.completed",
            user_id=user.id,
            resource_type="referral",
            resource_id=referral.id,
            action="complete",
            details={
                "referrer_id": str(referral.referrer_id),
                "reward_promotion_id": str(coupon.id),
            },
        )
        return referral

    async def expire_stale(self) -> int:
        """만료 시각이 지난 대기 중 추천을 expired 로 변경, 변경 건수 반환"""
        try:
            result = await self.db.execute(
                update(Referral)
                .where(
                    Referral.status == ReferralStatus.PENDING.value,
                    Referral.expires_at < utcnow(),
                )
                .values(status=ReferralStatus.EXPIRED.value)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"만료된 추천 정리: count={result.rowcount}")
        return result.rowcount
