"""
추천(Referral) 모델

목적: 추천인과 (가입 예정) 피추천인을 연결하는 코드/토큰
"""

from enum import Enum
from sqlalchemy import (
    Column,
    String,
    DateTime,
    Boolean,
    ForeignKey,
    CheckConstraint,
    Uuid,
)
import secrets
import uuid

from .base import Base, utcnow


class ReferralStatus(str, Enum):
    """추천 상태"""

    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"


class Referral(Base):
    """추천 모델"""

    __tablename__ = "referrals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    referrer_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    referred_id = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    referral_code = Column(String(20), nullable=False, unique=True, index=True)
    referral_token = Column(String(80), nullable=False, unique=True, index=True)
    status = Column(String(20), nullable=False, default=ReferralStatus.PENDING.value)
    reward_claimed = Column(Boolean, nullable=False, default=False)
    reward_promotion_id = Column(
        Uuid, ForeignKey("promotions.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'completed', 'expired')",
            name="check_referral_status",
        ),
    )

    def __repr__(self):
        return f"<Referral(code={self.referral_code}, status={self.status})>"

    @staticmethod
    def generate_code() -> str:
        """8자리 대문자 16진수 코드"""
        return secrets.token_hex(4).upper()

    @staticmethod
    def generate_token() -> str:
        return secrets.token_hex(32)

    def is_expired(self, now=None) -> bool:
        return (now or utcnow()) > self.expires_at
