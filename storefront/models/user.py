"""
사용자(User) 모델

목적: 플랫폼에 가입한 고객 및 관리자 계정 (계정 발급/로그인은 인증 서비스 담당)
"""

from enum import Enum
from sqlalchemy import (
    Column,
    String,
    DateTime,
    Integer,
    DECIMAL,
    ForeignKey,
    Uuid,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
import uuid

from .base import Base, utcnow


class UserRole(str, Enum):
    """사용자 역할"""

    CUSTOMER = "customer"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """계정 상태"""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class User(Base):
    """사용자 모델"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    role = Column(String(50), nullable=False, default=UserRole.CUSTOMER.value)
    status = Column(
        String(50),
        nullable=False,
        default=UserStatus.ACTIVE.value,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # 추천인 정보
    referral_code = Column(String(20), unique=True, nullable=True)
    referred_by_id = Column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    referral_count = Column(Integer, nullable=False, default=0)
    total_referral_rewards = Column(DECIMAL(10, 2), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("role IN ('customer', 'admin')", name="check_user_role"),
        CheckConstraint(
            "status IN ('active', 'suspended', 'deleted')", name="check_user_status"
        ),
    )

    # 관계
    orders = relationship("Order", back_populates="user", lazy="noload")
    wallet = relationship("Wallet", back_populates="user", uselist=False, lazy="noload")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_blocked(self) -> bool:
        """정지/탈퇴 계정 여부"""
        return self.status != UserStatus.ACTIVE.value
