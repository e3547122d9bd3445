"""
지갑(Wallet) 및 지갑 거래 내역(WalletTransaction) 모델

목적: 사용자별 적립금 잔액과 입출금 원장
- 잔액은 항상 거래 내역 합계(입금 +, 출금 -)와 일치해야 함
- version_id 를 이용한 낙관적 잠금으로 동시 갱신 시 유실을 방지
"""

from enum import Enum
from sqlalchemy import (
    Column,
    String,
    DECIMAL,
    Integer,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship
import uuid

from .base import Base, utcnow


class TransactionType(str, Enum):
    """거래 유형"""

    CREDIT = "credit"  # 입금 (환불, 충전, 보상)
    DEBIT = "debit"  # 출금 (지갑 결제)


class Wallet(Base):
    """지갑 모델 (사용자당 1개)"""

    __tablename__ = "wallets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    balance = Column(DECIMAL(12, 2), nullable=False, default=0)
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="wallet", lazy="noload")
    transactions = relationship(
        "WalletTransaction",
        back_populates="wallet",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="check_wallet_balance_non_negative"),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self):
        return f"<Wallet(user_id={self.user_id}, balance={self.balance})>"


class WalletTransaction(Base):
    """지갑 거래 내역 (추가만 가능)"""

    __tablename__ = "wallet_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id = Column(
        Uuid,
        ForeignKey("wallets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(10), nullable=False)
    amount = Column(DECIMAL(12, 2), nullable=False)
    balance_after = Column(DECIMAL(12, 2), nullable=False)
    description = Column(String(500), nullable=False)
    payment_id = Column(String(100), nullable=True, unique=True)
    order_id = Column(Uuid, nullable=True)
    order_item_id = Column(Uuid, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    wallet = relationship("Wallet", back_populates="transactions", lazy="noload")

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_wallet_tx_amount_positive"),
        CheckConstraint("type IN ('credit', 'debit')", name="check_wallet_tx_type"),
        Index("idx_wallet_tx_wallet_created", "wallet_id", "created_at"),
    )

    def __repr__(self):
        return f"<WalletTransaction(type={self.type}, amount={self.amount})>"
