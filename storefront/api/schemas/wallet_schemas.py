"""
지갑 API 요청/응답 스키마
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WalletTransactionResponse(BaseModel):
    id: UUID
    type: str
    amount: float
    balance_after: float
    description: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[UUID] = None
    order_item_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletResponse(BaseModel):
    """지갑 잔액 + 최근 거래 내역"""

    id: UUID
    balance: float
    max_balance: float
    currency: str
    transactions: List[WalletTransactionResponse]


class WalletTransactionListResponse(BaseModel):
    transactions: List[WalletTransactionResponse]


class AddFundsRequest(BaseModel):
    """직접 충전 요청 (개발/테스트 환경 전용)"""

    amount: Decimal = Field(..., gt=0, description="충전 금액")
    description: Optional[str] = Field(None, max_length=255)

    class Config:
        json_schema_extra = {"example": {"amount": "500.00"}}


class TopupOrderRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="충전 금액 (루피 단위, 게이트웨이에는 paise로 전달)")


class TopupOrderResponse(BaseModel):
    order_id: str
    amount: float
    currency: str
    key_id: str


class TopupVerifyRequest(BaseModel):
    """게이트웨이 결제 완료 정보"""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class TopupVerifyResponse(BaseModel):
    balance: float
    transaction: WalletTransactionResponse
