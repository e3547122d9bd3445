"""
지갑 API 엔드포인트

잔액/거래 내역 조회, 직접 충전(개발 환경), 게이트웨이 충전 주문 생성 및 검증
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.schemas.wallet_schemas import (
    AddFundsRequest,
    TopupOrderRequest,
    TopupOrderResponse,
    TopupVerifyRequest,
    TopupVerifyResponse,
    WalletResponse,
    WalletTransactionListResponse,
    WalletTransactionResponse,
)
from storefront.config import Settings, get_settings
from storefront.middleware.auth import get_current_user
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.services.payment_gateway import RazorpayGateway, get_payment_gateway
from storefront.services.wallet_service import WalletService


router = APIRouter(prefix="/v1/wallet", tags=["지갑"])

RECENT_TRANSACTION_LIMIT = 20


async def _wallet_response(service: WalletService, user: User) -> WalletResponse:
    wallet = await service.get_wallet(user.id)
    transactions = await service.list_transactions(user.id, limit=RECENT_TRANSACTION_LIMIT)
    return WalletResponse(
        id=wallet.id,
        balance=wallet.balance,
        max_balance=service.settings.WALLET_MAX_BALANCE,
        currency=service.settings.CURRENCY,
        transactions=[WalletTransactionResponse.model_validate(t) for t in transactions],
    )


@router.get("", response_model=WalletResponse)
async def get_wallet(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """지갑 잔액 및 최근 거래 내역 (지갑이 없으면 잔액 0으로 생성)"""
    return await _wallet_response(WalletService(db, settings), current_user)


@router.get("/transactions", response_model=WalletTransactionListResponse)
async def list_transactions(
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """전체 거래 내역 (최신순)"""
    transactions = await WalletService(db, settings).list_transactions(
        current_user.id, limit=limit
    )
    return WalletTransactionListResponse(
        transactions=[WalletTransactionResponse.model_validate(t) for t in transactions]
    )


@router.post("/add-funds", response_model=WalletResponse)
async def add_funds(
    request: AddFundsRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """
    직접 충전 (게이트웨이 없이 입금)

    `WALLET_DIRECT_TOPUP_ENABLED` 이고 프로덕션이 아닌 환경에서만 사용할 수 있습니다.
    """
    service = WalletService(db, settings)
    await service.add_funds(current_user.id, request.amount, request.description)
    return await _wallet_response(service, current_user)


@router.post(
    "/razorpay/order",
    response_model=TopupOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_topup_order(
    request: TopupOrderRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    current_user: User = Depends(get_current_user),
):
    """
    게이트웨이 충전 주문 생성

    **오류 케이스**:
    - `400`: 충전 금액 범위 초과, 충전 후 최대 잔액 초과
    - `502`: 결제 게이트웨이 통신 실패
    """
    service = WalletService(db, settings)
    result = await service.create_topup_order(current_user.id, request.amount, gateway)
    return TopupOrderResponse(**result)


@router.post("/razorpay/verify", response_model=TopupVerifyResponse)
async def verify_topup(
    request: TopupVerifyRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    current_user: User = Depends(get_current_user),
):
    """
    게이트웨이 결제 검증 후 지갑 입금

    **오류 케이스**:
    - `400`: 서명 불일치, 결제 미완료, 금액/주문 불일치
    - `409`: 이미 입금된 결제
    """
    service = WalletService(db, settings)
    transaction = await service.verify_topup(
        current_user.id,
        order_id=request.razorpay_order_id,
        payment_id=request.razorpay_payment_id,
        signature=request.razorpay_signature,
        gateway=gateway,
    )
    return TopupVerifyResponse(
        balance=transaction.balance_after,
        transaction=WalletTransactionResponse.model_validate(transaction),
    )
