"""
주문 API 엔드포인트

주문 생성, 조회, 취소, 반품 요청 REST API
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.schemas.order_schemas import (
    CancelOrderRequest,
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
    ReturnOrderRequest,
)
from storefront.config import Settings, get_settings
from storefront.middleware.auth import get_current_user
from storefront.models.base import get_db
from storefront.models.order import OrderStatus
from storefront.models.user import User
from storefront.services.order_service import OrderService
from storefront.services.payment_gateway import RazorpayGateway, get_payment_gateway


router = APIRouter(prefix="/v1/orders", tags=["주문"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    current_user: User = Depends(get_current_user),
):
    """
    주문 생성

    가격, 오퍼, 할인, 합계는 모두 서버에서 계산합니다.

    **결제 수단**:
    - `cod`: 착불 (금액 한도, 제한 지역 확인)
    - `online`: 게이트웨이 결제 완료 후 서명과 함께 요청 (결제 금액 = 주문 합계, 결제 ID 1회만 사용)
    - `wallet`: 지갑 잔액에서 즉시 차감

    **오류 케이스**:
    - `400`: 재고 부족, 착불 불가, 할인 코드 조건 미충족, 서명 불일치, 잔액 부족, 금액 변경
    - `404`: 상품 옵션 또는 할인 코드 없음
    - `409`: 이미 다른 주문에 사용된 결제
    """
    service = OrderService(db, settings, gateway=gateway)
    order = await service.place_order(
        user=current_user,
        items=[item.model_dump() for item in request.items],
        shipping_address=request.shipping_address.model_dump(),
        payment_method=request.payment_method.value,
        shipping=request.shipping,
        discount_code=request.discount_code,
        payment=request.payment.model_dump() if request.payment else None,
        expected_total=request.expected_total,
    )
    return OrderResponse.from_order(order)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="주문 상태 필터"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """내 주문 목록 (최신순)"""
    service = OrderService(db)
    orders, total = await service.list_orders(
        current_user.id,
        status=status_filter.value if status_filter else None,
        page=page,
        page_size=page_size,
    )
    return OrderListResponse(
        orders=[OrderResponse.from_order(o) for o in orders],
        total_count=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """내 주문 상세 (다른 사용자의 주문은 404)"""
    service = OrderService(db)
    order = await service.get_order(order_id, user_id=current_user.id)
    return OrderResponse.from_order(order)


@router.patch("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: UUID,
    request: Optional[CancelOrderRequest] = None,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """
    주문 취소

    `product_variant_ids` 를 지정하면 해당 항목만 취소합니다.
    선결제(online/wallet) 주문은 취소된 항목의 환불액이 지갑으로 입금됩니다.
    """
    request = request or CancelOrderRequest()
    service = OrderService(db, settings)
    order = await service.cancel_order(
        order_id,
        current_user,
        reason=request.reason,
        product_variant_ids=request.product_variant_ids,
    )
    return OrderResponse.from_order(order)


@router.post("/{order_id}/return", response_model=OrderResponse)
async def request_return(
    order_id: UUID,
    request: ReturnOrderRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """
    반품 요청

    배송 완료된 항목만 요청할 수 있으며, 환불은 관리자 검수 후 처리됩니다.
    """
    service = OrderService(db, settings)
    order = await service.request_return(
        order_id,
        current_user,
        items=[item.model_dump() for item in request.items],
    )
    return OrderResponse.from_order(order)
