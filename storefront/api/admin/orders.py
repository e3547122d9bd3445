"""
관리자 주문 관리 API

반품 검수/거절, 주문 및 항목 상태 변경, 주문 조회/삭제
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.schemas.order_schemas import (
    ItemStatusUpdateRequest,
    OrderResponse,
    OrderStatusUpdateRequest,
    RejectReturnRequest,
    ReturnVerificationResponse,
)
from storefront.config import Settings, get_settings
from storefront.middleware.auth import require_admin
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.services.order_service import OrderService


router = APIRouter(prefix="/v1/admin/orders", tags=["Admin - Orders"])


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """주문 상세 (소유자 제한 없음)"""
    order = await OrderService(db).get_order(order_id)
    return OrderResponse.from_order(order)


@router.put("/{order_id}/verify-return", response_model=ReturnVerificationResponse)
async def verify_return(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_admin),
):
    """
    반품 검수 승인 + 환불

    반품 항목의 환불액을 고객 지갑으로 입금하고 주문을 `return_verified` 로 변경합니다.
    """
    service = OrderService(db, settings)
    order, refund_amount = await service.verify_return(order_id, current_user, refund=True)
    return ReturnVerificationResponse(
        order=OrderResponse.from_order(order), refund_amount=refund_amount
    )


@router.put(
    "/{order_id}/verify-return-no-refund", response_model=ReturnVerificationResponse
)
async def verify_return_without_refund(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_admin),
):
    """반품 검수 승인 (환불 없음)"""
    service = OrderService(db, settings)
    order, refund_amount = await service.verify_return(order_id, current_user, refund=False)
    return ReturnVerificationResponse(
        order=OrderResponse.from_order(order), refund_amount=refund_amount
    )


@router.put("/{order_id}/reject-return", response_model=OrderResponse)
async def reject_return(
    order_id: UUID,
    request: RejectReturnRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """반품 거절 (금전 이동 없음)"""
    order = await OrderService(db).reject_return(order_id, current_user, request.reason)
    return OrderResponse.from_order(order)


@router.put("/{order_id}/items/{item_id}/status", response_model=OrderResponse)
async def update_item_status(
    order_id: UUID,
    item_id: UUID,
    request: ItemStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_admin),
):
    """
    주문 항목 상태/결제 상태 변경

    - `payment_status=refunded`: 항목당 1회만 환불 (재요청 시 400)
    - `status=cancelled`: 재고 복원, 선결제 주문은 환불
    """
    service = OrderService(db, settings)
    order = await service.update_item_status(
        order_id,
        item_id,
        current_user,
        status=request.status.value if request.status else None,
        payment_status=request.payment_status.value if request.payment_status else None,
    )
    return OrderResponse.from_order(order)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: UUID,
    request: OrderStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_admin),
):
    """
    주문 상태 변경

    pending → confirmed → processing → shipped → delivered 순서로만 변경 가능하며,
    `cancelled` 는 취소 가능한 모든 항목을 취소합니다.
    """
    service = OrderService(db, settings)
    order = await service.update_order_status(
        order_id, current_user, request.status.value, reason=request.reason
    )
    return OrderResponse.from_order(order)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """주문 영구 삭제 (재고/환불 처리 없음)"""
    await OrderService(db).delete_order(order_id, current_user)
