"""
주문 API 요청/응답 스키마
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from storefront.models.order import ItemStatus, OrderStatus, PaymentMethod, PaymentStatus


class OrderItemRequest(BaseModel):
    """주문 항목 (가격은 서버에서 계산)"""

    product_variant_id: UUID = Field(..., description="상품 옵션 ID")
    quantity: int = Field(..., ge=1, le=100, description="수량")


class ShippingAddressRequest(BaseModel):
    """배송지"""

    recipient_name: str = Field(..., min_length=1, max_length=100)
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("India", max_length=100)
    phone_number: str = Field(..., min_length=6, max_length=20)


class OnlinePaymentRequest(BaseModel):
    """온라인 결제 완료 정보 (게이트웨이 콜백 값)"""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class CreateOrderRequest(BaseModel):
    """주문 생성 요청"""

    items: List[OrderItemRequest] = Field(..., min_length=1)
    shipping_address: ShippingAddressRequest
    payment_method: PaymentMethod
    shipping: Decimal = Field(Decimal("0"), ge=0, description="배송비")
    discount_code: Optional[str] = Field(None, max_length=50)
    payment: Optional[OnlinePaymentRequest] = None
    expected_total: Optional[Decimal] = Field(
        None, ge=0, description="화면에 표시된 결제 금액 (불일치 시 주문 거절)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "items": [
                    {
                        "product_variant_id": "550e8400-e29b-41d4-a716-446655440000",
                        "quantity": 2,
                    }
                ],
                "shipping_address": {
                    "recipient_name": "Asha Rao",
                    "address_line1": "12 MG Road",
                    "city": "Bengaluru",
                    "state": "Karnataka",
                    "postal_code": "560001",
                    "country": "India",
                    "phone_number": "9876543210",
                },
                "payment_method": "cod",
                "shipping": "50.00",
                "discount_code": "SAVE10",
            }
        }


class CancelOrderRequest(BaseModel):
    """주문 취소 요청 (product_variant_ids 를 지정하면 부분 취소)"""

    reason: Optional[str] = Field(None, max_length=500)
    product_variant_ids: Optional[List[UUID]] = Field(None, min_length=1)


class ReturnItemRequest(BaseModel):
    product_variant_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class ReturnOrderRequest(BaseModel):
    """반품 요청"""

    items: List[ReturnItemRequest] = Field(..., min_length=1)


class RejectReturnRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ItemStatusUpdateRequest(BaseModel):
    """주문 항목 상태 변경 요청 (관리자)"""

    status: Optional[ItemStatus] = None
    payment_status: Optional[PaymentStatus] = None

    class Config:
        json_schema_extra = {"example": {"status": "delivered"}}


class OrderStatusUpdateRequest(BaseModel):
    """주문 상태 변경 요청 (관리자)"""

    status: OrderStatus = Field(..., description="새로운 주문 상태")
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v in (OrderStatus.RETURNED, OrderStatus.RETURN_VERIFIED, OrderStatus.REJECTED):
            raise ValueError("반품 관련 상태는 반품 API로만 변경할 수 있습니다")
        return v

    class Config:
        json_schema_extra = {"example": {"status": "shipped"}}


class OrderItemResponse(BaseModel):
    """주문 항목 응답"""

    id: UUID
    product_id: UUID
    product_variant_id: UUID
    product_name: str
    variant_name: Optional[str] = None
    quantity: int
    price: float
    item_status: str
    item_payment_status: str
    refunded_amount: Optional[float] = None
    cancellation_reason: Optional[str] = None
    return_reason: Optional[str] = None

    class Config:
        from_attributes = True


class OrderOfferResponse(BaseModel):
    offer_id: UUID
    offer_name: str
    product_variant_id: Optional[UUID] = None
    offer_amount: float

    class Config:
        from_attributes = True


class ShippingAddressResponse(BaseModel):
    recipient_name: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    phone_number: str


class DiscountSnapshotResponse(BaseModel):
    id: Optional[UUID] = None
    code: Optional[str] = None
    name: Optional[str] = None
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    amount: float


class OrderResponse(BaseModel):
    """주문 응답"""

    id: UUID
    order_number: str
    user_id: UUID
    status: str
    payment_method: str
    payment_status: str
    razorpay_order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    subtotal: float
    offer_total: float
    subtotal_after_discount: float
    shipping: float
    total: float
    discount: DiscountSnapshotResponse
    shipping_address: ShippingAddressResponse
    items: List[OrderItemResponse]
    offers: List[OrderOfferResponse]
    cancellation_reason: Optional[str] = None
    return_rejection_reason: Optional[str] = None
    return_verified_by: Optional[UUID] = None
    return_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            razorpay_order_id=order.razorpay_order_id,
            transaction_id=order.transaction_id,
            subtotal=order.subtotal,
            offer_total=order.offer_total,
            subtotal_after_discount=order.subtotal_after_discount,
            shipping=order.shipping,
            total=order.total,
            discount=DiscountSnapshotResponse(
                id=order.discount_id,
                code=order.discount_code,
                name=order.discount_name,
                discount_type=order.discount_type,
                discount_value=order.discount_value,
                amount=order.discount_amount,
            ),
            shipping_address=ShippingAddressResponse(
                recipient_name=order.shipping_recipient_name,
                address_line1=order.shipping_address_line1,
                address_line2=order.shipping_address_line2,
                city=order.shipping_city,
                state=order.shipping_state,
                postal_code=order.shipping_postal_code,
                country=order.shipping_country,
                phone_number=order.shipping_phone_number,
            ),
            items=[OrderItemResponse.model_validate(i) for i in order.items],
            offers=[OrderOfferResponse.model_validate(o) for o in order.offers],
            cancellation_reason=order.cancellation_reason,
            return_rejection_reason=order.return_rejection_reason,
            return_verified_by=order.return_verified_by,
            return_verified_at=order.return_verified_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total_count: int
    page: int
    page_size: int


class ReturnVerificationResponse(BaseModel):
    """반품 검수 결과"""

    order: OrderResponse
    refund_amount: float
