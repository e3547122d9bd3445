"""
커스텀 예외 클래스 정의

애플리케이션 전역에서 사용하는 예외 클래스를 정의합니다.
모든 예외는 main.py 의 전역 핸들러에서 {"error", "message", "details"} 형태로 응답됩니다.
"""

from decimal import Decimal
from typing import Optional, Any
from fastapi import status


class AppException(Exception):
    """
    애플리케이션 기본 예외 클래스

    모든 커스텀 예외는 이 클래스를 상속받습니다.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "app_error",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppException):
    """
    입력 검증 실패 예외

    사용자 입력이 유효하지 않을 때 발생합니다.
    """

    def __init__(
        self,
        message: str = "입력 데이터가 유효하지 않습니다.",
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if field:
            details = details or {}
            details["field"] = field

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error",
            details=details,
        )


class NotFoundException(AppException):
    """
    리소스를 찾을 수 없을 때 발생하는 예외
    """

    def __init__(
        self,
        resource: str = "리소스",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            if resource_id:
                message = f"{resource}를 찾을 수 없습니다 (ID: {resource_id})"
            else:
                message = f"{resource}를 찾을 수 없습니다."

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="not_found",
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedException(AppException):
    """
    인증 실패 예외 (401 Unauthorized)
    """

    def __init__(self, message: str = "인증에 실패했습니다."):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="unauthorized",
        )


class ForbiddenException(AppException):
    """
    권한 부족 예외 (403 Forbidden)
    """

    def __init__(self, message: str = "접근 권한이 없습니다."):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="forbidden",
        )


class ConflictException(AppException):
    """
    리소스 충돌 예외 (409 Conflict)

    예: 동시 수정으로 인한 지갑 버전 충돌, 이미 적립된 결제 건
    """

    def __init__(
        self,
        message: str = "요청이 현재 서버 상태와 충돌합니다.",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="conflict",
            details=details,
        )


class BusinessRuleException(AppException):
    """
    비즈니스 규칙 위반 예외 (400 Bad Request)

    예: 재고 부족, 착불 불가, 쿠폰 한도 초과 등
    """

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if rule:
            details = details or {}
            details["rule"] = rule

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="business_rule_violation",
            details=details,
        )


class ExternalServiceException(AppException):
    """
    외부 서비스 통신 실패 예외

    예: 결제 게이트웨이 연결 실패
    """

    def __init__(
        self,
        service: str,
        message: str = "외부 서비스 요청에 실패했습니다.",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        details["service"] = service

        super().__init__(
            message=message,
            status_code=status_code,
            error_code="external_service_error",
            details=details,
        )


# 주문/재고 관련 예외


class OrderNotFoundException(NotFoundException):
    """주문을 찾을 수 없을 때"""

    def __init__(self, order_id: str):
        super().__init__(resource="주문", resource_id=str(order_id))


class ProductVariantNotFoundException(NotFoundException):
    """상품 옵션을 찾을 수 없거나 삭제된 경우"""

    def __init__(self, variant_id: str):
        super().__init__(resource="상품 옵션", resource_id=str(variant_id))


class OutOfStockException(BusinessRuleException):
    """재고 부족 예외"""

    def __init__(self, product_name: str, requested: int = 0):
        super().__init__(
            message=f"'{product_name}' 상품의 재고가 부족합니다.",
            rule="stock_available",
            details={"product": product_name, "requested": requested},
        )


class CODNotAvailableException(BusinessRuleException):
    """착불 결제 불가 (금액 한도 초과 또는 제한 지역)"""

    def __init__(self, message: str, reason: str):
        super().__init__(
            message=message,
            rule="cod_available",
            details={"reason": reason},
        )


class InvalidOrderStateException(BusinessRuleException):
    """현재 주문 상태에서 허용되지 않는 작업"""

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(
            message=message,
            rule="order_state",
            details={"current_status": current_status},
        )


class IneligibleOrderItemException(BusinessRuleException):
    """취소/반품 대상이 될 수 없는 주문 항목"""

    def __init__(self, message: str, item_ids: Optional[list] = None):
        super().__init__(
            message=message,
            rule="item_eligible",
            details={"items": [str(i) for i in (item_ids or [])]},
        )


class AlreadyRefundedException(BusinessRuleException):
    """이미 환불된 주문 항목"""

    def __init__(self, item_id: str):
        super().__init__(
            message="이미 환불 처리된 주문 항목입니다.",
            rule="refund_once",
            details={"item_id": str(item_id)},
        )


class PriceChangedException(BusinessRuleException):
    """클라이언트가 보여준 금액과 서버 계산 금액 불일치"""

    def __init__(self, expected: Decimal, actual: Decimal):
        super().__init__(
            message="주문 금액이 변경되었습니다. 다시 확인해주세요.",
            rule="price_changed",
            details={"expected_total": str(expected), "actual_total": str(actual)},
        )


# 프로모션/오퍼 관련 예외


class PromotionNotFoundException(NotFoundException):
    """유효한 할인 코드를 찾을 수 없음"""

    def __init__(self, code: str):
        super().__init__(
            resource="할인 코드",
            resource_id=code,
            message="유효하지 않거나 만료된 할인 코드입니다.",
        )


class MinimumAmountNotMetException(BusinessRuleException):
    """최소 주문 금액 미달"""

    def __init__(self, minimum_amount: Decimal):
        super().__init__(
            message=f"이 할인 코드는 최소 주문 금액 ₹{minimum_amount} 이상에서 사용할 수 있습니다.",
            rule="minimum_amount",
            details={"minimum_amount": str(minimum_amount)},
        )


class GlobalUsageExceededException(BusinessRuleException):
    """전체 사용 한도 초과"""

    def __init__(self, code: str):
        super().__init__(
            message="할인 코드 사용 한도에 도달했습니다.",
            rule="global_usage_limit",
            details={"code": code},
        )


class PerUserUsageExceededException(BusinessRuleException):
    """사용자별 사용 한도 초과"""

    def __init__(self, code: str):
        super().__init__(
            message="이 할인 코드의 1인당 사용 한도에 도달했습니다.",
            rule="per_user_usage_limit",
            details={"code": code},
        )


class OfferUnavailableException(BusinessRuleException):
    """주문 처리 중 오퍼 사용 한도가 소진됨"""

    def __init__(self, offer_name: str):
        super().__init__(
            message=f"'{offer_name}' 오퍼를 더 이상 사용할 수 없습니다.",
            rule="offer_usage_limit",
            details={"offer": offer_name},
        )


# 지갑/결제 관련 예외


class InvalidAmountException(BusinessRuleException):
    """금액이 0 이하이거나 허용 범위를 벗어남"""

    def __init__(self, message: str = "금액은 0보다 커야 합니다.", amount=None):
        super().__init__(
            message=message,
            rule="amount_positive",
            details={"amount": str(amount)} if amount is not None else None,
        )


class BalanceCapExceededException(BusinessRuleException):
    """지갑 최대 잔액 초과"""

    def __init__(self, cap: Decimal, balance: Decimal):
        super().__init__(
            message=f"지갑 잔액은 ₹{cap} 를 초과할 수 없습니다.",
            rule="wallet_balance_cap",
            details={"cap": str(cap), "current_balance": str(balance)},
        )


class InsufficientBalanceException(BusinessRuleException):
    """지갑 잔액 부족"""

    def __init__(self, balance: Decimal, requested: Decimal):
        super().__init__(
            message="지갑 잔액이 부족합니다.",
            rule="wallet_sufficient_balance",
            details={"current_balance": str(balance), "requested": str(requested)},
        )


class PaymentSignatureException(AppException):
    """결제 서명 검증 실패 (절대 통과시키지 않음)"""

    def __init__(self, message: str = "결제 서명 검증에 실패했습니다."):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="payment_signature_invalid",
        )


class PaymentVerificationException(BusinessRuleException):
    """게이트웨이 결제 상태/금액 확인 실패"""

    def __init__(self, message: str, reason: str):
        super().__init__(
            message=message,
            rule="payment_verified",
            details={"reason": reason},
        )


class PaymentGatewayException(ExternalServiceException):
    """결제 게이트웨이 통신 오류 (상세 오류는 로그에만 남김)"""

    def __init__(self, operation: str):
        super().__init__(
            service="payment_gateway",
            message="결제 서비스와 통신 중 오류가 발생했습니다. 잠시 후 다시 시도해주세요.",
            details={"operation": operation},
        )


class ReferralException(BusinessRuleException):
    """추천 코드 검증/처리 실패"""

    def __init__(self, message: str, reason: str):
        super().__init__(message=message, rule="referral", details={"reason": reason})
