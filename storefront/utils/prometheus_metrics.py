"""
Prometheus 메트릭 수집 유틸리티

주요 메트릭:
- HTTP 요청 수 및 응답 시간 (Counter, Histogram)
- 주문/환불/지갑/프로모션 비즈니스 이벤트 (Counter)
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
)


# 커스텀 레지스트리 (기본 메트릭 제외)
registry = CollectorRegistry()

# ===========================
# 애플리케이션 정보
# ===========================
app_info = Info(
    "storefront_app",
    "Storefront Backend Application Info",
    registry=registry,
)
app_info.info({"version": "1.0.0", "service": "storefront-backend"})

# ===========================
# HTTP 요청 메트릭
# ===========================
http_requests_total = Counter(
    "storefront_http_requests_total",
    "전체 HTTP 요청 수",
    ["method", "endpoint", "status_code"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "storefront_http_request_duration_seconds",
    "HTTP 요청 처리 시간 (초)",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 10.0),
    registry=registry,
)

http_requests_in_progress = Gauge(
    "storefront_http_requests_in_progress",
    "현재 처리 중인 HTTP 요청 수",
    ["method", "endpoint"],
    registry=registry,
)

errors_total = Counter(
    "storefront_errors_total",
    "에러 발생 수",
    ["error_type", "severity"],
    registry=registry,
)

# ===========================
# 주문 메트릭
# ===========================
orders_total = Counter(
    "storefront_orders_total",
    "주문 이벤트 수",
    ["status", "payment_method"],  # placed, cancelled, returned, return_verified
    registry=registry,
)

order_items_total = Counter(
    "storefront_order_items_total",
    "주문된 항목 수",
    registry=registry,
)

# ===========================
# 환불 / 지갑 메트릭
# ===========================
refunds_total = Counter(
    "storefront_refunds_total",
    "지갑 환불 건수",
    ["reason"],  # cancel, admin, return
    registry=registry,
)

refund_amount_total = Counter(
    "storefront_refund_amount_total",
    "지갑 환불 총액",
    ["reason"],
    registry=registry,
)

wallet_operations_total = Counter(
    "storefront_wallet_operations_total",
    "지갑 입출금 건수",
    ["type"],  # credit, debit
    registry=registry,
)

# ===========================
# 프로모션 메트릭
# ===========================
promotion_redemptions_total = Counter(
    "storefront_promotion_redemptions_total",
    "할인 코드 사용 건수",
    ["source"],  # discount, coupon
    registry=registry,
)


def get_metrics() -> bytes:
    """Prometheus 텍스트 포맷으로 메트릭 직렬화"""
    return generate_latest(registry)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def record_order(status: str, payment_method: str, item_count: int = 0):
    """주문 이벤트 기록"""
    orders_total.labels(status=status, payment_method=payment_method).inc()
    if item_count:
        order_items_total.inc(item_count)


def record_refund(reason: str, amount: float):
    """지갑 환불 기록"""
    refunds_total.labels(reason=reason).inc()
    refund_amount_total.labels(reason=reason).inc(amount)


def record_wallet_operation(operation_type: str):
    wallet_operations_total.labels(type=operation_type).inc()


def record_promotion_redemption(source: str):
    promotion_redemptions_total.labels(source=source).inc()
