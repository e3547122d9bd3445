"""
Prometheus 메트릭 미들웨어

모든 HTTP 요청의 요청 수, 처리 시간, 동시 처리 수, 오류 상태 코드를 수집합니다.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from storefront.utils.prometheus_metrics import (
    errors_total,
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Prometheus 메트릭을 수집하는 미들웨어"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # /metrics 자체는 수집 대상에서 제외
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = self._get_endpoint_template(request)

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as e:
            errors_total.labels(error_type=type(e).__name__, severity="critical").inc()
            raise
        finally:
            duration = time.perf_counter() - start_time

            http_requests_total.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            http_request_duration_seconds.labels(
                method=method, endpoint=endpoint
            ).observe(duration)
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()

            if status_code >= 400:
                severity = "warning" if status_code < 500 else "error"
                errors_total.labels(
                    error_type=f"http_{status_code}", severity=severity
                ).inc()

    @staticmethod
    def _get_endpoint_template(request: Request) -> str:
        """
        라우트 경로 템플릿 (카디널리티 제한)

        예: /v1/orders/550e8400-... -> /v1/orders/{order_id}
        """
        for route in request.app.router.routes:
            match, _ = route.matches(request.scope)
            if match == Match.FULL:
                return route.path
        return request.url.path
