"""
Sentry 에러 트래킹 설정

- 예외 자동 캡처 및 전송
- 성능 트랜잭션 추적
- 결제 서명/토큰 등 민감 정보 자동 마스킹
- 환경별 샘플링 비율 조정
"""

import logging
import re

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.logging import LoggingIntegration


# 민감 키워드 목록
SENSITIVE_KEYS = [
    "password",
    "token",
    "api_key",
    "secret",
    "signature",
    "authorization",
]


def init_sentry(
    dsn: str = None,
    environment: str = "development",
    release: str = "1.0.0",
    traces_sample_rate: float = 1.0,
) -> bool:
    """
    Sentry SDK 초기화

    Args:
        dsn: Sentry DSN. 없으면 초기화하지 않음 (로컬 개발)
        environment: 환경 이름 (development, staging, production)
        release: 릴리스 버전
        traces_sample_rate: 트랜잭션 샘플링 비율 (0.0 ~ 1.0)

    Returns:
        bool: 초기화 여부
    """
    if not dsn:
        logging.info("Sentry DSN이 설정되지 않았습니다. Sentry 모니터링이 비활성화됩니다.")
        return False

    if environment == "production":
        traces_sample_rate = min(traces_sample_rate, 0.1)
    elif environment == "staging":
        traces_sample_rate = min(traces_sample_rate, 0.5)

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=traces_sample_rate,
        release=release,
        send_default_pii=False,
        before_send=before_send_filter,
        before_breadcrumb=before_breadcrumb_filter,
        max_breadcrumbs=50,
        attach_stacktrace=True,
    )

    logging.info(
        f"Sentry 초기화 완료: environment={environment}, "
        f"traces_sample_rate={traces_sample_rate}"
    )
    return True


def before_send_filter(event, hint):
    """
    이벤트 전송 전 필터링 및 민감 정보 마스킹
    """
    if "request" in event:
        request = event["request"]

        if "data" in request:
            request["data"] = mask_sensitive_data(request["data"])

        if "headers" in request:
            request["headers"] = mask_sensitive_data(request["headers"])

    if "extra" in event:
        event["extra"] = mask_sensitive_data(event["extra"])

    return event


def before_breadcrumb_filter(crumb, hint):
    """SQL 쿼리 breadcrumb 에서 민감 정보 제거"""
    if crumb.get("category") == "query" and "message" in crumb:
        crumb["message"] = mask_sql_query(crumb["message"])
    return crumb


def mask_sensitive_data(data):
    """
    민감 데이터 마스킹 (재귀적)

    키 이름에 민감 키워드가 포함되면 값을 "[Filtered]" 로 치환합니다.
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if any(sensitive in str(key).lower() for sensitive in SENSITIVE_KEYS):
                masked[key] = "[Filtered]"
            else:
                masked[key] = mask_sensitive_data(value)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]

    return data


def mask_sql_query(query: str) -> str:
    """SQL 쿼리에서 결제 식별자/서명 리터럴 마스킹"""
    return re.sub(
        r"(razorpay_\w+|transaction_id|payment_id)\s*=\s*'[^']*'",
        r"\1='[Filtered]'",
        query,
        flags=re.IGNORECASE,
    )
