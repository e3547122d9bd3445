"""
로깅 설정 및 민감 데이터 자동 마스킹

결제 서명, 토큰, 연락처 등 민감 정보를 로그에서 자동으로 마스킹하고,
환불/지갑 입출금 같은 금전 이벤트는 감사 로그(audit)로 별도 기록합니다.
"""

import json
import logging
import os
import re
from datetime import datetime
from typing import Optional


class SensitiveDataFilter(logging.Filter):
    """
    민감 데이터 자동 마스킹 필터

    로그에 출력되는 민감 정보를 자동으로 마스킹합니다.
    """

    # 마스킹할 필드 패턴
    SENSITIVE_PATTERNS = {
        # JWT 토큰: "token": "eyJ..." → "token": "***"
        "token": (
            r'"(token|access_token|refresh_token)"\s*:\s*"[^"]*"',
            r'"\1": "***"',
        ),
        # Bearer 헤더
        "bearer": (
            r"(Bearer\s+)[A-Za-z0-9\-_\.]+",
            r"\1***",
        ),
        # 결제 서명/시크릿: "razorpay_signature": "ab12.." → "***"
        "signature": (
            r'"(razorpay_signature|signature|key_secret|secret)"\s*:\s*"[^"]*"',
            r'"\1": "***"',
        ),
        # 이메일 일부 마스킹: user@example.com → u***@example.com
        "email": (
            r"\b([a-zA-Z0-9._%+-])[a-zA-Z0-9._%+-]*@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b",
            r"\1***@\2",
        ),
        # 휴대폰 번호(10자리): 9876543210 → 98******10
        "phone": (
            r"\b([6-9]\d)\d{6}(\d{2})\b",
            r"\1******\2",
        ),
    }

    def filter(self, record: logging.LogRecord) -> bool:
        """
        로그 레코드를 필터링하여 민감 데이터 마스킹

        Returns:
            bool: 항상 True (필터 통과)
        """
        if isinstance(record.msg, str):
            record.msg = self.mask_sensitive_data(record.msg)

        if record.args:
            record.args = tuple(
                self.mask_sensitive_data(str(arg)) for arg in record.args
            )

        return True

    def mask_sensitive_data(self, text: str) -> str:
        """
        민감 데이터 마스킹

        Args:
            text: 마스킹할 텍스트

        Returns:
            str: 마스킹된 텍스트
        """
        for pattern, replacement in self.SENSITIVE_PATTERNS.values():
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)

        return text


class JSONFormatter(logging.Formatter):
    """
    JSON 형식 로그 포맷터

    구조화된 로그를 위해 JSON 형식으로 출력합니다.
    """

    # LogRecord 기본 속성 (extra 로 전달된 값과 구분하기 위함)
    RESERVED_ATTRS = set(
        logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # extra 로 전달된 컨텍스트 정보
        for key, value in record.__dict__.items():
            if key not in self.RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    전역 로깅 설정

    Args:
        log_level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 로그 포맷 ("json" 또는 "text")
        log_file: 로그 파일 경로 (None이면 콘솔만)
    """
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")
    log_format = log_format or os.getenv("LOG_FORMAT", "json")
    log_file = log_file or os.getenv("LOG_FILE")

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # 기존 핸들러 제거
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(SensitiveDataFilter())
        root_logger.addHandler(file_handler)

    # 써드파티 라이브러리 로그 레벨 조정
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    로거 인스턴스 생성

    Example:
        ```python
        logger = get_logger(__name__)
        logger.info("서버 시작")
        logger.error("오류 발생", extra={"user_id": "123"})
        ```
    """
    return logging.getLogger(name)


class AuditLogger:
    """
    감사 로그 (Audit Log)

    금전 이동이 수반되는 비즈니스 이벤트를 기록합니다 (주문, 환불, 지갑 입출금, 반품 검수 등).
    """

    def __init__(self):
        self.logger = get_logger("audit")

    def log_event(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        """
        감사 이벤트 로깅

        Args:
            event_type: 이벤트 유형 (order.placed, wallet.credit 등)
            user_id: 사용자 ID
            resource_type: 리소스 유형 (order, wallet 등)
            resource_id: 리소스 ID
            action: 수행된 작업 (create, refund, cancel 등)
            details: 추가 상세 정보
        """
        self.logger.info(
            f"[AUDIT] {event_type}",
            extra={
                "event_type": event_type,
                "user_id": str(user_id) if user_id else None,
                "resource_type": resource_type,
                "resource_id": str(resource_id) if resource_id else None,
                "action": action,
                "details": details or {},
            },
        )


# 전역 감사 로거 인스턴스
audit_logger = AuditLogger()
