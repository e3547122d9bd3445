"""
보안 유틸리티

- JWT 액세스 토큰 검증 (토큰 발급은 인증 서비스 담당, 테스트/시드용 생성 함수만 제공)
- 결제 게이트웨이 서명(HMAC-SHA256) 생성 및 검증
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import hmac

from jose import JWTError, jwt

from storefront.config import get_settings


class JWTManager:
    """
    JWT 토큰 생성 및 검증 관리 클래스
    """

    @staticmethod
    def create_access_token(
        data: dict,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Access Token 생성

        Args:
            data: 토큰에 포함할 데이터 (sub, role 등)
            expires_delta: 만료 시간 (기본값: ACCESS_TOKEN_EXPIRE_MINUTES)

        Example:
            >>> token = JWTManager.create_access_token({"sub": "user_id_123"})
        """
        settings = get_settings()
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> dict:
        """
        JWT 토큰 디코딩 및 검증

        Raises:
            ValueError: 토큰이 유효하지 않거나 만료된 경우
        """
        settings = get_settings()
        try:
            return jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
            )
        except JWTError as e:
            raise ValueError(f"Invalid token: {str(e)}")

    @staticmethod
    def verify_token_type(payload: dict, expected_type: str) -> bool:
        """토큰 타입 검증 (access 만 허용)"""
        return payload.get("type") == expected_type


def generate_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """게이트웨이 결제 서명 생성: HMAC-SHA256(order_id|payment_id)"""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(
    order_id: str, payment_id: str, signature: str, secret: str
) -> bool:
    """
    게이트웨이 결제 서명 검증

    타이밍 공격을 피하기 위해 hmac.compare_digest 로 비교합니다.
    """
    if not (order_id and payment_id and signature):
        return False
    expected = generate_payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)
