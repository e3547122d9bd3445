"""
JWT 인증 미들웨어

FastAPI 의존성 주입을 활용한 JWT 인증을 제공합니다.
토큰 발급은 인증 서비스가 담당하며, 이 서비스는 검증과 사용자 조회만 수행합니다.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.base import get_db
from storefront.models.user import User, UserRole
from storefront.utils.exceptions import ForbiddenException, UnauthorizedException
from storefront.utils.security import JWTManager


# HTTP Bearer 토큰 스킴 (Authorization: Bearer <token>)
# 토큰 누락도 전역 예외 핸들러 형식(401)으로 응답하기 위해 auto_error 비활성화
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> UUID:
    """
    현재 요청의 사용자 ID 추출

    Raises:
        UnauthorizedException: 토큰이 없거나 유효하지 않은 경우
    """
    if credentials is None:
        raise UnauthorizedException("인증 토큰이 필요합니다.")

    try:
        payload = JWTManager.decode_token(credentials.credentials)
    except ValueError:
        raise UnauthorizedException("유효하지 않거나 만료된 토큰입니다.")

    # 토큰 타입 검증 (access token만 허용)
    if not JWTManager.verify_token_type(payload, "access"):
        raise UnauthorizedException("잘못된 토큰 타입입니다.")

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise UnauthorizedException("토큰에서 사용자 정보를 찾을 수 없습니다.")

    try:
        return UUID(str(user_id))
    except ValueError:
        raise UnauthorizedException("잘못된 사용자 ID 형식입니다.")


async def get_current_user(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    현재 요청의 사용자 객체 조회

    Raises:
        UnauthorizedException: 사용자를 찾을 수 없는 경우
        ForbiddenException: 정지/탈퇴 계정
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise UnauthorizedException("사용자를 찾을 수 없습니다.")

    if user.is_blocked:
        raise ForbiddenException("이용이 제한된 계정입니다.")

    return user


def require_role(*allowed_roles: str):
    """
    특정 역할을 가진 사용자만 접근 허용하는 의존성 팩토리

    Example:
        ```python
        @router.put("/admin/orders/{order_id}/status")
        async def update_status(current_user: User = Depends(require_admin)):
            ...
        ```
    """

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise ForbiddenException(
                f"이 기능은 {', '.join(allowed_roles)} 역할만 사용할 수 있습니다."
            )
        return current_user

    return role_checker


require_admin = require_role(UserRole.ADMIN.value)
