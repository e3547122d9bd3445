"""
관리자 추천인 관리 API
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.schemas.referral_schemas import ReferralExpireResponse
from storefront.middleware.auth import require_admin
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.services.referral_service import ReferralService


router = APIRouter(prefix="/v1/admin/referrals", tags=["Admin - Referrals"])


@router.post("/expire", response_model=ReferralExpireResponse)
async def expire_referrals(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """만료 시각이 지난 대기 중 추천을 일괄 만료 처리"""
    count = await ReferralService(db).expire_stale()
    return ReferralExpireResponse(expired_count=count)
