"""
추천인 API 엔드포인트

추천 코드/링크 발급, 검증, 추천 완료 처리
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.schemas.referral_schemas import (
    ReferralCodeRequest,
    ReferralCodeResponse,
    ReferralListResponse,
    ReferralResponse,
    ReferralValidateResponse,
)
from storefront.config import Settings, get_settings
from storefront.middleware.auth import get_current_user
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.services.referral_service import ReferralService

router = APIRouter(prefix="/v1/referrals", tags=["추천인"])


@router.get("", response_model=ReferralListResponse)
async def list_referrals(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """내가 발급한 추천 목록 및 누적 보상"""
    referrals = await ReferralService(db).list_referrals(current_user)
    return ReferralListResponse(
        referrals=[ReferralResponse.model_validate(r) for r in referrals],
        referral_count=current_user.referral_count,
        total_referral_rewards=current_user.total_referral_rewards,
    )


@router.post("/code", response_model=ReferralCodeResponse, status_code=status.HTTP_201_CREATED)
async def generate_code(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """고정 추천 코드 발급 (이미 있으면 400)"""
    code = await ReferralService(db).generate_user_code(current_user)
    return ReferralCodeResponse(referral_code=code)


@router.post("/link", response_model=ReferralResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """만료 기한이 있는 추천 링크(코드 + 토큰) 생성"""
    referral = await ReferralService(db, settings).create_link(current_user)
    return ReferralResponse.model_validate(referral)


@router.post("/validate", response_model=ReferralValidateResponse)
async def validate_referral(
    request: ReferralCodeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """추천 코드/토큰 유효성 확인"""
    result = await ReferralService(db).validate(
        code=request.referral_code, token=request.referral_token
    )
    return ReferralValidateResponse(valid=True, **result)


@router.post("/process", response_model=ReferralResponse)
async def process_referral(
    request: ReferralCodeRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """
    추천 완료 처리 (호출자 = 피추천인)

    추천인에게 1회용 보상 쿠폰이 발급됩니다.

    **오류 케이스**:
    - `400`: 자기 추천, 이미 추천인 등록됨, 만료/사용된 코드, 진행 중인 추천 보상 없음
    """
    referral = await ReferralService(db, settings).process(
        current_user, code=request.referral_code, token=request.referral_token
    )
    return ReferralResponse.model_validate(referral)
