"""
추천인 API 스키마
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ReferralCodeRequest(BaseModel):
    """추천 코드 또는 토큰 (둘 중 하나 필수)"""

    referral_code: Optional[str] = Field(None, max_length=20)
    referral_token: Optional[str] = Field(None, max_length=80)


class ReferralCodeResponse(BaseModel):
    referral_code: str


class ReferralResponse(BaseModel):
    id: UUID
    referrer_id: UUID
    referred_id: Optional[UUID] = None
    referral_code: str
    referral_token: str
    status: str
    reward_claimed: bool
    reward_promotion_id: Optional[UUID] = None
    created_at: datetime
    expires_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReferralListResponse(BaseModel):
    referrals: List[ReferralResponse]
    referral_count: int
    total_referral_rewards: float


class ReferralValidateResponse(BaseModel):
    valid: bool
    referrer_id: UUID
    referral_code: str
    expires_at: Optional[datetime] = None


class ReferralExpireResponse(BaseModel):
    expired_count: int
