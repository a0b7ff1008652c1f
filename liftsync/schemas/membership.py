"""Membership and subscription payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class AttachPayload(BaseModel):
    """Signed transaction produced by the store purchase flow."""

    product_id: str
    jws: str = Field(..., description="Signed transaction (JWS) from the app store.")
    app_account_token: Optional[str] = None

    def to_request_body(self) -> dict:
        return {
            "product_id": self.product_id,
            "jws": self.jws,
            "app_account_token": self.app_account_token or "",
        }


class MembershipDetails(BaseModel):
    status: str
    days_remaining: int
    monthly_allowance: float
    minutes_remaining: float


class AttachSubscriptionResponse(BaseModel):
    success: bool
    message: str
    membership: Optional[MembershipDetails] = None


class RestorePurchaseResponse(BaseModel):
    success: bool
    message: str
    membership: Optional[MembershipDetails] = None


class MembershipInfo(BaseModel):
    status: Optional[str] = None
    days_remaining: int = 0
    subscription_end_date: Optional[str] = None


class MonthlyUsageInfo(BaseModel):
    minutes_used: float
    minutes_allowed: float
    minutes_remaining: float


class MembershipStatusResponse(BaseModel):
    is_member: bool
    membership: Optional[MembershipInfo] = None
    monthly_usage: MonthlyUsageInfo


class AnalysisAllowanceResponse(BaseModel):
    can_analyze: bool
    reason: Optional[str] = None
    upgrade_required: Optional[bool] = None
    minutes_remaining: Optional[float] = None
    reset_date: Optional[str] = None


__all__ = [
    "AnalysisAllowanceResponse",
    "AttachPayload",
    "AttachSubscriptionResponse",
    "MembershipDetails",
    "MembershipInfo",
    "MembershipStatusResponse",
    "MonthlyUsageInfo",
    "RestorePurchaseResponse",
]
