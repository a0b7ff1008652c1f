"""Subscription attachment and analysis allowance checks."""

from __future__ import annotations

from liftsync.core.result import Result
from liftsync.schemas import (
    AnalysisAllowanceResponse,
    AttachPayload,
    AttachSubscriptionResponse,
    MembershipStatusResponse,
    RestorePurchaseResponse,
)
from liftsync.services.request_executor import ApiRequest, AuthenticatedRequestExecutor


class MembershipService:
    def __init__(self, executor: AuthenticatedRequestExecutor) -> None:
        self._executor = executor

    async def attach_subscription(
        self, payload: AttachPayload
    ) -> Result[AttachSubscriptionResponse]:
        """Send a verified store transaction so the server can activate membership."""
        return await self._executor.request(
            ApiRequest(
                path="membership/attach-subscription/",
                method="POST",
                json=payload.to_request_body(),
                response_model=AttachSubscriptionResponse,
            )
        )

    async def restore_purchase(self) -> Result[RestorePurchaseResponse]:
        """Ask the server to re-link the account's latest store transaction."""
        return await self._executor.request(
            ApiRequest(
                path="membership/restore-purchase/",
                method="POST",
                response_model=RestorePurchaseResponse,
            )
        )

    async def check_analysis_allowance(self) -> Result[AnalysisAllowanceResponse]:
        return await self._executor.request(
            ApiRequest(path="membership/analysis-allowance/", response_model=AnalysisAllowanceResponse)
        )

    async def membership_status(self) -> Result[MembershipStatusResponse]:
        return await self._executor.request(
            ApiRequest(path="membership/status/", response_model=MembershipStatusResponse)
        )


__all__ = ["MembershipService"]
