"""Wire-format schemas shared by the client services."""

from .analysis import (
    AreaForImprovement,
    DeltaSyncResponse,
    RefreshedUrl,
    Strength,
    UrlRefreshResponse,
    Video,
    VideoAnalysis,
)
from .auth import (
    Checkpoint,
    CredentialPair,
    LoginOrCheckpointResponse,
    SocialSignInResponse,
    User,
    VerifyAccountResponse,
)
from .common import APIErrorDetail, APIErrorEnvelope, EmptyResponse, UtcDateTime
from .membership import (
    AnalysisAllowanceResponse,
    AttachPayload,
    AttachSubscriptionResponse,
    MembershipDetails,
    MembershipInfo,
    MembershipStatusResponse,
    MonthlyUsageInfo,
    RestorePurchaseResponse,
)

__all__ = [
    "APIErrorDetail",
    "APIErrorEnvelope",
    "AnalysisAllowanceResponse",
    "AreaForImprovement",
    "AttachPayload",
    "AttachSubscriptionResponse",
    "Checkpoint",
    "CredentialPair",
    "DeltaSyncResponse",
    "EmptyResponse",
    "LoginOrCheckpointResponse",
    "MembershipDetails",
    "MembershipInfo",
    "MembershipStatusResponse",
    "MonthlyUsageInfo",
    "RefreshedUrl",
    "RestorePurchaseResponse",
    "SocialSignInResponse",
    "Strength",
    "UrlRefreshResponse",
    "User",
    "UtcDateTime",
    "VerifyAccountResponse",
    "Video",
    "VideoAnalysis",
]
