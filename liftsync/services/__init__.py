"""Service layer exports."""

from .auth import AuthService
from .credential_store import CredentialStore
from .membership import MembershipService
from .profile import ProfileService
from .refresh_coordinator import RefreshCoordinator, RefreshOutcome
from .request_executor import ApiRequest, AuthenticatedRequestExecutor, decode_response
from .session_events import SessionEventBus, SessionExpiryReason
from .sync_repository import ReconcileOutcome, SyncRepository
from .token_coordinator import TokenCoordinator

__all__ = [
    "AuthService",
    "AuthenticatedRequestExecutor",
    "CredentialStore",
    "MembershipService",
    "ProfileService",
    "ReconcileOutcome",
    "RefreshCoordinator",
    "RefreshOutcome",
    "ApiRequest",
    "SessionEventBus",
    "SessionExpiryReason",
    "SyncRepository",
    "TokenCoordinator",
    "decode_response",
]
