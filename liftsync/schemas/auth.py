"""Schemas related to authentication flows."""

from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CredentialPair(BaseModel):
    """Access and refresh credentials issued together by the backend."""

    access: str = Field(..., min_length=1, description="Short-lived bearer token.")
    refresh: str = Field(..., min_length=1, description="Token used to mint new access tokens.")


class User(BaseModel):
    """User profile as serialized by the backend."""

    id: int
    app_account_token: Optional[UUID] = None
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birthday: Optional[str] = Field(None, description="ISO date (YYYY-MM-DD).")
    height: Optional[float] = None
    weight: Optional[float] = None
    is_metric: bool = False
    workout_days_per_week: Optional[str] = None
    experience: Optional[str] = None
    gender: Optional[str] = None


class Checkpoint(str, Enum):
    """Next onboarding step the backend expects after login."""

    VERIFY_CODE = "verify_code"
    NAME = "name"
    BIRTHDAY = "birthday"
    HOME = "home"


class LoginOrCheckpointResponse(BaseModel):
    checkpoint: Checkpoint
    tokens: Optional[CredentialPair] = None
    user: User


class VerifyAccountResponse(BaseModel):
    tokens: CredentialPair
    user: User


class SocialSignInResponse(BaseModel):
    tokens: Optional[CredentialPair] = None
    user: User
    checkpoint: Optional[Checkpoint] = None
    is_new_user: bool = False


__all__ = [
    "Checkpoint",
    "CredentialPair",
    "LoginOrCheckpointResponse",
    "SocialSignInResponse",
    "User",
    "VerifyAccountResponse",
]
