"""Domain models for authentication."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from pydantic import BaseModel, field_validator


@dataclass(frozen=True)
class Credential:
    """An authenticated session with the catalog service."""

    access_token: str
    refresh_token: str | None
    expires_at: datetime
    user_id: str | None = None
    org_id: str | None = None

    def is_valid(self, now: datetime, buffer_seconds: int = 60) -> bool:
        """Return True while the token outlives ``now`` plus the buffer."""
        return self.expires_at > now + timedelta(seconds=buffer_seconds)


class TokenResponse(BaseModel):
    """Token endpoint payload."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user_id: str | None = None
    company_id: str | None = None

    @field_validator("user_id", "company_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value


@dataclass
class AuthorizationRequest:
    """State for one authorization attempt, from browser redirect to code exchange."""

    url: str
    state: str
    code_verifier: str | None

    def consume_verifier(self) -> str | None:
        """Return the PKCE verifier and forget it."""
        verifier = self.code_verifier
        self.code_verifier = None
        return verifier
