"""Credential persistence on top of host preferences."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from roll_publisher.domain.credentials import Credential, TokenResponse

_logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "only35_access_token"
REFRESH_TOKEN_KEY = "only35_refresh_token"
TOKEN_EXPIRY_KEY = "only35_token_expiry"
USER_ID_KEY = "only35_user_id"
COMPANY_ID_KEY = "only35_company_id"

_CREDENTIAL_KEYS = (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    TOKEN_EXPIRY_KEY,
    USER_ID_KEY,
    COMPANY_ID_KEY,
)


class PreferenceStore(Protocol):
    """Host-provided key-value storage."""

    def get(self, key: str) -> object | None:
        """Return the stored value for a key, if any."""

    def set(self, key: str, value: object) -> None:
        """Store a value under a key."""

    def delete(self, key: str) -> None:
        """Remove a key if present."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CredentialStore:
    """Sole reader and writer of the persisted credential."""

    preferences: PreferenceStore
    expiry_buffer_seconds: int = 60
    default_lifetime_seconds: int = 3600
    clock: Callable[[], datetime] = field(default=_utc_now)

    def load(self) -> Credential | None:
        """Return the stored credential, or None if incomplete."""
        access_token = self.preferences.get(ACCESS_TOKEN_KEY)
        expiry = self.preferences.get(TOKEN_EXPIRY_KEY)
        if not access_token or expiry is None:
            return None
        try:
            expires_at = datetime.fromtimestamp(float(expiry), tz=UTC)
        except (TypeError, ValueError):
            _logger.warning("Ignoring unreadable token expiry: %r", expiry)
            return None
        refresh_token = self.preferences.get(REFRESH_TOKEN_KEY)
        user_id = self.preferences.get(USER_ID_KEY)
        org_id = self.preferences.get(COMPANY_ID_KEY)
        return Credential(
            access_token=str(access_token),
            refresh_token=str(refresh_token) if refresh_token else None,
            expires_at=expires_at,
            user_id=str(user_id) if user_id is not None else None,
            org_id=str(org_id) if org_id is not None else None,
        )

    def is_valid(self) -> bool:
        """Return True if a credential exists and is not about to expire."""
        credential = self.load()
        if credential is None:
            return False
        return credential.is_valid(self.clock(), self.expiry_buffer_seconds)

    def refresh_token(self) -> str | None:
        """Return the stored refresh token, if any."""
        value = self.preferences.get(REFRESH_TOKEN_KEY)
        return str(value) if value else None

    def user_id(self) -> str | None:
        """Return the stored user id, if any."""
        value = self.preferences.get(USER_ID_KEY)
        return str(value) if value is not None else None

    def store(self, tokens: TokenResponse) -> Credential:
        """Persist a token response as the current credential."""
        lifetime = tokens.expires_in or self.default_lifetime_seconds
        expires_at = self.clock() + timedelta(seconds=lifetime)
        refresh_token = tokens.refresh_token or self.refresh_token()
        credential = Credential(
            access_token=tokens.access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            user_id=tokens.user_id or self.user_id(),
            org_id=tokens.company_id or self._stored(COMPANY_ID_KEY),
        )
        self._write(credential)
        _logger.info("Tokens stored successfully")
        return credential

    def clear(self) -> None:
        """Remove every credential field."""
        for key in _CREDENTIAL_KEYS:
            self.preferences.delete(key)
        _logger.info("Tokens cleared")

    def _stored(self, key: str) -> str | None:
        value = self.preferences.get(key)
        return str(value) if value is not None else None

    def _write(self, credential: Credential) -> None:
        values: dict[str, object | None] = {
            ACCESS_TOKEN_KEY: credential.access_token,
            REFRESH_TOKEN_KEY: credential.refresh_token,
            TOKEN_EXPIRY_KEY: int(credential.expires_at.timestamp()),
            USER_ID_KEY: credential.user_id,
            COMPANY_ID_KEY: credential.org_id,
        }
        for key, value in values.items():
            if value is None:
                self.preferences.delete(key)
            else:
                self.preferences.set(key, value)
