"""Cognito user-pool login for the Emporia Vue API."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from pycognito import Cognito

from vuesync.infrastructure.auth.token_source import CredentialProvider
from vuesync.schemas.auth import Token

logger = logging.getLogger(__name__)

# Used when the access token carries no exp claim.
TOKEN_LIFETIME = timedelta(hours=1)


class CognitoCredentialProvider(CredentialProvider):
    """
    Credential provider backed by the Vue Cognito user pool.

    Logs in with SRP and refreshes with the REFRESH_TOKEN flow.
    """

    def __init__(self, region: str, client_id: str, user_pool_id: str):
        self.region = region
        self.client_id = client_id
        self.user_pool_id = user_pool_id

    def _cognito(self, **kwargs) -> Cognito:
        return Cognito(
            self.user_pool_id,
            self.client_id,
            user_pool_region=self.region,
            **kwargs,
        )

    def authenticate(self, username: str, password: str) -> Token:
        """Log in with SRP and return a fresh token."""
        now = datetime.now(timezone.utc)
        user = self._cognito(username=username)
        user.authenticate(password=password)
        logger.info(f"✅ Cognito login succeeded for {username}")
        return self._token(user, now, refresh_token=None)

    def refresh(self, refresh_token: str) -> Token:
        """Renew the access and id tokens using the refresh token."""
        now = datetime.now(timezone.utc)
        user = self._cognito(refresh_token=refresh_token)
        user.renew_access_token()
        logger.info("✅ Cognito token refresh succeeded")
        return self._token(user, now, refresh_token=refresh_token)

    @staticmethod
    def _token(user: Cognito, now: datetime, refresh_token: Optional[str]) -> Token:
        # Refresh responses don't carry a refresh token; keep the one we used.
        return Token(
            access_token=user.access_token or "",
            id_token=user.id_token or "",
            refresh_token=user.refresh_token or refresh_token or "",
            token_type=getattr(user, "token_type", None) or "Bearer",
            expiry=_expiry(user, now),
        )


def _expiry(user: Cognito, now: datetime) -> datetime:
    """Expiry from the verified access token claims."""
    claims = getattr(user, "access_claims", None) or {}
    exp = claims.get("exp")
    if exp is None:
        return now + TOKEN_LIFETIME
    return datetime.fromtimestamp(exp, tz=timezone.utc)
