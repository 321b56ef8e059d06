from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncGenerator, Callable, Optional, Tuple

import httpx

from vuesync.core.exceptions import AuthenticationError
from vuesync.schemas.auth import Token
from vuesync.utils.atom import Atom

logger = logging.getLogger(__name__)

AUTH_HEADER = "authtoken"

# Returns (username, password) when a fresh login is unavoidable.
CredentialsFunc = Callable[[], Tuple[str, str]]


class CredentialProvider(ABC):
    """Obtains Vue API tokens. Both calls may block on the network."""

    @abstractmethod
    def authenticate(self, username: str, password: str) -> Token:
        """Log in with a username and password."""

    @abstractmethod
    def refresh(self, refresh_token: str) -> Token:
        """Exchange a refresh token for a new token."""


class TokenSource:
    """
    Hands out a valid token, refreshing or re-authenticating when needed.

    The current token lives in an Atom shared with the rest of the process,
    so watchers (e.g. the token file) see every new token.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        holder: Atom[Optional[Token]],
        credentials: Optional[CredentialsFunc] = None,
    ):
        self.provider = provider
        self.holder = holder
        self.credentials = credentials
        self._lock = asyncio.Lock()

    async def token(self) -> Token:
        """
        Return a non-expired token.

        Raises:
            AuthenticationError: If neither refresh nor login produced a token
        """
        async with self._lock:
            tok = self.holder.load()
            if tok is not None and tok.valid():
                return tok

            if tok is not None and tok.refresh_token:
                logger.info("🔄 Token expired, refreshing...")
                try:
                    new_tok = await asyncio.to_thread(self.provider.refresh, tok.refresh_token)
                except Exception as e:
                    raise AuthenticationError(f"refresh: {e}") from e
                self.holder.reset(new_tok)
                logger.info("✅ Token refreshed")
                return new_tok

            if self.credentials is None:
                raise AuthenticationError("token is expired and no credentials function is set")
            try:
                username, password = self.credentials()
            except Exception as e:
                raise AuthenticationError(f"get credentials: {e}") from e

            logger.info(f"🔑 Authenticating as {username}...")
            try:
                new_tok = await asyncio.to_thread(self.provider.authenticate, username, password)
            except Exception as e:
                raise AuthenticationError(f"auth: {e}") from e
            self.holder.reset(new_tok)
            logger.info("✅ Authentication successful")
            return new_tok


class VueTokenAuth(httpx.Auth):
    """Adds the id token from a TokenSource to every outgoing request."""

    def __init__(self, source: TokenSource):
        self.source = source

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.source.token()
        request.headers[AUTH_HEADER] = token.id_token
        yield request
