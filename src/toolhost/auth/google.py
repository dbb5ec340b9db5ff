"""Google Application Default Credentials provider for tool servers.

Mints bearer tokens for the scopes named in a server's ``oauth`` config.
Token caching and refresh belong to google-auth; this module only asks
for a token and reports whether one is available.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import google.auth
from google.auth.transport.requests import Request

from toolhost.config.schema import OAuthConfig, ToolServerConfig
from toolhost.core.errors import ConfigError

if TYPE_CHECKING:
    from datetime import datetime

    from google.auth.credentials import Credentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AccessToken:
    """An opaque bearer token and its optional expiry."""

    access_token: str
    token_type: str = "Bearer"
    expires_at: datetime | None = None

    def as_header(self) -> dict[str, str]:
        """Return the ``Authorization`` header carrying this token."""
        return {"Authorization": f"{self.token_type} {self.access_token}"}


class GoogleCredentialProvider:
    """Access-token source backed by Google ADC.

    Accepts either a full :class:`ToolServerConfig` or just its
    :class:`OAuthConfig`. Scopes are checked here, before any network
    access; the google-auth client itself is created on first use.
    """

    def __init__(self, config: ToolServerConfig | OAuthConfig | None = None) -> None:
        oauth = config.oauth if isinstance(config, ToolServerConfig) else config
        scopes = list(oauth.scopes) if oauth is not None else []
        if not scopes:
            msg = (
                "Scopes must be provided in the oauth config "
                "for the Google credentials provider"
            )
            raise ConfigError(msg)
        self._scopes = scopes
        self._credentials: Credentials | None = None

    @property
    def scopes(self) -> list[str]:
        return list(self._scopes)

    def _client(self) -> Credentials:
        if self._credentials is None:
            self._credentials, _ = google.auth.default(scopes=self._scopes)
        return self._credentials

    async def tokens(self) -> AccessToken | None:
        """Return a bearer token, or ``None`` when no credential is usable.

        ``None`` is not a failure: callers should proceed unauthenticated.
        """
        credentials = self._client()
        if not credentials.valid:
            await asyncio.to_thread(credentials.refresh, Request())

        token = credentials.token
        if not token:
            logger.error("Failed to get access token from Google ADC")
            return None
        return AccessToken(access_token=token, expires_at=credentials.expiry)

    async def auth_headers(self) -> dict[str, str]:
        """Headers to attach to an authenticated request (may be empty)."""
        token = await self.tokens()
        return token.as_header() if token is not None else {}
