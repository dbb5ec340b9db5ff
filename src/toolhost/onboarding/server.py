"""HTTP client for the Code Assist backend (``loadCodeAssist`` / ``onboardUser``)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from google.auth.exceptions import GoogleAuthError
from pydantic import ValidationError

from toolhost.config.schema import DEFAULT_CODE_ASSIST_ENDPOINT
from toolhost.core.errors import BackendError
from toolhost.onboarding.types import (
    LoadCodeAssistRequest,
    LoadCodeAssistResponse,
    LongRunningOperation,
    OnboardUserRequest,
)

if TYPE_CHECKING:
    from toolhost.auth.google import GoogleCredentialProvider

logger = logging.getLogger(__name__)

CODE_ASSIST_API_VERSION = "v1internal"


class CodeAssistServer:
    """Async client for the onboarding endpoints.

    Usage::

        async with CodeAssistServer(credential_provider=creds) as server:
            res = await server.load_code_assist(req)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        credential_provider: GoogleCredentialProvider | None = None,
        endpoint: str = DEFAULT_CODE_ASSIST_ENDPOINT,
        api_version: str = CODE_ASSIST_API_VERSION,
        timeout: float = 60.0,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._credentials = credential_provider
        self._endpoint = endpoint.rstrip("/")
        self._api_version = api_version

    async def __aenter__(self) -> CodeAssistServer:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def method_url(self, method: str) -> str:
        return f"{self._endpoint}/{self._api_version}:{method}"

    async def load_code_assist(
        self, req: LoadCodeAssistRequest
    ) -> LoadCodeAssistResponse:
        data = await self._post("loadCodeAssist", req.to_wire())
        return self._parse(LoadCodeAssistResponse, data, "loadCodeAssist")

    async def onboard_user(self, req: OnboardUserRequest) -> LongRunningOperation:
        data = await self._post("onboardUser", req.to_wire())
        return self._parse(LongRunningOperation, data, "onboardUser")

    # ── Internals ────────────────────────────────────────────────

    async def _post(self, method: str, body: dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self._credentials is not None:
            try:
                headers.update(await self._credentials.auth_headers())
            except GoogleAuthError as e:
                msg = f"{method}: could not obtain Google credentials: {e}"
                raise BackendError(msg) from e

        logger.debug("%s request: %s", method, body)
        try:
            response = await self._client.post(
                self.method_url(method), json=body, headers=headers
            )
        except httpx.HTTPError as e:
            msg = f"{method} request failed: {e}"
            raise BackendError(msg) from e

        if response.status_code >= 400:
            raise BackendError(_error_detail(response), response.status_code)
        try:
            data = response.json()
        except ValueError as e:
            msg = f"{method} returned invalid JSON"
            raise BackendError(msg, response.status_code) from e
        logger.debug("%s response: %s", method, data)
        return data

    @staticmethod
    def _parse(model: Any, data: Any, method: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            msg = f"{method} returned an unexpected payload: {e}"
            raise BackendError(msg) from e


def _error_detail(response: httpx.Response) -> str:
    try:
        message = response.json().get("error", {}).get("message")
    except (ValueError, AttributeError):
        message = None
    return message or response.text or response.reason_phrase
