"""
Self-hosted text generation service (LLM_PROVIDER=internal).
A bearer token is fetched from INTERNAL_TOKEN_URL and reused for 55 minutes; generation is a POST to INTERNAL_LLM_URL whose response body is the JSON object.
"""
import logging
import time
from typing import Any, Dict, Optional

import httpx

from podcaster.core.config import settings
from podcaster.core.errors import LlmError

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 55 * 60


class InternalTextGenerator:
    """generate_json against the internal LLM gateway.
    Why available: Deployments without a public model key route generation through the in-house service; errors map to the usual LlmError types."""

    def __init__(
        self,
        token_url: Optional[str] = None,
        llm_url: Optional[str] = None,
        auth_header: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_url = token_url if token_url is not None else settings.internal_token_url
        self.llm_url = llm_url if llm_url is not None else settings.internal_llm_url
        self.auth_header = auth_header if auth_header is not None else settings.internal_auth_header
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds
        self.transport = transport
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport)

    async def _get_token(self, client: httpx.AsyncClient) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        if not self.token_url:
            raise LlmError("INTERNAL_TOKEN_URL is not set", "INVALID_CONFIG")

        headers = {"Authorization": self.auth_header} if self.auth_header else {}
        try:
            resp = await client.get(self.token_url, headers=headers)
            resp.raise_for_status()
            token = resp.json().get("access_token")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            raise LlmError(f"Could not obtain internal access token: {e}", "INVALID_CONFIG") from e
        if not token:
            raise LlmError("Token response has no access_token", "INVALID_CONFIG")

        self._token = token
        self._token_expires_at = time.monotonic() + TOKEN_TTL_SECONDS
        logger.info("internal_token_refreshed", extra={"token_url": self.token_url})
        return token

    async def generate_json(
        self,
        prompt: str,
        schema_description: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not self.llm_url:
            raise LlmError("INTERNAL_LLM_URL is not set", "INVALID_CONFIG")
        body = {
            "prompt": prompt,
            "json_mode": True,
            "system_prompt": system_prompt,
            "schema_description": schema_description,
        }
        async with self._client() as client:
            token = await self._get_token(client)
            try:
                resp = await client.post(self.llm_url, json=body, headers={"Authorization": f"Bearer {token}"})
            except httpx.TimeoutException as e:
                raise LlmError(f"Internal model request exceeded {self.timeout_seconds}s", "TIMEOUT") from e
            except httpx.HTTPError as e:
                raise LlmError(f"Internal model request failed: {e}", "API_ERROR") from e

        if resp.status_code in (401, 403):
            # Token may have been revoked before its TTL.
            self._token = None
            raise LlmError(f"Internal model rejected credentials ({resp.status_code})", "INVALID_CONFIG")
        if resp.status_code >= 400:
            raise LlmError(f"Internal model returned HTTP {resp.status_code}", "API_ERROR")
        try:
            data = resp.json()
        except ValueError as e:
            raise LlmError(f"Internal model response is not valid JSON: {e}", "RESPONSE_FORMAT") from e
        if not isinstance(data, dict):
            raise LlmError(f"Internal model response is a JSON {type(data).__name__}, expected an object", "RESPONSE_FORMAT")
        logger.info("llm_generation_done", extra={"model": "internal", "status_code": resp.status_code})
        return data
