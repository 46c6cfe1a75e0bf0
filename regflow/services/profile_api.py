"""
Backend collaborators used by the registration workflow.

ProfileBackend is the interface the workflow controller depends on;
ProfileApiClient is its aiohttp implementation against the profile REST API:

  POST /user/complete-profile?username=…&markAsComplete=false   partial save
  POST /user/complete-profile?username=…&markAsComplete=true    final submit
  GET  /user/me                                                 profile snapshot

Every call returns an ApiResponse. error is empty on success and otherwise
holds the server's message verbatim (or a transport-failure message);
nothing raises for an HTTP or network failure.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import aiohttp

from regflow.config import Settings, settings
from regflow.services.merge import canonical_json

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Unable to reach the server. Please check your connection and try again."


@dataclass(frozen=True)
class ApiResponse:
    data: Dict[str, Any] = field(default_factory=dict)
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def failure(cls, message: str) -> "ApiResponse":
        return cls(error=message or "Request failed. Please try again.")


class ProfileBackend(Protocol):
    async def update_profile(self, username: str, fields: Dict[str, Any]) -> ApiResponse:
        ...

    async def complete_profile(
        self,
        username: str,
        payload: Dict[str, Any],
        mark_complete: bool = True,
    ) -> ApiResponse:
        ...

    async def fetch_profile(self, username: str) -> ApiResponse:
        ...


def _body_to_dict(text: str) -> Dict[str, Any]:
    """JSON object bodies as-is; anything else (plain-text messages) under "message"."""
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        return {"message": text.strip()}
    if isinstance(parsed, dict):
        return parsed
    return {"message": str(parsed)}


class ProfileApiClient:
    """aiohttp client for the profile endpoints. Use as an async context manager or call close()."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        token: Optional[str] = None,
        cfg: Settings = settings,
    ) -> None:
        self.base_url = (base_url or cfg.api_base_url).rstrip("/")
        self._timeout = timeout or cfg.api_timeout
        self._token = token if token is not None else cfg.API_TOKEN
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "ProfileApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._token:
            headers["Jwt-Token"] = self._token
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        url = f"{self.base_url}{path}"
        body = canonical_json(payload) if payload is not None else None
        try:
            session = await self._get_session()
            async with session.request(
                method, url, params=params, data=body, headers=self._headers(),
            ) as response:
                text = await response.text()
                data = _body_to_dict(text)
                if 200 <= response.status < 300:
                    return ApiResponse(data=data)
                message = str(data.get("message") or f"Request failed (HTTP {response.status})")
                logger.warning("%s %s → HTTP %s: %s", method, path, response.status, message)
                return ApiResponse.failure(message)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("%s %s failed: %r", method, path, exc)
            return ApiResponse.failure(NETWORK_ERROR_MESSAGE)

    async def update_profile(self, username: str, fields: Dict[str, Any]) -> ApiResponse:
        return await self._request(
            "POST",
            "/user/complete-profile",
            params={"username": username, "markAsComplete": "false"},
            payload=fields,
        )

    async def complete_profile(
        self,
        username: str,
        payload: Dict[str, Any],
        mark_complete: bool = True,
    ) -> ApiResponse:
        return await self._request(
            "POST",
            "/user/complete-profile",
            params={"username": username, "markAsComplete": "true" if mark_complete else "false"},
            payload=payload,
        )

    async def fetch_profile(self, username: str) -> ApiResponse:
        # /user/me resolves the account from the token; username only feeds the log
        logger.debug("Fetching profile snapshot for %s", username)
        return await self._request("GET", "/user/me")
