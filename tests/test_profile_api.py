"""
Integration tests — aiohttp profile client (services/profile_api.py).

Runs ProfileApiClient against an in-process aiohttp test server that
imitates the profile endpoints, so requests go over a real socket.

Coverage:
  - query parameters, headers and JSON bodies of each call
  - backend messages surfaced verbatim (JSON and plain-text bodies)
  - transport failures converted to a failed ApiResponse
"""
from __future__ import annotations

import json
from typing import Any, AsyncGenerator, Dict, List

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as AiohttpServer

from regflow.services.profile_api import NETWORK_ERROR_MESSAGE, ApiResponse, ProfileApiClient


class _Backend:
    """Records requests; the reply for the next request can be overridden."""

    def __init__(self) -> None:
        self.requests: List[Dict[str, Any]] = []
        self.reply: web.Response | None = None

    async def complete_profile(self, request: web.Request) -> web.Response:
        self.requests.append({
            "path": request.path,
            "query": dict(request.query),
            "headers": dict(request.headers),
            "body": await request.text(),
        })
        if self.reply is not None:
            return self.reply
        return web.json_response({"message": "Profile updated", "verificationToken": "tok-1"})

    async def me(self, request: web.Request) -> web.Response:
        self.requests.append({"path": request.path, "headers": dict(request.headers)})
        if self.reply is not None:
            return self.reply
        return web.json_response({"firstName": "Ana", "birthDate": "02/28/1957"})


@pytest.fixture
def fake_backend() -> _Backend:
    return _Backend()


@pytest.fixture
async def server(fake_backend: _Backend) -> AsyncGenerator[AiohttpServer, None]:
    app = web.Application()
    app.router.add_post("/user/complete-profile", fake_backend.complete_profile)
    app.router.add_get("/user/me", fake_backend.me)
    test_server = AiohttpServer(app)
    await test_server.start_server()
    try:
        yield test_server
    finally:
        await test_server.close()


@pytest.fixture
async def client(server: AiohttpServer) -> AsyncGenerator[ProfileApiClient, None]:
    api = ProfileApiClient(base_url=str(server.make_url("/")), token="jwt-abc")
    try:
        yield api
    finally:
        await api.close()


# ─────────────────────────── Requests ─────────────────────────────────────────

class TestRequests:
    async def test_update_profile_is_a_partial_save(self, client, fake_backend) -> None:
        response = await client.update_profile("ana.cruz", {"firstName": "Ana"})

        assert response.ok
        assert response.data["message"] == "Profile updated"
        (req,) = fake_backend.requests
        assert req["query"] == {"username": "ana.cruz", "markAsComplete": "false"}
        assert json.loads(req["body"]) == {"firstName": "Ana"}
        assert req["headers"]["Jwt-Token"] == "jwt-abc"
        assert req["headers"]["Content-Type"] == "application/json"

    async def test_complete_profile_marks_complete(self, client, fake_backend) -> None:
        payload = {"firstName": "Ana", "birthDate": "02/28/1957", "age": 69}
        response = await client.complete_profile("ana.cruz", payload)

        assert response.ok
        (req,) = fake_backend.requests
        assert req["query"]["markAsComplete"] == "true"
        assert req["body"] == '{"firstName":"Ana","birthDate":"02/28/1957","age":69}'

    async def test_fetch_profile_returns_snapshot(self, client) -> None:
        response = await client.fetch_profile("ana.cruz")
        assert response == ApiResponse(data={"firstName": "Ana", "birthDate": "02/28/1957"})

    async def test_no_token_header_without_token(self, server, fake_backend) -> None:
        async with ProfileApiClient(base_url=str(server.make_url("/")), token="") as api:
            await api.fetch_profile("ana.cruz")
        assert "Jwt-Token" not in fake_backend.requests[0]["headers"]


# ─────────────────────────── Failures ─────────────────────────────────────────

class TestFailures:
    async def test_json_message_is_verbatim(self, client, fake_backend) -> None:
        fake_backend.reply = web.json_response({"message": "Session expired"}, status=401)
        response = await client.update_profile("ana.cruz", {})
        assert not response.ok
        assert response.error == "Session expired"

    async def test_plain_text_message_is_verbatim(self, client, fake_backend) -> None:
        fake_backend.reply = web.Response(text="User not found", status=404)
        response = await client.complete_profile("ghost", {})
        assert response.error == "User not found"

    async def test_empty_error_body_gets_status_message(self, client, fake_backend) -> None:
        fake_backend.reply = web.Response(status=500)
        response = await client.fetch_profile("ana.cruz")
        assert response.error == "Request failed (HTTP 500)"

    async def test_unreachable_server(self) -> None:
        async with ProfileApiClient(
            base_url="http://127.0.0.1:1",
            timeout=aiohttp.ClientTimeout(total=2),
        ) as api:
            response = await api.update_profile("ana.cruz", {"firstName": "Ana"})
        assert response.error == NETWORK_ERROR_MESSAGE

    def test_failure_without_message_gets_default(self) -> None:
        assert ApiResponse.failure("").error == "Request failed. Please try again."
