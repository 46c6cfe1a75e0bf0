"""
Shared pytest fixtures for the registration workflow tests.

Sets environment variables BEFORE any regflow module is imported so that
pydantic-settings picks up safe test values instead of a developer's .env.
"""
from __future__ import annotations

import asyncio
import os
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

# ── Set env vars before any regflow import ────────────────────────────────────
os.environ.setdefault("API_BASE_URL", "http://backend.test")
os.environ.setdefault("MIN_AGE", "60")
os.environ.setdefault("DEFAULT_COUNTRY", "Philippines")

# ── Third-party ───────────────────────────────────────────────────────────────
import pytest

# ── regflow imports (safe after env vars are set) ─────────────────────────────
from regflow.controller import FieldChange, Next, WorkflowController
from regflow.models.identity import Phase1Identity
from regflow.services.profile_api import ApiResponse
from regflow.session import RegistrationSession

FIXED_TODAY = date(2026, 10, 18)

SCENARIO_A: Dict[str, Any] = {
    "firstName": "Ana",
    "lastName": "Cruz",
    "birthday": "02/28/1957",
    "country": "Philippines",
    "civilStatus": "Widowed",
    "city": "Manila",
    "hobby": "Cooking",
}
ID_STEP: Dict[str, Any] = {"idPhotoFront": ["file:///id-front.jpg"]}
PHOTO_STEP: Dict[str, Any] = {"photos": ["file:///me.jpg", "file:///garden.jpg"]}
ABOUT_STEP: Dict[str, Any] = {
    "bio": "Retired teacher who loves the sea.",
    "interests": ["Reading", "Gardening"],
    "lookingFor": ["Friendship", "Travel Companion"],
}


def expected_age(birth: date, today: date) -> int:
    return today.year - birth.year - ((today.month, today.day) < (birth.month, birth.day))


# ── Fake backend ──────────────────────────────────────────────────────────────

class FakeProfileBackend:
    """
    In-memory ProfileBackend.

    Records every call; queued responses are returned in order (success when
    the queue is empty). Setting ``gate`` makes calls block until the event is
    set; ``raise_on_call`` makes them raise after the gate opens.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Any]] = []
        self.update_results: List[ApiResponse] = []
        self.complete_results: List[ApiResponse] = []
        self.snapshot: Optional[Dict[str, Any]] = None
        self.gate: Optional[asyncio.Event] = None
        self.raise_on_call: Optional[Exception] = None

    def calls_to(self, method: str) -> List[Tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] == method]

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.raise_on_call is not None:
            raise self.raise_on_call

    async def update_profile(self, username: str, fields: Dict[str, Any]) -> ApiResponse:
        self.calls.append(("update_profile", username, dict(fields)))
        await self._wait()
        if self.update_results:
            return self.update_results.pop(0)
        return ApiResponse(data={"message": "Profile saved"})

    async def complete_profile(
        self,
        username: str,
        payload: Dict[str, Any],
        mark_complete: bool = True,
    ) -> ApiResponse:
        self.calls.append(("complete_profile", username, (dict(payload), mark_complete)))
        await self._wait()
        if self.complete_results:
            return self.complete_results.pop(0)
        return ApiResponse(data={"message": "Profile completed"})

    async def fetch_profile(self, username: str) -> ApiResponse:
        self.calls.append(("fetch_profile", username, None))
        if self.snapshot is None:
            return ApiResponse.failure("Profile not found")
        return ApiResponse(data=dict(self.snapshot))


# ── Helpers ───────────────────────────────────────────────────────────────────

async def fill(controller: WorkflowController, values: Mapping[str, Any]) -> None:
    for name, value in values.items():
        await controller.dispatch(FieldChange(name, value))


async def advance_to_final(controller: WorkflowController) -> None:
    """Fill and submit the first three steps so the session sits on "about you"."""
    for values in (SCENARIO_A, ID_STEP, PHOTO_STEP):
        await fill(controller, values)
        result = await controller.dispatch(Next())
        assert result.ok, result
    await fill(controller, ABOUT_STEP)


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def today() -> date:
    return FIXED_TODAY


@pytest.fixture
def clock(today: date):
    return lambda: today


@pytest.fixture
def identity() -> Phase1Identity:
    return Phase1Identity(username="ana.cruz", email="ana.cruz@example.com")


@pytest.fixture
def backend() -> FakeProfileBackend:
    return FakeProfileBackend()


@pytest.fixture
def session(identity: Phase1Identity, clock) -> RegistrationSession:
    return RegistrationSession.create(identity, clock=clock)


@pytest.fixture
def controller(session: RegistrationSession, backend: FakeProfileBackend) -> WorkflowController:
    return WorkflowController(session, backend)
