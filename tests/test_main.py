"""
Unit tests — Assembly (main.py): controller wiring and logging setup.
"""
from __future__ import annotations

import logging

from regflow.config import Settings
from regflow.controller import FieldChange, Next, ResultStatus
from regflow.main import create_controller, setup_logging
from regflow.services.profile_api import ProfileApiClient
from tests.conftest import SCENARIO_A, fill


class TestCreateController:
    async def test_resumes_from_backend(self, identity, backend, clock) -> None:
        backend.snapshot = {"firstName": "Ana"}
        controller = await create_controller(identity, api=backend, clock=clock)
        assert controller.session.value("firstName").plain() == "Ana"
        assert backend.calls_to("fetch_profile")

    async def test_blank_start_skips_fetch(self, identity, backend, clock) -> None:
        controller = await create_controller(identity, api=backend, clock=clock, resume=False)
        assert backend.calls == []
        assert controller.session.step_index == 0

    async def test_settings_drive_the_age_rule(self, identity, backend, clock) -> None:
        cfg = Settings(MIN_AGE=70)
        controller = await create_controller(
            identity, api=backend, cfg=cfg, clock=clock, resume=False,
        )
        await fill(controller, SCENARIO_A)  # born 1957 → 69
        result = await controller.dispatch(Next())
        assert result.status is ResultStatus.VALIDATION_FAILED
        assert result.errors[0].message == "You must be at least 70 years old to join"

    async def test_default_api_client_from_settings(self, identity, clock) -> None:
        cfg = Settings(API_BASE_URL="http://backend.test/")
        controller = await create_controller(identity, cfg=cfg, clock=clock, resume=False)
        api = controller._api
        assert isinstance(api, ProfileApiClient)
        assert api.base_url == "http://backend.test"
        await api.close()

    async def test_field_events_reach_the_session(self, identity, backend, clock) -> None:
        controller = await create_controller(identity, api=backend, clock=clock, resume=False)
        await controller.dispatch(FieldChange("city", "Cebu"))
        assert controller.session.value("city").plain() == "Cebu"


class TestSetupLogging:
    def test_configures_root_logger(self, monkeypatch) -> None:
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)
        setup_logging("debug")
        assert root.level == logging.DEBUG
        assert root.handlers
