"""
Assembly: logging setup and controller wiring for the presentation layer.

    controller = await create_controller(identity)
    result = await controller.dispatch(FieldChange("firstName", "Ana"))
"""
from __future__ import annotations

import logging
import sys
from datetime import date
from typing import Callable, Optional

from regflow.config import Settings, settings
from regflow.controller import WorkflowController
from regflow.models.identity import Phase1Identity
from regflow.services.profile_api import ProfileApiClient, ProfileBackend
from regflow.session import RegistrationSession
from regflow.steps import build_steps

logger = logging.getLogger(__name__)


def setup_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )


async def create_controller(
    identity: Optional[Phase1Identity],
    api: Optional[ProfileBackend] = None,
    cfg: Settings = settings,
    clock: Callable[[], date] = date.today,
    resume: bool = True,
) -> WorkflowController:
    """
    Build a controller for *identity*.

    With ``resume`` the session is seeded from the backend's profile snapshot
    (an interrupted registration continues where it stopped); otherwise it
    starts blank. Without *api* a ProfileApiClient is created from *cfg*; the
    caller owns it and should close it when registration ends.
    """
    if api is None:
        api = ProfileApiClient(cfg=cfg)
    steps = build_steps(cfg)

    if resume:
        controller = await WorkflowController.resume(identity, api, steps=steps, clock=clock, cfg=cfg)
    else:
        session = RegistrationSession.create(identity, steps=steps, clock=clock)
        controller = WorkflowController(session, api, cfg)

    logger.info(
        "Registration controller ready at step %d",
        controller.session.step_index,
    )
    return controller
