"""
Workflow controller for the profile-completion wizard.

The controller is the only writer of a RegistrationSession. The presentation
layer sends commands through ``dispatch`` and renders the returned
WorkflowResult; it decides how to show messages (toast, alert, inline).

Flow:
  basic info ─Next→ [update_profile] → ID verification ─Next→ [update_profile]
  → photos ─Next→ [update_profile] → about you ─FinalSubmit→ [complete_profile]
  → submitted ✅

Transitions that reach the backend are serialised: while one call is in
flight every other Next / SubmitStep / FinalSubmit is answered with BUSY.
A result arriving after the session was abandoned or replaced is dropped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from regflow.config import Settings, settings
from regflow.models.identity import Phase1Identity
from regflow.services.merge import (
    MissingIdentityError,
    WIRE_NAMES,
    build_completion_payload,
    build_step_payload,
)
from regflow.services.profile_api import ApiResponse, ProfileBackend
from regflow.session import BIRTHDAY_FIELD, RegistrationError, RegistrationSession
from regflow.states import RegistrationSteps
from regflow.steps import STEPS, StepDefinition

logger = logging.getLogger(__name__)

COUNTRY_FIELD = "country"

MISSING_IDENTITY_MESSAGE = "Please complete account creation first."
UNEXPECTED_ERROR_MESSAGE = "Failed to save. Please try again."
UNSAVED_CHANGES_MESSAGE = "You have unsaved changes. Leave registration anyway?"
INACTIVE_MESSAGE = "This registration is no longer active."
BUSY_MESSAGE = "Please wait, your last request is still being processed."
INVALID_VALUE_MESSAGE = "This value cannot be used for this field."

# Payload keys reported against the form field the user can fix
_PAYLOAD_FIELD_NAMES = {wire: name for name, wire in WIRE_NAMES.items()}
_PAYLOAD_FIELD_NAMES["age"] = BIRTHDAY_FIELD


# ── Commands ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FieldChange:
    field: str
    value: Any


@dataclass(frozen=True)
class FieldBlur:
    field: str


@dataclass(frozen=True)
class Next:
    pass


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class SubmitStep:
    pass


@dataclass(frozen=True)
class FinalSubmit:
    pass


@dataclass(frozen=True)
class Abandon:
    confirmed: bool = False


Command = Union[FieldChange, FieldBlur, Next, Back, SubmitStep, FinalSubmit, Abandon]


# ── Results ───────────────────────────────────────────────────────────────────

class ResultStatus(str, Enum):
    UPDATED           = "updated"            # field edit / blur applied
    ADVANCED          = "advanced"
    RETREATED         = "retreated"
    VALIDATION_FAILED = "validation_failed"  # local errors, see WorkflowResult.errors
    BACKEND_ERROR     = "backend_error"      # rejection or transport failure, message verbatim
    FATAL             = "fatal"              # no Phase-1 identity: restart account creation
    BUSY              = "busy"               # another transition is in flight
    SUBMITTED         = "submitted"
    CONFIRM_ABANDON   = "confirm_abandon"
    ABANDONED         = "abandoned"
    DISCARDED         = "discarded"          # session no longer active; nothing applied


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class WorkflowResult:
    status: ResultStatus
    step_index: int
    state: str
    errors: Tuple[FieldError, ...] = ()
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (
            ResultStatus.UPDATED,
            ResultStatus.ADVANCED,
            ResultStatus.RETREATED,
            ResultStatus.SUBMITTED,
            ResultStatus.ABANDONED,
        )

    def summary(self) -> str:
        """One notification text covering every error."""
        if self.message:
            return self.message
        if not self.errors:
            return ""
        if len(self.errors) == 1:
            return self.errors[0].message
        lines = "\n• ".join(e.message for e in self.errors)
        return f"Please fix {len(self.errors)} errors:\n• {lines}"


# ── Controller ────────────────────────────────────────────────────────────────

class WorkflowController:
    """
    Drives one RegistrationSession through the wizard.

    Parameters
    ----------
    session : the session to own; no other component may mutate it
    api     : backend collaborator (update / complete / fetch profile)
    cfg     : minimum age and default country
    """

    def __init__(
        self,
        session: RegistrationSession,
        api: ProfileBackend,
        cfg: Settings = settings,
    ) -> None:
        if not session.is_active:
            raise RegistrationError("Cannot drive a finished registration session")
        self._session = session
        self._api = api
        self._min_age = cfg.MIN_AGE
        self._default_country = cfg.DEFAULT_COUNTRY
        # Session whose backend call is pending; a restarted session is never busy
        self._busy: Optional[RegistrationSession] = None

    @classmethod
    async def resume(
        cls,
        identity: Optional[Phase1Identity],
        api: ProfileBackend,
        steps: Tuple[StepDefinition, ...] = STEPS,
        clock: Callable[[], date] = date.today,
        cfg: Settings = settings,
    ) -> "WorkflowController":
        """
        Controller over a session seeded from the backend's profile snapshot.

        Falls back to a blank session when the snapshot cannot be fetched.
        """
        if identity is None:
            return cls(RegistrationSession.create(None, steps=steps, clock=clock), api, cfg)

        try:
            response = await api.fetch_profile(identity.username)
        except Exception:
            logger.exception("Profile snapshot fetch crashed for %s", identity.username)
            response = ApiResponse.failure(UNEXPECTED_ERROR_MESSAGE)

        if response.ok:
            session = RegistrationSession.from_snapshot(
                identity, response.data, steps=steps, clock=clock,
            )
        else:
            logger.warning(
                "No profile snapshot for %s (%s); starting blank",
                identity.username, response.error,
            )
            session = RegistrationSession.create(identity, steps=steps, clock=clock)
        return cls(session, api, cfg)

    # ── Public API ───────────────────────────────────────────────────────────

    @property
    def session(self) -> RegistrationSession:
        return self._session

    @property
    def in_flight(self) -> bool:
        return self._busy is not None and self._busy is self._session

    def restart(self, identity: Optional[Phase1Identity]) -> RegistrationSession:
        """
        Discard the current session and start a blank one (e.g. after redoing Phase 1).

        A call still pending for the old session does not block the new one;
        its result is dropped when it arrives.
        """
        old = self._session
        old._discard()
        self._session = RegistrationSession.create(identity, steps=old.steps, clock=old.today)
        logger.info("Registration restarted for %s", identity.username if identity else "<no identity>")
        return self._session

    async def dispatch(self, command: Command) -> WorkflowResult:
        session = self._session
        if not session.is_active:
            return self._result(ResultStatus.DISCARDED, message=INACTIVE_MESSAGE)

        if isinstance(command, FieldChange):
            return self._on_change(command)
        if isinstance(command, FieldBlur):
            return self._on_blur(command)
        if isinstance(command, Back):
            return self._on_back()
        if isinstance(command, Abandon):
            return self._on_abandon(command)

        if isinstance(command, Next):
            handler = self._on_next
        elif isinstance(command, SubmitStep):
            handler = self._on_submit_step
        elif isinstance(command, FinalSubmit):
            handler = self._on_final_submit
        else:
            raise RegistrationError(f"Unknown command: {command!r}")

        if self._busy is session:
            logger.debug("Ignoring %s: a transition is already in flight", type(command).__name__)
            return self._result(ResultStatus.BUSY, message=BUSY_MESSAGE)
        if session.identity is None:
            logger.warning("Transition refused: registration has no Phase-1 identity")
            return self._result(ResultStatus.FATAL, message=MISSING_IDENTITY_MESSAGE)

        self._busy = session
        try:
            return await handler()
        finally:
            if self._busy is session:
                self._busy = None

    # ── Field events ─────────────────────────────────────────────────────────

    def _on_change(self, command: FieldChange) -> WorkflowResult:
        session = self._session
        try:
            session._set_value(command.field, command.value)
        except RegistrationError as exc:
            return self._rejected(command.field, str(exc))
        except ValueError:
            return self._rejected(command.field, INVALID_VALUE_MESSAGE)
        session._refresh_error(command.field)

        if command.field == BIRTHDAY_FIELD and session.derived_age is not None:
            # PH-only app: country follows from a valid birthday
            if COUNTRY_FIELD in session.values and session.value(COUNTRY_FIELD).is_empty:
                session._set_value(COUNTRY_FIELD, self._default_country)

        for name in session.dependents(command.field):
            session._refresh_error(name)

        return self._result(ResultStatus.UPDATED, errors=self._visible(session.current_step))

    def _on_blur(self, command: FieldBlur) -> WorkflowResult:
        session = self._session
        try:
            session._touch(command.field)
        except RegistrationError as exc:
            return self._rejected(command.field, str(exc))
        session._refresh_error(command.field)
        return self._result(ResultStatus.UPDATED, errors=self._visible(session.current_step))

    def _rejected(self, name: str, message: str) -> WorkflowResult:
        logger.warning("Rejected input for field %s: %s", name, message)
        return self._result(ResultStatus.VALIDATION_FAILED, errors=(FieldError(name, message),))

    # ── Navigation ───────────────────────────────────────────────────────────

    def _on_back(self) -> WorkflowResult:
        session = self._session
        if session.step_index == 0:
            return self._result(ResultStatus.UPDATED)
        # Errors of the step being left are kept as they are
        session._set_step(session.step_index - 1)
        return self._result(ResultStatus.RETREATED)

    def _on_abandon(self, command: Abandon) -> WorkflowResult:
        session = self._session
        if session.dirty and not command.confirmed:
            return self._result(ResultStatus.CONFIRM_ABANDON, message=UNSAVED_CHANGES_MESSAGE)
        session._discard()
        logger.info(
            "Registration abandoned at step %d for %s",
            session.step_index,
            session.identity.username if session.identity else "<no identity>",
        )
        return self._result(ResultStatus.ABANDONED)

    async def _on_next(self) -> WorkflowResult:
        step = self._session.current_step
        if step.final:
            return await self._on_final_submit()
        if step.persist:
            return await self._on_submit_step()

        errors = self._validate_steps([step])
        if errors:
            return self._result(ResultStatus.VALIDATION_FAILED, errors=errors)
        self._session._set_step(self._session.step_index + 1)
        return self._result(ResultStatus.ADVANCED)

    async def _on_submit_step(self) -> WorkflowResult:
        session = self._session
        step = session.current_step
        if step.final:
            return await self._on_final_submit()

        errors = self._validate_steps([step])
        if errors:
            return self._result(ResultStatus.VALIDATION_FAILED, errors=errors)

        index = session.step_index
        revision = session.revision
        username = session.identity.username
        fields = build_step_payload(session, step)

        response = await self._call(self._api.update_profile, username, fields)

        if not self._still_active(session):
            logger.info("Dropping %s save result for an inactive session", step.name)
            return self._result(ResultStatus.DISCARDED, message=INACTIVE_MESSAGE)
        if not response.ok:
            logger.warning("Saving %s failed for %s: %s", step.name, username, response.error)
            return self._result(ResultStatus.BACKEND_ERROR, message=response.error)

        session._mark_saved(revision)
        logger.info("Step %s saved for %s", step.name, username)
        if session.step_index != index:
            # User navigated back while the save was in flight: stay there
            return self._result(ResultStatus.UPDATED)
        if session.revision != revision:
            # Edits made during the save must still pass before the step is left
            errors = self._validate_steps([step])
            if errors:
                return self._result(ResultStatus.VALIDATION_FAILED, errors=errors)
        session._set_step(min(index + 1, len(session.steps) - 1))
        return self._result(ResultStatus.ADVANCED)

    async def _on_final_submit(self) -> WorkflowResult:
        session = self._session
        if not session.current_step.final:
            return self._result(
                ResultStatus.VALIDATION_FAILED,
                message="Please complete the remaining steps first.",
            )

        # Every step, not only the last one
        errors = self._validate_steps(session.steps)
        if errors:
            return self._result(ResultStatus.VALIDATION_FAILED, errors=errors)

        try:
            payload = build_completion_payload(session, min_age=self._min_age)
        except ValidationError as exc:
            return self._result(
                ResultStatus.VALIDATION_FAILED, errors=tuple(self._payload_errors(exc)),
            )
        except MissingIdentityError as exc:
            return self._result(ResultStatus.FATAL, message=str(exc))

        username = session.identity.username
        response = await self._call(
            self._api.complete_profile, username, payload, True,
        )

        if not self._still_active(session):
            logger.info("Dropping completion result for an inactive session")
            return self._result(ResultStatus.DISCARDED, message=INACTIVE_MESSAGE)
        if not response.ok:
            logger.warning("Profile completion failed for %s: %s", username, response.error)
            return self._result(ResultStatus.BACKEND_ERROR, message=response.error)

        session._mark_submitted()
        logger.info("Profile completed for %s", username)
        return self._result(ResultStatus.SUBMITTED)

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _validate_steps(self, steps: Iterable[StepDefinition]) -> Tuple[FieldError, ...]:
        """Force-touch and validate every owned field; collect every failure."""
        session = self._session
        errors: List[FieldError] = []
        for step in steps:
            for name in step.field_names:
                session._touch(name)
                message = session._refresh_error(name)
                if message:
                    errors.append(FieldError(name, message))
        return tuple(errors)

    def _visible(self, step: StepDefinition) -> Tuple[FieldError, ...]:
        visible = self._session.visible_errors()
        return tuple(
            FieldError(name, visible[name]) for name in step.field_names if name in visible
        )

    def _payload_errors(self, exc: ValidationError) -> Iterable[FieldError]:
        for err in exc.errors():
            key = str(err["loc"][0]) if err["loc"] else ""
            name = _PAYLOAD_FIELD_NAMES.get(key, key)
            ctx_error = (err.get("ctx") or {}).get("error")
            yield FieldError(name, str(ctx_error) if ctx_error else err["msg"])

    async def _call(
        self,
        fn: Callable[..., Awaitable[ApiResponse]],
        *args: Any,
    ) -> ApiResponse:
        """Run a backend call; anything it raises becomes a BACKEND_ERROR response."""
        try:
            return await fn(*args)
        except Exception:
            logger.exception("Backend call %s crashed", getattr(fn, "__name__", fn))
            return ApiResponse.failure(UNEXPECTED_ERROR_MESSAGE)

    def _still_active(self, session: RegistrationSession) -> bool:
        return self._session is session and session.is_active

    def _result(
        self,
        status: ResultStatus,
        errors: Tuple[FieldError, ...] = (),
        message: str = "",
    ) -> WorkflowResult:
        session = self._session
        if session.submitted:
            state = RegistrationSteps.submitted.state
        else:
            state = session.current_step.state.state
        return WorkflowResult(
            status=status,
            step_index=session.step_index,
            state=state,
            errors=errors,
            message=message,
        )
