"""
Client-side orchestration of the two-phase registration / profile-completion wizard.
"""
from regflow.controller import (
    WorkflowController, WorkflowResult, ResultStatus, FieldError,
    FieldChange, FieldBlur, Next, Back, SubmitStep, FinalSubmit, Abandon,
)
from regflow.models import Phase1Identity
from regflow.session import RegistrationSession, RegistrationError
from regflow.steps import STEPS, build_steps

__all__ = [
    "WorkflowController", "WorkflowResult", "ResultStatus", "FieldError",
    "FieldChange", "FieldBlur", "Next", "Back", "SubmitStep", "FinalSubmit", "Abandon",
    "Phase1Identity", "RegistrationSession", "RegistrationError",
    "STEPS", "build_steps",
]
