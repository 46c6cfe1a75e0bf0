"""
Ordered step definitions for the profile-completion wizard.

Flow:
  basic info → ID verification → photo upload → about you → submitted ✅

Each step owns a subset of the session's fields, the validators gating
forward movement past it, and whether the step must round-trip to the
backend (``persist``) before the wizard advances.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from aiogram.fsm.state import State

from regflow.config import Settings, settings
from regflow.models.fields import FieldKind
from regflow.states import RegistrationSteps
from regflow.validators import (
    NAME_RE,
    NICKNAME_RE,
    PHONE_RE,
    Validator,
    email_format,
    matches,
    max_items,
    max_length,
    maximum_age,
    min_length,
    min_selections,
    minimum_age,
    required,
    valid_date,
)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    label: str
    validators: Tuple[Validator, ...] = ()
    required: bool = False
    # fields whose value feeds this one (re-checked when they change)
    derived_from: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StepDefinition:
    state: State
    title: str
    fields: Tuple[FieldSpec, ...] = field(default_factory=tuple)
    persist: bool = False
    final: bool = False

    @property
    def name(self) -> str:
        return self.state.state.split(":")[-1]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)


def _name_field(name: str, label: str, *, is_required: bool) -> FieldSpec:
    validators: list[Validator] = []
    if is_required:
        validators.append(required(f"{label} is required"))
    validators += [
        min_length(2, f"{label} must be at least 2 characters"),
        max_length(50, f"{label} must be less than 50 characters"),
        matches(
            NAME_RE,
            f"{label} can only contain letters, spaces, hyphens, and apostrophes",
        ),
    ]
    return FieldSpec(name, FieldKind.TEXT, label, tuple(validators), required=is_required)


def build_steps(cfg: Settings = settings) -> Tuple[StepDefinition, ...]:
    """Build the wizard with the age and selection limits taken from *cfg*."""
    basic_info = StepDefinition(
        state=RegistrationSteps.basic_info,
        title="Basic info",
        persist=True,
        fields=(
            _name_field("firstName", "First name", is_required=True),
            _name_field("lastName", "Last name", is_required=True),
            FieldSpec("middleName", FieldKind.TEXT, "Middle name", (
                max_length(50, "Middle name must be less than 50 characters"),
                matches(
                    NAME_RE,
                    "Middle name can only contain letters, spaces, hyphens, and apostrophes",
                ),
            )),
            FieldSpec("nickName", FieldKind.TEXT, "Nickname", (
                min_length(2, "Nickname must be at least 2 characters"),
                max_length(20, "Nickname must be less than 20 characters"),
                matches(
                    NICKNAME_RE,
                    "Nickname can only contain letters, numbers, underscores, and spaces",
                ),
            )),
            # Optional: the account e-mail was already collected in Phase 1
            FieldSpec("email", FieldKind.TEXT, "Email", (email_format(),)),
            FieldSpec("phone", FieldKind.TEXT, "Phone", (
                matches(PHONE_RE, "Please enter a valid phone number"),
            )),
            FieldSpec("address", FieldKind.TEXT, "Address", (
                max_length(200, "Address must be less than 200 characters"),
            )),
            FieldSpec("birthday", FieldKind.DATE, "Birthday", (
                required("Birthday is required"),
                valid_date(),
                minimum_age(
                    cfg.MIN_AGE,
                    f"You must be at least {cfg.MIN_AGE} years old to join",
                ),
                maximum_age(cfg.MAX_AGE),
            ), required=True),
            FieldSpec("country", FieldKind.CHOICE, "Country", (
                required("Country is required"),
            ), required=True, derived_from=("birthday",)),
            FieldSpec("civilStatus", FieldKind.CHOICE, "Civil status", (
                required("Please select your civil status."),
            ), required=True),
            FieldSpec("city", FieldKind.CHOICE, "City/Province", (
                required("City/Province is required"),
            ), required=True),
            FieldSpec("hobby", FieldKind.MULTI, "Hobby", (
                min_selections(1, "Please select at least 1 hobby."),
            ), required=True),
        ),
    )

    id_verification = StepDefinition(
        state=RegistrationSteps.id_verification,
        title="ID verification",
        persist=True,
        fields=(
            FieldSpec("idPhotoFront", FieldKind.PHOTOS, "ID photo (front)", (
                required("Please upload a photo of your ID card."),
                max_items(1, "Only one photo of the ID front can be uploaded."),
            ), required=True),
            FieldSpec("idPhotoBack", FieldKind.PHOTOS, "ID photo (back)", (
                max_items(1, "Only one photo of the ID back can be uploaded."),
            )),
        ),
    )

    photo_upload = StepDefinition(
        state=RegistrationSteps.photo_upload,
        title="Photos",
        persist=True,
        fields=(
            FieldSpec("photos", FieldKind.PHOTOS, "Photos", (
                max_items(
                    cfg.MAX_PROFILE_PHOTOS,
                    f"You can only upload up to {cfg.MAX_PROFILE_PHOTOS - 1} additional photos.",
                ),
            )),
        ),
    )

    about_you = StepDefinition(
        state=RegistrationSteps.about_you,
        title="About you",
        final=True,
        fields=(
            FieldSpec("bio", FieldKind.TEXT, "Bio", (
                max_length(500, "Bio must be less than 500 characters"),
            )),
            FieldSpec("interests", FieldKind.MULTI, "Interests", (
                min_selections(
                    cfg.MIN_INTERESTS,
                    f"Please select at least {cfg.MIN_INTERESTS} interests.",
                ),
            ), required=True),
            FieldSpec("lookingFor", FieldKind.MULTI, "Looking for", (
                min_selections(
                    cfg.MIN_LOOKING_FOR,
                    f"Please select at least {cfg.MIN_LOOKING_FOR} options "
                    f"for what you're looking for.",
                ),
            ), required=True),
        ),
    )

    return (basic_info, id_verification, photo_upload, about_you)


STEPS: Tuple[StepDefinition, ...] = build_steps()


def field_spec(steps: Tuple[StepDefinition, ...], name: str) -> Optional[FieldSpec]:
    for step in steps:
        for spec in step.fields:
            if spec.name == name:
                return spec
    return None


def step_of(steps: Tuple[StepDefinition, ...], name: str) -> Optional[int]:
    """Index of the step owning field *name*, or None."""
    for index, step in enumerate(steps):
        if name in step.field_names:
            return index
    return None
