"""Multi-step feedback form: wizard state, validation and submission."""

import logging
import re
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any

from models.feedback import (
    AttributionSnapshot,
    ClientCommunicationImpact,
    EarlyAccessInvitation,
    FeedbackDraft,
    FirmProfile,
    ValuePerception,
)
from services.feedback_service import FeedbackService, StorageError
from services.newsletter_service import NewsletterService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_NAME_LENGTH = 2
SUBMIT_ERROR_MESSAGE = "There was an error submitting your feedback. Please try again."


class WizardStep(IntEnum):
    """Wizard positions; SUBMITTED is terminal."""

    CONTACT = 1
    EXPERIENCE = 2
    PREFERENCES = 3
    FINAL = 4
    SUBMITTED = 5


TOTAL_STEPS = int(WizardStep.FINAL)

_IMPACT_VALUES = {choice.value for choice in ClientCommunicationImpact}
_VALUE_PERCEPTION_VALUES = {choice.value for choice in ValuePerception}
_FIRM_PROFILE_VALUES = {choice.value for choice in FirmProfile}
_EARLY_ACCESS_VALUES = {choice.value for choice in EarlyAccessInvitation}


# MARK: - Validation


def validate_step(draft: FeedbackDraft, step: int) -> dict[str, str]:
    """Field errors that block leaving ``step``.

    Returns:
        Mapping of field name to message; empty when the step is complete
    """
    errors: dict[str, str] = {}

    if step == WizardStep.CONTACT:
        email = draft.email.strip()
        if not email:
            errors["email"] = "Email is required"
        elif not EMAIL_PATTERN.match(email):
            errors["email"] = "Please enter a valid email address"

        name = draft.name.strip()
        if not name:
            errors["name"] = "Name is required"
        elif len(name) < MIN_NAME_LENGTH:
            errors["name"] = "Name must be at least 2 characters"

    elif step == WizardStep.EXPERIENCE:
        if draft.client_communication_impact not in _IMPACT_VALUES:
            errors["client_communication_impact"] = "Please select an option"

    elif step == WizardStep.PREFERENCES:
        if draft.value_perception not in _VALUE_PERCEPTION_VALUES:
            errors["value_perception"] = "Please select an option"
        if not draft.next_tools:
            errors["next_tools"] = "Please select at least one tool"

    elif step == WizardStep.FINAL:
        if draft.firm_profile not in _FIRM_PROFILE_VALUES:
            errors["firm_profile"] = "Please select your firm type"
        if draft.early_access_invitation not in _EARLY_ACCESS_VALUES:
            errors["early_access_invitation"] = "Please select an option"

    return errors


def validate_draft(draft: FeedbackDraft) -> tuple[int | None, dict[str, str]]:
    """Validate every step in order.

    Returns:
        (first failing step, its errors), or (None, {}) when all pass
    """
    for step in range(WizardStep.CONTACT, WizardStep.FINAL + 1):
        errors = validate_step(draft, step)
        if errors:
            return step, errors
    return None, {}


# MARK: - State and actions


@dataclass(frozen=True)
class WizardState:
    """Immutable snapshot of the form."""

    step: WizardStep = WizardStep.CONTACT
    draft: FeedbackDraft = field(default_factory=FeedbackDraft)
    errors: dict[str, str] = field(default_factory=dict)
    is_submitting: bool = False
    submit_error: str | None = None
    record_id: str | None = None

    @property
    def is_submitted(self) -> bool:
        return self.step == WizardStep.SUBMITTED

    @property
    def progress(self) -> float:
        """Percentage of steps reached."""
        return min(int(self.step), TOTAL_STEPS) / TOTAL_STEPS * 100


@dataclass(frozen=True)
class UpdateField:
    name: str
    value: Any


@dataclass(frozen=True)
class ToggleTool:
    tool: str
    checked: bool


@dataclass(frozen=True)
class NextStep:
    pass


@dataclass(frozen=True)
class PreviousStep:
    pass


@dataclass(frozen=True)
class SubmitStarted:
    pass


@dataclass(frozen=True)
class SubmitSucceeded:
    record_id: str


@dataclass(frozen=True)
class SubmitFailed:
    message: str = SUBMIT_ERROR_MESSAGE


WizardAction = (
    UpdateField
    | ToggleTool
    | NextStep
    | PreviousStep
    | SubmitStarted
    | SubmitSucceeded
    | SubmitFailed
)


def _with_field(state: WizardState, name: str, value: Any) -> WizardState:
    if name not in FeedbackDraft.model_fields:
        raise ValueError(f"Unknown form field: {name}")
    # Re-validate so ratings stay within 1-10
    draft = FeedbackDraft.model_validate({**state.draft.model_dump(), name: value})
    errors = {key: msg for key, msg in state.errors.items() if key != name}
    return replace(state, draft=draft, errors=errors)


def reduce(state: WizardState, action: WizardAction) -> WizardState:
    """Apply one action to the wizard. The only place state changes.

    Raises:
        ValueError: For an unknown field name
        pydantic.ValidationError: For a rating outside 1-10 or an unknown tool
    """
    if state.is_submitted:
        return state

    if isinstance(action, UpdateField):
        return _with_field(state, action.name, action.value)

    if isinstance(action, ToggleTool):
        tools = [tool for tool in state.draft.next_tools if tool != action.tool]
        if action.checked:
            tools.append(action.tool)
        return _with_field(state, "next_tools", tools)

    if isinstance(action, NextStep):
        errors = validate_step(state.draft, state.step)
        if errors:
            return replace(state, errors=errors)
        if state.step < WizardStep.FINAL:
            return replace(state, step=WizardStep(state.step + 1), errors={})
        return replace(state, errors={})

    if isinstance(action, PreviousStep):
        if state.step > WizardStep.CONTACT:
            return replace(state, step=WizardStep(state.step - 1), errors={})
        return state

    if isinstance(action, SubmitStarted):
        if state.step != WizardStep.FINAL or state.is_submitting:
            return state
        errors = validate_step(state.draft, WizardStep.FINAL)
        if errors:
            return replace(state, errors=errors)
        return replace(state, errors={}, is_submitting=True, submit_error=None)

    if isinstance(action, SubmitSucceeded):
        return replace(
            state,
            step=WizardStep.SUBMITTED,
            is_submitting=False,
            submit_error=None,
            record_id=action.record_id,
        )

    if isinstance(action, SubmitFailed):
        return replace(state, is_submitting=False, submit_error=action.message)

    raise TypeError(f"Unsupported wizard action: {action!r}")


# MARK: - Controller


class FeedbackFormController:
    """Drives one respondent through the wizard and performs the submit."""

    def __init__(
        self,
        feedback_service: FeedbackService,
        newsletter_service: NewsletterService | None = None,
        attribution: AttributionSnapshot | None = None,
        state: WizardState | None = None,
    ):
        self.feedback_service = feedback_service
        self.newsletter_service = newsletter_service
        self.attribution = attribution or AttributionSnapshot()
        self.state = state or WizardState()

    def dispatch(self, action: WizardAction) -> WizardState:
        self.state = reduce(self.state, action)
        return self.state

    def update_field(self, name: str, value: Any) -> WizardState:
        return self.dispatch(UpdateField(name, value))

    def toggle_tool(self, tool: str, checked: bool) -> WizardState:
        return self.dispatch(ToggleTool(tool, checked))

    def next_step(self) -> WizardState:
        return self.dispatch(NextStep())

    def previous_step(self) -> WizardState:
        return self.dispatch(PreviousStep())

    def handle_submit(self) -> WizardState:
        """Validate the final step, store the record and notify the newsletter.

        A storage failure leaves the wizard on the final step with a
        retryable message. Newsletter failures never block submission.
        """
        self.dispatch(SubmitStarted())
        if not self.state.is_submitting:
            return self.state

        try:
            record = self.feedback_service.submit(self.state.draft, self.attribution)
        except StorageError as e:
            logger.error("Error submitting feedback: %s", e)
            return self.dispatch(SubmitFailed())

        if self.newsletter_service is not None:
            self.newsletter_service.forward_safely(record)

        return self.dispatch(SubmitSucceeded(record.id))
