"""
conversation_state.py
Per-session conversation state, one variant per step.

Each variant carries only the fields that are meaningful at that step, so a
doctor id can never be stored before a disease has been detected.
"""
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .models import InvalidState

STEPS = ("greeting", "problem", "location", "recommendation", "booking")


class _State(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GreetingState(_State):
    current_step: Literal["greeting"] = "greeting"


class ProblemState(_State):
    current_step: Literal["problem"] = "problem"


class LocationState(_State):
    current_step: Literal["location"] = "location"
    # None when the matcher only asked for more context
    detected_disease: Optional[str] = None


class RecommendationState(_State):
    current_step: Literal["recommendation"] = "recommendation"
    detected_disease: str
    user_location: str
    # None when no doctor was found and a broader search was offered
    recommended_doctor_id: Optional[int] = None


class BookingState(_State):
    current_step: Literal["booking"] = "booking"
    detected_disease: str
    user_location: str
    recommended_doctor_id: int
    appointment_id: int


ConversationState = Annotated[
    Union[GreetingState, ProblemState, LocationState, RecommendationState, BookingState],
    Field(discriminator="current_step"),
]

_adapter = TypeAdapter(ConversationState)


def fresh_state():
    return GreetingState()


def state_to_dict(state):
    """Serialize a state for the session store."""
    return state.model_dump()


def state_from_dict(data):
    """Rebuild a state from its serialized form; raises InvalidState on garbage."""
    if data is None:
        return None
    try:
        return _adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidState(f"Malformed conversation state: {e.error_count()} error(s)") from e


def detected_disease(state):
    return getattr(state, "detected_disease", None) if state is not None else None


def user_location(state):
    return getattr(state, "user_location", None) if state is not None else None


def recommended_doctor_id(state):
    return getattr(state, "recommended_doctor_id", None) if state is not None else None
