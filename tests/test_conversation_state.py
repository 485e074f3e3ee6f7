import pytest
from pydantic import ValidationError

from doctorkoi.conversation_state import (
    BookingState,
    LocationState,
    RecommendationState,
    state_from_dict,
    state_to_dict,
)
from doctorkoi.models import InvalidState


def test_states_serialize_with_their_step():
    state = RecommendationState(detected_disease="Malaria", user_location="Dhanmondi", recommended_doctor_id=3)
    data = state_to_dict(state)
    assert data == {
        "current_step": "recommendation",
        "detected_disease": "Malaria",
        "user_location": "Dhanmondi",
        "recommended_doctor_id": 3,
    }
    assert state_from_dict(data) == state


def test_location_state_may_lack_a_disease():
    assert state_from_dict({"current_step": "location"}) == LocationState()


@pytest.mark.parametrize(
    "data",
    [
        {"current_step": "nowhere"},
        {"current_step": "booking", "detected_disease": "Malaria"},
        {"current_step": "greeting", "recommended_doctor_id": 4},
        "booking",
    ],
)
def test_malformed_state_is_rejected(data):
    with pytest.raises(InvalidState):
        state_from_dict(data)


def test_states_are_immutable():
    state = BookingState(detected_disease="Malaria", user_location="Dhanmondi",
                         recommended_doctor_id=1, appointment_id=7)
    with pytest.raises(ValidationError):
        state.appointment_id = 8
