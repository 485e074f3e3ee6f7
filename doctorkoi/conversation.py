"""
conversation.py
The conversation state machine: greeting -> problem -> location -> recommendation -> booking.

Every turn returns a text reply. Collaborator failures degrade to the next
fallback or a canned reply; anything unexpected resets to a fresh state.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .booking import confirm_booking
from .config import DEFAULT_CONSULTATION_FEE
from .conversation_state import (
    BookingState,
    GreetingState,
    LocationState,
    ProblemState,
    RecommendationState,
    detected_disease,
    fresh_state,
    state_from_dict,
    state_to_dict,
    user_location,
)
from .database import best_effort
from .disease_matching import match_disease
from .doctor_ranking import rank_doctors
from .intent_detection import classify_confirmation, extract_location, is_greeting, is_health_related, looks_like_location
from .llm_fallback import GENERIC_REPLY, GREETING_REPLY, build_system_prompt, canned_reply, filter_llm_output
from .models import ChatMessage, DoctorSnapshot, DoctorUnavailable, LLMUnavailable
from .specialty_mapping import map_to_specialty
from .symptom_extraction import extract_keyword_symptoms, extract_symptoms

logger = logging.getLogger(__name__)

LOCATION_PROMPT = "To help you better, could you please tell me your location?"
SOFT_LOCATION_PROMPT = (
    "I understand you're experiencing some symptoms. To recommend the best doctor for you, "
    "could you please tell me your location?"
)
MORE_DETAIL_PROMPT = (
    "I understand you're not feeling well. Could you please describe your symptoms in more detail? "
    "For example: fever, headache, pain, cough, etc."
)
IDENTIFY_AGAIN_PROMPT = (
    "I couldn't identify your condition. Please describe your symptoms again, "
    "and I'll help you find the right doctor."
)
BOOKING_STARTED_REPLY = "Great! I'm opening the payment window to confirm your appointment."
DOCTOR_UNAVAILABLE_REPLY = (
    "The recommended doctor is no longer available. "
    "Would you like me to find another doctor for you?"
)
BOOKING_FAILED_REPLY = "I encountered an error creating your appointment. Please try again."
CLOSING_REPLY = "No worries! If you need any help later, feel free to chat with me anytime. Take care! 😊"

HISTORY_MESSAGES = 5


@dataclass
class TurnResult:
    response: str
    state: object
    detected_disease: Optional[str] = None
    recommended_doctor_id: Optional[int] = None
    appointment_id: Optional[int] = None
    doctor: Optional[DoctorSnapshot] = None
    requires_location: bool = False

    def as_dict(self):
        return {
            "message": self.response,
            "state": state_to_dict(self.state),
            "detected_disease": self.detected_disease,
            "recommended_doctor_id": self.recommended_doctor_id,
            "appointment_id": self.appointment_id,
            "doctor_info": self.doctor.as_dict() if self.doctor else None,
            "requires_location": self.requires_location,
        }


def format_number(value):
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def format_recommendation(disease, specialty, doctor, fee):
    lines = [
        f"Based on your condition (**{disease}**), I recommend consulting a **{specialty}** specialist.",
        "",
        "**Recommended Doctor:**",
        f"**Dr. {doctor.name}**",
    ]
    if doctor.specialty:
        lines.append(f"Specialty: {doctor.specialty}")
    if doctor.chamber:
        lines.append(f"Chamber: {doctor.chamber}")
    if doctor.location:
        lines.append(f"Location: {doctor.location}")
    if doctor.experience is not None:
        lines.append(f"Experience: {format_number(doctor.experience)} years")
    lines.append(f"Consultation Fee: {format_number(fee)} BDT")
    lines.append("")
    lines.append("Would you like to book an appointment?")
    return "\n".join(lines)


class ConversationEngine:
    """Drives one conversation turn at a time against the catalog, directory and stores."""

    def __init__(self, catalog, doctors, appointments, dataset, llm=None, transcript=None,
                 default_fee=DEFAULT_CONSULTATION_FEE):
        self.catalog = catalog
        self.doctors = doctors
        self.appointments = appointments
        self.dataset = dataset
        self.llm = llm
        self.transcript = transcript
        self.default_fee = default_fee

    # --- entry points ---

    def respond(self, text, owner_id, prior_state=None):
        """process_message plus best-effort transcript logging of both sides."""
        if self.transcript is not None:
            best_effort("save user message", self.transcript.append,
                        ChatMessage(owner_id=owner_id, message=text, is_from_user=True))
        result = self.process_message(text, owner_id, prior_state)
        if self.transcript is not None:
            best_effort("save bot message", self.transcript.append,
                        ChatMessage(owner_id=owner_id, message=result.response, is_from_user=False,
                                    detected_disease=result.detected_disease,
                                    recommended_doctor_id=result.recommended_doctor_id))
        return result

    def process_message(self, text, owner_id, prior_state=None):
        """Run one turn. prior_state may be a state, its serialized dict, or None when fresh."""
        try:
            state = state_from_dict(prior_state) if isinstance(prior_state, dict) else prior_state
            return self._dispatch(text or "", owner_id, state)
        except Exception:
            logger.exception("Unexpected error while processing message for %s", owner_id)
            return TurnResult(response=GENERIC_REPLY, state=fresh_state())

    # --- transitions ---

    def _dispatch(self, text, owner_id, state):
        if state is None or is_greeting(text):
            return TurnResult(response=GREETING_REPLY, state=GreetingState())

        if isinstance(state, (GreetingState, ProblemState)) or (
                isinstance(state, BookingState) and extract_keyword_symptoms(text)):
            result = self._capture_problem(text)
            if result is not None:
                return result

        disease = detected_disease(state)
        if isinstance(state, LocationState) or (
                disease and looks_like_location(text) and not isinstance(state, RecommendationState)):
            return self._capture_location(text, state)

        if isinstance(state, RecommendationState):
            answer = classify_confirmation(text)
            if answer == "affirmative":
                if state.recommended_doctor_id is not None:
                    return self._book(state, owner_id)
                return self._recommend(state.detected_disease, state.user_location)
            if answer == "negative":
                return TurnResult(response=CLOSING_REPLY, state=GreetingState())

        return self._default_reply(text, owner_id, state)

    def _capture_problem(self, text):
        symptoms = extract_symptoms(text, self.llm)
        if not symptoms and not is_health_related(text):
            return None

        result = match_disease(text, symptoms, self._load_catalog(), self._load_dataset(), self.llm)
        if result.matched:
            disease = result.disease
            response = f"Based on your symptoms, this could be **{disease.name}**.\n\n"
            if disease.description:
                response += f"{disease.description}\n\n"
            response += LOCATION_PROMPT
            return TurnResult(
                response=response,
                state=LocationState(detected_disease=disease.name),
                detected_disease=disease.name,
                requires_location=True,
            )
        if result.needs_more_context:
            return TurnResult(response=SOFT_LOCATION_PROMPT, state=LocationState(), requires_location=True)
        return TurnResult(response=MORE_DETAIL_PROMPT, state=ProblemState())

    def _capture_location(self, text, state):
        location = extract_location(text)
        disease = detected_disease(state)
        logger.debug("User provided location %r for disease %r", location, disease)
        if not disease:
            return TurnResult(response=IDENTIFY_AGAIN_PROMPT, state=ProblemState())
        return self._recommend(disease, location)

    def _recommend(self, disease, location):
        specialty = map_to_specialty(disease, self._load_catalog())
        logger.info("Mapped disease %r to specialty %r", disease, specialty)
        doctors = rank_doctors(specialty, location, self._load_directory())

        if not doctors:
            response = (
                f"I couldn't find a **{specialty}** specialist in **{location}** at the moment.\n\n"
                "Would you like me to search for doctors in nearby areas or different locations?"
            )
            return TurnResult(
                response=response,
                state=RecommendationState(detected_disease=disease, user_location=location),
                detected_disease=disease,
            )

        best = doctors[0]
        fee = best.consultation_fee if best.consultation_fee and best.consultation_fee > 0 else self.default_fee
        return TurnResult(
            response=format_recommendation(disease, specialty, best, fee),
            state=RecommendationState(detected_disease=disease, user_location=location,
                                      recommended_doctor_id=best.id),
            detected_disease=disease,
            recommended_doctor_id=best.id,
        )

    def _book(self, state, owner_id):
        try:
            booking = confirm_booking(state.recommended_doctor_id, owner_id, self.doctors,
                                      self.appointments, self.default_fee)
        except DoctorUnavailable as e:
            logger.warning("%s", e)
            return TurnResult(
                response=DOCTOR_UNAVAILABLE_REPLY,
                state=RecommendationState(detected_disease=state.detected_disease,
                                          user_location=state.user_location),
                detected_disease=state.detected_disease,
            )
        except Exception as e:
            logger.warning("Error creating appointment: %s", e)
            return TurnResult(response=BOOKING_FAILED_REPLY, state=state)

        return TurnResult(
            response=BOOKING_STARTED_REPLY,
            state=BookingState(
                detected_disease=state.detected_disease,
                user_location=state.user_location,
                recommended_doctor_id=state.recommended_doctor_id,
                appointment_id=booking.appointment_id,
            ),
            detected_disease=state.detected_disease,
            recommended_doctor_id=state.recommended_doctor_id,
            appointment_id=booking.appointment_id,
            doctor=booking.doctor,
        )

    def _default_reply(self, text, owner_id, state):
        if self.llm is None:
            return TurnResult(response=canned_reply(text), state=state)
        try:
            system_prompt = build_system_prompt(state.current_step, detected_disease(state), user_location(state))
            reply = self.llm.complete(system_prompt, text, history=self._recent_history(owner_id, text),
                                      max_tokens=300, temperature=0.7)
            return TurnResult(response=filter_llm_output(reply), state=state)
        except LLMUnavailable:
            logger.debug("LLM unavailable, using canned reply")
        except Exception as e:
            logger.warning("LLM reply failed: %s", e)
        return TurnResult(response=canned_reply(text), state=state)

    # --- collaborator reads, each degrading to empty ---

    def _load_catalog(self):
        try:
            return self.catalog.list_diseases()
        except Exception as e:
            logger.warning("Could not load disease catalog: %s", e)
            return []

    def _load_directory(self):
        try:
            return self.doctors.list_doctors()
        except Exception as e:
            logger.warning("Could not load doctor directory: %s", e)
            return []

    def _load_dataset(self):
        if self.dataset is None:
            return {}
        return self.dataset.get()

    def _recent_history(self, owner_id, text):
        if self.transcript is None:
            return []
        try:
            messages = self.transcript.history(owner_id, limit=HISTORY_MESSAGES + 1)
        except Exception as e:
            logger.warning("Could not load chat history: %s", e)
            return []
        # the current message may already have been logged
        if messages and messages[-1].is_from_user and messages[-1].message == text:
            messages = messages[:-1]
        return [
            {"role": "user" if m.is_from_user else "assistant", "content": m.message}
            for m in messages[-HISTORY_MESSAGES:]
        ]
