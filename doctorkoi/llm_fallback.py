"""
llm_fallback.py
Module for the remote LLM call, the persona prompt, output filtering and canned replies.
"""
import logging

import requests

from .config import DEFAULT_MODEL, GROQ_API_URL
from .intent_detection import is_greeting, is_health_related
from .models import LLMError, LLMUnavailable

logger = logging.getLogger(__name__)

GREETING_REPLY = "Hello! 😄 I'm Doctor Koi, your AI health assistant. How can I help you today?"
HEALTH_REPLY = (
    "I'm sorry you're feeling unwell 😟 Please describe your symptoms, and I'll help you "
    "identify the possible condition and recommend a suitable doctor."
)
GENERIC_REPLY = "I'm here to help! 😊 Please tell me about your health concerns or symptoms."

DISCLAIMER = "Note: I can't give a final diagnosis. Please consult a qualified doctor before starting any treatment."


class LLMClient:
    """Thin client for an OpenAI-compatible chat-completions endpoint."""

    def __init__(self, api_key, url=GROQ_API_URL, model=DEFAULT_MODEL, timeout=10.0, session=None):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def available(self):
        return bool(self.api_key)

    def complete(self, system_prompt, user_message, history=None, max_tokens=200, temperature=0.7):
        """Return the model's reply text.

        history is a list of {"role": ..., "content": ...} dicts, oldest first.
        Raises LLMUnavailable without a key and LLMError on any other failure.
        """
        if not self.available:
            raise LLMUnavailable("No LLM API key configured")

        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": user_message})

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "X-Title": "Doctor Koi",
        }
        data = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        try:
            response = self.session.post(self.url, headers=headers, json=data, timeout=self.timeout)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except requests.exceptions.RequestException as e:
            raise LLMError(f"Error calling LLM API: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise LLMError(f"Error processing LLM API response: {e}") from e

        if not content or not content.strip():
            raise LLMError("LLM returned an empty reply")
        return content.strip()


def build_system_prompt(current_step, disease=None, location=None):
    """Persona prompt for free conversation, with whatever context the session has."""
    prompt = (
        'You are "Doctor Koi", a friendly, empathetic and informal AI health assistant.\n'
        "PERSONALITY:\n"
        "- Short, clear, warm, human-like replies (2-4 sentences max)\n"
        "- Be supportive and understanding\n"
        "IMPORTANT RULES:\n"
        "- Never give a final medical diagnosis\n"
        "- Always encourage consulting a professional doctor\n"
        f"Current conversation step: {current_step}\n"
    )
    if disease:
        prompt += f"Detected disease: {disease}\n"
    if location:
        prompt += f"User location: {location}\n"
    return prompt


def canned_reply(user_input):
    """Pick a fixed reply when the LLM cannot be used."""
    if is_greeting(user_input):
        return GREETING_REPLY
    if is_health_related(user_input):
        return HEALTH_REPLY
    return GENERIC_REPLY


def filter_llm_output(llm_output):
    """Trim the reply and add the disclaimer once if it reads like treatment advice."""
    if not llm_output or not llm_output.strip():
        return GENERIC_REPLY
    llm_output = llm_output.strip()
    output_lower = llm_output.lower()

    medical_advice_indicators = [
        "take ", "dosage", "dose", "treatment", "remedy", "prescription", "medicine",
        "medication", "should take", "cure", "antibiotic"
    ]
    consult_phrases = [
        "doctor", "physician", "healthcare professional", "medical professional",
        "seek medical", "specialist", "clinician"
    ]

    if any(indicator in output_lower for indicator in medical_advice_indicators) and \
       not any(phrase in output_lower for phrase in consult_phrases):
        llm_output += f"\n\n{DISCLAIMER}"

    return llm_output
