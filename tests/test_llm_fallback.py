import pytest
import requests

from doctorkoi.llm_fallback import (
    DISCLAIMER,
    GENERIC_REPLY,
    GREETING_REPLY,
    HEALTH_REPLY,
    LLMClient,
    build_system_prompt,
    canned_reply,
    filter_llm_output,
)
from doctorkoi.models import LLMError, LLMUnavailable


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def completion(content):
    return FakeResponse({"choices": [{"message": {"content": content}}]})


def test_complete_sends_history_and_returns_reply():
    session = FakeSession(completion("  Drink water and rest.  "))
    client = LLMClient("key-123", url="https://llm.test/v1/chat", model="test-model", timeout=5, session=session)
    history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]

    assert client.complete("system", "what now?", history=history, max_tokens=99) == "Drink water and rest."

    sent = session.requests[0]
    assert sent["url"] == "https://llm.test/v1/chat"
    assert sent["headers"]["Authorization"] == "Bearer key-123"
    assert sent["timeout"] == 5
    assert sent["json"]["model"] == "test-model"
    assert sent["json"]["max_tokens"] == 99
    assert [m["role"] for m in sent["json"]["messages"]] == ["system", "user", "assistant", "user"]


def test_complete_without_key_is_unavailable():
    session = FakeSession(completion("unused"))
    with pytest.raises(LLMUnavailable):
        LLMClient(None, session=session).complete("system", "hello")
    assert session.requests == []


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.exceptions.Timeout("slow")),
        FakeSession(FakeResponse({}, status_code=401)),
        FakeSession(FakeResponse({"choices": []})),
        FakeSession(completion("   ")),
    ],
)
def test_complete_failures_raise_llm_error(session):
    with pytest.raises(LLMError):
        LLMClient("key", session=session).complete("system", "hello")


def test_canned_reply():
    assert canned_reply("hello") == GREETING_REPLY
    assert canned_reply("I feel sick") == HEALTH_REPLY
    assert canned_reply("what is the capital of France") == GENERIC_REPLY


def test_filter_adds_disclaimer_to_unsupervised_advice():
    assert filter_llm_output("Take paracetamol twice a day.").endswith(DISCLAIMER)
    assert DISCLAIMER not in filter_llm_output("Take rest and see a doctor if it gets worse.")
    assert filter_llm_output("Glad to help!") == "Glad to help!"
    assert filter_llm_output("") == GENERIC_REPLY


def test_system_prompt_carries_session_context():
    prompt = build_system_prompt("recommendation", "Malaria", "Dhanmondi")
    assert "Current conversation step: recommendation" in prompt
    assert "Detected disease: Malaria" in prompt
    assert "User location: Dhanmondi" in prompt
    assert "Detected disease" not in build_system_prompt("greeting")
