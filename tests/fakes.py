from doctorkoi.models import LLMError


class FakeLLM:
    """Scripted stand-in for LLMClient; records every call."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    @property
    def available(self):
        return True

    def complete(self, system_prompt, user_message, history=None, max_tokens=200, temperature=0.7):
        self.calls.append({"system": system_prompt, "user": user_message, "history": history or []})
        if self.error is not None:
            raise self.error
        if not self.replies:
            raise LLMError("no scripted reply left")
        return self.replies.pop(0)
