"""Scriptable LLM.

`responder(system, user)` returns the raw completion text; the default
answers with an empty JSON array.
"""

from docgen.adapters.llm.base import LLM


class FakeLLM(LLM):
    name = "fake"

    def __init__(self, responder=None):
        super().__init__(limiter=None)
        self.responder = responder or (lambda system, user: "[]")
        self.calls: list[tuple[str, str]] = []

    async def _complete(self, system, user, max_output_tokens, temperature):
        self.calls.append((system, user))
        return self.responder(system, user)
