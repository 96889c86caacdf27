from abc import ABC, abstractmethod

from docgen.core.config import settings
from docgen.core.errors import LlmUnavailable
from docgen.core.rate_limiter import SlidingWindowRateLimiter
from docgen.core.retry import call_with_retry


class LLM(ABC):
    name = "llm"

    def __init__(self, limiter: SlidingWindowRateLimiter | None = None):
        self.limiter = limiter

    @abstractmethod
    async def _complete(self, system: str, user: str, max_output_tokens: int, temperature: float) -> str:
        ...

    async def generate(
        self,
        system: str,
        user: str,
        max_output_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """One chat completion; limiter slot per attempt, LlmUnavailable when retries run out."""
        max_output_tokens = max_output_tokens or settings.MAX_OUTPUT_TOKENS
        temperature = settings.LLM_TEMPERATURE if temperature is None else temperature

        async def attempt() -> str:
            if self.limiter is not None:
                await self.limiter.acquire()
            return await self._complete(system, user, max_output_tokens, temperature)

        return await call_with_retry(attempt, unavailable=LlmUnavailable, what=f"{self.name} completion")

    async def ping(self) -> bool:
        return True
