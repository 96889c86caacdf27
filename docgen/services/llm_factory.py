from docgen.core.config import settings
from docgen.core.errors import InvalidInput
from docgen.core.rate_limiter import SlidingWindowRateLimiter
from docgen.adapters.llm.base import LLM
from docgen.adapters.llm.ollama import OllamaLLM
from docgen.adapters.llm.openai import OpenAILLM

PROVIDERS = {
    "ollama": OllamaLLM,
    "openai": OpenAILLM,
}

def get_llm(provider: str | None = None, limiter: SlidingWindowRateLimiter | None = None) -> LLM:
    name = (provider or settings.LLM_PROVIDER or "ollama").lower()
    if name not in PROVIDERS:
        raise InvalidInput(f"Unknown llmProvider '{name}'. Use one of: {', '.join(PROVIDERS)}")
    return PROVIDERS[name](limiter=limiter)
