from docgen.core.config import settings
from docgen.core.errors import LlmUnavailable
from docgen.adapters.llm.base import LLM


class OpenAILLM(LLM):
    name = "openai"

    async def _complete(self, system: str, user: str, max_output_tokens: int, temperature: float) -> str:
        if not settings.OPENAI_API_KEY:
            raise LlmUnavailable("OPENAI_API_KEY is not set")
        from openai import AsyncOpenAI

        # retries are ours, not the SDK's
        client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.T_LLM, max_retries=0)
        resp = await client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            max_tokens=max_output_tokens,
            temperature=temperature,
        )
        return resp.choices[0].message.content or ""

    async def ping(self) -> bool:
        return bool(settings.OPENAI_API_KEY)
