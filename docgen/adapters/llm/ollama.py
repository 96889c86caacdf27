import httpx

from docgen.core.config import settings
from docgen.adapters.llm.base import LLM


class OllamaLLM(LLM):
    name = "ollama"

    async def _complete(self, system: str, user: str, max_output_tokens: int, temperature: float) -> str:
        async with httpx.AsyncClient(timeout=settings.T_LLM) as client:
            r = await client.post(
                f"{settings.OLLAMA_BASE_URL.rstrip('/')}/api/chat",
                json={
                    "model": settings.OLLAMA_MODEL,
                    "messages": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    "stream": False,
                    "keep_alive": settings.OLLAMA_KEEP_ALIVE,
                    "options": {
                        "num_predict": max_output_tokens,
                        "temperature": temperature,
                    },
                },
            )
            r.raise_for_status()
            return (r.json().get("message") or {}).get("content", "")

    async def ping(self) -> bool:
        async with httpx.AsyncClient(timeout=3.0) as c:
            r = await c.get(f"{settings.OLLAMA_BASE_URL.rstrip('/')}/api/tags")
            return r.status_code == 200
