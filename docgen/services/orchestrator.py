"""Chunked LLM generation.

The LLM output ceiling is smaller than what a whole manual needs, so the
retrieved context is cut into small shards, each shard is prompted on its own,
and the partial JSON results are merged back in shard order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from docgen.adapters.llm.base import LLM
from docgen.core.config import settings
from docgen.core.errors import EmptyGeneration, InvalidPromptTemplate, InvalidSchema
from docgen.core.models import (
    Chunk,
    ChecksheetPayload,
    PromptTemplate,
    UseCase,
    WorkInstructionsPayload,
)
from docgen.services.citation_service import build_context
from docgen.services.json_parse import parse_llm_json
from docgen.services.merge_service import (
    Citation,
    ShardResult,
    merge_checksheet,
    merge_work_instructions,
    normalize_checksheet_items,
    normalize_work_instructions,
)

logger = logging.getLogger(__name__)

CONTEXT_TOKEN = "{context}"
JSON_REMINDER = (
    "\n\nYour previous answer could not be parsed. Return ONLY the JSON, "
    "with no explanations and no markdown."
)

ProgressFn = Callable[[dict], Awaitable[None] | None]


@dataclass
class Shard:
    index: int
    chunks: list[Chunk] = field(default_factory=list)

    @property
    def text(self) -> str:
        return build_context(self.chunks)

    @property
    def size(self) -> int:
        return sum(len(c.text) for c in self.chunks)

    @property
    def citations(self) -> list[Citation]:
        out: list[Citation] = []
        for c in self.chunks:
            cite = Citation(c.file_name, c.page_number)
            if cite not in out:
                out.append(cite)
        return out


def validate_template(template: PromptTemplate) -> None:
    count = template.user_template.count(CONTEXT_TOKEN)
    if count != 1:
        raise InvalidPromptTemplate(
            f"Prompt '{template.id}' user template must contain {CONTEXT_TOKEN} exactly once (found {count})"
        )


def render_user_prompt(template: PromptTemplate, shard_text: str) -> str:
    return template.user_template.replace(CONTEXT_TOKEN, shard_text)


def shard_budget(total_chars: int, min_shards: int, min_chars: int, max_chars: int) -> int:
    return max(min_chars, min(max_chars, total_chars // max(min_shards, 1)))


def _split_text(chunk: Chunk, budget: int) -> list[Chunk]:
    """Split an over-budget chunk on whitespace so every piece fits a shard."""
    if len(chunk.text) <= budget:
        return [chunk]
    pieces, current = [], ""
    for word in chunk.text.split():
        while len(word) > budget:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:budget])
            word = word[budget:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) > budget:
            pieces.append(current)
            current = word
        else:
            current = candidate
    if current:
        pieces.append(current)
    return [chunk.model_copy(update={"text": p}) for p in pieces]


def build_shards(
    chunks: list[Chunk],
    *,
    min_shards: int | None = None,
    max_shards: int | None = None,
    min_chars: int | None = None,
    max_chars: int | None = None,
) -> list[Shard]:
    """Pack retrieved chunks, in rank order, into bounded shards.

    Past `max_shards` the lowest-ranked context is dropped.
    """
    min_shards = min_shards or settings.MIN_SHARDS
    max_shards = max_shards or settings.MAX_SHARDS
    min_chars = min_chars or settings.SHARD_MIN_CHARS
    max_chars = max_chars or settings.SHARD_MAX_CHARS

    total = sum(len(c.text) for c in chunks)
    budget = shard_budget(total, min_shards, min_chars, max_chars)

    shards: list[Shard] = []
    current = Shard(index=0)
    dropped = 0
    for chunk in chunks:
        for piece in _split_text(chunk, budget):
            if current.chunks and current.size + len(piece.text) > budget:
                shards.append(current)
                current = Shard(index=len(shards))
            if len(shards) >= max_shards:
                dropped += len(piece.text)
                continue
            current.chunks.append(piece)
    if current.chunks and len(shards) < max_shards:
        shards.append(current)
    if dropped:
        logger.warning("shard limit %d reached, dropped %d chars of low-ranked context", max_shards, dropped)
    return shards


class Orchestrator:
    def __init__(
        self,
        llm: LLM,
        *,
        concurrency: int | None = None,
        retry_on_parse_failure: bool | None = None,
        max_output_tokens: int | None = None,
        temperature: float | None = None,
    ):
        self.llm = llm
        self.concurrency = concurrency or settings.SHARD_CONCURRENCY
        self.retry_on_parse_failure = (
            settings.SHARD_RETRY_ON_PARSE_FAILURE if retry_on_parse_failure is None else retry_on_parse_failure
        )
        self.max_output_tokens = max_output_tokens or settings.MAX_OUTPUT_TOKENS
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature

    @staticmethod
    def _check_shape(use_case: UseCase, data: Any) -> None:
        if use_case == "checksheet":
            normalize_checksheet_items(data)
        else:
            normalize_work_instructions(data)

    async def _run_shard(self, use_case: UseCase, template: PromptTemplate, shard: Shard) -> ShardResult | None:
        user = render_user_prompt(template, shard.text)
        attempts = 2 if self.retry_on_parse_failure else 1
        last_error: Exception | None = None
        for attempt in range(attempts):
            prompt = user if attempt == 0 else user + JSON_REMINDER
            raw = await self.llm.generate(
                template.system,
                prompt,
                max_output_tokens=self.max_output_tokens,
                temperature=self.temperature,
            )
            try:
                data = parse_llm_json(raw)
                self._check_shape(use_case, data)
            except (ValueError, InvalidSchema) as e:
                last_error = e
                logger.warning("shard %d attempt %d unusable: %s", shard.index, attempt + 1, e)
                continue
            return ShardResult(index=shard.index, citations=shard.citations, data=data)
        logger.warning("skipping shard %d: %s", shard.index, last_error)
        return None

    async def generate(
        self,
        use_case: UseCase,
        retrieved_chunks: list[Chunk],
        prompt_template: PromptTemplate,
        on_progress: ProgressFn | None = None,
    ) -> ChecksheetPayload | WorkInstructionsPayload:
        validate_template(prompt_template)
        shards = build_shards(retrieved_chunks)
        if not shards:
            raise EmptyGeneration("No document content was retrieved for generation")
        total = len(shards)
        logger.info("generating %s from %d shards with prompt %s", use_case, total, prompt_template.id)

        sem = asyncio.Semaphore(self.concurrency)
        done = 0
        progress_lock = asyncio.Lock()

        async def run(shard: Shard) -> ShardResult | None:
            nonlocal done
            async with sem:
                result = await self._run_shard(use_case, prompt_template, shard)
            async with progress_lock:
                done += 1
                if on_progress is not None:
                    maybe = on_progress({
                        "step": "generating_ai_content",
                        "progress": done * 100 // total,
                        "message": f"Processed section {done} of {total}",
                        "shardIndex": shard.index,
                        "totalShards": total,
                    })
                    if asyncio.iscoroutine(maybe):
                        await maybe
            return result

        # results keep shard order; the first failure cancels the rest
        tasks = [asyncio.create_task(run(s)) for s in shards]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        usable = [r for r in results if r is not None]
        if not usable:
            raise EmptyGeneration(f"All {total} shards failed to produce valid JSON")
        skipped = total - len(usable)
        if skipped:
            logger.warning("%d of %d shards skipped", skipped, total)

        if use_case == "checksheet":
            return merge_checksheet(usable)
        return merge_work_instructions(usable)
