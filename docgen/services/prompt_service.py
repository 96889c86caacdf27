from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

from docgen.core.errors import InvalidInput, NotFound
from docgen.core.models import PromptTemplate
from docgen.services.prompt_library import DEFAULT_LIBRARY

logger = logging.getLogger(__name__)

USE_CASES = ("checksheet", "workInstructions")


class PromptRepository:
    """Read-only view over the prompt library.

    The library is `{useCase: {activePromptId, prompts: [...]}}`. Exactly one
    prompt per use case is active: `activePromptId` wins, otherwise the first
    prompt flagged `isActive`, otherwise the first prompt.
    """

    def __init__(self, library: dict | None = None):
        raw = copy.deepcopy(library if library is not None else DEFAULT_LIBRARY)
        self._prompts: dict[str, list[PromptTemplate]] = {}
        self._active: dict[str, str] = {}
        for use_case in USE_CASES:
            section = raw.get(use_case) or {}
            prompts = [PromptTemplate.model_validate({"useCase": use_case, **p}) for p in section.get("prompts", [])]
            if not prompts:
                continue
            active_id = section.get("activePromptId") or next((p.id for p in prompts if p.is_active), prompts[0].id)
            if active_id not in {p.id for p in prompts}:
                raise ValueError(f"activePromptId '{active_id}' not found for {use_case}")
            for p in prompts:
                p.is_active = p.id == active_id
            self._prompts[use_case] = prompts
            self._active[use_case] = active_id

    @classmethod
    def from_file(cls, path: str | Path) -> "PromptRepository":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        logger.info("loaded prompt library from %s", path)
        return cls(data)

    def _section(self, use_case: str) -> list[PromptTemplate]:
        if use_case not in USE_CASES:
            raise InvalidInput(f"Invalid useCase '{use_case}'. Must be one of: {', '.join(USE_CASES)}")
        prompts = self._prompts.get(use_case)
        if not prompts:
            raise NotFound(f"No prompts configured for {use_case}")
        return prompts

    def list(self, use_case: str) -> list[PromptTemplate]:
        return [p.model_copy() for p in self._section(use_case)]

    def get_active(self, use_case: str) -> PromptTemplate:
        return self.get(use_case, self._active.get(use_case))

    def get(self, use_case: str, prompt_id: str | None = None) -> PromptTemplate:
        prompts = self._section(use_case)
        if prompt_id is None:
            prompt_id = self._active[use_case]
        for p in prompts:
            if p.id == prompt_id:
                return p.model_copy()
        raise NotFound(f"Prompt '{prompt_id}' not found for {use_case}")
