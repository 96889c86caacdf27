from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from docgen.api.validators import is_uuid, require_uuid
from docgen.core.config import settings
from docgen.services.job_controller import get_controller
from docgen.services.llm_factory import PROVIDERS
from docgen.services.providers import get_services

router = APIRouter(tags=["generate"])


class GenerateRequest(BaseModel):
    useCase: Literal["checksheet", "workInstructions"]
    documentIds: list[str]
    promptId: str | None = None
    llmProvider: str | None = None
    queryText: str | None = None

    @field_validator("documentIds")
    @classmethod
    def _document_ids(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("documentIds must contain at least one fileId")
        if len(v) > settings.MAX_DOCUMENTS_PER_GENERATION:
            raise ValueError(f"At most {settings.MAX_DOCUMENTS_PER_GENERATION} documents per generation")
        if not all(is_uuid(d) for d in v):
            raise ValueError("Invalid documentIds. Each must be a valid UUID")
        return v

    @field_validator("llmProvider")
    @classmethod
    def _provider(cls, v: str | None) -> str | None:
        if v is not None and v.lower() not in PROVIDERS:
            raise ValueError(f"Unknown llmProvider '{v}'. Use one of: {', '.join(PROVIDERS)}")
        return v.lower() if v else v


@router.post("/generate-document")
async def generate_document(req: GenerateRequest):
    # unknown prompt ids fail here rather than inside the background job
    get_services().prompts.get(req.useCase, req.promptId)
    out = await get_controller().submit_generation(
        req.useCase,
        req.documentIds,
        prompt_id=req.promptId,
        llm_provider=req.llmProvider,
        query_text=(req.queryText or "").strip() or None,
    )
    body = {
        "success": True,
        "generationId": out["jobId"],
        "status": out["status"],
        "message": "Document generation started. Poll /generation-status/{generationId} for progress."
        if out["async"] else f"Document generation {out['status']}",
    }
    return JSONResponse(status_code=202 if out["async"] else 200, content=body)


@router.get("/generation-status/{generationId}")
async def generation_status(generationId: str):
    require_uuid(generationId, "generationId")
    record = await get_services().generation_jobs.get(generationId)
    return {"success": True, **record.to_json_dict()}
