from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from docgen.api.validators import is_uuid, require_uuid
from docgen.services.job_controller import get_controller
from docgen.services.providers import get_services

router = APIRouter(tags=["ingest"])


class IngestRequest(BaseModel):
    fileId: str
    s3Key: str

    @field_validator("fileId")
    @classmethod
    def _file_id(cls, v: str) -> str:
        if not is_uuid(v):
            raise ValueError("Invalid fileId format. Must be a valid UUID")
        return v

    @field_validator("s3Key")
    @classmethod
    def _s3_key(cls, v: str) -> str:
        if not v.startswith("documents/") or ".." in v:
            raise ValueError("Invalid s3Key. Must start with 'documents/'")
        return v


@router.post("/ingest")
async def ingest(req: IngestRequest):
    out = await get_controller().submit_ingest(req.fileId, req.s3Key)
    body = {
        "success": True,
        "fileId": req.fileId,
        "status": out["status"],
        "message": "Ingestion started. Poll /ingest-status/{fileId} for progress."
        if out["async"] else f"Ingestion {out['status']}",
    }
    return JSONResponse(status_code=202 if out["async"] else 200, content=body)


@router.get("/ingest-status/{fileId}")
async def ingest_status(fileId: str):
    require_uuid(fileId, "fileId")
    record = await get_services().ingest_jobs.get(fileId)
    return {"success": True, **record.to_json_dict()}
