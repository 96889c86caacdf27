"""Worker side of HttpSelfInvokeScheduler."""

import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from docgen.api.validators import is_uuid
from docgen.services.job_controller import get_controller

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


class RunJobRequest(BaseModel):
    kind: Literal["ingest", "generation"]
    jobId: str
    params: dict = Field(default_factory=dict)

    @field_validator("jobId")
    @classmethod
    def _job_id(cls, v: str) -> str:
        if not is_uuid(v):
            raise ValueError("Invalid jobId format. Must be a valid UUID")
        return v


@router.post("/run", status_code=202)
async def run_job(req: RunJobRequest):
    controller = get_controller()
    # always local here, or the job would bounce between workers
    await controller.local.schedule(req.kind, req.jobId, req.params)
    logger.info("accepted %s:%s", req.kind, req.jobId)
    return {"success": True, "accepted": True, "jobId": req.jobId}
