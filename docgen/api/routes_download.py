from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Query

from docgen.api.validators import require_prefix, require_uuid
from docgen.core.config import settings
from docgen.core.errors import NotFound
from docgen.services.providers import get_services

router = APIRouter(tags=["download"])


@router.get("/download/{fileId}")
async def download(
    fileId: str,
    s3Key: str = Query(...),
    expiresIn: int = Query(3600, ge=60, le=86400),
):
    require_uuid(fileId, "fileId")
    require_prefix(s3Key, "outputs/", "s3Key")
    svc = get_services()
    bucket = settings.S3_OUTPUTS_BUCKET
    if not await svc.storage.exists(bucket, s3Key):
        raise NotFound(f"File not found: {s3Key}")
    url = await svc.storage.presign_get(bucket, s3Key, expiresIn)
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=expiresIn)
    return {
        "success": True,
        "fileId": fileId,
        "downloadUrl": url,
        "s3Key": s3Key,
        "expiresIn": expiresIn,
        "expiresAt": expires_at.isoformat(),
        "bucket": bucket,
    }
