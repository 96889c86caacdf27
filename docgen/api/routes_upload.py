import asyncio
import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, File, UploadFile
from pydantic import BaseModel, Field, field_validator

from docgen.core.config import settings
from docgen.core.errors import FileTooLarge, InvalidInput
from docgen.core.models import Document
from docgen.services.filename_service import document_key, sanitize_file_name
from docgen.services.providers import get_services
from docgen.services.store_service import save_document

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])

PDF_CONTENT_TYPE = "application/pdf"


def _mb(n: int) -> str:
    return f"{n / (1024 * 1024):.0f}MB"


class UploadUrlRequest(BaseModel):
    fileName: str = Field(min_length=1)
    fileSize: int
    contentType: str

    @field_validator("fileSize")
    @classmethod
    def _size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("fileSize must be greater than 0")
        if v > settings.MAX_PRESIGNED_UPLOAD_BYTES:
            raise ValueError(f"File size exceeds the {_mb(settings.MAX_PRESIGNED_UPLOAD_BYTES)} limit")
        return v

    @field_validator("contentType")
    @classmethod
    def _pdf_only(cls, v: str) -> str:
        if v != PDF_CONTENT_TYPE:
            raise ValueError("Only PDF files are supported")
        return v


def _is_pdf(file: UploadFile, head: bytes) -> bool:
    declared = (file.content_type or "").lower() == PDF_CONTENT_TYPE or (file.filename or "").lower().endswith(".pdf")
    return declared and head.startswith(b"%PDF-")


@router.post("/upload", status_code=201)
async def upload(file: UploadFile = File(...)):
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise FileTooLarge(
            f"File exceeds the {_mb(settings.MAX_UPLOAD_BYTES)} direct upload limit. "
            "Request a presigned upload URL from /get-upload-url instead."
        )
    if not data:
        raise InvalidInput("Uploaded file is empty")
    if not _is_pdf(file, data[:5]):
        raise InvalidInput("Only PDF files are supported")

    svc = get_services()
    file_id = str(uuid.uuid4())
    original = file.filename or "document.pdf"
    key = document_key(file_id, original)
    uploaded_at = datetime.now(timezone.utc)
    await svc.storage.put(
        settings.S3_DOCUMENTS_BUCKET,
        key,
        data,
        PDF_CONTENT_TYPE,
        metadata={"originalFileName": original, "fileId": file_id, "uploadedAt": uploaded_at.isoformat()},
    )
    await asyncio.to_thread(save_document, Document(
        file_id=file_id,
        object_key=key,
        original_name=original,
        content_type=PDF_CONTENT_TYPE,
        size=len(data),
        uploaded_at=uploaded_at,
    ))
    logger.info("uploaded %s as %s (%d bytes)", original, key, len(data))
    return {
        "success": True,
        "message": "File uploaded successfully",
        "fileId": file_id,
        "fileName": key.rsplit("/", 1)[-1],
        "originalFileName": original,
        "s3Key": key,
        "s3Bucket": settings.S3_DOCUMENTS_BUCKET,
        "size": len(data),
        "uploadedAt": uploaded_at.isoformat(),
    }


@router.post("/get-upload-url")
async def get_upload_url(req: UploadUrlRequest):
    svc = get_services()
    file_id = str(uuid.uuid4())
    key = document_key(file_id, req.fileName)
    uploaded_at = datetime.now(timezone.utc)
    url = await svc.storage.presign_put(
        settings.S3_DOCUMENTS_BUCKET, key, PDF_CONTENT_TYPE, settings.PRESIGNED_URL_EXPIRES
    )
    await asyncio.to_thread(save_document, Document(
        file_id=file_id,
        object_key=key,
        original_name=req.fileName,
        content_type=PDF_CONTENT_TYPE,
        size=req.fileSize,
        uploaded_at=uploaded_at,
    ))
    return {
        "success": True,
        "fileId": file_id,
        "s3Key": key,
        "presignedUrl": url,
        "expiresIn": settings.PRESIGNED_URL_EXPIRES,
        "fileName": sanitize_file_name(req.fileName),
        "originalFileName": req.fileName,
        "s3Bucket": settings.S3_DOCUMENTS_BUCKET,
        "uploadedAt": uploaded_at.isoformat(),
    }
