"""The two background pipelines.

Ingest:   storage -> extract -> chunk -> embed -> vector upsert
Generate: retrieve -> chunked LLM -> render -> storage -> presigned URL

Both publish progress through their JobTracker. On any failure the job is
marked failed with the step it was in, then the error is re-raised for the
scheduler to record.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import PurePosixPath

from docgen.core.config import settings
from docgen.core.errors import NotFound
from docgen.core.models import GenerationJob, GenerationResult, IngestJob
from docgen.services import pdf_service
from docgen.services.citation_service import resolve_file_names
from docgen.services.docx_service import render_work_instructions
from docgen.services.excel_service import render_checksheet
from docgen.services.filename_service import OUTPUT_TYPES, output_file_name, output_key
from docgen.services.orchestrator import Orchestrator
from docgen.services.providers import Services, get_services
from docgen.services.retrieve_service import Retriever
from docgen.services.store_service import get_document

logger = logging.getLogger(__name__)


def _elapsed(started: float) -> str:
    return f"{time.perf_counter() - started:.2f}s"


async def run_ingestion(file_id: str, s3_key: str, services: Services | None = None) -> IngestJob:
    svc = services or get_services()
    jobs = svc.ingest_jobs
    started = time.perf_counter()
    if await jobs.get_raw(file_id) is None:
        raise NotFound(f"No ingest job found for {file_id}")
    step = "downloading_pdf"
    try:
        await jobs.update(file_id, step=step, progress=5, message="Downloading PDF from storage")
        pdf_bytes = await svc.storage.get(settings.S3_DOCUMENTS_BUCKET, s3_key)

        step = "extracting_text"
        await jobs.update(file_id, step=step, progress=10, message="Extracting text from PDF")
        extracted = pdf_service.extract(pdf_bytes)

        step = "chunking_text"
        await jobs.update(
            file_id,
            step=step,
            progress=25,
            message=f"Splitting {extracted.total_pages} pages into chunks",
        )
        doc = await asyncio.to_thread(get_document, file_id)
        file_name = doc.original_name if doc else PurePosixPath(s3_key).name
        chunks = pdf_service.split_by_pages(extracted.pages, file_id, file_name=file_name)
        total = len(chunks)

        step = "generating_embeddings"
        await jobs.update(
            file_id,
            step=step,
            progress=35,
            message=f"Generating embeddings for {total} chunks",
            total_chunks=total,
            processed_chunks=0,
        )
        embeddings: list[list[float]] = []
        batch = max(1, svc.embedder.batch_size)
        for i in range(0, total, batch):
            part = chunks[i:i + batch]
            embeddings.extend(await svc.embedder.embed([c.text for c in part]))
            done = len(embeddings)
            await jobs.update(
                file_id,
                progress=35 + (35 * done) // max(total, 1),
                message=f"Embedded {done}/{total} chunks",
                processed_chunks=done,
            )

        step = "storing_vectors"
        await jobs.update(file_id, step=step, progress=70, message="Storing vectors")
        # Replace whatever a previous ingest of this file left behind.
        await svc.index.delete_by_filter({"fileId": file_id})
        await svc.index.upsert([
            {
                "id": c.id,
                "embedding": emb,
                "text": c.text,
                "metadata": {
                    "fileId": c.file_id,
                    "chunkIndex": c.chunk_index,
                    "pageNumber": c.page_number,
                    "pageRange": c.page_range,
                    "startChar": c.start_char,
                    "endChar": c.end_char,
                    "fileName": c.file_name,
                },
            }
            for c, emb in zip(chunks, embeddings)
        ])

        step = "finalizing"
        await jobs.update(file_id, step=step, progress=95, message="Finalizing")
        text_length = extracted.total_chars
        record = await jobs.mark_completed(
            file_id,
            message=f"Successfully processed {total} chunks",
            chunks_processed=total,
            processed_chunks=total,
            processing_time=_elapsed(started),
            average_chunk_size=sum(len(c.text) for c in chunks) // max(total, 1),
            total_text_length=text_length,
        )
        logger.info("ingested %s: %d chunks in %s", file_id, total, record.processing_time)
        return record
    except Exception as e:
        logger.exception("ingestion of %s failed at %s", file_id, step)
        await jobs.mark_failed(file_id, e, step)
        raise


async def run_generation(generation_id: str, services: Services | None = None) -> GenerationJob:
    svc = services or get_services()
    jobs = svc.generation_jobs
    started = time.perf_counter()
    job = await jobs.get_raw(generation_id)
    if job is None:
        raise NotFound(f"No generation job found for {generation_id}")
    step = "generating_ai_content"
    try:
        await jobs.update(generation_id, step=step, progress=10, message="Retrieving relevant content")

        template = svc.prompts.get(job.use_case, job.prompt_id)
        retriever = Retriever(svc.embedder, svc.index)
        chunks = await retriever.retrieve(job.use_case, job.document_ids, query=job.query_text)
        chunks = await asyncio.to_thread(resolve_file_names, chunks)

        async def on_progress(event: dict) -> None:
            await jobs.update(
                generation_id,
                step=event["step"],
                progress=10 + (15 * event["progress"]) // 100,
                message=event["message"],
            )

        orchestrator = Orchestrator(svc.llm_factory(job.llm_provider))
        payload = await orchestrator.generate(job.use_case, chunks, template, on_progress=on_progress)

        step = "creating_document"
        await jobs.update(generation_id, step=step, progress=25, message="Creating document")
        now = svc.clock()
        if job.use_case == "checksheet":
            data = render_checksheet(payload, clock=lambda: now)
        else:
            data = render_work_instructions(payload, clock=lambda: now)

        step = "uploading_to_s3"
        await jobs.update(generation_id, step=step, progress=50, message="Uploading document")
        file_id = str(uuid.uuid4())
        file_name = output_file_name(job.use_case, file_id, now)
        key = output_key(file_id, file_name)
        _, file_type, content_type = OUTPUT_TYPES[job.use_case]
        await svc.storage.put(
            settings.S3_OUTPUTS_BUCKET,
            key,
            data,
            content_type,
            metadata={"generationId": generation_id, "useCase": job.use_case},
        )

        step = "generating_download_url"
        await jobs.update(generation_id, step=step, progress=75, message="Generating download link")
        url = await svc.storage.presign_get(settings.S3_OUTPUTS_BUCKET, key, settings.PRESIGNED_URL_EXPIRES)

        result = GenerationResult(
            file_id=file_id,
            file_name=file_name,
            file_type=file_type,
            content_type=content_type,
            s3_key=key,
            s3_bucket=settings.S3_OUTPUTS_BUCKET,
            download_url=url,
            processing_time=_elapsed(started),
        )
        record = await jobs.mark_completed(
            generation_id,
            message="Document generated successfully",
            result=result,
            download_url=url,
        )
        logger.info("generation %s completed: %s in %s", generation_id, file_name, result.processing_time)
        return record
    except Exception as e:
        logger.exception("generation %s failed at %s", generation_id, step)
        await jobs.mark_failed(generation_id, e, step)
        raise
