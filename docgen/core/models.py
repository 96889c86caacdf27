from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UseCase = Literal["checksheet", "workInstructions"]
Frequency = Literal["daily", "weekly", "monthly", "quarterly", "annually", "other"]
JobStatus = Literal["queued", "processing", "completed", "failed"]
TERMINAL_STATUSES = ("completed", "failed")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Document(CamelModel):
    file_id: str
    object_key: str
    original_name: str
    content_type: str = "application/pdf"
    size: int | None = None
    uploaded_at: datetime


class PageText(CamelModel):
    pdf_page_index: int
    internal_page_number: int | None = None
    text: str

    @property
    def page_number(self) -> int:
        return self.internal_page_number or self.pdf_page_index


class Chunk(CamelModel):
    id: str
    file_id: str
    chunk_index: int
    text: str
    page_number: int
    page_range: str
    start_char: int
    end_char: int
    file_name: str | None = None
    score: float | None = None
    embedding: list[float] | None = Field(default=None, exclude=True)


class PromptTemplate(CamelModel):
    id: str
    use_case: UseCase
    name: str
    description: str = ""
    system: str
    user_template: str
    version: str = "1.0.0"
    tags: list[str] = Field(default_factory=list)
    is_active: bool = False


# ---- structured payloads ----

class ChecksheetItem(CamelModel):
    item_name: str = ""
    inspection_point: str = ""
    frequency: Frequency = "other"
    expected_status: str = ""
    notes: str = ""
    source: str = ""
    source_page: int | str | None = None


class ChecksheetMetadata(CamelModel):
    sources: list[str] = Field(default_factory=list)


class ChecksheetPayload(CamelModel):
    items: list[ChecksheetItem]
    metadata: ChecksheetMetadata = Field(default_factory=ChecksheetMetadata)


class Step(CamelModel):
    step_number: int
    description: str
    details: str | None = None


class GroupedPrerequisites(CamelModel):
    tools: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)
    safety: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.tools or self.materials or self.safety)


class WorkInstructionsPayload(CamelModel):
    title: str = "Work Instructions"
    overview: str | None = None
    prerequisites: list[str] | GroupedPrerequisites = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    safety_warnings: list[str] = Field(default_factory=list)
    completion_checklist: list[str] = Field(default_factory=list)


# ---- job records ----

class JobRecord(CamelModel):
    status: JobStatus = "queued"
    current_step: str = "initializing"
    progress: int = 0
    message: str = ""
    error: str | None = None
    error_kind: str | None = None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    # Filled in on read while processing; never persisted.
    elapsed_time: float | None = None
    estimated_time_remaining: float | None = None
    estimated_total_time: float | None = None
    stale: bool | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class IngestJob(JobRecord):
    file_id: str
    s3_key: str | None = None
    total_chunks: int | None = None
    processed_chunks: int | None = None
    chunks_processed: int | None = None
    processing_time: str | None = None
    average_chunk_size: int | None = None
    total_text_length: int | None = None


class GenerationResult(CamelModel):
    file_id: str
    file_name: str
    file_type: str
    content_type: str
    s3_key: str
    s3_bucket: str
    download_url: str
    processing_time: str


class GenerationJob(JobRecord):
    generation_id: str
    use_case: UseCase
    document_ids: list[str]
    prompt_id: str | None = None
    llm_provider: str | None = None
    query_text: str | None = None
    result: GenerationResult | None = None
    download_url: str | None = None
