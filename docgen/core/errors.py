"""Error taxonomy shared by pipelines, adapters and the HTTP layer.

Every error carries the HTTP status it maps to and a stable `kind` string that
ends up in job records and `{success: false, error}` responses.
"""

from __future__ import annotations


class DocGenError(Exception):
    status_code = 500
    kind = "InternalError"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return cls.kind

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "error": self.kind}


class TransientError(DocGenError):
    """Upstream failure worth retrying (timeouts, 429, 5xx)."""

    status_code = 503


class InvalidInput(DocGenError):
    status_code = 400
    kind = "InvalidInput"


class FileTooLarge(DocGenError):
    status_code = 413
    kind = "FileTooLarge"


class NotFound(DocGenError):
    status_code = 404
    kind = "NotFound"


class PasswordProtected(DocGenError):
    status_code = 422
    kind = "PasswordProtected"

    @classmethod
    def default_message(cls) -> str:
        return "PDF is password protected and cannot be read"


class CorruptPdf(DocGenError):
    status_code = 422
    kind = "CorruptPdf"


class EmptyOrImagePdf(DocGenError):
    status_code = 422
    kind = "EmptyOrImagePdf"

    @classmethod
    def default_message(cls) -> str:
        return "PDF contains no extractable text (empty or image-only)"


class EmbeddingUnavailable(TransientError):
    kind = "EmbeddingUnavailable"


class LlmUnavailable(TransientError):
    kind = "LlmUnavailable"


class VectorStoreUnavailable(TransientError):
    kind = "VectorStoreUnavailable"


class StorageFailure(TransientError):
    kind = "StorageFailure"


class RateLimited(TransientError):
    status_code = 429
    kind = "RateLimited"


class InvalidPromptTemplate(DocGenError):
    status_code = 422
    kind = "InvalidPromptTemplate"


class EmptyGeneration(DocGenError):
    status_code = 422
    kind = "EmptyGeneration"

    @classmethod
    def default_message(cls) -> str:
        return "LLM produced no usable content"


class InvalidSchema(DocGenError):
    status_code = 422
    kind = "InvalidSchema"


class RenderFailure(DocGenError):
    kind = "RenderFailure"
