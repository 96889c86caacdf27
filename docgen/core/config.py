from pydantic import model_validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "DocGen"
    ENV: str = "local"
    DATA_DIR: str = "./data"
    DB_PATH: str = "./data/docgen.sqlite3"

    # object storage
    AWS_REGION: str = "us-east-1"
    S3_DOCUMENTS_BUCKET: str = "docgen-documents"
    S3_OUTPUTS_BUCKET: str = "docgen-outputs"
    # Point at MinIO/localstack in development.
    S3_ENDPOINT_URL: str | None = None
    PRESIGNED_URL_EXPIRES: int = 3600

    # uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_PRESIGNED_UPLOAD_BYTES: int = 30 * 1024 * 1024
    MAX_DOCUMENTS_PER_GENERATION: int = 5

    # vector db
    VECTOR_DB: str = "qdrant"  # qdrant|memory
    VECTOR_DB_URL: str = "http://localhost:6333"
    VECTOR_COLLECTION: str = "docgen_chunks"
    VECTOR_RECREATE_ON_DIM_MISMATCH: bool = True

    # embedding
    # Backends:
    # - ollama: uses Ollama /api/embed (local-first)
    # - openai: uses OpenAI embeddings
    EMBED_BACKEND: str = "ollama"  # ollama|openai
    OLLAMA_EMBED_MODEL: str = "nomic-embed-text"
    OPENAI_EMBED_MODEL: str = "text-embedding-3-small"
    EMBED_DIM: int = 768  # must match the chosen embedding model
    EMBED_BATCH: int = 32

    # llm
    LLM_PROVIDER: str = "ollama"  # ollama|openai
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1"
    OLLAMA_KEEP_ALIVE: str = "30m"
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    MAX_OUTPUT_TOKENS: int = 8000
    LLM_TEMPERATURE: float = 0.2

    # chunking
    MAX_CHUNK_CHARS: int = 1200
    CHUNK_OVERLAP: int = 200

    # retrieval / shards
    RETRIEVAL_TOP_K: int = 30
    SHARD_MAX_CHARS: int = 1000
    SHARD_MIN_CHARS: int = 300
    MIN_SHARDS: int = 5
    MAX_SHARDS: int = 15
    SHARD_CONCURRENCY: int = 3
    SHARD_RETRY_ON_PARSE_FAILURE: bool = True

    # rate limit (R requests per W seconds), shared by embedding and llm clients
    RATE_LIMIT_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0

    # retries and upstream timeouts (seconds)
    RETRY_ATTEMPTS: int = 3
    RETRY_MAX_WAIT_SECONDS: float = 20.0
    T_EMBED: float = 120.0
    T_LLM: float = 180.0
    T_STORAGE: float = 30.0
    T_VECTOR: float = 20.0

    # jobs
    JOB_SCHEDULER: str = "inline"  # inline|http
    WORKER_URL: str = "http://localhost:8000"
    JOB_STALE_AFTER_SECONDS: int = 900

    # prompts
    PROMPT_LIBRARY_PATH: str | None = None

    # CORS
    # Comma-separated list of allowed origins.
    CORS_ORIGINS: str = "*"

    @model_validator(mode="after")
    def _check_chunking(self):
        if self.MAX_CHUNK_CHARS <= self.CHUNK_OVERLAP:
            raise ValueError("MAX_CHUNK_CHARS must be greater than CHUNK_OVERLAP")
        return self

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
