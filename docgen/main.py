import logging

from fastapi import FastAPI

from docgen.core.config import settings
from docgen.core.logging import setup_logging
from docgen.services.store_service import init_db
from docgen.services.providers import get_services

from docgen.api.errors import install_error_handlers
from docgen.api.routes_upload import router as upload_router
from docgen.api.routes_ingest import router as ingest_router
from docgen.api.routes_generate import router as generate_router
from docgen.api.routes_download import router as download_router
from docgen.api.routes_prompts import router as prompts_router
from docgen.api.routes_jobs import router as jobs_router

logger = logging.getLogger(__name__)


def create_app():
    setup_logging()
    init_db()

    app = FastAPI(title=settings.APP_NAME)

    # Allow browser-based UIs to call the API
    from fastapi.middleware.cors import CORSMiddleware
    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=origins != ["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    install_error_handlers(app)

    app.include_router(upload_router)
    app.include_router(ingest_router)
    app.include_router(generate_router)
    app.include_router(download_router)
    app.include_router(prompts_router)
    app.include_router(jobs_router)

    @app.get("/health")
    async def health():
        svc = get_services()
        checks = {"vectorStore": False, "llm": False}
        try:
            checks["vectorStore"] = await svc.index.ping()
        except Exception as e:
            logger.warning("vector store health check failed: %s", e)
        try:
            checks["llm"] = await svc.llm_factory(None).ping()
        except Exception as e:
            logger.warning("llm health check failed: %s", e)

        ok = all(checks.values())
        return {"ok": ok, "app": settings.APP_NAME, "env": settings.ENV, "deps": checks}

    return app

app = create_app()
