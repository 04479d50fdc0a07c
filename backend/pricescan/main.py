"""
PriceScan API - FastAPI Main Entry

LOCAL:
    pip install -e ".[test]"
    export SERPAPI_API_KEY=...
    python -m uvicorn pricescan.main:app --reload --host 0.0.0.0 --port 3000

TEST:
    curl -i http://127.0.0.1:3000/health
    curl -i "http://127.0.0.1:3000/search?q=wireless%20mouse"
    curl -i "http://127.0.0.1:3000/v1/search?q=wireless%20mouse"
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pricescan.api.routes_search import router as search_router
from pricescan.core.config import settings
from pricescan.core.errors import PipelineInputError
from pricescan.core.logging import get_logger, request_id_context, setup_logging
from pricescan.core.serpapi import get_serpapi_key

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "PriceScan %s (%s) starting; providers=%s; serpapi key %s",
        settings.APP_VERSION,
        settings.BUILD_ID,
        ",".join(settings.ENABLED_PROVIDERS),
        "configured" if get_serpapi_key() else "MISSING",
    )
    yield


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="PriceScan API",
        version=settings.APP_VERSION,
        description="Searches several marketplaces for one query and returns one normalized product per provider",
        lifespan=lifespan,
    )

    # CORS: browser clients / Swagger docs
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request id on every log line of the request, echoed back to the caller
    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        with request_id_context(request.headers.get("X-Request-ID")) as req_id:
            response = await call_next(request)
            response.headers["X-Request-ID"] = req_id
            return response

    @app.exception_handler(PipelineInputError)
    async def pipeline_input_error(request: Request, exc: PipelineInputError):
        if exc.status_code >= 500:
            logger.error("Configuration error on %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal Server Error"})

    # Root (GET /)
    @app.get("/")
    def root():
        return {
            "name": "PriceScan API",
            "status": "ok",
            "docs": "/docs",
            "health": "/health",
            "version": "/version",
            "search": "/search?q=",
        }

    # Health Check (GET /health)
    @app.get("/health")
    def health():
        return {"ok": True}

    # Version endpoint (GET /version)
    @app.get("/version")
    def version():
        return {"version": settings.APP_VERSION, "build": settings.BUILD_ID}

    # Mount routers
    app.include_router(search_router)
    app.include_router(search_router, prefix="/v1")

    return app


app = create_app()
