import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from walkquest.api.v1.router import api_router
from walkquest.core.config import settings
from walkquest.core.logging import configure_logging
from walkquest.core.tracing import ensure_trace_id, reset_trace_id, set_trace_id

logger = configure_logging("walkquest", settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    boot_token = set_trace_id("bootstrap")
    logger.info("Starting WalkQuest API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"LLM Provider: {settings.LLM_PROVIDER}")
    logger.info(f"LLM Model: {settings.LLM_MODEL}")
    logger.info(f"Default region: {settings.DEFAULT_REGION_ID} ({settings.DEFAULT_CITY})")

    if not settings.ANTHROPIC_API_KEY and not settings.OPENAI_API_KEY:
        logger.warning("No LLM API key configured! Route generation will not work.")

    if not settings.TWOGIS_API_KEY:
        logger.warning(
            "2GIS API key not configured. "
            "Coordinate validation will drop every point."
        )

    logger.info("WalkQuest API ready!")
    reset_trace_id(boot_token)

    yield

    logger.info("Shutting down WalkQuest API...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    logger.info(f"➡️  {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        f"⬅️  {request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.2f}s"
    )

    return response


@app.middleware("http")
async def trace_middleware(request: Request, call_next):
    trace_id = ensure_trace_id(request.headers)
    token = set_trace_id(trace_id)
    try:
        response = await call_next(request)
    finally:
        reset_trace_id(token)
    response.headers.setdefault("X-Trace-Id", trace_id)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "llm_provider": settings.LLM_PROVIDER,
        "twogis_configured": bool(settings.TWOGIS_API_KEY),
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "WalkQuest API",
        "version": settings.VERSION,
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "walkquest.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
    )
