from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from app.routers import fit_score, resume

# Import logging and middleware
from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
    request_validation_handler,
)

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    from app.services.db import close_client
    from app.services.embeddings import get_embedding_client

    logger.info("Fit Score API starting up...")
    client = get_embedding_client()
    if client.provider == "huggingface" and not client.api_key:
        logger.warning("HUGGINGFACE_API_KEY is not set; embedding requests may be rejected")
    logger.info("Fit Score API startup completed")

    yield

    logger.info("Fit Score API shutting down...")
    close_client()
    logger.info("Fit Score API shutdown completed")


app = FastAPI(title="Fit Score API", version="1.0.0", lifespan=lifespan)

# Malformed bodies get the same 400 error shape as the route checks
app.add_exception_handler(RequestValidationError, request_validation_handler)

# Middleware is LIFO: the exception handler is added first so it sits next to the
# routers and the outer layers always see a response
app.add_middleware(ExceptionHandlerMiddleware)
app.add_middleware(PerformanceMiddleware, slow_request_threshold=2.0)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Fit Score API", "version": "1.0.0", "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    """Health check endpoint - handles both GET and HEAD requests"""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


app.include_router(fit_score.router, prefix="/fit-score", tags=["fit-score"])
app.include_router(resume.router, prefix="/resume", tags=["resume"])

logger.info("Fit Score API initialized successfully")
