"""
FastAPI application for the PDF field extraction service.

Provides endpoints for:
- Extracting user-defined fields from an uploaded PDF
- Health checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .models import HealthResponse
from .routers import extract
from .services.ai import get_ai_service
from .services.exceptions import PipelineError
from .services.pdf_service import get_pdf_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting PDF Field Extraction Service...")
    settings = get_settings()
    if settings.debug:
        logging.getLogger("app.paper_extractor").setLevel(logging.DEBUG)
    get_pdf_service()
    get_ai_service()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down PDF Field Extraction Service...")


# Create FastAPI application
app = FastAPI(
    title="PDF Field Extraction API",
    description="Extract user-defined fields from PDFs with verifiable snippets",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(status="ok")


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok")


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(extract.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    """Handle validation and pipeline-stage errors."""
    if exc.status_code >= 500:
        logger.error("Extraction failed (%s): %s", type(exc).__name__, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc) or "Failed to process document"},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as a single error message."""
    messages = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"Invalid request: {messages}"},
    )
