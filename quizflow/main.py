"""
QuizFlow - FastAPI Application Entry Point.

Serves the end-user questionnaire walker and the authoring graph builder.
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from quizflow.config import settings
from quizflow.api.dependencies import (
    get_projector_storage,
    get_session_storage,
    get_store,
)
from quizflow.api.routes import builder, categories, flow
from quizflow.exceptions import FlowError
from quizflow.storage.base import FlowStore
from quizflow.storage.memory import InMemoryFlowStore, ProjectorStorage, SessionStorage
from quizflow.workflows.product_finder import seed_demo_flows


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.STORE_BACKEND} store)")

    store = app.dependency_overrides.get(get_store, get_store)()
    if settings.SEED_DEMO_DATA and isinstance(store, InMemoryFlowStore):
        seeded = await seed_demo_flows(store)
        if seeded:
            logger.info(f"Seeded demo categories: {', '.join(seeded)}")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await store.close()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## Questionnaire Flow API

Author branching product-selection questionnaires and walk them step by step.

### Concepts
- **Category**: Top-level questionnaire, addressed by its slug
- **Step**: One screen, ordered by `order_index` within its category
- **Option**: A selectable choice on a step
- **Condition**: A branch from an option to a later step

### Quick Start
1. List categories: `GET /categories`
2. Start a walk: `POST /flow/{category_slug}/sessions`
3. Pick options: `POST /flow/sessions/{session_id}/select`
4. Inspect a category as a graph: `GET /builder/{category_id}/graph`

### Demo Data
With the in-memory store, `laptop`, `tv` and `ac` questionnaires are seeded on startup.
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(categories.router)
app.include_router(flow.router)
app.include_router(builder.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "Branching product-selection questionnaires",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "categories": "/categories",
            "start_flow": "/flow/{category_slug}/sessions",
            "session": "/flow/sessions/{session_id}",
            "builder_graph": "/builder/{category_id}/graph",
        },
    }


@app.get("/health", tags=["Root"])
async def health(
    store: FlowStore = Depends(get_store),
    sessions: SessionStorage = Depends(get_session_storage),
    projectors: ProjectorStorage = Depends(get_projector_storage),
):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "store_backend": settings.STORE_BACKEND,
        "categories_count": len(await store.list_categories()),
        "sessions_count": len(sessions),
        "builder_sessions_count": len(projectors),
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(FlowError)
async def flow_error_handler(request: Request, exc: FlowError):
    """Map domain errors onto their HTTP status codes."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )
