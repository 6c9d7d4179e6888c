"""
Content Graph API Server

FastAPI app exposing the knowledge graph engine:
- Event ingestion (posts, game sessions, sports fixtures, chat)
- Related-node traversal and recommendations
- Graph statistics

Run with:
    uvicorn content_graph.main:app --reload
"""

import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables FIRST (before any imports that might need them)
load_dotenv()

from .config import Config
from .logging_config import setup_logging

logger = setup_logging(log_level=Config.log_level())

from .lib.embedding_providers import get_embedding_provider
from .lib.errors import GraphError
from .lib.graph_store import create_graph_store
from .routes import knowledge_graph
from .services.graph_service import KnowledgeGraphService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared graph service on startup, release the store on shutdown."""
    app.state.graph_service = None
    store = None
    try:
        store = create_graph_store()
        store.initialize_schema()
        app.state.graph_service = KnowledgeGraphService(store, get_embedding_provider())
    except GraphError as e:
        # Server still starts; graph routes answer 503 until configuration is fixed
        logger.error(f"Knowledge graph unavailable: {e}")
        if store is not None:
            store.close()

    yield

    service = app.state.graph_service
    if service is not None:
        service.close()
        logger.info("Knowledge graph store closed")


app = FastAPI(
    title="Content Graph API",
    description="Knowledge graph over published content, gameplay, sports and chat events",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing"""
    start_time = time.time()

    # Health checks at debug level to reduce noise
    is_health_check = request.url.path.endswith("/health")
    log_level = logger.debug if is_health_check else logger.info

    log_level(f"→ {request.method} {request.url.path}")
    if request.query_params:
        logger.debug(f"  Query params: {dict(request.query_params)}")

    try:
        response = await call_next(request)
        duration = time.time() - start_time
        log_level(f"← {request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)")
        return response
    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"← {request.method} {request.url.path} - ERROR ({duration:.3f}s): {e}", exc_info=True)
        raise


app.include_router(knowledge_graph.router)


@app.get("/health")
async def health():
    return {"status": "healthy"}
