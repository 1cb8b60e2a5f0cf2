from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from searchsynth.api.routes import conversations, search
from searchsynth.config import settings
from searchsynth.services import logger as log_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_service.log_event(
        event_type="startup",
        message="searchsynth API starting",
        store_backend=settings.store_backend,
        search_provider=settings.search_provider,
    )
    yield


app = FastAPI(
    title="searchsynth",
    description="Query decomposition, web search aggregation and cited answer synthesis",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(search.router)
app.include_router(conversations.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "searchsynth"}
