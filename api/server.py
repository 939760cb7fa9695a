"""
Lead-gen scrape & enrichment API
Run with: uvicorn api.server:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from api.auth import require_session
from api.auth import router as auth_router
from api.pipeline_runner import get_runner
from api.routes.ai import router as ai_router
from api.routes.health import router as health_router
from api.routes.scraper import router as scraper_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.require_secrets()
    config.validate_config()
    runner = get_runner()
    runner.recover_interrupted()
    yield
    runner.shutdown(wait=False)


app = FastAPI(title="Lead Gen Scraper API", version="1.0.0", lifespan=lifespan)

# ── CORS (dashboard front-end) ────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── API routes ─────────────────────────────────────────────────────────────────
protected = [Depends(require_session)]
app.include_router(health_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(scraper_router, prefix="/api", dependencies=protected)
app.include_router(ai_router, prefix="/api", dependencies=protected)
