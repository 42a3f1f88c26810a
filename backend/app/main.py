"""
BSR Estimator API v1.0
FastAPI backend for BOQ pricing: rate catalog, client mark-up, AI-assisted
Breakdown of Schedule of Rates, dashboard rollups and Excel export.
Gemini primary LLM + Groq LLaMA 3.1 70B fallback (via litellm).
"""
import os
import logging
from contextlib import asynccontextmanager

# Load .env before app.config reads the environment
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import LLM_PRIMARY_MODEL, LOG_JSON, LOG_LEVEL, QUOTE_ROUNDING
from app.services.costing_session import ProjectSession
from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware

setup_logging(level=LOG_LEVEL, json_output=LOG_JSON)
logger = logging.getLogger("bsr-api")

for var in ["GEMINI_API_KEY", "GROQ_API_KEY"]:
    if not os.getenv(var):
        logger.info(f"Optional env var not set: {var}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One volatile estimating session per process
    app.state.session = ProjectSession(rounding=QUOTE_ROUNDING)
    logger.info(f"Project session ready (quote rounding: {QUOTE_ROUNDING})")
    yield
    app.state.session = None


app = FastAPI(
    title="BSR Estimator API",
    version="1.0.0",
    description="AI-assisted BOQ pricing with Breakdown of Schedule of Rates",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS: restricted to allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000,http://localhost:8000"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from app.api.boq_routes import router as boq_router
from app.api.catalog_routes import router as catalog_router

app.include_router(boq_router)
app.include_router(catalog_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": "1.0.0",
        "llm_primary": LLM_PRIMARY_MODEL,
        "quote_rounding": QUOTE_ROUNDING,
    }
