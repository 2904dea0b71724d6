#!/usr/bin/env python3
"""
Briefcast Backend

FastAPI backend that turns a topic into a narrated audio brief.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from google import genai
from supabase import create_client, Client

from briefcast.core import load_settings
from briefcast.episodes import build_orchestrator

# Import routers
from routers import episodes_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Loads .env and fails fast on missing keys
settings = load_settings()

# Initialize clients
supabase: Client = create_client(settings.supabase_url, settings.supabase_service_key)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager."""
    logger.info("=" * 80)
    logger.info("Starting Briefcast Backend")
    logger.info("=" * 80)

    # Initialize Gemini client
    try:
        genai_client = genai.Client(api_key=settings.gemini_api_key)
        app.state.genai_client = genai_client
        logger.info("✅ Gemini client initialized")
    except Exception as e:
        logger.error(f"❌ Failed to initialize Gemini client: {e}")
        raise

    # Initialize pipeline
    try:
        app.state.orchestrator = build_orchestrator(settings, genai_client, supabase)
        logger.info("✅ Brief pipeline initialized")
        logger.info(f"   - Text model: {settings.gemini_text_model}")
        logger.info(f"   - TTS model: {settings.gemini_tts_model} ({settings.gemini_tts_voice}, {settings.tts_language})")
        logger.info(f"   - Public base URL: {settings.public_base_url}")
    except Exception as e:
        logger.error(f"❌ Failed to initialize brief pipeline: {e}")
        raise

    logger.info("=" * 80)
    logger.info("Backend ready to serve requests")
    logger.info("=" * 80)

    yield

    logger.info("Shutting down Briefcast Backend")


# Create FastAPI app
app = FastAPI(
    title="Briefcast API",
    description="Topic to narrated audio brief",
    version="0.1.0",
    lifespan=lifespan
)

# Configure CORS
if settings.allow_all_origins:
    logger.info("CORS: Allowing all origins")
    allowed_origins = ["*"]
else:
    allowed_origins = [settings.frontend_url]
    logger.info(f"CORS: Allowing specific origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(episodes_router)


# ==================== Root Endpoints ====================

@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Briefcast API",
        "version": "0.1.0",
        "routes": {
            "episodes": "/episodes/*"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "services": {
            "supabase": "connected",
            "gemini": "initialized",
            "routers": ["episodes"]
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
        log_level="info"
    )
