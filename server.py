"""FastAPI application for the CeedAds chat demo."""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Load .env from repo root so CEED_ADS_API_URL etc. work when set locally
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import ceed_ads
from chat import router as chat_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: initialize the ad SDK. Shutdown: release its HTTP client."""
    try:
        ceed_ads.initialize(os.getenv("CEED_ADS_APP_ID"))
    except Exception as e:
        logger.warning("Ad SDK initialization failed: %s. Continuing without ads.", e)

    yield

    ceed_ads.shutdown()
    logger.info("Ad SDK client closed")


app = FastAPI(title="CeedAds Chat Demo", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router, prefix="/api/chat", tags=["chat"])


@app.get("/health")
def health():
    """Health check; reports whether ads are enabled."""
    client = ceed_ads.get_client()
    return {
        "status": "healthy",
        "ads": "enabled" if client else "disabled",
        "app_id": client.app_id if client else None,
    }
