"""
Admission Counselling API - Main Application

Serves admission predictions for NEET and JEE Main scores:
- PostgreSQL holds historical cutoff ranks
- MongoDB holds college reference documents
- Normalizations and predictions are cached in-process

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.core.config import get_settings
from app.db.mongodb import init_mongo_indexes, test_mongo_connection
from app.db.postgres import test_postgres_connection

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Admission Counselling API",
    description="""
    Admission prediction engine for NEET and JEE Main counselling.

    - **Normalize**: marks / percentile / rank -> comparable rank
    - **Predict**: admission probability per college from historical cutoffs
    - **Rank**: probability, safety, placement and affordability combined
    - **Explain**: every score comes with the numbers behind it

    Data sources (read-only): PostgreSQL `historical_cutoffs`,
    MongoDB `colleges`.
    """,
    version="1.0.0",
)

# Frontend runs on a separate origin during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.on_event("startup")
def create_indexes():
    # Predictions degrade to empty results without MongoDB; the app still starts
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes ready")
    except Exception as e:
        logger.warning("Skipping MongoDB index creation: %s", e)


@app.get("/", tags=["Health"])
def root():
    return {"status": "healthy", "app": "Admission Counselling API"}


@app.get("/health", tags=["Health"])
def health_check():
    """Store connectivity. `degraded` means predictions will come back empty."""
    stores = {
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected",
    }
    healthy = all(state == "connected" for state in stores.values())
    return {"status": "healthy" if healthy else "degraded", **stores}
