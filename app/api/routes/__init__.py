"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.prediction_routes import router as prediction_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(prediction_router)
