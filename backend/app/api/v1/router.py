"""
Symptom Journal - API Router Aggregator
"""
from fastapi import APIRouter
from .analysis import router as analysis_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(analysis_router)
