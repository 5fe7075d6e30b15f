"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from lp_api.api.v1.endpoints import projects

api_router = APIRouter()

api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
