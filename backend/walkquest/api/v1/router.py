from fastapi import APIRouter

from walkquest.api.v1.endpoints import logs, regions, routes

api_router = APIRouter()

api_router.include_router(routes.router, prefix="/routes", tags=["routes"])
api_router.include_router(regions.router, prefix="/regions", tags=["regions"])
api_router.include_router(logs.router, prefix="/logs", tags=["logs"])
