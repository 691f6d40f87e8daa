from fastapi import APIRouter

from hubtrack.api.v1.endpoints import hub

api_router = APIRouter()

api_router.include_router(hub.router, prefix="/hub", tags=["Hub"])
