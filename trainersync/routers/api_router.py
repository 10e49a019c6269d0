from fastapi import APIRouter
from trainersync.routers import admin, hierarchy, leave, notifications

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(leave.router)
api_router.include_router(admin.router)
api_router.include_router(hierarchy.router)
api_router.include_router(notifications.router)
