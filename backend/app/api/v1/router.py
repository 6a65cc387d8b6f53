from __future__ import annotations

from fastapi import APIRouter

from .endpoints import archive, files, health, migration, profiles, tags, things

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(things.router, prefix="/things", tags=["things"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(archive.router, prefix="/archive", tags=["archive"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
api_router.include_router(migration.router, prefix="/migration", tags=["migration"])
