from __future__ import annotations

import asyncio
import os

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.db.base import create_request_supabase_client

router = APIRouter()


@router.get("/")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "service": "things-api",
            "version": "0.1.0"
        }
    )


@router.get("/ready")
async def readiness_check():
    """Readiness check endpoint: storage reachable and attachment folder present."""
    db_status = "connected"
    try:
        client = create_request_supabase_client()
        await asyncio.to_thread(lambda: client.table(settings.things_table).select("id").limit(1).execute())
    except Exception as e:
        db_status = f"error: {str(e)}"

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "database": db_status,
            "attachments": "available" if os.path.isdir(settings.attachment_dir) else "missing",
            "api_prefix": settings.api_prefix
        }
    )
