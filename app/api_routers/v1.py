from fastapi import APIRouter

from app.features.scan.routes.sse import router as scan_stream_router

api_router = APIRouter()

# Register scan feature routes
api_router.include_router(scan_stream_router)
