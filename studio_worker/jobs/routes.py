"""
FastAPI routes for generation.

  POST /generate/image  → { success, image_url } | { success: false, error }
  POST /generate/video  → { success, video_url } | { success: false, error }

Handlers are plain ``def`` so the blocking poll loop runs in the threadpool.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .models import GenerateRequest
from .orchestrator import GenerationService

logger = logging.getLogger(__name__)

generate_router = APIRouter(prefix="/generate", tags=["generate"])

# Stateless, so one instance serves every request
_service = GenerationService()


def get_service() -> GenerationService:
    return _service


def set_service(service: GenerationService):
    """Swap the service instance (tests)."""
    global _service
    _service = service


@generate_router.post("/image")
def generate_image(request: GenerateRequest):
    status_code, body = get_service().generate_image(request).to_response()
    return JSONResponse(status_code=status_code, content=body)


@generate_router.post("/video")
def generate_video(request: GenerateRequest):
    status_code, body = get_service().generate_video(request).to_response()
    return JSONResponse(status_code=status_code, content=body)
