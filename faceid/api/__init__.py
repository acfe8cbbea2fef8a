"""HTTP API, mounted by the application under ``settings.API_V1_STR``."""
from fastapi import APIRouter

from .face_recognition import router as face_recognition_router

router = APIRouter()
router.include_router(face_recognition_router, prefix="/face-recognition")
