from fastapi import APIRouter
from .metrics import router as metrics_router

router = APIRouter(prefix="/api/v1")
router.include_router(metrics_router)
