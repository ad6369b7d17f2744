from fastapi import APIRouter

from botlist.api.v1.endpoints.health import router as health_router
from botlist.api.v1.endpoints.listings import router as listings_router
from botlist.api.v1.endpoints.me import router as me_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(listings_router, tags=["listings"])
router.include_router(me_router, tags=["me"])
