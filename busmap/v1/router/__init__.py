from .routes import router as routes_router
from .stops import router as stops_router


from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")
router.include_router(routes_router)
router.include_router(stops_router)
