import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from contextlib import asynccontextmanager
from .config import settings
from .database import alembic_manager
from .exceptions import register_exception_handlers
from .v1.router import router as v1_router

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.run_migrations:
        try:
            alembic_manager.run_migrations()
        except Exception:
            logger.exception("Error running migrations")
            raise
    yield

app = FastAPI(title="busmap", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(v1_router)

@app.get("/health")
def health_check():
    return {"status": "ok"}

if __name__ == "__main__":
    uvicorn.run("busmap.main:app", host="0.0.0.0", port=8000, reload=True)
