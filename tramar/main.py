from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import logging as _logging_setup  # noqa: F401
from .core.config import settings
from .api.main import api_router
from .core.error_handlers import setup_error_handlers, add_request_id_middleware
from .auth.controller import router as auth_router
from .cart.controller import router as cart_router
from .orders.controller import router as orders_router
from .database.core import Base, engine
from .database import models  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting database initialization...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan
)

# Set up error handlers
setup_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request ID middleware for better error tracking
app.middleware("http")(add_request_id_middleware)

app.include_router(api_router, prefix=settings.API_PREFIX)
app.include_router(auth_router, prefix=settings.API_PREFIX, tags=["Authentication"])
app.include_router(cart_router, prefix=settings.API_PREFIX, tags=["Cart"])
app.include_router(orders_router, prefix=settings.API_PREFIX, tags=["Orders"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
