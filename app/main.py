from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from app.middleware.audit import AuditMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.rate_limit import limiter
from app.api.errors import validation_exception_handler
from app.api.routes import router
from app.api.ai_routes import router as ai_router
from app.api.websocket import router as websocket_router
from app.auth.register import router as register_router
from app.auth.login import router as login_router
from app.database import init_db, engine
from contextlib import asynccontextmanager
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Handles startup and shutdown events.
    """
    # ========== STARTUP ==========
    settings.validate_for_startup()

    logger.info("=" * 60)
    logger.info("Renovation Marketplace API starting...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"API Host: {settings.API_HOST}:{settings.API_PORT}")

    init_db()
    logger.info("Database tables created/verified")
    logger.info(f"Docs available at: http://{settings.API_HOST}:{settings.API_PORT}/docs")
    logger.info("=" * 60)

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info("Renovation Marketplace API shutting down...")
    engine.dispose()


# CREATE APP INSTANCE
app = FastAPI(
    title="Renovation Marketplace API",
    description="Home renovation marketplace: projects, contractor bids, messaging and rule-based analysis",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Add audit logging middleware
app.add_middleware(AuditMiddleware)

# Add rate limiting middleware
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Include all API routes
app.include_router(register_router, prefix="/api/auth")
app.include_router(login_router, prefix="/api/auth")
app.include_router(router)
app.include_router(ai_router)
app.include_router(websocket_router)

logger.info("All routes registered")


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Renovation Marketplace API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "status": "operational"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    db_status = "healthy"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "renovation-marketplace-api",
        "environment": settings.ENVIRONMENT,
        "version": API_VERSION,
        "database": db_status
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
