"""
SmartPantry API
Main application entry point
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import uvicorn

from config import get_settings
from dependencies.auth import get_auth_service
from routers import auth, pantry, recipes
from middleware.logging_middleware import LoggingMiddleware
from services.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    settings = get_settings()
    logger.info(f"Starting SmartPantry API ({settings.environment})")
    # Fail fast on missing JWT keys instead of on the first request
    get_auth_service()
    yield
    logger.info("Shutting down SmartPantry API...")


app = FastAPI(
    title="SmartPantry API",
    description="Pantry and recipe management with JWT sessions",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(auth.router, prefix="/v1/auth", tags=["authentication"])
app.include_router(pantry.router, prefix="/v1/pantry", tags=["pantry"])
app.include_router(recipes.router, prefix="/v1/recipes", tags=["recipes"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "smartpantry-api"}


def _correlation_id(request: Request):
    return request.state.correlation_id if hasattr(request.state, 'correlation_id') else None


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Service errors with standard error format"""
    if not exc.is_client_error():
        logger.error(f"{request.method} {request.url.path} failed: {exc}")

    content = exc.to_dict()
    content["correlationId"] = _correlation_id(request)

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler with standard error format"""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": ErrorCode.INTERNAL_ERROR.value,
            "message": "An unexpected error occurred",
            "correlationId": _correlation_id(request)
        }
    )


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
