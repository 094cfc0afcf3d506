from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import logging
import time
from typing import Callable
from redis.asyncio import Redis
from redis.exceptions import RedisError

from booktracker.core.config.logging_config import setup_logging
from booktracker.core.config.settings import get_settings
from booktracker.core.exceptions import BookTrackerError, RateLimited
from booktracker.db.init_db import init_db
from booktracker.db.session import SessionLocal, engine
from booktracker.routers import auth, books, user_books

# Setup logging
logger = setup_logging()
error_logger = logging.getLogger("booktracker.errors")

settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Book tracking API: accounts, a shared catalog and personal reading lists.",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
)

# Redis connection instance
redis = None

@app.on_event("startup")
async def startup_event():
    global redis
    # Initialize Redis if URL is configured
    if settings.REDIS_URL:
        try:
            redis = Redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True
            )
            await redis.ping()
            logger.info("Redis connection established")
        except (RedisError, OSError) as e:
            redis = None
            logger.error(f"Failed to connect to Redis: {str(e)}")

    # Initialize database
    init_db(engine)
    logger.info("Database initialized successfully")

@app.on_event("shutdown")
async def shutdown_event():
    global redis
    if redis:
        await redis.close()
        redis = None
        logger.info("Redis connection closed")

# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next: Callable):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"Method: {request.method} Path: {request.url.path} "
        f"Status: {response.status_code} Duration: {duration:.2f}s"
    )
    return response

# Rate limiting middleware
@app.middleware("http")
async def rate_limit(request: Request, call_next: Callable):
    if redis and request.client:
        key = f"rate_limit:{request.client.host}"
        try:
            requests = await redis.incr(key)
            if requests == 1:
                await redis.expire(key, 60)  # Reset after 60 seconds
        except RedisError as e:
            logger.warning(f"Rate limiter unavailable: {str(e)}")
            return await call_next(request)

        if requests > settings.RATE_LIMIT_PER_MINUTE:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=RateLimited("Too many requests").to_dict()
            )

    return await call_next(request)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with prefix
api_prefix = settings.API_V1_PREFIX
app.include_router(auth.router, prefix=api_prefix)
app.include_router(books.router, prefix=api_prefix)
app.include_router(user_books.router, prefix=api_prefix)

# Exception handlers
@app.exception_handler(BookTrackerError)
async def book_tracker_exception_handler(request: Request, exc: BookTrackerError):
    if exc.status_code >= 500:
        error_logger.error(f"{exc.code} on {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    error_logger.error(f"Unhandled Exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )

@app.get("/")
async def root():
    return {"message": "API is running..."}

# Health check endpoint with additional status info
@app.get("/health")
async def health_check():
    status_info = {
        "status": "healthy",
        "timestamp": time.time(),
        "database": "connected",
        "redis": "connected" if redis else "not configured"
    }

    # Check database connection
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        status_info["database"] = "disconnected"
        status_info["status"] = "unhealthy"
        error_logger.error(f"Database health check failed: {str(e)}")
    finally:
        db.close()

    # Check Redis connection if configured
    if redis:
        try:
            await redis.ping()
        except RedisError as e:
            status_info["redis"] = "disconnected"
            status_info["status"] = "unhealthy"
            error_logger.error(f"Redis health check failed: {str(e)}")

    return status_info

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("booktracker.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
