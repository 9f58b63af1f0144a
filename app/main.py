"""
Quiz Attempt Engine API

Scheduled single-attempt quizzes, server-side scoring and performance analytics
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import logging
import time

from app.config import settings
from app.database import SessionLocal, init_db
from app.exceptions import QuizEngineError, MalformedAttempt
from app.api import users, quizzes, attempts, analytics
from app.utils.cache import cache_service

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Quiz attempt lifecycle, scoring and performance analytics",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request"""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed * 1000:.1f} ms)"
    )
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    return response


@app.exception_handler(QuizEngineError)
async def quiz_engine_error_handler(request: Request, exc: QuizEngineError):
    """Domain errors carry their own status code and error tag"""
    if isinstance(exc, MalformedAttempt):
        logger.critical(f"{request.method} {request.url.path}: {exc.message} {exc.details}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.error}): {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "status_code": 500,
            "details": str(exc) if settings.DEBUG else None
        }
    )


@app.get("/health")
async def health_check():
    """
    Liveness plus dependency status

    The database is probed with a trivial query; the analytics cache is
    optional, so its absence does not make the service unhealthy.
    """
    database = "ok"
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database probe failed: {str(e)}")
        database = "unavailable"
    finally:
        db.close()

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": database,
        "cache": "enabled" if cache_service.redis_client else "disabled",
        "timestamp": time.time()
    }


@app.get("/")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(users.router)
app.include_router(quizzes.router)
app.include_router(attempts.router)
app.include_router(analytics.router)


@app.on_event("startup")
async def startup_event():
    """Ensure the schema exists before serving"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info(
        f"Attempt policy: tab switch auto-submit limit={settings.AUTO_SUBMIT_TAB_SWITCH_LIMIT}, "
        f"freeze questions after attempts={settings.FREEZE_QUESTIONS_AFTER_ATTEMPTS}"
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
