"""
FastAPI Main Application
GenZEd LMS Backend
"""
import logging
from datetime import datetime

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from core.config import settings
from core.database import init_db, get_db
from core.health import uptime_seconds, database_status
from core.logging_config import setup_logging
from api import auth, users, courses, batches, payments, payouts, live_classes, notifications, admin

setup_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Backend API for the GenZEd learning management system: courses, batches, payments and live classes",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    logger.info(f"Starting {settings.APP_NAME} API ({settings.ENV})")
    init_db()
    logger.info(f"API running on {settings.API_URL}")


# Health check endpoints
@app.get("/")
async def root():
    return {
        "success": True,
        "message": f"Welcome to {settings.APP_NAME} API",
        "version": "1.0.0",
        "docs": f"{settings.API_URL}/docs",
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint for monitoring"""
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": uptime_seconds(),
        "database": database_status(db),
    }


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(courses.router, prefix="/api/courses", tags=["Courses"])
app.include_router(batches.router, prefix="/api/batches", tags=["Batches"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(payouts.router, prefix="/api/payouts", tags=["Payouts"])
app.include_router(live_classes.router, prefix="/api/live-classes", tags=["Live Classes"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


# Error envelope: every failure is {"success": false, "message": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = {"success": False, "message": exc.detail}
    # Unmatched routes come through with Starlette's default detail
    if exc.status_code == 404 and exc.detail == "Not Found":
        content = {"success": False, "message": "API endpoint not found", "path": request.url.path}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content = {"success": False, "message": "Internal server error"}
    if settings.ENV == "development":
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=5001,
        reload=settings.ENV == "development",
        log_level="info",
    )
