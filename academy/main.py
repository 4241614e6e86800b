from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
from .core.config import settings
from .core.database import Store
from .core.errors import AcademyError
from .api import auth, batches, students, instructors, courses, exams, results, finance
from .utils.backup import backup_sqlite_database
import logging
import sys

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    store: Store = app.state.store
    logger.info("Starting Academy Records API...")
    try:
        await store.init()
        logger.info("Application startup completed successfully")
        yield
    except Exception as e:
        logger.error(f"Error during application startup: {e}")
        raise
    finally:
        logger.info("Shutting down Academy Records API...")
        try:
            await store.close()
            if settings.backup_on_shutdown:
                backup_sqlite_database(store.sqlite_path, settings.backup_dir)
            logger.info("Application shutdown completed")
        except Exception as e:
            logger.error(f"Error during application shutdown: {e}")


def create_app(store: Optional[Store] = None) -> FastAPI:
    app = FastAPI(
        title="Academy Records API",
        description="Students, batches, exams, results and fee receipts for a training academy",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.store = store or Store(settings.database_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "tauri://localhost",
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(AcademyError)
    async def academy_error_handler(request: Request, exc: AcademyError):
        logger.warning(f"{type(exc).__name__} on {request.url}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message}
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.error(f"HTTP {exc.status_code} error on {request.url}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url}: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(batches.router, tags=["Batches"])
    app.include_router(students.router, tags=["Students"])
    app.include_router(instructors.router, tags=["Instructors"])
    app.include_router(courses.router, tags=["Courses"])
    app.include_router(exams.router, tags=["Exams"])
    app.include_router(results.router, tags=["Results"])
    app.include_router(finance.router, tags=["Finance"])

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint - API health check"""
        return {
            "message": "Academy Records API is running",
            "version": "1.0.0",
            "status": "healthy"
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "service": "Academy Records API",
            "version": "1.0.0"
        }

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests"""
        logger.info(f"Incoming request: {request.method} {request.url}")

        try:
            response = await call_next(request)
            logger.info(f"Request completed: {request.method} {request.url} - Status: {response.status_code}")
            return response
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url} - Error: {str(e)}")
            raise

    return app


app = create_app()
