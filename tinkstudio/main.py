import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import router as auth_router
from .config import ALLOWED_ORIGINS, DATABASE_URL, SECURITY_HEADERS_ENABLED
from .database import create_db_engine, create_session_factory, init_schema
from .domain.consents.router import admin_router as consents_admin_router
from .domain.consents.router import public_router as consents_public_router
from .domain.customers.router import router as customers_router
from .domain.giftcards.router import admin_router as gift_cards_admin_router
from .domain.giftcards.router import public_router as gift_cards_public_router
from .domain.scheduling.router import router as scheduling_router
from .domain.studio.router import router as studio_router
from .errors import StudioError
from .security_headers import SecurityHeadersMiddleware
from .shared.datetime_utils import isoformat_utc, utcnow

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def _format_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Valore non valido")
    # pydantic prefixes messages raised from validators
    message = message.removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StudioError)
    async def studio_error_handler(request: Request, exc: StudioError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Missing or malformed Authorization header is an authentication error;
        any other request validation problem is a 400 listing every violation.
        """
        for error in exc.errors():
            if error.get("loc") and "authorization" in str(error.get("loc")).lower():
                logger.warning(f"Authentication failed for {request.url.path}: bad Authorization header")
                return JSONResponse(status_code=401, content={"error": "Token di accesso richiesto"})

        details = [_format_validation_error(e) for e in exc.errors()]
        logger.warning(f"Validation error for {request.url.path}: {details}")
        return JSONResponse(status_code=400, content={"error": "Dati non validi", "details": details})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Errore interno del server"})


def create_app(session_factory: Optional[sessionmaker] = None) -> FastAPI:
    """
    Build the API. Without a session factory one is created from DATABASE_URL;
    tests pass their own bound to an in-memory database.
    """
    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(DATABASE_URL))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application starting up...")
        try:
            init_schema(app.state.session_factory.kw["bind"])
            logger.info("Database tables created successfully")
        except Exception as e:
            # Another worker may have created the tables first
            error_msg = str(e)
            if "already exists" in error_msg or "duplicate key" in error_msg:
                logger.info("Database tables already exist (created by another worker)")
            else:
                logger.error(f"Failed to create database tables: {e}")
                raise
        yield
        logger.info("Application shutting down...")

    app = FastAPI(title="Tink Studio API", version="1.0.0", lifespan=lifespan)
    app.state.session_factory = session_factory

    register_exception_handlers(app)

    if SECURITY_HEADERS_ENABLED:
        app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/docs", "/openapi.json"])
    else:
        logger.warning("Security headers DISABLED - only use in development!")

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Admin-Token"],
    )

    app.include_router(auth_router)
    app.include_router(studio_router)
    app.include_router(scheduling_router)
    app.include_router(customers_router)
    app.include_router(gift_cards_admin_router)
    app.include_router(gift_cards_public_router)
    app.include_router(consents_admin_router)
    app.include_router(consents_public_router)

    @app.get("/api/health")
    def health():
        return {"status": "healthy", "timestamp": isoformat_utc(utcnow())}

    return app


app = create_app()
