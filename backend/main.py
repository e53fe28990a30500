from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from api.v1 import auth
from core.config import AuthConfig, Settings, get_settings
from core.errors import AuthError
from core.security import PasswordHasher, TokenIssuer
from db.mongodb import close_mongo_client, get_mongo_db, init_mongo_indexes
from db.user_repository import UserRepository
from services.auth_service import AuthService
from utils.logging_config import configure_logging, RequestContextMiddleware
from utils.rate_limit import setup_rate_limiting
from utils.responses import message_json
from utils.security_headers import SecurityHeadersMiddleware
import logging

logger = logging.getLogger("podcastparty")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
        return message_json(detail, 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return message_json(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))

    # Global exception handler to ensure 500s for unexpected errors
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error at {request.url.path}: {exc}")
        return message_json("Internal server error", 500)


def create_app(settings: Optional[Settings] = None, db=None) -> FastAPI:
    """Build the API from an explicit settings object.

    ``db`` is any object exposing a ``users`` collection with the motor API;
    when omitted the Mongo database named in settings is used.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        docs_url="/api-docs",
        redoc_url=None,
    )

    if db is None:
        db = get_mongo_db(settings)
    if db is None:
        logger.warning("No credential store configured; auth endpoints will fail with 500")

    auth_config = AuthConfig.from_settings(settings)
    token_issuer = TokenIssuer(auth_config)
    app.state.settings = settings
    app.state.db = db
    app.state.auth_service = AuthService(
        config=auth_config,
        users=UserRepository(db.users if db is not None else None),
        hasher=PasswordHasher(auth_config.bcrypt_rounds),
        tokens=token_issuer,
    )

    _register_exception_handlers(app)

    # Middleware added last wraps outermost
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestContextMiddleware, token_issuer=token_issuer)
    setup_rate_limiting(app, settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)

    app.include_router(auth.router, tags=["Authentication"])

    @app.on_event("startup")
    async def startup_db_client():
        if app.state.db is not None and await init_mongo_indexes(app.state.db):
            logger.info("Mongo indexes ensured")
        logger.info("Application startup complete")

    @app.on_event("shutdown")
    async def shutdown_db_client():
        close_mongo_client()
        logger.info("Application shutdown complete")

    @app.get("/")
    async def root():
        return {"message": settings.APP_NAME, "version": settings.VERSION, "docs": "/api-docs"}

    @app.get("/health")
    async def health_check():
        # Actively check DB connectivity
        if app.state.db is None:
            return {"status": "degraded", "database": "not_configured"}
        try:
            await app.state.db.command({"ping": 1})
            return {"status": "healthy", "database": "mongo_connected"}
        except Exception as e:
            logger.warning(f"Health Mongo check failed: {e}")
            return {"status": "degraded", "database": "mongo_unavailable"}

    @app.post("/csp-violation-report", status_code=204, include_in_schema=False)
    async def csp_violation_report(request: Request):
        try:
            report = await request.json()
        except ValueError:
            report = (await request.body()).decode("utf-8", errors="replace")
        logger.warning(f"CSP Violation Report: {report}")
        return Response(status_code=204)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3000)
