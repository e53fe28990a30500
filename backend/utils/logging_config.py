import logging
import logging.handlers
import contextvars
from pathlib import Path
from typing import Optional

from core.config import Settings
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


def map_log_level(level_name: str) -> int:
    level = logging.getLevelName((level_name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


user_id_var = contextvars.ContextVar("user_id", default="-")
api_var = contextvars.ContextVar("api", default="-")


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Inject per-request context variables
        record.user_id = user_id_var.get()
        record.api = api_var.get()
        return True


def _build_rotating_file_handler(filename: str, level: int, formatter: logging.Formatter,
                                 log_dir: Path, ttl_days: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(log_dir / filename),
        when="midnight",
        interval=1,
        backupCount=max(int(ttl_days), 0),
        encoding="utf-8",
        utc=True,
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    return handler


def _build_handlers(settings: Settings, level: int) -> dict[str, logging.Handler]:
    formatter = logging.Formatter(
        fmt="%(levelname)s - %(asctime)s - %(user_id)s - %(api)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ContextFilter())
    handlers = {"console": console_handler}

    if settings.LOG_TO_FILE:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        ttl = settings.LOG_TTL_DAYS
        handlers["app"] = _build_rotating_file_handler("app.log", level, formatter, log_dir, ttl)
        handlers["access"] = _build_rotating_file_handler("access.log", level, formatter, log_dir, ttl)
        handlers["error"] = _build_rotating_file_handler("error.log", logging.WARNING, formatter, log_dir, ttl)
    return handlers


def _reset_handlers(target_logger: logging.Logger, handlers: list[logging.Handler], level: int) -> None:
    for h in list(target_logger.handlers):
        target_logger.removeHandler(h)
    for h in handlers:
        target_logger.addHandler(h)
    target_logger.setLevel(level)


def configure_logging(settings: Settings, app_logger_name: Optional[str] = None) -> logging.Logger:
    """Configure console logging plus, when LOG_TO_FILE is set, daily rotated
    files under LOG_DIR kept for LOG_TTL_DAYS.

    Applies handlers to the root, app and uvicorn loggers.
    """
    level = map_log_level(settings.LOG_LEVEL)
    handlers = _build_handlers(settings, level)
    app_handlers = [h for key, h in handlers.items() if key in ("app", "error", "console")]
    access_handlers = [h for key, h in handlers.items() if key in ("access", "console")]

    root_logger = logging.getLogger()
    _reset_handlers(root_logger, app_handlers, level)

    app_logger = logging.getLogger(app_logger_name or "podcastparty")
    app_logger.propagate = False
    _reset_handlers(app_logger, app_handlers, level)

    for name in ("uvicorn", "uvicorn.error", "fastapi"):
        lgr = logging.getLogger(name)
        lgr.propagate = False
        _reset_handlers(lgr, app_handlers, level)
    access_logger = logging.getLogger("uvicorn.access")
    access_logger.propagate = False
    _reset_handlers(access_logger, access_handlers, level)

    return app_logger


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Expose the caller's user id and ``METHOD path`` to log records."""

    def __init__(self, app, token_issuer):
        super().__init__(app)
        self.token_issuer = token_issuer

    async def dispatch(self, request: Request, call_next):
        user_id = "-"
        auth_header = request.headers.get("authorization")
        if auth_header and auth_header.startswith("Bearer "):
            payload = self.token_issuer.verify_access_token(auth_header.split(" ", 1)[1])
            if payload:
                user_id = payload.get("sub") or "-"

        context_token_user = user_id_var.set(user_id)
        context_token_api = api_var.set(f"{request.method} {request.url.path}")
        try:
            return await call_next(request)
        finally:
            user_id_var.reset(context_token_user)
            api_var.reset(context_token_api)
