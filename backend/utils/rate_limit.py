from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from core.config import Settings
import logging

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS_MESSAGE = "Too many requests from this IP, please try again later."


def setup_rate_limiting(app: FastAPI, settings: Settings) -> Limiter:
    """
    Apply one IP-based limit to every route.

    The limiter lives on ``app.state`` so each app instance counts on its
    own in-memory storage.
    """
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.RATE_LIMIT],
        enabled=settings.RATE_LIMIT_ENABLED,
    )
    # "100/15 minutes" -> "15 minutes"
    retry_after = settings.RATE_LIMIT.split("/", 1)[-1].strip()

    def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded for {get_remote_address(request)}: {exc.detail}")
        return JSONResponse(
            status_code=429,
            content={"error": TOO_MANY_REQUESTS_MESSAGE, "retryAfter": retry_after},
        )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    return limiter
