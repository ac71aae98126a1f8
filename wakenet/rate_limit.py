"""
Rate limiting for the public push-ingest endpoint.

Uses slowapi to limit requests per IP address. Only routes decorated with
`limiter.limit(...)` are limited; authenticated endpoints are not.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import config


def get_rate_limit() -> str:
    """Get rate limit from config, defaulting to 60/minute."""
    limit = config.RATE_LIMIT_PER_MINUTE
    if limit <= 0:
        # Rate limiting disabled
        return "1000000/minute"
    return f"{limit}/minute"


# Create limiter with IP-based key
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",  # In-memory storage (resets on restart)
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Custom handler for rate limit exceeded errors."""
    retry_after = getattr(exc, "retry_after", 60)
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


def setup_rate_limiting(app):
    """Attach the limiter and its error handler to a FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
