"""HTTP middleware stack for the API.

Resulting order, outermost first: CORS, request id, rate limit, routes.
Starlette wraps in reverse-add order, so CORS is added last to also cover
429 responses.
"""

from fastapi import FastAPI

from tonedu.config import Settings
from tonedu.middleware.cors import setup_cors
from tonedu.middleware.error_handler import setup_error_handlers
from tonedu.middleware.logging import setup_logging
from tonedu.middleware.rate_limit import RateLimitMiddleware
from tonedu.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    setup_logging(settings)
    setup_error_handlers(app)
    # rate_limit_requests <= 0 turns limiting off
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
