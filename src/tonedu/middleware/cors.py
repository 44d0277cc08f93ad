"""CORS for the Mini-App frontends."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tonedu.config import Settings

# Headers the Mini-App reads back from responses
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured origins plus any Telegram web client matching ``cors_origin_regex``.

    Credentials are not allowed: the Mini-App identifies users by id in the
    path, never by cookie.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "X-Request-Id"],
        expose_headers=EXPOSED_HEADERS,
        max_age=600,
    )
