"""Process-wide Redis client used by rate limiting and the readiness probe.

Redis is optional: when it was never initialised, callers check
``redis_configured()`` and skip their Redis work.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None

# Rate limiting fails open, so a dead Redis must not stall requests for long
SOCKET_TIMEOUT_SECONDS = 0.5


async def init_redis(url: str, max_connections: int = 20) -> None:
    """Create the client lazily; no connection is opened until first use."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        decode_responses=True,
        max_connections=max_connections,
        socket_timeout=SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
    _client = None


def redis_configured() -> bool:
    return _client is not None


def get_redis() -> redis.Redis:
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client
