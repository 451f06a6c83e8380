"""Liveness endpoint for the order management API.

``GET /health`` reports the service identity and the state of the two
backing services every request depends on: the database holding orders
and stock, and the cache. Any dependency down turns the response into
a 503 so load balancers stop routing traffic to the instance.
"""

import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger(__name__)

CACHE_KEY = "order_api:health"


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set(CACHE_KEY, "ok", 10)
    if cache.get(CACHE_KEY) != "ok":
        raise ConnectionError("Cache read-back mismatch")


def _timed(name: str, check: Callable[[], None], errors: tuple) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        check()
    except errors:
        logger.exception("health.dependency_down", dependency=name)
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    services = {
        "database": _timed("database", _check_database, (DatabaseError,)),
        # Cache backends raise their own client errors (redis.ConnectionError).
        "cache": _timed("cache", _check_cache, (Exception,)),
    }
    healthy = all(entry["status"] == "up" for entry in services.values())
    status = "healthy" if healthy else "unhealthy"

    logger.info("health.checked", status=status)
    return JsonResponse(
        {
            "status": status,
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )
