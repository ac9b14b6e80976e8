"""Health, readiness and metrics endpoints."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

VERSION = "0.1.0"
METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def health_check(request: Request) -> JSONResponse:
    """Handle GET /health."""
    return JSONResponse(
        {"status": "ok", "service": "planter", "version": VERSION, "timestamp": _now()}
    )


async def readiness_check(request: Request) -> JSONResponse:
    """Handle GET /ready."""
    return JSONResponse(
        {
            "status": "ready",
            "checks": {"server": "ok", "redis": "optional"},
            "timestamp": _now(),
        }
    )


async def metrics(request: Request) -> Response:
    """Handle GET /metrics in the Prometheus text format."""
    text = (
        "# HELP planter_build_info Build information\n"
        "# TYPE planter_build_info gauge\n"
        f'planter_build_info{{version="{VERSION}"}} 1\n'
        "\n"
        "# HELP planter_uptime_seconds Time the process has been running in seconds\n"
        "# TYPE planter_uptime_seconds counter\n"
        f"planter_uptime_seconds {int(time.time())}\n"
        "\n"
        "# HELP planter_requests_total Total number of requests received\n"
        "# TYPE planter_requests_total counter\n"
        'planter_requests_total{endpoint="/plan"} 0\n'
        'planter_requests_total{endpoint="/health"} 0\n'
        'planter_requests_total{endpoint="/ready"} 0\n'
    )
    return Response(text, media_type=METRICS_CONTENT_TYPE)