from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

from yield_advisor.config import get_settings
from yield_advisor.http import HttpClient

logger = logging.getLogger(__name__)


def build_push_payload(level: str, message: str, labels: Optional[Dict[str, str]] = None, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    settings = get_settings()
    ts_ns = str(int(time.time() * 1_000_000_000))
    stream = labels or {"service": "yield-advisor", "env": settings.ENV, "level": level}
    return {
        "streams": [
            {
                "stream": stream,
                "values": [[ts_ns, json.dumps({"message": message, **(extra or {})})]],
            }
        ]
    }


async def loki_log(http: HttpClient, level: str, message: str, labels: Optional[Dict[str, str]] = None, extra: Optional[Dict[str, Any]] = None) -> None:
    """Push one log line to Loki. Best-effort: failures are logged locally, never raised."""
    url = f"{get_settings().LOKI_URL.rstrip('/')}/loki/api/v1/push"
    payload = build_push_payload(level, message, labels, extra)
    try:
        await http.post(url, json=payload, headers={"Content-Type": "application/json"})
    except Exception as e:
        # never let log shipping fail the request being logged
        logger.debug(f"Loki push failed: {e!r}")


async def loki_request_logger(request, call_next):
    """HTTP middleware shipping one line per request to Loki."""
    response = await call_next(request)
    http = getattr(request.app.state, "http", None)
    if http is not None:
        await loki_log(
            http,
            "INFO",
            "request",
            extra={
                "path": str(request.url.path),
                "method": request.method,
                "status": response.status_code,
                "client_ip": request.client.host if request.client else None,
            },
        )
    return response
