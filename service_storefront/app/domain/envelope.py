"""
Response envelopes shared by every gateway operation.
"""

import time
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from shared.errors import StorefrontException, build_error_response, utc_timestamp


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


def elapsed_since(started: float) -> float:
    return round(time.perf_counter() - started, 4)


def success_response(data: Any, started: float, status_code: int = 200) -> JSONResponse:
    """``{success, timestamp, execution_time, data}``"""
    content: Dict[str, Any] = {
        "success": True,
        "timestamp": utc_timestamp(),
        "execution_time": elapsed_since(started),
    }
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content)


def error_response(exc: StorefrontException, debug: bool = False,
                   available_endpoints: Optional[Dict[str, Any]] = None) -> JSONResponse:
    """``{success: false, error, code, timestamp}`` plus field, catalog or debug details."""
    content = build_error_response(exc, debug=debug).model_dump(exclude_none=True)
    if available_endpoints is not None:
        content["available_endpoints"] = available_endpoints

    response = JSONResponse(status_code=exc.status_code, content=content)
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        response.headers["Retry-After"] = str(retry_after)
    return response


def apply_security_headers(response: JSONResponse) -> JSONResponse:
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response
