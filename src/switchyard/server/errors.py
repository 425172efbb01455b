"""Synthesized fallback responses.

Used when the chain runs out of entries (404), when no error entry
handles a failure (500, or the status of an ``HTTPError``), and when the
supervisory timeout fires (503). All payloads are JSON::

    {"error": "Not Found", "message": "Cannot GET /anything"}
"""

import logging
import traceback
from typing import Any

from switchyard.errors import HTTPError, ServiceUnavailable, reason_phrase
from switchyard.http.request import Request
from switchyard.http.response import Response

logger = logging.getLogger("switchyard.server")


def not_found_payload(request: Request) -> dict[str, str]:
    return {"error": "Not Found", "message": f"Cannot {request.method} {request.path}"}


def error_payload(exc: BaseException, *, debug: bool = False) -> tuple[int, dict[str, Any]]:
    """Status code and JSON body describing *exc*.

    ``HTTPError`` keeps its own status and detail; anything else is a 500
    carrying the exception message. In debug mode the formatted traceback
    is included under ``"stack"``.
    """
    if isinstance(exc, HTTPError):
        status = exc.status
    else:
        status = 500
    payload: dict[str, Any] = {"error": reason_phrase(status), "message": str(exc)}
    if debug:
        payload["stack"] = "".join(traceback.format_exception(exc))
    return status, payload


def send_not_found(request: Request, response: Response) -> None:
    """Terminal response for a chain that matched nothing or ran out of entries."""
    if response.sent:
        return
    logger.debug("404 %s %s — no handler responded", request.method, request.path)
    response.status(404).json(not_found_payload(request))


def send_error(
    exc: BaseException,
    request: Request,
    response: Response,
    *,
    debug: bool = False,
) -> None:
    """Default error response when no error entry took care of *exc*."""
    if isinstance(exc, HTTPError):
        logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc)
    else:
        logger.error("500 %s %s", request.method, request.path, exc_info=exc)

    if response.sent:
        return
    status, payload = error_payload(exc, debug=debug)
    response.status(status)
    if isinstance(exc, HTTPError):
        for name, value in exc.headers:
            response.set_header(name, value)
    response.json(payload)


def send_timeout(request: Request, response: Response, timeout: float) -> None:
    """Terminal response when the supervisory handler timeout elapses."""
    logger.warning(
        "Handler chain for %s %s did not respond within %.1fs",
        request.method,
        request.path,
        timeout,
    )
    send_error(ServiceUnavailable(), request, response)
