"""Request tracking, tracing, security headers and input validation middleware."""

import uuid

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from opentelemetry import propagate, trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from .config import settings
from .logging_config import sanitize_for_logging

tracer = trace.get_tracer("GrafanaBanana.Api.Http")

DANGEROUS_PATTERNS = (
    "<script",
    "javascript:",
    "onerror=",
    "onload=",
    "eval(",
    "expression(",
    "vbscript:",
    "data:text/html",
    "../",
    "..\\",
    "';--",
    '"; --',
    "' or '1'='1",
    '" or "1"="1',
)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data: https:; font-src 'self'; connect-src 'self'; "
    "frame-ancestors 'none'; base-uri 'self'; form-action 'self'"
)


def contains_dangerous_content(value: str) -> bool:
    """Check a value against the known injection patterns, case-insensitively."""
    if not value or not value.strip():
        return False
    lowered = value.lower()
    return any(pattern in lowered for pattern in DANGEROUS_PATTERNS)


async def trace_request(request: Request, call_next):
    """Run the request inside a server span, continuing any incoming trace."""
    with tracer.start_as_current_span(
        f"{request.method} {request.url.path}",
        context=propagate.extract(request.headers),
        kind=SpanKind.SERVER,
        record_exception=False,
    ) as span:
        span.set_attribute("http.request.method", request.method)
        span.set_attribute("url.path", request.url.path)
        span.set_attribute("http.request.user_agent", request.headers.get("user-agent", ""))

        response = await call_next(request)

        span.set_attribute("http.response.status_code", response.status_code)
        if response.status_code >= 500:
            span.set_status(Status(StatusCode.ERROR))
        return response


async def add_request_id(request: Request, call_next):
    """Propagate or mint an ``X-Request-ID`` and bind it to loguru's context.

    Every log line emitted while handling the request carries
    ``extra["request_id"]`` next to the trace ids added by the logging patcher.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    client = request.client.host if request.client else "unknown"

    with logger.contextualize(request_id=request_id):
        logger.debug(f"{request.method} {sanitize_for_logging(request.url.path)} from {client}")
        response = await call_next(request)
        logger.debug(f"Responded {response.status_code}")

    response.headers["X-Request-ID"] = request_id
    return response


async def add_security_headers(request: Request, call_next):
    """Attach browser security headers; CSP and HSTS outside development."""
    response = await call_next(request)

    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value

    if not settings.is_development:
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains; preload"
        )

    return response


async def validate_input(request: Request, call_next):
    """Reject requests whose JSON body or query parameters look like injection attempts."""
    remote_ip = request.client.host if request.client else "unknown"

    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type.lower():
        body = (await request.body()).decode("utf-8", errors="replace")
        if contains_dangerous_content(body):
            logger.warning(
                f"Potentially malicious request detected from {remote_ip}. "
                f"Path: {sanitize_for_logging(request.url.path)}"
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "error": "Invalid request content detected",
                    "message": "The request contains potentially unsafe content",
                },
            )

    for key, value in request.query_params.multi_items():
        if contains_dangerous_content(value):
            logger.warning(
                f"Potentially malicious query parameter detected from {remote_ip}. "
                f"Parameter: {sanitize_for_logging(key)}"
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "error": "Invalid query parameter detected",
                    "message": "The query parameter contains potentially unsafe content",
                },
            )

    return await call_next(request)
