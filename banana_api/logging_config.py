"""Loguru configuration with trace correlation."""

import sys

from loguru import logger
from opentelemetry import trace

from .config import Settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "trace={extra[trace_id]} - <level>{message}</level>"
)


def add_trace_context(record: dict) -> None:
    """Copy the active span's ids into the record's extra fields."""
    context = trace.get_current_span().get_span_context()
    if context.is_valid:
        record["extra"]["trace_id"] = trace.format_trace_id(context.trace_id)
        record["extra"]["span_id"] = trace.format_span_id(context.span_id)
    else:
        record["extra"].setdefault("trace_id", "-")
        record["extra"].setdefault("span_id", "-")


def configure_logging(settings: Settings) -> None:
    """Configure logging - should be called at startup, not import time."""
    logger.remove()
    logger.configure(patcher=add_trace_context)  # type: ignore[arg-type]
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=settings.log_level,
        serialize=settings.log_json,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level=settings.log_level,
            serialize=settings.log_json,
        )


def sanitize_for_logging(value: str | None, max_length: int = 200) -> str:
    """Flatten line breaks and truncate user input so it cannot forge log lines."""
    if value is None:
        return "unknown"
    sanitized = value.replace("\r", "").replace("\n", " ")
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."
    return sanitized
