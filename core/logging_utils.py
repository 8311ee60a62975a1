"""Logging utilities for Lambda handlers.

Provides centralized JSON logging configuration and sensitive data sanitization
for the structured request/response records written by the handler wrapper.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pythonjsonlogger import json as jsonlogger

# Sensitive keys to filter (case-insensitive)
SENSITIVE_KEYS = [
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "auth",
    "token",
    "bearer",
    "password",
    "passwd",
    "secret",
    "credential",
    "credentials",
    "access_token",
    "refresh_token",
    "session_id",
    "cookie",
]

# Sensitive header prefixes (case-insensitive)
SENSITIVE_HEADER_PREFIXES = [
    "x-api-key",
    "x-auth",
    "x-token",
    "x-secret",
    "authorization",
    "cookie",
]

# LogRecord attributes that are not user-supplied extra fields
_RECORD_ATTRIBUTES = (
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName",
    "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "asctime", "datefmt", "taskName",
)


def configure_json_logging(level: str = "INFO", pretty: bool = False) -> None:
    """Configure ALL loggers to use JSON format.

    Sets up the root logger with a single JSON handler so every module
    logger inherits it. Call once, from the Lambda entry module.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        pretty: If True, use pretty-printed JSON (for local development).
                If False, use compact JSON (for CloudWatch).
    """
    root_logger = logging.getLogger()

    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)

    if pretty:
        formatter = _PrettyJsonFormatter()
    else:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            timestamp=True,
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


class _PrettyJsonFormatter(logging.Formatter):
    """Pretty JSON formatter for local development.

    Formats logs as indented JSON and truncates long strings and lists
    so stack traces and payloads stay readable in a terminal.
    """

    def __init__(self, max_string_length: int = 500, max_list_items: int = 20):
        super().__init__()
        self.max_string_length = max_string_length
        self.max_list_items = max_list_items

    def _truncate_value(self, value: Any, depth: int = 0) -> Any:
        if depth > 3:
            return "..."

        if isinstance(value, str):
            if len(value) > self.max_string_length:
                return value[:self.max_string_length] + f"... (truncated, {len(value)} chars)"
            return value
        elif isinstance(value, dict):
            return {k: self._truncate_value(v, depth + 1) for k, v in value.items()}
        elif isinstance(value, list):
            truncated = [self._truncate_value(item, depth + 1) for item in value[:self.max_list_items]]
            if len(value) > self.max_list_items:
                truncated.append(f"... (truncated, {len(value)} items)")
            return truncated
        else:
            return value

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as pretty JSON."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = self._truncate_value(value)

        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info).splitlines()

        return json.dumps(log_data, indent=2, ensure_ascii=False, default=str)


def _is_sensitive_key(key: str) -> bool:
    """Check if a key is sensitive (case-insensitive)."""
    key_lower = key.lower()
    return any(sensitive_key in key_lower for sensitive_key in SENSITIVE_KEYS)


def sanitize_dict(data: Any, sensitive_keys: Optional[List[str]] = None) -> Any:
    """Recursively sanitize dictionary values for sensitive keys.

    Preserves structure but replaces sensitive values with [REDACTED].

    Args:
        data: Data to sanitize (dict, list, or primitive)
        sensitive_keys: Optional list of additional sensitive keys to check

    Returns:
        Sanitized data with same structure
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            key_str = str(key)
            if _is_sensitive_key(key_str) or (
                sensitive_keys
                and any(sk.lower() in key_str.lower() for sk in sensitive_keys)
            ):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = sanitize_dict(value, sensitive_keys)
        return sanitized
    elif isinstance(data, list):
        return [sanitize_dict(item, sensitive_keys) for item in data]
    else:
        return data


def sanitize_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Sanitize HTTP headers by filtering sensitive headers.

    Args:
        headers: HTTP headers dictionary

    Returns:
        Sanitized headers dictionary
    """
    sanitized = {}
    for key, value in (headers or {}).items():
        key_lower = key.lower()
        if any(
            key_lower.startswith(prefix)
            for prefix in SENSITIVE_HEADER_PREFIXES
        ) or _is_sensitive_key(key):
            sanitized[key] = "[REDACTED]"
        else:
            sanitized[key] = value
    return sanitized


def sanitize_response_body(body: str) -> Any:
    """Parse and sanitize a JSON response body.

    Args:
        body: Response body as JSON string

    Returns:
        Sanitized body, or a redacted placeholder if parsing fails
    """
    try:
        parsed = json.loads(body) if body else {}
        return sanitize_dict(parsed)
    except (json.JSONDecodeError, TypeError):
        return {"raw_body": "[REDACTED]" if body else ""}


def format_request_log(
    request_id: str,
    request: Any,
    lambda_context: Optional[Any] = None,
) -> Dict[str, Any]:
    """Format structured request log entry.

    Args:
        request_id: Request ID (from Lambda context)
        request: Normalized ``LambdaRequest``
        lambda_context: Optional Lambda context for metadata

    Returns:
        Dictionary with structured log data
    """
    log_data = {
        "request_id": request_id,
        "http_method": request.http_method.value,
        "request_path": request.path,
        "request_stage": request.stage,
        "path_parameters": request.path_parameters,
        "query_parameters": sanitize_dict(request.query_string_parameters),
        "request_headers": sanitize_headers(request.headers),
        "request_body": sanitize_dict(request.body),
    }

    if lambda_context:
        log_data["lambda_function_name"] = getattr(
            lambda_context, "function_name", None
        )
        log_data["lambda_memory_limit"] = getattr(
            lambda_context, "memory_limit_in_mb", None
        )
        log_data["lambda_remaining_time_ms"] = getattr(
            lambda_context, "get_remaining_time_in_millis", lambda: None
        )()

    return log_data


def format_response_log(
    request_id: str,
    response: Dict[str, Any],
    duration_ms: float,
    success: bool = True,
) -> Dict[str, Any]:
    """Format structured response log entry.

    Args:
        request_id: Request ID
        response: Proxy response with statusCode, headers and body
        duration_ms: Processing duration in milliseconds
        success: Whether request was successful

    Returns:
        Dictionary with structured log data
    """
    return {
        "request_id": request_id,
        "response_status": response["statusCode"],
        "response_headers": sanitize_headers(response["headers"]),
        "response_body": sanitize_response_body(response["body"]),
        "duration_ms": round(duration_ms, 2),
        "success": success,
    }
