"""
Secure logging configuration for SybilScope.

Analysis runs log wallet addresses constantly, and the data provider
credentials that callers pass around (RPC URLs, API keys) must never end up
in log output. Provides sanitized logging utilities and structlog processors
that filter sensitive content.
"""

import logging
import re
from typing import Any, Dict

from structlog.types import EventDict, WrappedLogger
import structlog


# Sensitive data patterns to redact from logs
SENSITIVE_PATTERNS = {
    # Private keys (Ethereum format)
    'private_key': re.compile(r'0x[a-fA-F0-9]{64}\b'),

    # Provider API keys passed as query parameters
    'api_key': re.compile(r'(?i)(?<=api[-_]key=)[^&\s]+'),

    # URLs with auth tokens
    'auth_url': re.compile(r'https?://[^/\s]*:[^@\s]*@[^\s]+'),

    # JWT tokens
    'jwt': re.compile(r'eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*'),
}

# Field names that commonly contain sensitive data
SENSITIVE_FIELD_NAMES = {
    'password', 'secret', 'token', 'api_key', 'private_key', 'credential',
    'authorization', 'rpc_url'
}

# Field names for partial redaction (show first/last few characters)
PARTIALLY_REDACTED_FIELDS = {
    'wallet_address', 'address', 'wallet', 'target'
}


def sanitize_string(text: str) -> str:
    """
    Sanitize a string by redacting sensitive patterns.

    Args:
        text: Input string to sanitize

    Returns:
        Sanitized string with sensitive data redacted
    """
    if not isinstance(text, str):
        return text

    sanitized = text
    for pattern_name, pattern in SENSITIVE_PATTERNS.items():
        sanitized = pattern.sub(f'[REDACTED_{pattern_name.upper()}]', sanitized)

    return sanitized


def partially_redact(value: str, show_chars: int = 6) -> str:
    """
    Partially redact a string, showing only first and last few characters.

    Args:
        value: String to partially redact
        show_chars: Number of characters to show at start and end

    Returns:
        Partially redacted string
    """
    if not isinstance(value, str) or len(value) <= show_chars * 2:
        return value

    return f"{value[:show_chars]}...{value[-4:]}"


def sanitize_dict(data: Dict[str, Any], depth: int = 0) -> Dict[str, Any]:
    """
    Recursively sanitize a dictionary.

    Args:
        data: Dictionary to sanitize
        depth: Current recursion depth

    Returns:
        Sanitized dictionary
    """
    if depth > 10:
        return {"[DEEP_RECURSION]": "..."}

    if not isinstance(data, dict):
        return data

    sanitized = {}

    for key, value in data.items():
        key_lower = str(key).lower()

        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELD_NAMES):
            sanitized[key] = '[REDACTED_SENSITIVE_FIELD]'

        elif key_lower in PARTIALLY_REDACTED_FIELDS:
            if isinstance(value, str):
                sanitized[key] = partially_redact(value)
            else:
                sanitized[key] = value

        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, depth + 1)

        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_dict(item, depth + 1) if isinstance(item, dict)
                else sanitize_string(item) if isinstance(item, str)
                else item
                for item in value
            ]

        elif isinstance(value, str):
            sanitized[key] = sanitize_string(value)

        else:
            sanitized[key] = value

    return sanitized


def secure_log_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Structlog processor that sanitizes log events.

    Catches sensitive values that reach structlog without passing through
    SecureLogger (e.g. from third-party code using structlog directly).
    """
    if 'event' in event_dict:
        event_dict['event'] = sanitize_string(str(event_dict['event']))

    sanitized_event = {}
    for key, value in event_dict.items():
        if key == 'event':
            sanitized_event[key] = value
        elif isinstance(value, str):
            sanitized_event[key] = sanitize_string(value)
        elif isinstance(value, dict):
            sanitized_event[key] = sanitize_dict(value)
        else:
            sanitized_event[key] = value

    return sanitized_event


def add_component_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag log events with the pipeline component that emitted them."""
    logger_name = str(event_dict.get('logger', ''))

    if 'clustering' in logger_name:
        event_dict['component'] = 'clustering'
    elif 'detection' in logger_name:
        event_dict['component'] = 'detection'
    elif 'graph' in logger_name:
        event_dict['component'] = 'graph'
    elif 'features' in logger_name:
        event_dict['component'] = 'features'

    return event_dict


def configure_secure_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure secure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Whether to use JSON format for logs
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level.upper(), logging.INFO))

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_component_context,
        secure_log_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class SecureLogger:
    """
    Wrapper around structlog that sanitizes every keyword argument.
    """

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)
        self.name = name

    def debug(self, event: str, **kwargs):
        self.logger.debug(event, **self._sanitize_kwargs(kwargs))

    def info(self, event: str, **kwargs):
        self.logger.info(event, **self._sanitize_kwargs(kwargs))

    def warning(self, event: str, **kwargs):
        self.logger.warning(event, **self._sanitize_kwargs(kwargs))

    def error(self, event: str, **kwargs):
        self.logger.error(event, **self._sanitize_kwargs(kwargs))

    def _sanitize_kwargs(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        return sanitize_dict(kwargs)


def get_secure_logger(name: str) -> SecureLogger:
    """Get a secure logger instance."""
    return SecureLogger(name)
