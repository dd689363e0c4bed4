"""
Logging configuration for the MCP servers application.
"""

import logging.config
import re
import sys

import structlog


class SecretScrubber:
    """
    Scrub provider credentials from log events.

    Redacts:
    - Bearer tokens
    - Values of keys that look like credentials (api_key, token, authorization)
    """

    BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
    SENSITIVE_KEY_PATTERN = re.compile(r"(api_key|token|authorization|secret)", re.IGNORECASE)
    REDACTED = "[REDACTED]"

    @classmethod
    def scrub(cls, text: str) -> str:
        return cls.BEARER_PATTERN.sub(r"\1" + cls.REDACTED, text)

    @classmethod
    def scrub_dict(cls, data: dict) -> dict:
        """Recursively scrub credentials from a dictionary."""
        scrubbed = {}
        for key, value in data.items():
            if isinstance(key, str) and cls.SENSITIVE_KEY_PATTERN.search(key) and value:
                scrubbed[key] = cls.REDACTED
            elif isinstance(value, str):
                scrubbed[key] = cls.scrub(value)
            elif isinstance(value, dict):
                scrubbed[key] = cls.scrub_dict(value)
            else:
                scrubbed[key] = value
        return scrubbed


def secret_scrubbing_processor(logger, method_name, event_dict):
    """Structlog processor that removes credentials before rendering."""
    if "event" in event_dict and isinstance(event_dict["event"], str):
        event_dict["event"] = SecretScrubber.scrub(event_dict["event"])

    for key, value in list(event_dict.items()):
        if key == "event":
            continue
        if SecretScrubber.SENSITIVE_KEY_PATTERN.search(key) and value:
            event_dict[key] = SecretScrubber.REDACTED
        elif isinstance(value, str):
            event_dict[key] = SecretScrubber.scrub(value)
        elif isinstance(value, dict):
            event_dict[key] = SecretScrubber.scrub_dict(value)

    return event_dict


def setup_logging(level: str = "INFO", enable_secret_scrubbing: bool = True) -> None:
    """
    Setup structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        enable_secret_scrubbing: Mask credentials in log events (default: True)
    """

    # Configure standard library logging
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s",
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if enable_secret_scrubbing:
        processors.append(secret_scrubbing_processor)

    processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
