"""
Logging for spacebridge.

Every module logs through :func:`log_with_context` on the ``spacebridge``
logger.  Keyword context (``stack=``, ``step=``, ``space=``) travels on the
record and is rendered after the message, so console lines stay short
while the run log keeps the detail.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from spacebridge.constants import API_LOG_TRUNCATE_LENGTH

LOGGER_NAME = "spacebridge"
RUN_LOG_FILE = "migration.log"

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"
)

# Substrings of keys whose values never reach a log line
SENSITIVE_KEYS = ("token", "auth", "password", "secret", "key", "jwt")

# Record attributes copied verbatim instead of being folded into ``context``
_PASSTHROUGH = ("api_data", "response")


class ContextFormatter(logging.Formatter):
    """
    Formatter that appends a record's ``context`` as ``[key=value ...]``.

    With ``show_api_payloads`` the GraphQL request and response bodies
    attached by :func:`log_api_request` / :func:`log_api_response` are
    written on the lines that follow.
    """

    def __init__(
        self,
        fmt=None,
        verbose=False,
        show_api_payloads=False,
    ):
        if fmt is None:
            fmt = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
        super().__init__(fmt)
        self.show_api_payloads = show_api_payloads

    def format(self, record):
        line = super().format(record)

        context = getattr(record, "context", None)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"

        if not self.show_api_payloads:
            return line
        for label, attr in (("Request", "api_data"), ("Response", "response")):
            payload = getattr(record, attr, None)
            if payload:
                line += f"\n{label}: {payload}"
        return line


def attach_run_log(output_dir: str, debug_api: bool = False) -> logging.FileHandler:
    """
    Write every record of this run, DEBUG included, to ``migration.log``.

    Args:
        output_dir: The run's output directory; created if missing
        debug_api: Also write GraphQL payloads

    Returns:
        The attached file handler
    """
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, RUN_LOG_FILE)

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(ContextFormatter(show_api_payloads=debug_api))
    logging.getLogger(LOGGER_NAME).addHandler(handler)
    if debug_api:
        logging.getLogger("urllib3").addHandler(handler)

    log_with_context(logging.DEBUG, f"Run log: {path}")
    return handler


def setup_logger(
    verbose: bool = False, debug_api: bool = False, output_dir: str | None = None
) -> logging.Logger:
    """
    Configure the ``spacebridge`` logger for one command.

    Handlers from an earlier call are closed first, so a second call does
    not duplicate lines.

    Args:
        verbose: Show DEBUG records on the console instead of INFO and up
        debug_api: Show GraphQL payloads and urllib3 connection logs
        output_dir: If given, also write a run log there

    Returns:
        The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    # Handlers filter; the logger itself lets everything through
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(ContextFormatter(verbose=verbose, show_api_payloads=debug_api))
    logger.addHandler(console)

    if debug_api:
        wire = logging.getLogger("urllib3")
        wire.setLevel(logging.DEBUG)
        wire.addHandler(console)
        log_with_context(logging.DEBUG, "API debug logging enabled")

    if output_dir:
        attach_run_log(output_dir, debug_api)

    return logger


def log_with_context(level: int, message: str, **kwargs: Any) -> None:
    """
    Log ``message`` with keyword context attached to the record.

    ``None`` values are dropped.  ``exc_info`` goes to the logging call,
    ``api_data`` and ``response`` become record attributes, and every
    other keyword lands in the record's ``context`` mapping.

    Args:
        level: Logging level, e.g. ``logging.INFO``
        message: The message
        **kwargs: Context such as ``stack="vpc"`` or ``step="import"``
    """
    context = {k: v for k, v in kwargs.items() if v is not None}
    exc_info = context.pop("exc_info", None)
    extra: dict[str, Any] = {
        name: context.pop(name) for name in _PASSTHROUGH if name in context
    }
    if context:
        extra["context"] = context
    logging.getLogger(LOGGER_NAME).log(level, message, extra=extra, exc_info=exc_info)


def redact(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with credential-looking values replaced."""
    clean: dict[str, Any] = {}
    for key, value in data.items():
        if any(marker in key.lower() for marker in SENSITIVE_KEYS):
            clean[key] = "[REDACTED]"
        elif isinstance(value, dict):
            clean[key] = redact(value)
        else:
            clean[key] = value
    return clean


def _payload_text(payload: Any) -> str:
    if isinstance(payload, dict):
        text = json.dumps(redact(payload), indent=2)
    elif isinstance(payload, list):
        text = json.dumps(payload, indent=2)
    else:
        text = str(payload)
    if len(text) > API_LOG_TRUNCATE_LENGTH:
        text = text[:API_LOG_TRUNCATE_LENGTH] + "... [truncated]"
    return text


def log_api_request(
    method: str, url: str, data: dict | None = None, **kwargs: Any
) -> None:
    """Log an outgoing API request at DEBUG, credentials redacted."""
    if data:
        kwargs["api_data"] = _payload_text(data)
    log_with_context(logging.DEBUG, f"API Request: {method} {url}", **kwargs)


def log_api_response(
    status_code: int, url: str, response_data: Any = None, **kwargs: Any
) -> None:
    """Log an API response at DEBUG, redacted and truncated."""
    if response_data:
        kwargs["response"] = _payload_text(response_data)
    log_with_context(
        logging.DEBUG, f"API Response: {status_code} from {url}", **kwargs
    )
