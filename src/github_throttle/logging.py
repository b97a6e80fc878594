"""Centralized logging configuration using loguru.

Provides:
- Configurable log levels from Settings
- CLI flag override (--verbose/--quiet)
- Standard library interception (httpx, httpcore)
- Per-request context binding keyed by credential fingerprint
- Credential redaction on every record
- Optional file rotation logging
"""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

REDACTED = "***"

# "Authorization: Bearer x", "'authorization': 'Basic x'", "authorization=x"
_AUTH_VALUE = re.compile(
    r"(?i)(authorization['\"]?\s*[:=]\s*['\"]?)(\w+\s+)?[^\s'\",}]+"
)
_AUTH_SCHEMES = frozenset({"basic", "bearer", "digest", "negotiate", "token"})
# Personal access, OAuth, user-to-server, server-to-server and refresh tokens
_GITHUB_TOKEN = re.compile(r"\b(gh[pousr]_|github_pat_)[A-Za-z0-9_]+")

_configured = False


def _mask_auth_value(match: re.Match[str]) -> str:
    prefix, scheme = match[1], match[2] or ""
    # An unknown first word may itself be the secret
    if scheme and scheme.strip().lower() not in _AUTH_SCHEMES:
        scheme = ""
    return f"{prefix}{scheme}{REDACTED}"


def redact_secrets(text: str) -> str:
    """Mask credentials in a log message.

    Authorization header values and GitHub token literals are replaced
    with ``***``. A recognized auth scheme and the token prefix are kept
    for debugging; anything else after "authorization" is masked.
    """
    text = _AUTH_VALUE.sub(_mask_auth_value, text)
    return _GITHUB_TOKEN.sub(lambda m: f"{m[1]}{REDACTED}", text)


def _redact_record(record: Record) -> None:
    record["message"] = redact_secrets(record["message"])


class InterceptHandler(logging.Handler):
    """Handler to intercept standard library logging and route to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Route stdlib log record to loguru."""
        from types import FrameType

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Find caller from where originated the logged message
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None:
            if frame.f_code.co_filename != logging.__file__:
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _console_format(record: Record) -> str:
    """Console line: our loggers show their bound name and credential fingerprint.

    Intercepted stdlib records have no bound name and fall back to the module.
    """
    extra = record["extra"]
    source = "{extra[name]}" if "name" in extra else "{name}"
    credential = " <magenta>[{extra[credential]}]</magenta>" if "credential" in extra else ""
    return (
        "<dim>{time:HH:mm:ss}</dim> | "
        "<level>{level: <8}</level> | "
        "<cyan>" + source + "</cyan>" + credential + " - "
        "<level>{message}</level>\n{exception}"
    )


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure logging for the application.

    Args:
        level: Base log level from config
        verbose: If True, use DEBUG level (overrides level)
        quiet: If True, use WARNING level (overrides level)
        log_file: Optional path for file logging with rotation
        rotation: When to rotate log file (e.g., "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: If True, output JSON format (useful for file logs)

    Returns:
        Configured logger instance

    Note:
        verbose takes precedence over quiet if both are True.
    """
    global _configured

    effective_level: LogLevel
    if verbose:
        effective_level = "DEBUG"
    elif quiet:
        effective_level = "WARNING"
    else:
        effective_level = level

    logger.remove()
    logger.configure(patcher=_redact_record)

    logger.add(
        sys.stderr,
        level=effective_level,
        format=_console_format,
        colorize=True,
        backtrace=True,
        # Locals in tracebacks could include Authorization headers
        diagnose=False,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",  # Always capture everything to file
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[name]}:{function}:{line} | "
                "{extra} | "
                "{message}"
            ),
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            diagnose=False,
            filter=lambda record: "name" in record["extra"],
        )

    _intercept_stdlib_logging(effective_level)

    _configured = True
    return logger


def _intercept_stdlib_logging(level: LogLevel) -> None:
    """Route stdlib loggers through loguru.

    httpx and httpcore log every request at INFO/DEBUG; they stay quiet
    unless we are running at DEBUG.
    """
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    httpx_level = logging.DEBUG if level in ("TRACE", "DEBUG") else logging.WARNING
    logging.getLogger("httpx").setLevel(httpx_level)
    logging.getLogger("httpcore").setLevel(httpx_level)


def get_logger(name: str) -> Logger:
    """Get a logger with the given name bound as context.

    Usage:
        from github_throttle.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Pacer ready")

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance with name bound
    """
    return logger.bind(name=name)


def bind_request(method: str, url: str, credential: str) -> Logger:
    """Bind request context to logger.

    Args:
        method: HTTP method
        url: Target URL
        credential: Credential fingerprint (never the raw credential key)

    Returns:
        Logger with request context bound
    """
    return logger.bind(name="executor", method=method, url=url, credential=credential)


class LogContext:
    """Context manager for temporary log context binding.

    Usage:
        with LogContext(credential="3f2a9c1d"):
            logger.info("Processing")  # Has credential context
        logger.info("After")  # No longer has context
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._token: Any = None

    def __enter__(self) -> Logger:
        self._token = logger.contextualize(**self._context)
        self._token.__enter__()
        return logger

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._token:
            self._token.__exit__(exc_type, exc_val, exc_tb)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Reset logging state (primarily for testing)."""
    global _configured
    logger.remove()
    _configured = False
