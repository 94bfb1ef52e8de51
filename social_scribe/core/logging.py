"""The logging configuration module."""

import json
import logging
import sys
from datetime import datetime
from typing import Optional

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "custom_dimensions",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Every record becomes one JSON object; custom dimensions added through
    ``_ContextualLogger.with_context`` end up under ``custom_dimensions``.
    """

    def __init__(self):
        """Initialize the formatter with a module path cache."""
        super().__init__()
        self._module_cache: dict[str, str] = {}

    def _get_module_path(self, record: logging.LogRecord) -> str:
        """Extract the dotted module path (e.g. 'social_scribe.core.chat_service').

        Args:
        ----
            record (logging.LogRecord): The log record

        Returns:
        -------
            str: Full module path, or the bare module name outside the package

        """
        pathname = record.pathname
        if pathname in self._module_cache:
            return self._module_cache[pathname]

        parts = pathname.replace("\\", "/").split("/")
        package_indices = [i for i, part in enumerate(parts) if part == "social_scribe"]
        if package_indices:
            module_parts = parts[package_indices[-1] :]
            if module_parts[-1].endswith(".py"):
                module_parts[-1] = module_parts[-1][:-3]
            module_path = ".".join(module_parts)
        else:
            module_path = record.module

        self._module_cache[pathname] = module_path
        return module_path

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON.

        Args:
        ----
            record (logging.LogRecord): The log record to format

        Returns:
        -------
            str: JSON-formatted log message

        """
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": self._get_module_path(record),
            "function": record.funcName,
            "line": record.lineno,
        }

        if getattr(record, "custom_dimensions", None):
            log_entry["custom_dimensions"] = record.custom_dimensions

        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_ATTRS:
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class _ContextualLogger(logging.LoggerAdapter):
    """A LoggerAdapter that supports both custom dimensions and prefixes."""

    def __init__(
        self,
        logger: logging.Logger,
        prefix: str = "",
        dimensions: Optional[dict] = None,
    ) -> None:
        """Initialize the contextual logger.

        Args:
        ----
            logger (logging.Logger): Base logger instance
            prefix (str): Optional prefix for log messages
            dimensions (Optional[dict]): Custom dimensions for structured logging

        """
        super().__init__(logger, {})
        self.prefix = prefix
        self.dimensions = dimensions or {}

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        """Prefix the message and attach the custom dimensions to the record."""
        if self.prefix:
            msg = f"{self.prefix}{msg}"

        if "extra" not in kwargs:
            kwargs["extra"] = {}

        if self.dimensions:
            kwargs["extra"]["custom_dimensions"] = {
                **kwargs["extra"].get("custom_dimensions", {}),
                **self.dimensions,
            }

        return msg, kwargs

    def with_context(self, **dimensions: str | int | float | bool) -> "_ContextualLogger":
        """Create a new logger with additional context dimensions.

        Args:
        ----
            dimensions: Keyword arguments to add to dimensions

        Returns:
        -------
            _ContextualLogger: New logger instance with updated dimensions

        """
        return _ContextualLogger(self.logger, self.prefix, {**self.dimensions, **dimensions})


ContextualLogger = _ContextualLogger


class LoggerConfigurator:
    """Configures loggers with support for dimensions and prefixes.

    Uses settings from social_scribe.core.config:
    - text format when LOCAL_DEVELOPMENT=True, JSON format otherwise
    - LOG_LEVEL for the logging level

    Examples:
    --------
    ```python
    logger = LoggerConfigurator.configure_logger(
        __name__, dimensions={"component": "contact_search"}
    )
    logger.with_context(provider="hubspot", user_id="42").info("Searching contacts")
    ```

    """

    @staticmethod
    def configure_logger(
        name: str,
        prefix: str = "",
        dimensions: Optional[dict] = None,
    ) -> _ContextualLogger:
        """Configure and return a logger with the given name and initial context.

        Args:
        ----
            name (str): Logger name (typically __name__)
            prefix (str): Initial prefix for log messages
            dimensions (Optional[dict]): Initial custom dimensions

        Returns:
        -------
            _ContextualLogger: Configured logger with context support

        """
        logger = logging.getLogger(name)

        # Import settings here to avoid circular imports
        from social_scribe.core.config import settings

        log_level = settings.LOG_LEVEL.upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        if getattr(logger, "_social_scribe_configured", False):
            return _ContextualLogger(logger, prefix, dimensions)

        logger.propagate = False
        logger.handlers.clear()

        stream_handler = logging.StreamHandler(sys.stdout)
        if settings.LOCAL_DEVELOPMENT:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        else:
            formatter = JSONFormatter()

        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
        logger._social_scribe_configured = True

        return _ContextualLogger(logger, prefix, dimensions)


# Default logger instance
logger = LoggerConfigurator.configure_logger("social_scribe")
