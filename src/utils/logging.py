"""
Logging utilities for the topology compiler and provisioner.

Provides structured JSON logging with correlation IDs for tracing one compile
or synth run.
"""

import json
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StructuredLogger:
    """
    JSON logger with correlation ID support.

    Lines go to stderr so CLI output on stdout stays machine-readable.

    Example:
        logger = StructuredLogger(__name__)
        logger.info("Registered node", node_id="UserDataTable", kind="Table")
    """

    def __init__(self, name: str, correlation_id: Optional[str] = None) -> None:
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
        self.correlation_id = correlation_id or str(uuid.uuid4())

    def bind(self, correlation_id: str) -> "StructuredLogger":
        """Return a logger with the same name and a new correlation ID."""
        return StructuredLogger(self.logger.name, correlation_id)

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        """Internal method to emit structured JSON logs."""
        if not self.logger.isEnabledFor(logging.getLevelName(level)):
            return

        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "logger": self.logger.name,
            "message": message,
            "correlationId": self.correlation_id,
            **kwargs,
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        print(json.dumps(log_entry, default=str), file=sys.stderr)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info level message."""
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning level message."""
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error level message."""
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug level message."""
        self._log("DEBUG", message, **kwargs)


def get_logger(name: str, correlation_id: Optional[str] = None) -> StructuredLogger:
    """Create a StructuredLogger for a module."""
    return StructuredLogger(name, correlation_id)


def get_correlation_id(context: Optional[Dict[str, Any]] = None) -> str:
    """
    Extract or generate a correlation ID for a compile or synth run.

    Checks for correlation ID in:
    1. context['correlationId'] (explicitly passed by a caller)
    2. the TOPOLOGY_CORRELATION_ID environment variable (set by CI)
    3. Generates new UUID if not found
    """
    if context and context.get("correlationId"):
        return str(context["correlationId"])

    env_id = os.getenv("TOPOLOGY_CORRELATION_ID")
    if env_id:
        return env_id

    # Generate new ID
    return str(uuid.uuid4())
