"""
Exception hierarchy for breed-load

Only configuration problems are exceptional here. A failed request, a non-200
status or an unparsable body are recorded outcomes, never raised.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class BreedLoadError(Exception):
    """
    Base exception for all breed-load errors

    Provides:
    - Automatic timestamping
    - Structured context
    - Automatic logging

    Example:
        raise BreedLoadError(
            message="Could not write report",
            operation="handle_summary",
            context={"path": "./src/output/index.html"}
        )
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # 'message' is reserved by logging
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for reports"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "operation": self.operation,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(BreedLoadError):
    """Run configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        context = kwargs.pop("context", None) or {}
        context.setdefault("config_key", config_key)
        super().__init__(message=message, context=context, **kwargs)


class ThresholdSyntaxError(ConfigurationError):
    """A threshold expression could not be parsed"""

    def __init__(
        self,
        message: str,
        expression: Optional[str] = None,
        **kwargs
    ):
        self.expression = expression
        super().__init__(
            message=message,
            config_key="thresholds",
            context={"expression": expression},
            **kwargs
        )
