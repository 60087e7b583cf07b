# Custom exceptions for the Customer Insights engine
from typing import Any, Dict, Optional


class InsightsError(Exception):
    """Base exception for the insights engine."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInvocationError(InsightsError, ValueError):
    """Raised when a stage is called without a structurally required input."""
    pass


def require(value: Any, name: str) -> Any:
    """Fail fast when a required argument is missing."""
    if value is None:
        raise InvalidInvocationError(f"'{name}' is required", details={"argument": name})
    return value
