"""
Cluster Health - Exceptions.

============================================================
CUSTOM EXCEPTIONS
============================================================

All exceptions for the cluster health engine:
- ClusterHealthError: Base exception
- DataProviderError: Data provider failed to answer
- CheckEvaluationError: A check evaluator faulted
- AlertNotFoundError: Alert id is not known
- ConfigurationError: Invalid configuration

============================================================
FAILURE SAFETY
============================================================

- Provider failures surface as UNKNOWN check status
- Evaluator faults never stop the scheduler
- Only caller misuse is reported back to the caller

============================================================
"""

from typing import Any, Dict, List, Optional


class ClusterHealthError(Exception):
    """
    Base exception for cluster health errors.

    All cluster health exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            component: Name of the affected check or resource
            details: Additional error details
        """
        self.message = message
        self.component = component
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message."""
        if self.component:
            return f"[{self.component}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "component": self.component,
            "details": self.details,
        }


class DataProviderError(ClusterHealthError):
    """
    Raised by a data provider when a resource cannot be read.

    Transient by nature. The next scheduler tick retries.
    """

    def __init__(self, resource: str, reason: str) -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(
            message=reason,
            details={"resource": resource},
        )

    def _format_message(self) -> str:
        # Printed inside "Failed to get <resource> list: <error>"
        return self.reason


class CheckEvaluationError(ClusterHealthError):
    """
    Raised when a check evaluator faults unexpectedly.

    The scheduler converts this into an UNKNOWN result.
    """

    def __init__(self, check_name: str, reason: str) -> None:
        """
        Initialize exception.

        Args:
            check_name: Name of the check that faulted
            reason: Why evaluation failed
        """
        super().__init__(
            message=f"Check evaluation failed: {reason}",
            component=check_name,
            details={"reason": reason},
        )


class AlertNotFoundError(ClusterHealthError):
    """
    Raised when acknowledging an alert id that does not exist.

    This is a caller error, not a fault of the engine.
    """

    def __init__(self, alert_id: str) -> None:
        self.alert_id = alert_id
        super().__init__(
            message=f"Alert not found: {alert_id}",
            details={"alert_id": alert_id},
        )


class ConfigurationError(ClusterHealthError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        invalid_fields: Optional[List[str]] = None,
    ) -> None:
        self.invalid_fields = list(invalid_fields or [])
        details = {}
        if invalid_fields:
            details["invalid_fields"] = invalid_fields
        super().__init__(message=message, details=details)
