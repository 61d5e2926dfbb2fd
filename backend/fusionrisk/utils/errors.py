"""
Custom exceptions for the Fusion Stability pipeline.

Every exception carries a short message and optional details so that the API
layer can render it as a ``{error, details}`` body.
"""

from typing import Optional, Dict, Any


class FusionRiskError(Exception):
    """Base exception for all pipeline errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# ============================================================================
# Authorization
# ============================================================================

class AuthorizationError(FusionRiskError):
    """Missing or invalid internal token."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None):
        super().__init__(message, details)


# ============================================================================
# Database Errors
# ============================================================================

class DatabaseError(FusionRiskError):
    """Read or write against the metrics, risk or audit tables failed."""
    pass


# ============================================================================
# Collaborator Errors
# ============================================================================

class UpstreamError(FusionRiskError):
    """A collaborator handler failed or answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        details: Optional[Any] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message, details)
        self.upstream_status = upstream_status

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.upstream_status is not None:
            body["status"] = self.upstream_status
        return body


class ReinforcementSyncError(FusionRiskError):
    """A single reinforcement sync call failed."""

    def __init__(self, event_type: str, message: str, details: Optional[Any] = None):
        super().__init__(message, details)
        self.event_type = event_type


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(FusionRiskError):
    """Application configuration error."""
    pass
