"""
Client for the reinforcement sync endpoint.

The risk engine pushes one recommendation per category. Calls are made
sequentially; a failed call is reported to the caller and never retried.
"""

from typing import Optional

import httpx

from fusionrisk.domain.stability import ACTION_MAINTAIN
from fusionrisk.log_config import handler_logger
from fusionrisk.utils.errors import ReinforcementSyncError

logger = handler_logger("sync")


class ReinforcementSyncClient:
    """Send corrective actions to the reinforcement sync endpoint."""

    def __init__(
        self,
        sync_url: str,
        internal_token: str,
        authorization: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.sync_url = sync_url
        self.internal_token = internal_token
        self.authorization = authorization or ""
        self.timeout = timeout
        self.transport = transport
        self.calls_made = 0
        self.failures = 0

    def send(self, event_type: str, action: str) -> None:
        """POST one recommendation; raises ReinforcementSyncError on failure."""
        payload = {"event_type": event_type, "recommendation": action}
        headers = {
            "Authorization": self.authorization,
            "X-Internal-Token": self.internal_token,
            "Content-Type": "application/json",
        }

        self.calls_made += 1
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.sync_url, json=payload, headers=headers)
        except httpx.TimeoutException:
            raise ReinforcementSyncError(event_type, "Reinforcement sync timed out")
        except httpx.HTTPError as e:
            raise ReinforcementSyncError(event_type, "Reinforcement sync request failed", details=str(e))

        if not response.is_success:
            raise ReinforcementSyncError(
                event_type,
                f"Reinforcement sync returned status {response.status_code}",
                details=response.text,
            )

    def apply(self, event_type: str, action: str) -> bool:
        """Apply an action; ``maintain`` needs no call and always succeeds."""
        if action == ACTION_MAINTAIN:
            logger.info(f"{event_type}: action=maintain (no sync needed)")
            return True

        try:
            self.send(event_type, action)
        except ReinforcementSyncError as e:
            self.failures += 1
            logger.error(f"Failed to apply {action} for {event_type}: {e.message} {e.details or ''}")
            return False
        return True
