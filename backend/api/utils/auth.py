"""Internal request authentication"""
import hmac
from typing import Optional

from fastapi import Header

from fusionrisk.config import settings
from fusionrisk.log_config import logger
from fusionrisk.utils.errors import AuthorizationError

INTERNAL_TOKEN_HEADER = "X-Internal-Token"


class RequestAuthenticator:
    """Checks the shared internal secret presented by callers.

    Comparison is constant-time. An unconfigured secret rejects every request.
    """

    def __init__(self, expected_token: str):
        self._expected = (expected_token or "").encode("utf-8")

    def is_authorized(self, presented: Optional[str]) -> bool:
        if not self._expected or not presented:
            return False
        return hmac.compare_digest(presented.encode("utf-8"), self._expected)

    def authenticate(self, presented: Optional[str]) -> None:
        if not self.is_authorized(presented):
            logger.warning("Unauthorized access attempt on internal handler")
            raise AuthorizationError()


def get_authenticator() -> RequestAuthenticator:
    """Authenticator bound to the currently configured secret."""
    return RequestAuthenticator(settings.internal_webhook_token)


def require_internal_token(
    x_internal_token: Optional[str] = Header(None, alias=INTERNAL_TOKEN_HEADER),
) -> None:
    """FastAPI dependency guarding every pipeline handler."""
    get_authenticator().authenticate(x_internal_token)
