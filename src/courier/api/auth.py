"""Authentication for the cron endpoints.

The cron endpoints are meant to be hit by a scheduler (or an operator)
presenting `Authorization: Bearer <COURIER_CRON_SECRET>`. When no cron
secret is configured they are open, which is only acceptable outside
production.
"""

import hmac
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from courier.config import Settings
from courier.exceptions import AuthenticationError
from courier.logging import get_logger

logger = get_logger(__name__)

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)


def check_cron_secret(settings: Settings, token: str | None) -> None:
    """Validate a presented bearer token against the configured cron secret.

    Raises:
        AuthenticationError: If a secret is configured and the token does not match.
    """
    expected = settings.cron_secret
    if expected is None:
        return

    if token is None:
        raise AuthenticationError("Missing cron credentials")

    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError("Invalid cron credentials")


class CronAuthDependency:
    """FastAPI dependency guarding the cron endpoints.

    Usage:
        @router.post("/cron/webhook-retries")
        async def run_retries(_: None = Depends(CronAuthDependency(get_settings))):
            ...
    """

    def __init__(self, settings_provider: Callable[[], Settings]) -> None:
        self.settings_provider = settings_provider

    async def __call__(
        self,
        credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    ) -> None:
        settings = self.settings_provider()
        token = credentials.credentials if credentials is not None else None
        check_cron_secret(settings, token)
        logger.debug("Cron request authenticated", authenticated=settings.cron_secret is not None)
