"""Backend session -- the (possibly absent) authenticated connection."""

from __future__ import annotations

import logging

from backend.client import HttpBackendClient
from core.config import BackendConfig
from core.errors import BackendUnavailableError
from core.models.backend import Principal
from core.protocols import BackendInterface

logger = logging.getLogger(__name__)


class BackendSession:
    """Holds the backend client once one is configured.

    Without a client every data-access call fails fast with
    BackendUnavailableError.
    """

    def __init__(self, client: BackendInterface | None = None, principal: Principal = "") -> None:
        self._client = client
        self._principal = principal

    @classmethod
    def from_config(cls, config: BackendConfig) -> BackendSession:
        """Build a session from the `backend` config section.

        An empty URL yields a session with no backend.
        """
        if not config.enabled:
            logger.info("No backend configured; backend-dependent features are unavailable")
            return cls()

        client = HttpBackendClient(
            url=config.url,
            token=config.token,
            timeout=config.timeout_seconds,
        )
        logger.info("Backend session configured: %s", config.url)
        return cls(client=client, principal=config.principal)

    @property
    def available(self) -> bool:
        return self._client is not None

    @property
    def principal(self) -> Principal:
        return self._principal

    def require(self) -> BackendInterface:
        """Return the client or raise BackendUnavailableError."""
        if self._client is None:
            raise BackendUnavailableError()
        return self._client

    async def close(self) -> None:
        client = self._client
        self._client = None
        close = getattr(client, "close", None)
        if close is not None:
            await close()
