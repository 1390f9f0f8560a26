from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..core.errors import ValidationServiceError

logger = logging.getLogger("uirotator.auth")


class CredentialValidator:
    """Checks ``AkeylessCreds`` tokens against the Akeyless validation endpoint."""

    def __init__(
        self,
        url: str,
        expected_access_id: str,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.expected_access_id = expected_access_id
        self.timeout_s = timeout_s
        self._transport = transport

    async def validate(self, creds: str) -> bool:
        """Return True when the authority accepts ``creds`` for this gateway.

        Raises:
            ValidationServiceError: If the authority cannot be reached
        """
        body = {"creds": creds, "expected_access_id": self.expected_access_id}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(self.url, json=body)
        except httpx.HTTPError as e:
            raise ValidationServiceError(f"Credential validation request failed: {e}") from e

        if response.status_code != 200:
            logger.error("Invalid AkeylessCreds (status %d)", response.status_code)
            return False
        return True
