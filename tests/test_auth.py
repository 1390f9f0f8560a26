import json

import httpx
import pytest

from uirotator.core.errors import ValidationServiceError
from uirotator.service.auth import CredentialValidator

URL = "https://auth.example.test/validate-producer-credentials"


def validator_for(handler):
    return CredentialValidator(URL, "p-gw123", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_posts_creds_and_expected_access_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={})

    assert await validator_for(handler).validate("token-abc") is True
    assert seen == [("POST", URL, {"creds": "token-abc", "expected_access_id": "p-gw123"})]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [201, 401, 403, 500])
async def test_non_200_is_rejected(status):
    assert await validator_for(lambda r: httpx.Response(status)).validate("t") is False


@pytest.mark.asyncio
async def test_transport_failure_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ValidationServiceError, match="connection refused"):
        await validator_for(handler).validate("t")
