"""
Unit Tests for the billing and CRM address clients

HTTP is served by httpx.MockTransport; no network access.

Run with: pytest tests/test_external_clients.py -v
"""

import json
import pytest
import httpx
from urllib.parse import parse_qs

from billing_integration import BillingClient
from billing_integration.billing_client import encode_address_form
from crm_integration import CRMClient
from crm_integration.crm_client import to_crm_address
from services.errors import ExternalServiceError

ADDRESS = {"line1": "1 Main St", "city": "Austin", "state": "TX", "postal_code": "73301", "country": "US"}


def mock_client(base_url, handler):
    return httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(handler))


class TestBillingClient:

    @pytest.mark.asyncio
    async def test_update_address_posts_form(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"id": "cus_123"})

        client = BillingClient(
            base_url="https://billing.test",
            api_key="sk_test",
            http_client=mock_client("https://billing.test", handler),
        )

        result = await client.update_address("cus_123", ADDRESS)

        assert result == {"id": "cus_123"}
        assert seen["method"] == "POST"
        assert seen["path"] == "/v1/customers/cus_123"
        assert seen["auth"] == "Bearer sk_test"
        assert seen["form"]["address[city]"] == ["Austin"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_empty_result(self):
        client = BillingClient(
            base_url="https://billing.test",
            api_key="sk_test",
            http_client=mock_client(
                "https://billing.test",
                lambda request: httpx.Response(200, text="OK", headers={"Content-Type": "text/plain"}),
            ),
        )

        assert await client.update_address("cus_123", ADDRESS) == {}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        client = BillingClient(
            base_url="https://billing.test",
            api_key="sk_test",
            http_client=mock_client("https://billing.test", lambda request: httpx.Response(402)),
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.update_address("cus_123", ADDRESS)

        assert exc_info.value.service == "billing"
        assert exc_info.value.status_code == 402

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = BillingClient(
            base_url="https://billing.test",
            api_key="sk_test",
            http_client=mock_client("https://billing.test", handler),
        )

        with pytest.raises(ExternalServiceError):
            await client.update_address("cus_123", ADDRESS)

    @pytest.mark.asyncio
    async def test_unconfigured_client_raises(self):
        client = BillingClient(
            base_url="https://billing.test",
            api_key="",
            http_client=mock_client("https://billing.test", lambda request: httpx.Response(200)),
        )
        client.api_key = ""

        assert client.is_configured() is False
        with pytest.raises(ExternalServiceError):
            await client.update_address("cus_123", ADDRESS)

    def test_encode_address_form(self):
        assert encode_address_form({"city": "Austin", "line2": None}) == {
            "address[city]": "Austin",
            "address[line2]": "",
        }


class TestCRMClient:

    @pytest.mark.asyncio
    async def test_update_address_patches_mailing_fields(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(204)

        client = CRMClient(
            base_url="https://crm.test/services/data/v59.0",
            access_token="tok",
            http_client=mock_client("https://crm.test/services/data/v59.0", handler),
        )

        await client.update_address("001CRM", ADDRESS)

        assert seen["method"] == "PATCH"
        assert seen["path"] == "/services/data/v59.0/sobjects/Account/001CRM"
        assert seen["body"]["MailingCity"] == "Austin"
        assert seen["body"]["MailingPostalCode"] == "73301"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        client = CRMClient(
            base_url="https://crm.test",
            access_token="tok",
            http_client=mock_client("https://crm.test", lambda request: httpx.Response(500)),
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.update_address("001CRM", ADDRESS)

        assert exc_info.value.service == "crm"

    def test_unknown_address_fields_dropped(self):
        assert to_crm_address({"city": "Austin", "unit_type": "apt"}) == {"MailingCity": "Austin"}

    @pytest.mark.asyncio
    async def test_address_without_crm_fields_raises_without_request(self, caplog):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(204)

        client = CRMClient(
            base_url="https://crm.test",
            access_token="tok",
            http_client=mock_client("https://crm.test", handler),
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.update_address("001CRM", {"unit_type": "apt"})

        assert exc_info.value.service == "crm"
        assert requests == []
        assert "No CRM mailing field" in caplog.text
        await client.aclose()
