"""
Billing Client - Customer address updates

Talks to the billing provider's customer API over HTTPS.

API Reference:
- Endpoint: POST {BILLING_API_URL}/v1/customers/{customer_id}
- Auth: Bearer token in Authorization header
- Body: form-encoded, nested keys as address[line1], address[city], ...
"""

import logging
from typing import Optional, Dict, Any

import httpx

from config import get_settings
from services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "billing"


def encode_address_form(address: Dict[str, Any]) -> Dict[str, str]:
    """Flatten an address mapping into address[field] form parameters."""
    return {
        f"address[{key}]": "" if value is None else str(value)
        for key, value in address.items()
    }


class BillingClient:
    """
    Billing Client - customer address sync.

    Usage:
        client = BillingClient()
        await client.update_address("cus_123", {"city": "Reno"})
        await client.aclose()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.BILLING_API_URL).rstrip("/")
        self.api_key = api_key or settings.BILLING_API_KEY
        self.timeout = timeout or settings.EXTERNAL_API_TIMEOUT
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
        )

    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def update_address(self, account_id: str, address: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace the customer's address with the given fields.

        Raises:
            ExternalServiceError: not configured, transport failure or non-2xx response
        """
        if not self.is_configured():
            raise ExternalServiceError(SERVICE_NAME, "Billing client not configured. Check BILLING_API_KEY.")

        try:
            response = await self._client.post(
                f"/v1/customers/{account_id}",
                data=encode_address_form(address),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Billing API request failed for customer {account_id}: {e}")
            raise ExternalServiceError(SERVICE_NAME, str(e)) from e

        if response.is_error:
            logger.error(f"Billing API error {response.status_code} for customer {account_id}")
            raise ExternalServiceError(
                SERVICE_NAME,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(f"Billing address updated for customer {account_id}")
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            logger.warning(f"Billing API returned a non-JSON body for customer {account_id}")
            return {}

    async def aclose(self) -> None:
        await self._client.aclose()
