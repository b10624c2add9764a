"""
CRM Client - Account mailing address updates

API Reference:
- Endpoint: PATCH {CRM_API_URL}/sobjects/Account/{account_id}
- Auth: Bearer access token
- Body: JSON with Mailing* fields
- Response: 204 No Content on success
"""

import logging
from typing import Optional, Dict, Any

import httpx

from config import get_settings
from services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "crm"

# profile address field -> CRM account field
CRM_ADDRESS_FIELDS: Dict[str, str] = {
    "line1": "MailingStreet",
    "line2": "MailingStreet2",
    "city": "MailingCity",
    "state": "MailingState",
    "postal_code": "MailingPostalCode",
    "country": "MailingCountry",
}


def to_crm_address(address: Dict[str, Any]) -> Dict[str, Any]:
    """Map profile address fields onto CRM fields. Unknown fields are dropped."""
    return {
        CRM_ADDRESS_FIELDS[key]: value
        for key, value in address.items()
        if key in CRM_ADDRESS_FIELDS
    }


class CRMClient:
    """CRM Client - account address sync."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.CRM_API_URL).rstrip("/")
        self.access_token = access_token or settings.CRM_ACCESS_TOKEN
        self.timeout = timeout or settings.EXTERNAL_API_TIMEOUT
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
        )

    def is_configured(self) -> bool:
        return bool(self.base_url and self.access_token)

    async def update_address(self, account_id: str, address: Dict[str, Any]) -> None:
        """
        Update the account's mailing address.

        Raises:
            ExternalServiceError: not configured, no CRM field in the address,
                transport failure or non-2xx response
        """
        if not self.is_configured():
            raise ExternalServiceError(SERVICE_NAME, "CRM client not configured. Check CRM_API_URL and CRM_ACCESS_TOKEN.")

        body = to_crm_address(address)
        if address and not body:
            logger.warning(f"No CRM mailing field in address update for account {account_id}: {sorted(address)}")
            raise ExternalServiceError(SERVICE_NAME, "Address has no fields the CRM accepts")

        try:
            response = await self._client.patch(
                f"/sobjects/Account/{account_id}",
                json=body,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"CRM API request failed for account {account_id}: {e}")
            raise ExternalServiceError(SERVICE_NAME, str(e)) from e

        if response.is_error:
            logger.error(f"CRM API error {response.status_code} for account {account_id}")
            raise ExternalServiceError(
                SERVICE_NAME,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(f"CRM mailing address updated for account {account_id}")

    async def aclose(self) -> None:
        await self._client.aclose()
