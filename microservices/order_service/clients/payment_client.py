"""
Payment Service Client for Order Service

HTTP client for synchronous communication with payment_service
"""

import httpx
import logging
from typing import Optional, Dict, Any

from core.service_client_base import BaseServiceClient
from ..models import PaymentSessionRequest
from ..protocols import PaymentServiceError

logger = logging.getLogger(__name__)


class PaymentClient(BaseServiceClient):
    """Client for payment_service"""

    service_name = "payment_service"
    default_url = "http://localhost:8207"

    async def create_payment_session(self, request: PaymentSessionRequest) -> Dict[str, Any]:
        """
        Create payment session

        Creating a session is not idempotent at the provider, so this
        method never retries.

        Args:
            request: Order ID, settlement currency and display line items

        Returns:
            Session handle exactly as returned by the payment service

        Raises:
            PaymentServiceError: Transport error, timeout or non-2xx response
        """
        try:
            response = await self.post(
                "/api/v1/payments/sessions",
                json=request.model_dump(mode="json")
            )
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            raise PaymentServiceError(
                f"Failed to create payment session: {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise PaymentServiceError(f"Payment session request timed out: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise PaymentServiceError(f"Error creating payment session: {e}") from e


def create_payment_client(base_url: Optional[str] = None, timeout: float = 30.0) -> PaymentClient:
    """Build a PaymentClient"""
    return PaymentClient(base_url=base_url, timeout=timeout)
