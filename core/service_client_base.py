"""
Base Service Client for Internal Microservice Communication

Base class for all synchronous HTTP clients to peer services.
"""

import httpx
import logging
from typing import Optional, Dict, Any
from abc import ABC

logger = logging.getLogger(__name__)


class BaseServiceClient(ABC):
    """
    Microservice client base class

    Handles:
    1. Base URL resolution
    2. HTTP client lifecycle
    3. Timeout control

    Example:
        class ProductClient(BaseServiceClient):
            service_name = "product_service"
            default_url = "http://localhost:8215"

            async def validate_products(self, product_ids):
                response = await self.post("/api/v1/products/validate", json={"product_ids": product_ids})
                return response.json()
    """

    # Subclasses define these
    service_name: str = None
    default_url: str = None

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize service client

        Args:
            base_url: Service base URL (falls back to default_url)
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests pass a MockTransport-backed one)
        """
        if not self.service_name:
            raise ValueError(f"{self.__class__.__name__} must define 'service_name'")

        self.base_url = (base_url or self.default_url or "http://localhost:8000").rstrip('/')

        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"isA-Internal-Client/{self.service_name}"
            }
        )

        logger.debug(f"Initialized {self.service_name} client: {self.base_url}")

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
        logger.debug(f"Closed {self.service_name} client")

    # ========================================
    # HTTP helpers
    # ========================================

    async def post(
        self,
        path: str,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """POST request"""
        url = f"{self.base_url}{path}"
        return await self.client.post(url, json=json, headers=headers)


__all__ = ["BaseServiceClient"]
