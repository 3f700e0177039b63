"""
Product Service Client for Order Service

HTTP client for synchronous communication with product_service.
The catalog owns product existence and pricing; the order service only
ever reads from it.
"""

import httpx
import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError

from core.service_client_base import BaseServiceClient
from ..models import ProductRecord
from ..protocols import ProductServiceError, ProductNotFoundError

logger = logging.getLogger(__name__)


class ProductClient(BaseServiceClient):
    """Client for product_service"""

    service_name = "product_service"
    default_url = "http://localhost:8215"

    async def validate_products(self, product_ids: Iterable[str]) -> List[ProductRecord]:
        """
        Validate products in one batch call

        Args:
            product_ids: Product IDs to validate (duplicates are collapsed)

        Returns:
            One authoritative record per requested ID

        Raises:
            ProductNotFoundError: At least one ID is unknown to the catalog
            ProductServiceError: Transport error, timeout or malformed response
        """
        ids = list(dict.fromkeys(product_ids))

        try:
            response = await self.post(
                "/api/v1/products/validate",
                json={"product_ids": ids}
            )
            response.raise_for_status()
            payload = response.json()

        except httpx.HTTPStatusError as e:
            if e.response.status_code in (400, 404):
                raise ProductNotFoundError(
                    f"Catalog rejected product ids {ids}: {e.response.text}"
                ) from e
            raise ProductServiceError(
                f"Product validation failed with status {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise ProductServiceError(f"Product validation timed out: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProductServiceError(f"Error validating products: {e}") from e

        if isinstance(payload, dict):
            payload = payload.get("products")
        if not isinstance(payload, list):
            raise ProductServiceError("Unexpected product validation response shape")

        try:
            records = [ProductRecord.model_validate(item) for item in payload]
        except ValidationError as e:
            raise ProductServiceError(f"Malformed product record: {e}") from e

        found = {record.id for record in records}
        missing = [product_id for product_id in ids if product_id not in found]
        if missing:
            raise ProductNotFoundError(f"Products not found: {missing}")

        logger.debug(f"Validated {len(ids)} products")
        return records


def create_product_client(base_url: Optional[str] = None, timeout: float = 30.0) -> ProductClient:
    """Build a ProductClient"""
    return ProductClient(base_url=base_url, timeout=timeout)
