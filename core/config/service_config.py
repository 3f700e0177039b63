#!/usr/bin/env python3
"""Service configuration for peer services

Endpoints of the collaborators the order service calls synchronously:
the product catalog (price/existence validation) and the payment service
(payment sessions).
"""
import os
from dataclasses import dataclass

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class ServiceConfig:
    """Peer service endpoints"""

    product_service_url: str = "http://localhost:8215"
    payment_service_url: str = "http://localhost:8207"

    # Applies to every collaborator call; a timeout is reported as a failure
    http_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Load service configuration from environment variables"""
        return cls(
            product_service_url=os.getenv("PRODUCT_SERVICE_URL", "http://localhost:8215"),
            payment_service_url=os.getenv("PAYMENT_SERVICE_URL", "http://localhost:8207"),
            http_timeout=_float(os.getenv("SERVICE_HTTP_TIMEOUT", "10"), 10.0),
        )
