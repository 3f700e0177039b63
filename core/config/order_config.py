#!/usr/bin/env python3
"""Order service main configuration

Combines all sub-configs and holds the order-specific business settings
(status catalogue, settlement currency, paging defaults).
"""
import os
from dataclasses import dataclass, field
from typing import List

from .infra_config import InfraConfig
from .logging_config import LoggingConfig
from .service_config import ServiceConfig


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default

def _list(val: str) -> List[str]:
    return [item.strip().upper() for item in val.split(",") if item.strip()]


@dataclass
class OrderConfig:
    """Order business settings"""
    statuses: List[str] = field(
        default_factory=lambda: ["PENDING", "PAID", "DELIVERED", "CANCELLED"]
    )
    initial_status: str = "PENDING"
    paid_status: str = "PAID"
    currency: str = "usd"
    default_page_limit: int = 10

    def is_valid_status(self, status: str) -> bool:
        return status in self.statuses

    @classmethod
    def from_env(cls) -> 'OrderConfig':
        statuses = _list(os.getenv("ORDER_STATUSES", "PENDING,PAID,DELIVERED,CANCELLED"))
        initial_status = os.getenv("ORDER_INITIAL_STATUS", "PENDING").upper()
        paid_status = os.getenv("ORDER_PAID_STATUS", "PAID").upper()

        # The lifecycle markers must always be members of the status set
        for required in (initial_status, paid_status):
            if required not in statuses:
                statuses.append(required)

        return cls(
            statuses=statuses,
            initial_status=initial_status,
            paid_status=paid_status,
            currency=os.getenv("ORDER_CURRENCY", "usd").lower(),
            default_page_limit=_int(os.getenv("ORDER_DEFAULT_PAGE_LIMIT", "10"), 10),
        )


@dataclass
class AppConfig:
    """Complete order service configuration"""
    service_name: str = "order_service"
    service_host: str = "0.0.0.0"
    service_port: int = 8210
    environment: str = "development"
    debug: bool = False

    infra: InfraConfig = field(default_factory=InfraConfig)
    services: ServiceConfig = field(default_factory=ServiceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    order: OrderConfig = field(default_factory=OrderConfig)

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            service_name=os.getenv("SERVICE_NAME", "order_service"),
            service_host=os.getenv("ORDER_SERVICE_HOST", "0.0.0.0"),
            service_port=_int(os.getenv("ORDER_SERVICE_PORT", "8210"), 8210),
            environment=env,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            infra=InfraConfig.from_env(),
            services=ServiceConfig.from_env(),
            logging=LoggingConfig.from_env(),
            order=OrderConfig.from_env(),
        )
