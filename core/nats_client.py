"""
NATS JetStream Client for Python Microservices
Provides event-driven communication between services

Subjects are built as ``<source>.<event type>``, for example
``order_service.order.created`` or ``payment_service.payment.succeeded``.
Every source publishes into its own JetStream stream so consumers get
persistence and at-least-once delivery.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import nats
from nats.aio.client import Client as NATS
from nats.aio.msg import Msg
from nats.js import JetStreamContext

from core.config import InfraConfig

logger = logging.getLogger(__name__)


class DecimalEncoder(json.JSONEncoder):
    """Custom JSON encoder that keeps Decimal amounts exact"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


class EventType(Enum):
    """Event types exchanged by the order service"""

    # Order Events
    ORDER_CREATED = "order.created"
    ORDER_STATUS_CHANGED = "order.status_changed"
    ORDER_PAID = "order.paid"

    # Payment Events
    PAYMENT_SUCCEEDED = "payment.succeeded"


class ServiceSource(Enum):
    """Service sources"""

    ORDER_SERVICE = "order_service"
    PAYMENT_SERVICE = "payment_service"
    PRODUCT_SERVICE = "product_service"


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: EventType,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject or f"{self.source}.{self.type}"
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        event = cls.__new__(cls)
        event.id = data.get("id")
        event.type = data.get("type")
        event.source = data.get("source")
        event.subject = data.get("subject")
        event.timestamp = data.get("timestamp")
        event.data = data.get("data", {})
        event.metadata = data.get("metadata", {})
        event.version = data.get("version", "1.0.0")
        return event


EventHandler = Callable[[Event], Awaitable[None]]


def _stream_name_for_subject(subject: str) -> str:
    """order_service.order.created -> order-stream"""
    prefix = subject.split('.')[0]
    return f"{prefix.replace('_service', '')}-stream"


class NATSEventBus:
    """
    NATS JetStream event bus.

    Publishing is best-effort from the caller's point of view (returns
    False instead of raising). Consumers use manual acknowledgement: a
    message is acked only after its handler returns and nak'ed when the
    handler raises, so the server redelivers it.
    """

    def __init__(
        self,
        service_name: str,
        config: Optional[InfraConfig] = None,
    ):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as connection name)
            config: Optional infrastructure config (defaults to environment)
        """
        config = config or InfraConfig.from_env()

        self.service_name = service_name
        self.servers = config.nats_servers

        self._nc: Optional[NATS] = None
        self._js: Optional[JetStreamContext] = None
        self._subscriptions: Dict[str, JetStreamContext.PushSubscription] = {}
        self._known_streams: set = set()

        logger.info(f"NATS EventBus initialized: {self.servers}")

    async def connect(self):
        """Connect to NATS and open a JetStream context"""
        try:
            self._nc = await nats.connect(servers=[self.servers], name=self.service_name)
            self._js = self._nc.jetstream()
            logger.info(f"Connected to NATS as {self.service_name}")
        except Exception as e:
            logger.error(f"Failed to connect to NATS: {e}")
            raise

    async def _ensure_stream(self, subject: str) -> str:
        """Create the stream owning ``subject`` if needed (idempotent)"""
        stream_name = _stream_name_for_subject(subject)
        if stream_name in self._known_streams:
            return stream_name

        prefix = subject.split('.')[0]
        try:
            await self._js.add_stream(name=stream_name, subjects=[f"{prefix}.>"])
        except Exception as e:
            # Stream already exists with a different configuration
            logger.debug(f"Stream creation note for {stream_name}: {e}")
        self._known_streams.add(stream_name)
        return stream_name

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to NATS JetStream.

        Returns:
            True when the server acknowledged the message
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return False

        try:
            stream_name = await self._ensure_stream(event.subject)
            data = json.dumps(event.to_dict(), cls=DecimalEncoder).encode()
            ack = await self._js.publish(event.subject, data, headers={"Nats-Msg-Id": event.id})
            logger.info(f"Published event {event.type} [{event.id}] to stream {stream_name}, seq={ack.seq}")
            return True

        except Exception as e:
            logger.error(f"Error publishing event {event.id}: {e}")
            return False

    async def subscribe_to_events(
        self, pattern: str, handler: EventHandler, durable: Optional[str] = None
    ) -> Optional[str]:
        """
        Subscribe to events with a durable JetStream push consumer.

        Args:
            pattern: Subject pattern (e.g. "payment_service.payment.succeeded")
            handler: Async callback receiving an Event
            durable: Durable consumer name
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return None

        stream_name = await self._ensure_stream(pattern)

        async def _on_message(msg: Msg):
            try:
                payload = json.loads(msg.data.decode())
                if not isinstance(payload, dict):
                    raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
                if 'type' in payload and 'source' in payload and 'data' in payload:
                    event = Event.from_dict(payload)
                else:
                    # Raw payload without the envelope
                    event = Event.__new__(Event)
                    event.id = msg.header.get("Nats-Msg-Id") if msg.header else None
                    event.id = event.id or str(msg.metadata.sequence.stream)
                    event.type = msg.subject.split('.', 1)[-1]
                    event.source = msg.subject.split('.')[0]
                    event.subject = msg.subject
                    event.timestamp = payload.get("timestamp", datetime.now(timezone.utc).isoformat())
                    event.data = payload
                    event.metadata = {}
                    event.version = "1.0.0"
            except (ValueError, UnicodeDecodeError, KeyError, TypeError) as e:
                # Poison message: redelivery cannot fix it
                logger.error(f"Discarding undecodable message on {msg.subject}: {e}")
                await msg.term()
                return

            try:
                await handler(event)
            except Exception as e:
                logger.error(f"Handler failed for {event.type} [{event.id}], requesting redelivery: {e}")
                await msg.nak()
                return
            await msg.ack()

        sub = await self._js.subscribe(
            pattern,
            durable=durable,
            stream=stream_name,
            cb=_on_message,
            manual_ack=True,
        )
        self._subscriptions[pattern] = sub
        logger.info(f"Subscribed to {pattern} (stream={stream_name}, durable={durable})")
        return durable or pattern

    async def close(self):
        """Drain subscriptions and close the connection"""
        self._subscriptions.clear()
        if self._nc is not None:
            await self._nc.drain()
            self._nc = None
            self._js = None
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._nc is not None and self._nc.is_connected


# Singleton instance
_event_bus: Optional[NATSEventBus] = None


async def get_event_bus(
    service_name: str,
    config: Optional[InfraConfig] = None,
) -> NATSEventBus:
    """
    Get or create event bus instance.

    Args:
        service_name: Name of the service using the event bus
        config: Optional infrastructure config

    Returns:
        Connected NATSEventBus instance
    """
    global _event_bus

    if _event_bus is None:
        bus = NATSEventBus(service_name=service_name, config=config)
        await bus.connect()
        _event_bus = bus

    return _event_bus

