"""
Domain events for the rest of the platform.

Each event is a persistent JSON message on the shared topic exchange, routed by
its type: booking.created, booking.status_changed, availability.created.
"""
import json
import uuid
from datetime import datetime

import aio_pika

from .clock import isoformat, utcnow
from .config import EXCHANGE_NAME, RABBIT_URL, SERVICE_NAME


def build_event(event_type: str, data: dict, occurred_at: datetime | None = None) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": isoformat(occurred_at or utcnow()),
        "source": SERVICE_NAME,
        "data": data,
    }


def encode_event(event: dict) -> aio_pika.Message:
    body = json.dumps(event, separators=(",", ":"), ensure_ascii=False)
    return aio_pika.Message(
        body=body.encode("utf-8"),
        content_type="application/json",
        message_id=event["event_id"],
        type=event["event_type"],
        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
    )


class RabbitPublisher:
    """
    Best-effort publisher. Booking state lives in the database, so a broker
    outage never fails a booking: the failure is printed and the event dropped.
    The connection is opened on first use and retried on the next publish.
    """

    def __init__(self, url: str | None = RABBIT_URL, exchange_name: str = EXCHANGE_NAME):
        self.url = url
        self.exchange_name = exchange_name
        self.enabled = bool(url)
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    @property
    def connected(self) -> bool:
        return (
            self._exchange is not None
            and self._connection is not None
            and not self._connection.is_closed
        )

    async def connect(self) -> bool:
        """True once the exchange is declared and usable."""
        if not self.enabled:
            return False
        if self.connected:
            return True

        try:
            connection = await aio_pika.connect_robust(self.url)
            channel = await connection.channel()
            exchange = await channel.declare_exchange(
                self.exchange_name,
                aio_pika.ExchangeType.TOPIC,
                durable=True,
            )
        except Exception as e:
            print(f"[{SERVICE_NAME}] RabbitMQ connect failed: {e}")
            self._connection = None
            self._exchange = None
            return False

        self._connection = connection
        self._exchange = exchange
        return True

    async def publish(self, routing_key: str, data: dict):
        if not await self.connect():
            return

        event = build_event(routing_key, data)
        try:
            await self._exchange.publish(encode_event(event), routing_key=routing_key)
        except Exception as e:
            print(f"[{SERVICE_NAME}] RabbitMQ publish failed ({routing_key} {event['event_id']}): {e}")

    async def close(self):
        connection = self._connection
        self._connection = None
        self._exchange = None
        if connection is not None and not connection.is_closed:
            await connection.close()


publisher = RabbitPublisher()
