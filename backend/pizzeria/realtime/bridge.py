from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

import pika

from .feed import ChangeFeed, ChangeEvent, Subscription, ANY

logger = logging.getLogger(__name__)


class RabbitBridge:
    """Republish change-feed events to a RabbitMQ topic exchange.

    Lets sessions served by other processes follow the same rows. Routing
    keys are ``<collection>.<event>`` in lower case, e.g. ``orders.update``.
    A broker outage is logged and swallowed: the database write that caused
    the event has already committed and must not be reported as failed.
    """

    def __init__(self, host: str, port: int = 5672, vhost: str = '/', user: str = 'guest',
                 password: str = 'guest', exchange: str = 'pizzeria_changes'):
        self.host = host
        self.port = port
        self.vhost = vhost
        self.user = user
        self.password = password
        self.exchange = exchange
        self._subscription: Optional[Subscription] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'RabbitBridge':
        return cls(
            host=config['RABBIT_HOST'],
            port=int(config.get('RABBIT_PORT', 5672)),
            vhost=config.get('RABBIT_VHOST', '/'),
            user=config.get('RABBIT_USER', 'guest'),
            password=config.get('RABBIT_PASS', 'guest'),
            exchange=config.get('RABBIT_EXCHANGE', 'pizzeria_changes'),
        )

    def _connection_parameters(self) -> pika.ConnectionParameters:
        # short timeouts: publishing happens on the request path
        return pika.ConnectionParameters(
            host=self.host,
            port=self.port,
            virtual_host=self.vhost,
            credentials=pika.PlainCredentials(self.user, self.password),
            heartbeat=30,
            blocked_connection_timeout=5,
            socket_timeout=5,
            connection_attempts=2,
            retry_delay=1.0,
        )

    def attach(self, feed: ChangeFeed) -> Subscription:
        self._subscription = feed.subscribe(ANY, self.publish)
        return self._subscription

    def detach(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def publish(self, change: ChangeEvent) -> bool:
        routing_key = f"{change.collection}.{change.event}".lower()
        conn = None
        try:
            conn = pika.BlockingConnection(self._connection_parameters())
            ch = conn.channel()
            ch.exchange_declare(exchange=self.exchange, exchange_type='topic', durable=True)
            ch.basic_publish(
                exchange=self.exchange,
                routing_key=routing_key,
                body=json.dumps(change.to_dict()).encode('utf-8'),
                properties=pika.BasicProperties(content_type='application/json', delivery_mode=2),
            )
            return True
        except Exception:
            logger.exception('Failed to publish %s to RabbitMQ', routing_key)
            return False
        finally:
            if conn is not None:
                try:
                    conn.close()
                except Exception:
                    logger.warning('RabbitMQ connection close failed', exc_info=True)


__all__ = ['RabbitBridge']
