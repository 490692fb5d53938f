"""
Redis pub/sub notifier for seller devices.

The socket gateway subscribes to ``{prefix}:vendedor:{seller_id}`` and relays
each message to the seller's room. Publishing is fire-and-forget: Redis being
down never fails the request that produced the event.
"""

import logging
import json
from typing import Any, Optional, Dict
from datetime import datetime, date
from decimal import Decimal

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask

logger = logging.getLogger(__name__)

INVENTORY_UPDATED = 'inventario:actualizado'


class Notifier:
    """
    Redis-backed event publisher with graceful degradation.

    Channel pattern: {prefix}:vendedor:{seller_id}
    """

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._enabled: bool = False
        self._prefix: str = ""

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize Redis client from Flask app config."""
        self._enabled = app.config.get('NOTIFICATIONS_ENABLED', True)
        self._prefix = app.config.get('NOTIFY_CHANNEL_PREFIX', 'distribuidora')
        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')

        if not self._enabled:
            logger.info("[NOTIFY] Notifications are DISABLED via config")
            return

        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[NOTIFY] Redis connected: {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[NOTIFY] Redis connection failed: {e}. Notifications DISABLED.")
            self._enabled = False
            self.client = None

    @property
    def enabled(self) -> bool:
        return self._enabled and self.client is not None

    def seller_channel(self, seller_id: int) -> str:
        return f"{self._prefix}:vendedor:{seller_id}"

    def _serialize(self, value: Any) -> str:
        def default_handler(obj: Any) -> Any:
            if isinstance(obj, (datetime, date)):
                return obj.isoformat()
            elif isinstance(obj, Decimal):
                return float(obj)
            raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
        return json.dumps(value, default=default_handler)

    def publish(self, seller_id: int, event: str, data: Dict[str, Any]) -> bool:
        """
        Publish one event to a seller's channel.

        Returns True when Redis accepted the message. Errors are logged and
        swallowed; the caller's transaction is already committed.
        """
        if not self.enabled:
            return False
        try:
            message = self._serialize({'event': event, 'data': data})
            self.client.publish(self.seller_channel(seller_id), message)
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[NOTIFY] Publish error for seller {seller_id} ({event}): {e}")
            return False

    def inventory_updated(self, seller_id: int, **data) -> bool:
        return self.publish(seller_id, INVENTORY_UPDATED, data)


# Global notifier instance
_notifier: Optional[Notifier] = None


def init_notifier(app: Flask) -> Notifier:
    """Initialize global notifier instance."""
    global _notifier
    _notifier = Notifier(app)
    app.extensions['notifier'] = _notifier
    return _notifier


def get_notifier() -> Notifier:
    """Get global notifier instance (disabled one if never initialized)."""
    global _notifier
    if _notifier is None:
        _notifier = Notifier()
    return _notifier
