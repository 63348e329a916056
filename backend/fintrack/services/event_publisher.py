"""
Redis Pub/Sub event publisher for background transaction updates.
Lets connected clients refresh after scheduled recurrence runs.
"""
import json
import os
import logging
from datetime import datetime
from typing import Optional

import redis

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Publishes transaction events to Redis Pub/Sub channels.

    Channel format: transactions:{user_id}

    Event types:
    - recurrence_processed: A recurrence run finished for the user
    """

    def __init__(self, redis_url: Optional[str] = None):
        """
        Initialize the event publisher.

        Args:
            redis_url: Redis connection URL. If not provided, uses REDIS_URL env var.
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._redis: Optional[redis.Redis] = None

    @property
    def redis(self) -> redis.Redis:
        """Lazy-load Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    def _channel(self, user_id: str) -> str:
        return f"transactions:{user_id}"

    def _state_key(self, user_id: str) -> str:
        return f"transactions_state:{user_id}"

    def _publish(self, user_id: str, event_data: dict) -> None:
        """
        Publish an event to the user's channel and keep the latest one per type
        for late subscribers.
        """
        try:
            channel = self._channel(user_id)
            state_key = self._state_key(user_id)
            message = json.dumps(event_data)

            self.redis.publish(channel, message)

            event_type = event_data.get("type", "")
            pipe = self.redis.pipeline()
            pipe.hset(state_key, event_type, message)
            pipe.expire(state_key, 300)  # 5 minute TTL
            pipe.execute()

            logger.debug(f"[EVENTS] Published {event_type} to {channel}")
        except Exception as e:
            logger.error(f"[EVENTS] Failed to publish event: {e}")

    def publish_recurrence_processed(
        self,
        user_id: str,
        created_count: int,
        target_date: str
    ) -> None:
        """
        Publish a recurrence_processed event.

        Args:
            user_id: The user ID
            created_count: Number of transactions materialized by the run
            target_date: ISO date the run materialized through
        """
        self._publish(user_id, {
            "type": "recurrence_processed",
            "created_count": created_count,
            "target_date": target_date,
            "timestamp": datetime.utcnow().isoformat()
        })
        logger.info(f"[EVENTS] Recurrence processed for user {user_id}: {created_count} created")

    def close(self) -> None:
        """Close the Redis connection."""
        if self._redis:
            self._redis.close()
            self._redis = None
