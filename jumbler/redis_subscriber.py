import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from jumbler.models.session_models import EventEnvelopeModel

# Seconds to wait for one message before polling again
POLL_INTERVAL = 1.0

EventHandler = Callable[[EventEnvelopeModel], Awaitable[None]]


class RedisSubscriber:
    """Redis subscriber that feeds one session channel into a handler."""

    def __init__(self, redis: Redis, channel: str, handler: EventHandler):
        """Initialize RedisSubscriber with redis connection, channel and handler."""
        self.redis: Redis = redis
        self.channel: str = channel
        self.handler: EventHandler = handler
        self._pubsub: Optional[PubSub] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Subscribe to the channel and start delivering messages.

        The subscription is registered on the server before this returns, so
        events published afterwards are never missed.
        """
        self._pubsub = self.redis.pubsub()
        try:
            await self._pubsub.subscribe(self.channel)
        except BaseException:
            await self._pubsub.aclose()
            self._pubsub = None
            raise
        self._task = asyncio.create_task(self._listen())
        logging.info(f"Subscribed to channel {self.channel}")

    async def _listen(self) -> None:
        while True:
            try:
                msg = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=POLL_INTERVAL
                )
            except RedisError as e:
                logging.error(f"Lost subscription to {self.channel}: {e}")
                return
            if not msg or msg["type"] != "message":
                continue
            try:
                envelope = EventEnvelopeModel.model_validate_json(msg["data"])
            except ValidationError as e:
                logging.warning(f"Dropping malformed event on {self.channel}: {e}")
                continue
            try:
                await self.handler(envelope)
            except Exception:
                logging.exception(f"Event handler failed on {self.channel}")

    async def close(self) -> None:
        """Stop delivering messages and release the pubsub connection."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub is not None:
            logging.info(f"Unsubscribing from channel {self.channel}")
            try:
                await self._pubsub.unsubscribe(self.channel)
            except RedisError as e:
                logging.warning(f"Could not unsubscribe from {self.channel}: {e}")
            finally:
                await self._pubsub.aclose()
                self._pubsub = None
