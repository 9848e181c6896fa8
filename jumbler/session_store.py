"""Redis-backed storage for session records and their event channels.

Each session is one JSON blob under ``session:{code}`` with a TTL that every
write resets and no read touches. Mutations read the whole blob, change it and
write it back. There is no locking: two concurrent mutations of the same
session race and the later write wins, so a member join and a configuration
change that overlap can lose one of the two. Sessions are small, short lived
and mostly driven by one host, which makes this acceptable. Mutations of
different sessions never interact.

Writes to an existing record use ``SET XX`` so a record that expired between
the read and the write is reported as missing instead of being recreated.
"""

import functools
import logging
import secrets
from typing import Any, Callable, Dict, Optional, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

from jumbler.errors import BackendUnavailable, SessionNotFound
from jumbler.load_secrets import session_ttl_seconds
from jumbler.models.session_models import (
    EventEnvelopeModel,
    FairnessConfigUpdateModel,
    MemberModel,
    PartitionResultModel,
    SessionModel,
)
from jumbler.redis_subscriber import EventHandler, RedisSubscriber

CODE_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 10
SESSION_PREFIX = "session:"

T = TypeVar("T")


def generate_session_code() -> str:
    """Return a random 6 character code over [0-9A-Z]."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def session_key(code: str) -> str:
    return f"{SESSION_PREFIX}{code}"


def session_channel(code: str) -> str:
    return f"{SESSION_PREFIX}{code}:events"


def backend_call(func):
    """Re-raise Redis client failures as BackendUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except RedisError as e:
            logging.error(f"Redis call {func.__name__} failed: {e}")
            raise BackendUnavailable(f"Session backend unavailable: {e}") from e

    return wrapper


class SessionStore:
    """Create, read, update and delete session records, and publish their events."""

    def __init__(
        self,
        redis: Redis,
        ttl_seconds: int = session_ttl_seconds,
        code_factory: Callable[[], str] = generate_session_code,
    ):
        """Initialize SessionStore with an open Redis client.

        Args:
            redis (Redis): Client created with ``decode_responses=True``; the caller owns its lifecycle
            ttl_seconds (int): Lifetime of a record after its last write
            code_factory (Callable[[], str]): Generator for new session codes
        """
        self.redis: Redis = redis
        self.ttl_seconds: int = ttl_seconds
        self.code_factory: Callable[[], str] = code_factory

    async def _load(self, code: str) -> SessionModel:
        data = await self.redis.get(session_key(code))
        if data is None:
            raise SessionNotFound(code)
        return SessionModel.model_validate_json(data)

    async def _save(self, session: SessionModel, create: bool = False) -> bool:
        """Write the record and reset its TTL.

        Returns:
            bool: False if the key already existed (create) or no longer exists (update)
        """
        blob = session.model_dump_json()
        if create:
            saved = await self.redis.set(
                session_key(session.code), blob, ex=self.ttl_seconds, nx=True
            )
        else:
            saved = await self.redis.set(
                session_key(session.code), blob, ex=self.ttl_seconds, xx=True
            )
        return bool(saved)

    async def _mutate(self, code: str, apply: Callable[[SessionModel], T]) -> T:
        session = await self._load(code)
        outcome = apply(session)
        if not await self._save(session):
            raise SessionNotFound(code)
        return outcome

    @backend_call
    async def create(self, creator_id: str) -> str:
        """Persist a new empty session under a fresh code.

        The existence check and the write are one ``SET NX``, so two processes
        can never claim the same code.

        Args:
            creator_id (str): Connection id of the session creator

        Returns:
            str: The new session code
        """
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.code_factory()
            session = SessionModel(code=code, creator_id=creator_id)
            if await self._save(session, create=True):
                logging.info(f"Session {code} created by {creator_id}")
                return code
            logging.warning(f"Session code collision on {code}, retrying")
        raise RuntimeError("Failed to allocate a unique session code")

    @backend_call
    async def get(self, code: str) -> SessionModel:
        return await self._load(code)

    @backend_call
    async def exists(self, code: str) -> bool:
        return await self.redis.exists(session_key(code)) == 1

    @backend_call
    async def upsert_member(self, code: str, member: MemberModel) -> SessionModel:
        """Insert or replace a member by id.

        Returns:
            SessionModel: The record as written
        """

        def apply(session: SessionModel) -> SessionModel:
            session.members[member.id] = member
            return session

        return await self._mutate(code, apply)

    @backend_call
    async def remove_member(self, code: str, member_id: str) -> bool:
        """Remove a member if present. Removing an absent member is not an error.

        Returns:
            bool: True if the member was in the session
        """

        def apply(session: SessionModel) -> bool:
            return session.members.pop(member_id, None) is not None

        return await self._mutate(code, apply)

    @backend_call
    async def update_config(
        self, code: str, partial: FairnessConfigUpdateModel
    ) -> SessionModel:
        """Merge the fields set in ``partial`` over the stored configuration."""

        def apply(session: SessionModel) -> SessionModel:
            session.config = session.config.model_copy(
                update=partial.model_dump(exclude_none=True)
            )
            return session

        return await self._mutate(code, apply)

    @backend_call
    async def set_partition_result(
        self, code: str, result: PartitionResultModel
    ) -> SessionModel:
        """Attach a partition result, replacing any earlier one, and mark the session shuffled."""

        def apply(session: SessionModel) -> SessionModel:
            session.result = result
            session.shuffled = True
            return session

        return await self._mutate(code, apply)

    @backend_call
    async def delete(self, code: str) -> bool:
        deleted = await self.redis.delete(session_key(code))
        if deleted:
            logging.info(f"Session {code} deleted")
        return deleted == 1

    @backend_call
    async def publish(
        self, code: str, event: str, payload: Optional[Dict[str, Any]] = None
    ) -> int:
        """Broadcast an event on the session channel.

        Delivery is fire-and-forget: subscribers that are not listening right
        now never see the event.

        Returns:
            int: Number of subscribers that received the message
        """
        envelope = EventEnvelopeModel(event=event, payload=payload or {})
        receivers = await self.redis.publish(
            session_channel(code), envelope.model_dump_json()
        )
        logging.debug(f"Published {event} to {session_channel(code)} ({receivers} receivers)")
        return receivers

    @backend_call
    async def subscribe(self, code: str, handler: EventHandler) -> RedisSubscriber:
        """Start delivering events of one session to ``handler``.

        Returns:
            RedisSubscriber: Active subscription, stop it with ``close()``
        """
        subscriber = RedisSubscriber(self.redis, session_channel(code), handler)
        await subscriber.start()
        return subscriber
