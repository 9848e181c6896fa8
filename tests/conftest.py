"""
Shared fixtures: an in-memory Redis per test, the store and coordinator on top
of it, member factories and an event recorder for session channels.
"""

import functools
import random

import fakeredis
import pytest
from fakeredis.aioredis import FakeRedis

from jumbler.domain.partitioning import partition
from jumbler.models.session_models import (
    GenderModel,
    MemberAttributesModel,
    MemberModel,
)
from jumbler.services.coordinator import SessionCoordinator
from jumbler.session_store import SessionStore
from tests.event_recorder import EventRecorder


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
async def redis(fake_server):
    client = FakeRedis(server=fake_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(redis):
    return SessionStore(redis, ttl_seconds=600)


@pytest.fixture
def coordinator(store):
    return SessionCoordinator(store, partitioner=functools.partial(partition, rng=random.Random(7)))


@pytest.fixture
async def watch(store):
    """Subscribe an EventRecorder to a session; subscriptions close at teardown."""
    subscribers = []

    async def _watch(code: str) -> EventRecorder:
        recorder = EventRecorder()
        subscribers.append(await store.subscribe(code, recorder))
        return recorder

    yield _watch
    for subscriber in subscribers:
        await subscriber.close()


@pytest.fixture
def make_members():
    """Build members cycling through the given organizations and genders."""

    def _make(count, organizations=("MIT", "CMU"), genders=(GenderModel.male, GenderModel.female)):
        return [
            MemberModel(
                id=f"m{i}",
                name=f"Member {i}",
                organization=organizations[i % len(organizations)],
                gender=genders[i % len(genders)],
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def attrs():
    def _attrs(name="Ada", organization="MIT", gender=GenderModel.female):
        return MemberAttributesModel(name=name, organization=organization, gender=gender)

    return _attrs
