import asyncio
from typing import List

from jumbler.models.session_models import EventEnvelopeModel


class EventRecorder:
    """Async event handler that keeps every envelope it receives."""

    def __init__(self):
        self.events: List[EventEnvelopeModel] = []
        self._condition = asyncio.Condition()

    async def __call__(self, envelope: EventEnvelopeModel):
        async with self._condition:
            self.events.append(envelope)
            self._condition.notify_all()

    def named(self, event: str) -> List[EventEnvelopeModel]:
        return [e for e in self.events if e.event == event]

    async def wait_for(self, event: str, count: int = 1, timeout: float = 3.0) -> EventEnvelopeModel:
        async def _wait():
            async with self._condition:
                await self._condition.wait_for(lambda: len(self.named(event)) >= count)

        await asyncio.wait_for(_wait(), timeout)
        return self.named(event)[count - 1]
