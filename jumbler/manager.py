import asyncio
import functools
import logging
from typing import Any, Dict

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from jumbler.models.session_models import EventEnvelopeModel
from jumbler.redis_subscriber import RedisSubscriber
from jumbler.session_store import SessionStore


class ConnectionManager:
    """Local WebSocket connections per session code, fed from the session channels.

    Every process keeps at most one Redis subscription per session code, opened
    when the first local connection starts watching the code and closed when the
    last one stops. Events published by any process reach every local watcher.
    """

    def __init__(self, store: SessionStore):
        self.store = store
        self.active_connections: Dict[str, Dict[str, WebSocket]] = {}
        self.subscribers: Dict[str, RedisSubscriber] = {}
        self.lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()

    async def watch(self, code: str, connection_id: str, websocket: WebSocket):
        """Start forwarding the events of a session to a connection

        Args:
            code (str): Session code
            connection_id (str): Id of the local connection
            websocket (WebSocket): The connection to forward to
        """
        async with self.lock:
            subscriber = self.subscribers.get(code)
            if subscriber is not None and not subscriber.active:
                logging.warning(f"Subscription for session {code} died, subscribing again")
                del self.subscribers[code]
                await subscriber.close()
            if code not in self.subscribers:
                self.subscribers[code] = await self.store.subscribe(
                    code, functools.partial(self.broadcast, code)
                )
            self.active_connections.setdefault(code, {})[connection_id] = websocket

    async def unwatch(self, code: str, connection_id: str):
        """Stop forwarding a session to a connection; drop the subscription when nobody is left.

        Args:
            code (str): Session code
            connection_id (str): Id of the local connection
        """
        async with self.lock:
            connections = self.active_connections.get(code)
            if connections is None:
                return
            connections.pop(connection_id, None)
            if connections:
                return
            del self.active_connections[code]
            subscriber = self.subscribers.pop(code, None)
        if subscriber is not None:
            await subscriber.close()

    def watcher_count(self, code: str) -> int:
        return len(self.active_connections.get(code, {}))

    async def send_personal_message(self, message: Dict[str, Any], websocket: WebSocket):
        await websocket.send_json(message)

    async def broadcast(self, code: str, envelope: EventEnvelopeModel):
        logging.info(f"Broadcasting {envelope.event} to session {code}")
        message = envelope.model_dump(mode="json")
        for connection_id, connection in list(self.active_connections.get(code, {}).items()):
            if connection.client_state != WebSocketState.CONNECTED:
                continue
            try:
                await connection.send_json(message)
            except (RuntimeError, WebSocketDisconnect) as e:
                logging.warning(f"Could not deliver {envelope.event} to {connection_id}: {e}")
            except Exception:
                logging.exception(f"Failed to send {envelope.event} to {connection_id}")

    async def close(self):
        """Close every subscription. Called once at shutdown."""
        async with self.lock:
            subscribers = list(self.subscribers.values())
            self.subscribers.clear()
            self.active_connections.clear()
        for subscriber in subscribers:
            await subscriber.close()
