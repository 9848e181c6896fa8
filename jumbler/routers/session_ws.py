import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from uuid6 import uuid7

from jumbler.errors import InvalidConfiguration, JumblerError
from jumbler.manager import ConnectionManager
from jumbler.models.schemas import (
    ActionRequestModel,
    ActionResponseModel,
    CodeRequestModel,
    ErrorModel,
    JoinRequestModel,
    UpdateConfigRequestModel,
)
from jumbler.models.session_models import FairnessConfigUpdateModel
from jumbler.services.coordinator import SessionCoordinator, normalize_code

session_router = APIRouter()


@dataclass
class SessionConnection:
    """State of one WebSocket connection: which sessions it watches and which it joined."""

    connection_id: str
    websocket: WebSocket
    coordinator: SessionCoordinator
    manager: ConnectionManager
    watched: Set[str] = field(default_factory=set)
    joined: Set[str] = field(default_factory=set)

    async def watch(self, code: str):
        if code not in self.watched:
            await self.manager.watch(code, self.connection_id, self.websocket)
            self.watched.add(code)

    async def unwatch(self, code: str):
        if code in self.watched:
            self.watched.discard(code)
            await self.manager.unwatch(code, self.connection_id)


async def create_session(conn: SessionConnection, data: Dict[str, Any]) -> Dict[str, Any]:
    code = await conn.coordinator.create_session(conn.connection_id)
    await conn.watch(code)
    return {"code": code}


async def join_session(conn: SessionConnection, data: Dict[str, Any]) -> Dict[str, Any]:
    request = JoinRequestModel.model_validate(data)
    code = normalize_code(request.code)
    member_id, roster = await conn.coordinator.join_session(
        code, conn.connection_id, request.member
    )
    conn.joined.add(code)
    await conn.watch(code)
    return {
        "code": code,
        "member_id": member_id,
        "members": [member.model_dump(mode="json") for member in roster],
    }


async def leave_session(conn: SessionConnection, data: Dict[str, Any]) -> Dict[str, Any]:
    code = normalize_code(CodeRequestModel.model_validate(data).code)
    conn.joined.discard(code)
    roster = await conn.coordinator.leave_session(code, conn.connection_id)
    await conn.unwatch(code)
    return {"members": [member.model_dump(mode="json") for member in roster]}


async def update_config(conn: SessionConnection, data: Dict[str, Any]) -> Dict[str, Any]:
    request = UpdateConfigRequestModel.model_validate(data)
    try:
        partial = FairnessConfigUpdateModel.model_validate(request.config)
    except ValidationError as e:
        raise InvalidConfiguration(str(e)) from e
    config = await conn.coordinator.update_configuration(request.code, partial)
    return {"config": config.model_dump(mode="json")}


async def run_partition(conn: SessionConnection, data: Dict[str, Any]) -> Dict[str, Any]:
    request = CodeRequestModel.model_validate(data)
    result = await conn.coordinator.run_partition(request.code)
    return result.model_dump(mode="json")


async def get_snapshot(conn: SessionConnection, data: Dict[str, Any]) -> Dict[str, Any]:
    code = normalize_code(CodeRequestModel.model_validate(data).code)
    view = await conn.coordinator.get_snapshot(code)
    # A reconnecting client fetches a snapshot and then relies on live events.
    await conn.watch(code)
    return view.model_dump(mode="json")


async def close_session(conn: SessionConnection, data: Dict[str, Any]) -> Dict[str, Any]:
    code = normalize_code(CodeRequestModel.model_validate(data).code)
    closed = await conn.coordinator.close_session(code)
    conn.joined.discard(code)
    await conn.unwatch(code)
    return {"closed": closed}


ACTIONS: Dict[str, Callable[[SessionConnection, Dict[str, Any]], Awaitable[Dict[str, Any]]]] = {
    "create_session": create_session,
    "join_session": join_session,
    "leave_session": leave_session,
    "update_config": update_config,
    "run_partition": run_partition,
    "get_snapshot": get_snapshot,
    "close_session": close_session,
}


async def handle_message(conn: SessionConnection, raw: str) -> ActionResponseModel:
    """Run one client action and build the response sent back to that client only.

    Args:
        conn (SessionConnection): The connection the message arrived on
        raw (str): Message text, ``{"action": ..., "data": {...}}``

    Returns:
        ActionResponseModel: Success with data, or a failure with an error kind
    """
    try:
        request = ActionRequestModel.model_validate_json(raw)
    except ValidationError as e:
        return ActionResponseModel(
            action="", success=False, error=ErrorModel(kind="InvalidRequest", message=str(e))
        )

    handler = ACTIONS.get(request.action)
    if handler is None:
        return ActionResponseModel(
            action=request.action,
            success=False,
            error=ErrorModel(kind="UnknownAction", message=f"Unknown action {request.action!r}"),
        )

    try:
        data = await handler(conn, request.data)
    except JumblerError as e:
        logging.info(f"{request.action} failed for {conn.connection_id}: {e.kind} {e.message}")
        return ActionResponseModel(
            action=request.action, success=False, error=ErrorModel(kind=e.kind, message=e.message)
        )
    except ValidationError as e:
        return ActionResponseModel(
            action=request.action, success=False, error=ErrorModel(kind="InvalidRequest", message=str(e))
        )
    except Exception:
        logging.exception(f"Unexpected error in {request.action} for {conn.connection_id}")
        return ActionResponseModel(
            action=request.action,
            success=False,
            error=ErrorModel(kind="InternalError", message=f"Failed to {request.action}"),
        )
    return ActionResponseModel(action=request.action, success=True, data=data)


async def release_connection(conn: SessionConnection):
    """Leave every joined session and stop watching, after the socket is gone."""
    for code in list(conn.joined):
        try:
            await conn.coordinator.leave_session(code, conn.connection_id)
        except JumblerError as e:
            logging.info(f"Could not remove {conn.connection_id} from {code}: {e.kind}")
    conn.joined.clear()
    for code in list(conn.watched):
        await conn.unwatch(code)


class SessionSocket:
    @staticmethod
    @session_router.websocket("/ws")
    async def session_socket(websocket: WebSocket):
        """One client connection: request/response actions plus pushed session events.

        The connection id, a uuid7, doubles as the member id when the client joins a session.
        """
        manager: ConnectionManager = websocket.app.state.connection_manager
        conn = SessionConnection(
            connection_id=str(uuid7()),
            websocket=websocket,
            coordinator=websocket.app.state.coordinator,
            manager=manager,
        )
        await manager.connect(websocket)
        logging.info(f"Client connected: {conn.connection_id}")
        try:
            while True:
                raw = await websocket.receive_text()
                response = await handle_message(conn, raw)
                await manager.send_personal_message(
                    response.model_dump(mode="json", exclude_none=True), websocket
                )
        except WebSocketDisconnect:
            logging.info(f"Client disconnected: {conn.connection_id}")
        finally:
            await release_connection(conn)
